"""
Error taxonomy for the escrow settlement unit.

Every failure the unit can surface is an EscrowError carrying a numeric exit
code (the value reported to the sender alongside the bounce), a human-readable
message and an optional context mapping for debugging / tooling:

    raise WrongSender("only the guarantor may confirm", context={"sender": ...})

The codes are part of the wire contract and must not be renumbered.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, ClassVar, Dict, Mapping, Optional


class ExitCode(IntEnum):
    OK = 0
    CELL_OVERFLOW = 8
    CELL_UNDERFLOW = 9
    WRONG_SENDER = 111
    INSUFFICIENT_AMOUNT = 112
    INSUFFICIENT_BALANCE = 113
    INSUFFICIENT_VALUE_FOR_PAYING_FEES = 114
    CONFIRMATION_DEADLINE_NOT_COME_YET = 115
    JETTON_PAYMENT_REQUIRED = 116
    CONFIRMATION_DEADLINE_HAS_OCCURRED = 117
    WRONG_STATE = 118
    UNKNOWN_OP = 0xFFFF


class EscrowError(Exception):
    """
    Structured error raised by the settlement machine and the codecs.

    Attributes:
        code: ExitCode reported for the failed message
        message: human-readable message
        context: optional extra fields for debugging / tooling
    """

    default_code: ClassVar[ExitCode] = ExitCode.UNKNOWN_OP

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[ExitCode] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = ExitCode(code if code is not None else self.default_code)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": int(self.code),
            "name": self.code.name.lower(),
            "message": self.message,
            "context": dict(self.context),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={int(self.code)}, message={self.message!r})"


# --- settlement failures -----------------------------------------------------


class WrongSender(EscrowError):
    default_code = ExitCode.WRONG_SENDER


class InsufficientAmount(EscrowError):
    default_code = ExitCode.INSUFFICIENT_AMOUNT


class InsufficientBalance(EscrowError):
    default_code = ExitCode.INSUFFICIENT_BALANCE


class InsufficientValueForPayingFees(EscrowError):
    default_code = ExitCode.INSUFFICIENT_VALUE_FOR_PAYING_FEES


class ConfirmationDeadlineNotComeYet(EscrowError):
    default_code = ExitCode.CONFIRMATION_DEADLINE_NOT_COME_YET


class JettonPaymentRequired(EscrowError):
    default_code = ExitCode.JETTON_PAYMENT_REQUIRED


class ConfirmationDeadlineHasOccurred(EscrowError):
    default_code = ExitCode.CONFIRMATION_DEADLINE_HAS_OCCURRED


class WrongState(EscrowError):
    """The operation is not valid in the unit's current lifecycle state."""

    default_code = ExitCode.WRONG_STATE


class UnknownOp(EscrowError):
    default_code = ExitCode.UNKNOWN_OP


# --- codec failures ----------------------------------------------------------


class CellError(EscrowError, ValueError):
    """Malformed cell or bit-string (building past limits, reading past the end)."""

    default_code = ExitCode.CELL_UNDERFLOW


class CellOverflow(CellError):
    default_code = ExitCode.CELL_OVERFLOW


class CellUnderflow(CellError):
    default_code = ExitCode.CELL_UNDERFLOW


__all__ = [
    "ExitCode",
    "EscrowError",
    "WrongSender",
    "InsufficientAmount",
    "InsufficientBalance",
    "InsufficientValueForPayingFees",
    "ConfirmationDeadlineNotComeYet",
    "JettonPaymentRequired",
    "ConfirmationDeadlineHasOccurred",
    "WrongState",
    "UnknownOp",
    "CellError",
    "CellOverflow",
    "CellUnderflow",
]

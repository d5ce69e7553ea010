"""
Asset abstraction: what "paying someone" means in each settlement mode.

A unit picks exactly one asset when it is constructed, from the immutable
`uses_token` flag, and the settlement machine only ever talks to it through
this interface:

    NativeAsset  value rides directly on the outbound message
    TokenAsset   value moves through the unit's token-ledger wallet: the unit
                 sends `transfer` to its wallet, the wallet sends
                 `internal_transfer` to the recipient's wallet, which notifies
                 the recipient with the forward payload

Tokens may arrive before the unit can validate them (the ledger notifies after
custody already changed), so any rejected token deposit is compensated with
`return_to_sender`, a transfer back through the wallet that notified us.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Iterable, Optional, Tuple, Type

from ..cell import Address, Cell
from ..codec.messages import JettonTransfer
from ..codec.storage import Deal
from ..config import BPS_DENOMINATOR, EscrowConfig, load_config
from ..errors import (
    EscrowError,
    InsufficientBalance,
    InsufficientValueForPayingFees,
    WrongState,
)
from .outbound import OutboundMessage, SendMode

__all__ = ["Asset", "NativeAsset", "TokenAsset", "asset_for", "fee_split"]


def fee_split(amount: int, bps: int) -> Tuple[int, int]:
    """Split `amount` into (payout, fee) with fee = floor(amount * bps / 10000)."""
    if amount < 0 or bps < 0:
        raise ValueError("amount and bps must be non-negative")
    fee = amount * bps // BPS_DENOMINATOR
    return amount - fee, fee


class Asset(ABC):
    kind: ClassVar[str]
    accepts_native_deposit: ClassVar[bool]
    accepts_token_deposit: ClassVar[bool]
    shortfall_error: ClassVar[Type[EscrowError]]

    def __init__(self, cfg: Optional[EscrowConfig] = None) -> None:
        self.cfg = cfg or load_config()

    def fee_split(self, amount: int, bps: int) -> Tuple[int, int]:
        return fee_split(amount, bps)

    @abstractmethod
    def disburse(
        self, deal: Deal, recipient: Address, amount: int, notification: Cell, query_id: int
    ) -> OutboundMessage:
        """Message that pays `amount` to `recipient`, carrying `notification`."""

    def required_reserve(self, messages: Iterable[OutboundMessage]) -> int:
        """
        Native value the fixed-value legs of `messages` consume. Sweeps take
        whatever is left, so they never count.
        """
        return sum(m.value for m in messages if not m.mode & SendMode.CARRY_ALL_BALANCE)

    def ensure_covered(self, messages: Iterable[OutboundMessage], balance: int) -> None:
        required = self.required_reserve(messages)
        if balance < required:
            raise self.shortfall_error(
                f"{self.kind} disbursement needs {required}, unit holds {balance}",
                context={"required": required, "balance": balance},
            )

    def return_to_sender(
        self, wallet: Address, from_address: Address, amount: int, query_id: int
    ) -> OutboundMessage:
        """
        Send `amount` tokens back to `from_address` through the wallet that
        reported them, paying with the inbound message's value.
        """
        transfer = JettonTransfer(
            query_id=query_id,
            amount=amount,
            destination=from_address,
            response_destination=from_address,
        )
        return OutboundMessage(wallet, 0, transfer.to_cell(), SendMode.CARRY_INBOUND_VALUE)


class NativeAsset(Asset):
    kind = "native"
    accepts_native_deposit = True
    accepts_token_deposit = False
    shortfall_error = InsufficientBalance

    def disburse(
        self, deal: Deal, recipient: Address, amount: int, notification: Cell, query_id: int
    ) -> OutboundMessage:
        return OutboundMessage(recipient, amount, notification)


class TokenAsset(Asset):
    kind = "token"
    accepts_native_deposit = False
    accepts_token_deposit = True
    shortfall_error = InsufficientValueForPayingFees

    def disburse(
        self, deal: Deal, recipient: Address, amount: int, notification: Cell, query_id: int
    ) -> OutboundMessage:
        if deal.token_wallet is None:
            raise WrongState("token wallet is unknown; nothing to disburse from")
        transfer = JettonTransfer(
            query_id=query_id,
            amount=amount,
            destination=recipient,
            response_destination=deal.seller,
            forward_ton_amount=self.cfg.forward_ton_amount,
            forward_payload=notification,
        )
        return OutboundMessage(deal.token_wallet, self.cfg.jetton_transfer_fee, transfer.to_cell())


def asset_for(uses_token: bool, cfg: Optional[EscrowConfig] = None) -> Asset:
    return TokenAsset(cfg) if uses_token else NativeAsset(cfg)

"""
escrow_py.runtime.unit — the deployed escrow unit.

EscrowUnit hosts one deal: its persisted data cell, its native balance and,
once resolved, its tombstone. `deliver()` processes exactly one inbound
message to completion under a lock:

    credit inbound value
    decode the record, run the settlement machine
    resolve outbound values (send modes), check the balance covers them
    commit record + balance + tombstone        (all or nothing)

On an EscrowError nothing is committed; the unit plays the transport's part
and produces the bounce returning the inbound value to the sender. A
non-bounceable message that fails leaves its value with the unit.

Deterministic: no wall clock, no randomness; `now` arrives with each message.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..cell import Address, Cell, begin_cell
from ..codec.opcodes import Op
from ..codec.storage import Deal, DealConfig, decode_deal, encode_deal, initial_data
from ..config import EscrowConfig, load_config
from ..errors import EscrowError, ExitCode, InsufficientBalance, WrongState
from .assets import Asset, asset_for
from .context import MessageContext
from .machine import DealState, Outcome, SettlementMachine, state_of
from .outbound import OutboundMessage, SendMode

log = logging.getLogger(__name__)

__all__ = ["DeliveryResult", "EscrowUnit", "resolve_values", "bounce_message"]

# Bounced bodies keep at most this many bits of the inbound body.
_BOUNCE_BODY_BITS = 256


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    exit_code: ExitCode
    messages: Tuple[OutboundMessage, ...] = ()
    outcome: Optional[Outcome] = None
    returned: Optional[ExitCode] = None
    action: str = "noop"
    error: Optional[EscrowError] = None
    destroyed: bool = False

    @property
    def bounce(self) -> Optional[OutboundMessage]:
        if self.success:
            return None
        return self.messages[0] if self.messages else None

    @property
    def ops(self) -> List[Optional[int]]:
        return [m.op for m in self.messages]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "exit_code": int(self.exit_code),
            "action": self.action,
            "outcome": self.outcome.value if self.outcome else None,
            "returned": int(self.returned) if self.returned is not None else None,
            "destroyed": self.destroyed,
            "error": self.error.to_dict() if self.error else None,
            "messages": [m.to_dict() for m in self.messages],
        }


# ----------------------------- value resolution ------------------------------ #


def resolve_values(
    messages: Sequence[OutboundMessage], balance: int, inbound_value: int
) -> Tuple[List[OutboundMessage], int]:
    """
    Assign concrete values to `messages` in order and return them with the
    balance left afterwards. Raises InsufficientBalance if any leg overdraws.
    """
    out: List[OutboundMessage] = []
    remaining = balance
    for m in messages:
        if m.mode & SendMode.CARRY_ALL_BALANCE:
            value = remaining
        elif m.mode & SendMode.CARRY_INBOUND_VALUE:
            value = m.value + inbound_value
        else:
            value = m.value
        if value > remaining:
            raise InsufficientBalance(
                "outbound value exceeds balance",
                context={"value": value, "balance": remaining},
            )
        remaining -= value
        out.append(m.with_value(value))
    return out, remaining


def bounce_message(ctx: MessageContext) -> OutboundMessage:
    s = ctx.body.begin_parse()
    n = min(_BOUNCE_BODY_BITS, s.remaining_bits)
    b = begin_cell().store_uint(Op.BOUNCE, 32)
    if n:
        b.store_uint(s.load_uint(n), n)
    return OutboundMessage(ctx.sender, ctx.value, b.end_cell(), SendMode.ORDINARY)


# ---------------------------------- unit ------------------------------------ #


class EscrowUnit:
    def __init__(
        self,
        data: Cell,
        *,
        balance: int = 0,
        address: Optional[Address] = None,
        cfg: Optional[EscrowConfig] = None,
    ) -> None:
        if balance < 0:
            raise ValueError("balance must be non-negative")
        self.cfg = cfg or load_config()
        deal = decode_deal(data)
        self._data = data
        self._balance = balance
        self._outcome: Optional[Outcome] = None
        self._destroyed = False
        self.address = address
        self.asset: Asset = asset_for(deal.uses_token, self.cfg)
        self.machine = SettlementMachine(self.asset, self.cfg)
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: DealConfig, **kwargs: Any) -> "EscrowUnit":
        return cls(initial_data(config, cfg=kwargs.get("cfg")), **kwargs)

    # ---- read-only views ---- #

    @property
    def data(self) -> Cell:
        return self._data

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def outcome(self) -> Optional[Outcome]:
        return self._outcome

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def state(self) -> DealState:
        return state_of(self.get_deal(), self._outcome)

    def get_deal(self) -> Deal:
        return decode_deal(self._data)

    # ---- delivery ---- #

    def deliver(self, ctx: MessageContext) -> DeliveryResult:
        with self._lock:
            try:
                if self._outcome is not None:
                    raise WrongState(
                        f"deal already resolved ({self._outcome.value})",
                        context={"outcome": self._outcome.value},
                    )
                balance = self._balance + ctx.value
                transition = self.machine.handle(self.get_deal(), ctx, balance)
                messages, remaining = resolve_values(transition.messages, balance, ctx.value)
            except EscrowError as e:
                return self._fail(ctx, e)

            destroyed = remaining == 0 and any(m.mode & SendMode.DESTROY_IF_ZERO for m in messages)
            if transition.deal != self.get_deal():
                self._data = encode_deal(transition.deal)
            self._balance = remaining
            if transition.outcome is not None:
                self._outcome = transition.outcome
                self._destroyed = destroyed
            log.debug(
                "delivered %s from %s: action=%s out=%d balance=%d",
                ctx.body.begin_parse().preload_uint(32) if ctx.body.bit_len >= 32 else None,
                ctx.sender,
                transition.action,
                len(messages),
                remaining,
            )
            return DeliveryResult(
                success=True,
                exit_code=ExitCode.OK,
                messages=tuple(messages),
                outcome=transition.outcome,
                returned=transition.returned,
                action=transition.action,
                destroyed=self._destroyed,
            )

    def _fail(self, ctx: MessageContext, err: EscrowError) -> DeliveryResult:
        log.warning(
            "message from %s failed: %s (%d) %s",
            ctx.sender,
            err.code.name.lower(),
            int(err.code),
            err.message,
        )
        messages: Tuple[OutboundMessage, ...] = ()
        if ctx.bounceable and not ctx.bounced:
            messages = (bounce_message(ctx),)
        else:
            self._balance += ctx.value
        return DeliveryResult(
            success=False,
            exit_code=err.code,
            messages=messages,
            outcome=self._outcome,
            action="bounce" if messages else "failed",
            error=err,
            destroyed=self._destroyed,
        )

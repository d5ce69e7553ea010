"""
Outbound messages and the builder that turns a resolution into a message set.

Message values follow the transport's send modes: most messages carry a fixed
value; CARRY_INBOUND_VALUE adds whatever the inbound message brought, and
CARRY_ALL_BALANCE sweeps everything left after the preceding messages. The
last message of every terminal set is a sweep to the seller flagged
DESTROY_IF_ZERO, which empties the unit.

Message sets per resolution (asset-specific legs come from the Asset):

    settled   payout → seller, fee → guarantor, excesses → seller (sweep)
    rejected  needed → buyer (failed), failed → guarantor, failed → seller (sweep)
    refunded  needed → buyer (refund_notification), excesses → seller (sweep)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..cell import Address, Cell
from ..codec.messages import DecodedBody, decode_body, op_body
from ..codec.opcodes import Op, op_name
from ..codec.storage import Deal
from ..config import EscrowConfig

if TYPE_CHECKING:  # pragma: no cover
    from .assets import Asset

__all__ = ["SendMode", "OutboundMessage", "OutboundBuilder"]


class SendMode(IntFlag):
    ORDINARY = 0
    PAY_GAS_SEPARATELY = 1
    IGNORE_ERRORS = 2
    DESTROY_IF_ZERO = 32
    CARRY_INBOUND_VALUE = 64
    CARRY_ALL_BALANCE = 128


@dataclass(frozen=True)
class OutboundMessage:
    destination: Address
    value: int
    body: Cell
    mode: SendMode = SendMode.PAY_GAS_SEPARATELY
    bounce: bool = False

    @property
    def op(self) -> Optional[int]:
        if self.body.bit_len < 32:
            return None
        return self.body.begin_parse().preload_uint(32)

    def decoded(self) -> DecodedBody:
        return decode_body(self.body)

    def with_value(self, value: int) -> "OutboundMessage":
        return OutboundMessage(self.destination, value, self.body, self.mode, self.bounce)

    def to_dict(self) -> Dict[str, Any]:
        op = self.op
        return {
            "destination": self.destination.to_raw(),
            "value": self.value,
            "op": f"0x{op:08x}" if op is not None else None,
            "name": op_name(op) if op is not None else None,
            "mode": int(self.mode),
            "bounce": self.bounce,
            "body": self.body.to_boc().hex(),
        }


class OutboundBuilder:
    """Builds the outbound set for one terminal transition of one deal."""

    def __init__(self, deal: Deal, asset: "Asset", query_id: int, cfg: EscrowConfig) -> None:
        self.deal = deal
        self.asset = asset
        self.query_id = query_id
        self.cfg = cfg

    def _body(self, op: Op) -> Cell:
        return op_body(op, self.query_id)

    def notification(self, destination: Address, op: Op) -> OutboundMessage:
        return OutboundMessage(destination, self.cfg.notification_value, self._body(op))

    def sweep(self, destination: Address, op: Op) -> OutboundMessage:
        return OutboundMessage(
            destination,
            0,
            self._body(op),
            SendMode.CARRY_ALL_BALANCE | SendMode.DESTROY_IF_ZERO,
        )

    def settled(self) -> List[OutboundMessage]:
        d = self.deal
        payout, fee = self.asset.fee_split(d.needed_amount, d.guarantor_fee_bps)
        return [
            self.asset.disburse(
                d, d.seller, payout, self._body(Op.DEAL_SUCCEEDED_SELLER_NOTIFICATION), self.query_id
            ),
            self.asset.disburse(
                d, d.guarantor, fee, self._body(Op.DEAL_SUCCEEDED_GUARANTOR_NOTIFICATION), self.query_id
            ),
            self.sweep(d.seller, Op.EXCESSES),
        ]

    def rejected(self) -> List[OutboundMessage]:
        d = self.deal
        return [
            self.asset.disburse(
                d, d.buyer, d.needed_amount, self._body(Op.DEAL_FAILED_BUYER_NOTIFICATION), self.query_id
            ),
            self.notification(d.guarantor, Op.DEAL_FAILED_GUARANTOR_NOTIFICATION),
            self.sweep(d.seller, Op.DEAL_FAILED_SELLER_NOTIFICATION),
        ]

    def refunded(self) -> List[OutboundMessage]:
        d = self.deal
        return [
            self.asset.disburse(
                d, d.buyer, d.needed_amount, self._body(Op.REFUND_NOTIFICATION), self.query_id
            ),
            self.sweep(d.seller, Op.EXCESSES),
        ]

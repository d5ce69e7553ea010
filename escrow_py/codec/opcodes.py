"""
Wire opcodes (32-bit) recognised or emitted by the escrow unit.

Inbound commands carry `op:uint32 query_id:uint64` and nothing else except
`TRANSFER_NOTIFICATION`, which the token ledger sends with its own payload.
Outbound notifications carry the same header, echoing the inbound query id.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Optional

__all__ = ["Op", "INBOUND_COMMANDS", "op_name"]


class Op(IntEnum):
    # inbound commands
    DEPOSIT = 0xF9471134
    CONFIRM_DEAL = 0x1DFC5E8F
    REJECT_DEAL = 0x7AE0BDEC
    REFUND = 0xC135F40C

    # token ledger protocol
    TRANSFER = 0x0F8A7EA5
    INTERNAL_TRANSFER = 0x178D4519
    TRANSFER_NOTIFICATION = 0x7362D09C
    EXCESSES = 0xD53276DB

    # outbound notifications
    DEAL_SUCCEEDED_SELLER_NOTIFICATION = 0xCC4158FB
    DEAL_SUCCEEDED_GUARANTOR_NOTIFICATION = 0x28B554F5
    DEAL_FAILED_GUARANTOR_NOTIFICATION = 0x9D2E3BCD
    DEAL_FAILED_SELLER_NOTIFICATION = 0xC07F109D
    DEAL_FAILED_BUYER_NOTIFICATION = 0x6B03123C
    REFUND_NOTIFICATION = 0xF67EFA32

    # prefix of every bounced body
    BOUNCE = 0xFFFFFFFF


INBOUND_COMMANDS = frozenset(
    {Op.DEPOSIT, Op.CONFIRM_DEAL, Op.REJECT_DEAL, Op.REFUND, Op.TRANSFER_NOTIFICATION}
)


def op_name(op: int) -> Optional[str]:
    try:
        return Op(op).name.lower()
    except ValueError:
        return None

"""
Message bodies exchanged with the escrow unit.

Every command and notification starts with the same header:

    op:uint32  query_id:uint64

Per-opcode payloads (token-ledger schemas follow the standard fungible-token
wallet interface):

    transfer#0f8a7ea5 query_id amount:coins destination:address
        response_destination:address custom_payload:(Maybe ^Cell)
        forward_ton_amount:coins forward_payload:(Either Cell ^Cell)
    internal_transfer#178d4519 query_id amount:coins from:address
        response_address:address forward_ton_amount:coins
        forward_payload:(Either Cell ^Cell)
    transfer_notification#7362d09c query_id amount:coins sender:address
        forward_payload:(Either Cell ^Cell)

The seller's deploy body is headerless: `needed_amount:coins` followed, for
token-mode deals only, by the unit's token wallet address.

Unknown opcodes decode structurally (header only); deciding what to do with
them is the settlement machine's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..cell import Address, Builder, Cell, Slice, begin_cell
from ..errors import CellError
from .opcodes import Op, op_name

log = logging.getLogger(__name__)

__all__ = [
    "MessageHeader",
    "DeployBody",
    "JettonTransfer",
    "InternalTransfer",
    "TransferNotification",
    "DecodedBody",
    "Payload",
    "begin_message",
    "op_body",
    "deploy_body",
    "parse_deploy_body",
    "parse_header",
    "decode_body",
    "describe_body",
]

HEADER_BITS = 32 + 64


@dataclass(frozen=True)
class MessageHeader:
    op: int
    query_id: int = 0


def begin_message(op: int, query_id: int = 0) -> Builder:
    return begin_cell().store_uint(int(op), 32).store_uint(query_id, 64)


def op_body(op: int, query_id: int = 0) -> Cell:
    """Header-only body: inbound commands and outbound notifications."""
    return begin_message(op, query_id).end_cell()


def parse_header(s: Slice) -> MessageHeader:
    return MessageHeader(op=s.load_uint(32), query_id=s.load_uint(64))


def _store_forward_payload(b: Builder, payload: Optional[Cell]) -> Builder:
    if payload is None:
        return b.store_bit(0)
    return b.store_bit(1).store_ref(payload)


def _load_forward_payload(s: Slice) -> Optional[Cell]:
    # Some wallets omit the Either bit entirely when there is no payload.
    if s.remaining_bits == 0 and s.remaining_refs == 0:
        return None
    cell = s.load_either_cell()
    return None if cell.is_empty() else cell


# --------------------------------------------------------------------------- #
# Deploy
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class DeployBody:
    needed_amount: int
    token_wallet: Optional[Address] = None


def deploy_body(needed_amount: int, token_wallet: Optional[Address] = None) -> Cell:
    b = begin_cell().store_coins(needed_amount)
    if token_wallet is not None:
        b.store_address(token_wallet)
    return b.end_cell()


def parse_deploy_body(cell: Cell, *, uses_token: bool, strict: bool = False) -> DeployBody:
    s = cell.begin_parse()
    needed = s.load_coins()
    wallet: Optional[Address] = None
    if uses_token and s.remaining_bits >= 2:
        wallet = s.load_address_opt()
    if strict:
        s.end_parse()
    return DeployBody(needed_amount=needed, token_wallet=wallet)


# --------------------------------------------------------------------------- #
# Token ledger payloads
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class JettonTransfer:
    query_id: int
    amount: int
    destination: Address
    response_destination: Optional[Address]
    forward_ton_amount: int = 0
    forward_payload: Optional[Cell] = None
    custom_payload: Optional[Cell] = None

    def to_cell(self) -> Cell:
        b = (
            begin_message(Op.TRANSFER, self.query_id)
            .store_coins(self.amount)
            .store_address(self.destination)
            .store_address(self.response_destination)
            .store_maybe_ref(self.custom_payload)
            .store_coins(self.forward_ton_amount)
        )
        return _store_forward_payload(b, self.forward_payload).end_cell()

    @classmethod
    def from_slice(cls, s: Slice, query_id: int) -> "JettonTransfer":
        amount = s.load_coins()
        destination = s.load_address()
        response = s.load_address_opt()
        custom = s.load_maybe_ref()
        fwd_amount = s.load_coins()
        return cls(
            query_id=query_id,
            amount=amount,
            destination=destination,
            response_destination=response,
            forward_ton_amount=fwd_amount,
            forward_payload=_load_forward_payload(s),
            custom_payload=custom,
        )


@dataclass(frozen=True)
class InternalTransfer:
    query_id: int
    amount: int
    from_address: Optional[Address]
    response_address: Optional[Address]
    forward_ton_amount: int = 0
    forward_payload: Optional[Cell] = None

    def to_cell(self) -> Cell:
        b = (
            begin_message(Op.INTERNAL_TRANSFER, self.query_id)
            .store_coins(self.amount)
            .store_address(self.from_address)
            .store_address(self.response_address)
            .store_coins(self.forward_ton_amount)
        )
        return _store_forward_payload(b, self.forward_payload).end_cell()

    @classmethod
    def from_slice(cls, s: Slice, query_id: int) -> "InternalTransfer":
        amount = s.load_coins()
        frm = s.load_address_opt()
        response = s.load_address_opt()
        fwd_amount = s.load_coins()
        return cls(
            query_id=query_id,
            amount=amount,
            from_address=frm,
            response_address=response,
            forward_ton_amount=fwd_amount,
            forward_payload=_load_forward_payload(s),
        )


@dataclass(frozen=True)
class TransferNotification:
    query_id: int
    amount: int
    sender: Address
    forward_payload: Optional[Cell] = None

    def to_cell(self) -> Cell:
        b = (
            begin_message(Op.TRANSFER_NOTIFICATION, self.query_id)
            .store_coins(self.amount)
            .store_address(self.sender)
        )
        return _store_forward_payload(b, self.forward_payload).end_cell()

    @classmethod
    def from_slice(cls, s: Slice, query_id: int) -> "TransferNotification":
        amount = s.load_coins()
        sender = s.load_address()
        return cls(
            query_id=query_id,
            amount=amount,
            sender=sender,
            forward_payload=_load_forward_payload(s),
        )


Payload = Union[JettonTransfer, InternalTransfer, TransferNotification]

_PAYLOAD_TYPES = {
    Op.TRANSFER: JettonTransfer,
    Op.INTERNAL_TRANSFER: InternalTransfer,
    Op.TRANSFER_NOTIFICATION: TransferNotification,
}

_KNOWN_OPS = frozenset(int(o) for o in Op)


# --------------------------------------------------------------------------- #
# Generic decoding
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class DecodedBody:
    op: int
    query_id: int
    payload: Optional[Payload] = None

    @property
    def name(self) -> Optional[str]:
        return op_name(self.op)


def decode_body(cell: Cell, *, strict: bool = False) -> DecodedBody:
    """
    Decode header and, for token-ledger opcodes, the payload.

    With `strict`, trailing bits/refs after a header-only body are rejected.
    Raises CellError (or a subclass) on malformed input.
    """
    s = cell.begin_parse()
    header = parse_header(s)
    payload_type = _PAYLOAD_TYPES.get(header.op)
    payload: Optional[Payload] = None
    if payload_type is not None:
        payload = payload_type.from_slice(s, header.query_id)
    elif strict and header.op in _KNOWN_OPS:
        s.end_parse()
    log.debug("decoded body op=0x%08x (%s) qid=%d", header.op, op_name(header.op), header.query_id)
    return DecodedBody(op=header.op, query_id=header.query_id, payload=payload)


def _payload_dict(p: Optional[Payload]) -> Optional[Dict[str, Any]]:
    if p is None:
        return None
    out: Dict[str, Any] = {}
    for k, v in vars(p).items():
        if isinstance(v, Address):
            out[k] = v.to_raw()
        elif isinstance(v, Cell):
            out[k] = v.to_boc().hex()
        else:
            out[k] = v
    return out


def describe_body(cell: Cell) -> Dict[str, Any]:
    """Best-effort JSON-able view of a body for tooling; never raises on odd input."""
    if cell.bit_len < HEADER_BITS:
        return {"op": None, "raw_bits": cell.bit_len, "refs": len(cell.refs)}
    try:
        decoded = decode_body(cell)
    except CellError as e:
        header = parse_header(cell.begin_parse())
        return {
            "op": f"0x{header.op:08x}",
            "name": op_name(header.op),
            "query_id": header.query_id,
            "error": e.to_dict(),
        }
    return {
        "op": f"0x{decoded.op:08x}",
        "name": decoded.name,
        "query_id": decoded.query_id,
        "payload": _payload_dict(decoded.payload),
    }

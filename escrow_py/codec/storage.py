"""
Persisted deal record: bit-exact encode/decode of the unit's data cell.

Layout (root cell, in this order):

    init:1  uses_token:1  deal_id:64  start_time:32  confirmation_duration:32
    needed_amount:coins  buyer:address  seller:address  guarantor:address
    guarantor_fee_bps:10  ^[ token_wallet:address-or-none ]

The token wallet lives in a reference cell holding a 2-bit tag (`00` when
unknown) followed by the address when present. The layout is shared with
deployed units and client tooling, so field order and widths are frozen.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..cell import Address, Cell, begin_cell
from ..config import FEE_BPS_BITS, EscrowConfig, load_config

__all__ = [
    "Deal",
    "DealConfig",
    "encode_deal",
    "decode_deal",
    "initial_data",
    "MAX_NEEDED_AMOUNT",
]

_U32 = (1 << 32) - 1
_U64 = (1 << 64) - 1

# The fixed fields take 941 of the root cell's 1023 bits, leaving room for a
# coins field of at most 9 bytes.
MAX_NEEDED_AMOUNT = (1 << 72) - 1


def _require_range(name: str, value: Any, hi: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be int, got {type(value).__name__}")
    if value < 0 or value > hi:
        raise ValueError(f"{name} out of range [0, {hi}]: {value}")
    return value


def _require_address(name: str, value: Any) -> Address:
    if not isinstance(value, Address):
        raise ValueError(f"{name} must be an Address, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class Deal:
    initialized: bool
    uses_token: bool
    deal_id: int
    start_time: int
    confirmation_duration: int
    needed_amount: int
    buyer: Address
    seller: Address
    guarantor: Address
    guarantor_fee_bps: int
    token_wallet: Optional[Address] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "initialized", bool(self.initialized))
        object.__setattr__(self, "uses_token", bool(self.uses_token))
        _require_range("deal_id", self.deal_id, _U64)
        _require_range("start_time", self.start_time, _U32)
        _require_range("confirmation_duration", self.confirmation_duration, _U32)
        _require_range("needed_amount", self.needed_amount, MAX_NEEDED_AMOUNT)
        _require_range("guarantor_fee_bps", self.guarantor_fee_bps, (1 << FEE_BPS_BITS) - 1)
        for role in ("buyer", "seller", "guarantor"):
            _require_address(role, getattr(self, role))
        if self.token_wallet is not None:
            _require_address("token_wallet", self.token_wallet)

    @property
    def funded(self) -> bool:
        return self.start_time != 0

    @property
    def deadline(self) -> int:
        """Last timestamp at which the guarantor may still confirm or reject."""
        return self.start_time + self.confirmation_duration

    def replace(self, **changes: Any) -> "Deal":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "initialized": self.initialized,
            "uses_token": self.uses_token,
            "deal_id": self.deal_id,
            "start_time": self.start_time,
            "confirmation_duration": self.confirmation_duration,
            "needed_amount": self.needed_amount,
            "buyer": self.buyer.to_raw(),
            "seller": self.seller.to_raw(),
            "guarantor": self.guarantor.to_raw(),
            "guarantor_fee_bps": self.guarantor_fee_bps,
            "token_wallet": self.token_wallet.to_raw() if self.token_wallet else None,
        }


def encode_deal(deal: Deal) -> Cell:
    wallet_cell = begin_cell().store_address(deal.token_wallet).end_cell()
    return (
        begin_cell()
        .store_bit(deal.initialized)
        .store_bit(deal.uses_token)
        .store_uint(deal.deal_id, 64)
        .store_uint(deal.start_time, 32)
        .store_uint(deal.confirmation_duration, 32)
        .store_coins(deal.needed_amount)
        .store_address(deal.buyer)
        .store_address(deal.seller)
        .store_address(deal.guarantor)
        .store_uint(deal.guarantor_fee_bps, FEE_BPS_BITS)
        .store_ref(wallet_cell)
        .end_cell()
    )


def decode_deal(cell: Cell) -> Deal:
    s = cell.begin_parse()
    initialized = s.load_bit()
    uses_token = s.load_bit()
    deal_id = s.load_uint(64)
    start_time = s.load_uint(32)
    duration = s.load_uint(32)
    needed = s.load_coins()
    buyer = s.load_address()
    seller = s.load_address()
    guarantor = s.load_address()
    fee_bps = s.load_uint(FEE_BPS_BITS)
    ws = s.load_ref().begin_parse()
    token_wallet = ws.load_address_opt()
    ws.end_parse()
    s.end_parse()
    return Deal(
        initialized=initialized,
        uses_token=uses_token,
        deal_id=deal_id,
        start_time=start_time,
        confirmation_duration=duration,
        needed_amount=needed,
        buyer=buyer,
        seller=seller,
        guarantor=guarantor,
        guarantor_fee_bps=fee_bps,
        token_wallet=token_wallet,
    )


@dataclass(frozen=True)
class DealConfig:
    """Terms fixed before deployment; needed_amount arrives with the deploy message."""

    uses_token: bool
    buyer: Address
    seller: Address
    guarantor: Address
    guarantor_fee_bps: int
    confirmation_duration: int
    deal_id: int = 0


def initial_data(config: DealConfig, *, cfg: Optional[EscrowConfig] = None) -> Cell:
    """
    Build the pre-deploy data cell: uninitialized, unfunded, needed_amount 0,
    no token wallet. Rejects fees above the configured ceiling.
    """
    cfg = cfg or load_config()
    if config.guarantor_fee_bps > cfg.max_fee_bps:
        raise ValueError(
            f"guarantor_fee_bps {config.guarantor_fee_bps} exceeds the configured "
            f"ceiling {cfg.max_fee_bps}"
        )
    return encode_deal(
        Deal(
            initialized=False,
            uses_token=config.uses_token,
            deal_id=config.deal_id,
            start_time=0,
            confirmation_duration=config.confirmation_duration,
            needed_amount=0,
            buyer=config.buyer,
            seller=config.seller,
            guarantor=config.guarantor,
            guarantor_fee_bps=config.guarantor_fee_bps,
        )
    )

# -*- coding: utf-8 -*-
"""
Property tests for the codecs and the fee arithmetic.
"""
from __future__ import annotations

from hypothesis import given, settings, strategies as st

from escrow_py.cell import Address, Cell, begin_cell
from escrow_py.codec import Deal, decode_deal, encode_deal
from escrow_py.codec.storage import MAX_NEEDED_AMOUNT
from escrow_py.config import MAX_COINS
from escrow_py.runtime import fee_split

U32 = st.integers(min_value=0, max_value=(1 << 32) - 1)
U64 = st.integers(min_value=0, max_value=(1 << 64) - 1)
COINS = st.integers(min_value=0, max_value=MAX_COINS)
BPS = st.integers(min_value=0, max_value=1023)
ADDRESSES = st.builds(
    Address,
    st.integers(min_value=-128, max_value=127),
    st.binary(min_size=32, max_size=32),
)

DEALS = st.builds(
    Deal,
    initialized=st.booleans(),
    uses_token=st.booleans(),
    deal_id=U64,
    start_time=U32,
    confirmation_duration=U32,
    needed_amount=st.integers(min_value=0, max_value=MAX_NEEDED_AMOUNT),
    buyer=ADDRESSES,
    seller=ADDRESSES,
    guarantor=ADDRESSES,
    guarantor_fee_bps=BPS,
    token_wallet=st.none() | ADDRESSES,
)


@settings(max_examples=200, deadline=None)
@given(DEALS)
def test_deal_roundtrip(deal: Deal) -> None:
    cell = encode_deal(deal)
    assert decode_deal(cell) == deal
    assert Cell.from_boc(cell.to_boc()) == cell


@given(COINS)
def test_coins_roundtrip(amount: int) -> None:
    assert begin_cell().store_coins(amount).end_cell().begin_parse().load_coins() == amount


@given(ADDRESSES, st.booleans(), st.booleans())
def test_address_forms(a: Address, bounceable: bool, testnet: bool) -> None:
    assert Address.parse(a.to_raw()) == a
    assert Address.parse(a.to_friendly(bounceable=bounceable, testnet=testnet)) == a


@given(COINS, BPS)
def test_fee_split_conserves(amount: int, bps: int) -> None:
    payout, fee = fee_split(amount, bps)
    assert payout + fee == amount
    assert 0 <= fee <= amount
    assert fee * 10_000 <= amount * bps < (fee + 1) * 10_000


UINT_FIELDS = st.integers(min_value=0, max_value=64).flatmap(
    lambda w: st.tuples(st.just(w), st.integers(min_value=0, max_value=(1 << w) - 1))
)


@given(st.lists(UINT_FIELDS, max_size=15))
def test_uint_sequences(fields) -> None:
    b = begin_cell()
    for width, value in fields:
        b.store_uint(value, width)
    s = b.end_cell().begin_parse()
    for width, value in fields:
        assert s.load_uint(width) == value
    assert s.remaining_bits == 0


def _leaf(bits: st.SearchStrategy) -> st.SearchStrategy:
    return bits.map(lambda wv: begin_cell().store_uint(wv[1], wv[0]).end_cell())


def _node(children: st.SearchStrategy) -> st.SearchStrategy:
    def build(args) -> Cell:
        (width, value), refs = args
        b = begin_cell().store_uint(value, width)
        for r in refs:
            b.store_ref(r)
        return b.end_cell()

    return st.tuples(UINT_FIELDS, st.lists(children, max_size=4)).map(build)


CELLS = st.recursive(_leaf(UINT_FIELDS), _node, max_leaves=12)


@settings(deadline=None)
@given(CELLS, st.booleans())
def test_boc_roundtrip(cell: Cell, with_crc: bool) -> None:
    back = Cell.from_boc(cell.to_boc(with_crc=with_crc))
    assert back == cell and back.depth == cell.depth


@given(CELLS)
def test_boc_shared_subtree(cell: Cell) -> None:
    root = begin_cell().store_ref(cell).store_ref(cell).end_cell()
    assert Cell.from_boc(root.to_boc()) == root

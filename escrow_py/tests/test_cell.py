# -*- coding: utf-8 -*-
"""
Cell layer: builder/slice packing, capacity limits, hashing and bag-of-cells.
"""
from __future__ import annotations

import base64

import pytest

from escrow_py.cell import Cell, begin_cell, crc32c, deserialize_boc, parse_boc_text, serialize_boc
from escrow_py.errors import CellError, CellOverflow, CellUnderflow, ExitCode

from .conftest import addr

EMPTY_CELL_HASH = "96a296d224f285c67bee93c30f8a309157f0daa35dc5b87e410b78630a09cfc7"


# ----------------------------- builder / slice -------------------------------


def test_uint_int_bits_roundtrip() -> None:
    c = (
        begin_cell()
        .store_bit(1)
        .store_uint(0xABC, 12)
        .store_int(-5, 8)
        .store_uint(0, 3)
        .end_cell()
    )
    assert c.bit_len == 1 + 12 + 8 + 3
    s = c.begin_parse()
    assert s.load_bit() is True
    assert s.load_uint(12) == 0xABC
    assert s.load_int(8) == -5
    assert s.load_uint(3) == 0
    s.end_parse()


def test_preload_does_not_advance() -> None:
    s = begin_cell().store_uint(0x7362D09C, 32).end_cell().begin_parse()
    assert s.preload_uint(32) == 0x7362D09C
    assert s.remaining_bits == 32
    assert s.load_uint(32) == 0x7362D09C


@pytest.mark.parametrize("amount, bits", [(0, 4), (1, 12), (255, 12), (256, 20), (10**10, 4 + 5 * 8)])
def test_coins_width(amount: int, bits: int) -> None:
    c = begin_cell().store_coins(amount).end_cell()
    assert c.bit_len == bits
    assert c.begin_parse().load_coins() == amount


def test_coins_out_of_range() -> None:
    with pytest.raises(ValueError):
        begin_cell().store_coins(-1)
    with pytest.raises(ValueError):
        begin_cell().store_coins(1 << 120)


def test_uint_out_of_range_is_value_error() -> None:
    with pytest.raises(ValueError):
        begin_cell().store_uint(256, 8)
    with pytest.raises(ValueError):
        begin_cell().store_int(128, 8)


def test_address_and_none() -> None:
    a = addr("someone", workchain=-1)
    c = begin_cell().store_address(a).store_address(None).end_cell()
    assert c.bit_len == 267 + 2
    s = c.begin_parse()
    assert s.load_address() == a
    assert s.load_address_opt() is None


def test_load_address_rejects_none() -> None:
    s = begin_cell().store_address(None).end_cell().begin_parse()
    with pytest.raises(CellError):
        s.load_address()


def test_bit_overflow() -> None:
    b = begin_cell().store_uint(0, 1000)
    with pytest.raises(CellOverflow) as ei:
        b.store_uint(0, 24)
    assert ei.value.code == ExitCode.CELL_OVERFLOW
    # capacity unchanged after a rejected store
    assert b.bits_left == 23


def test_ref_overflow() -> None:
    child = begin_cell().end_cell()
    b = begin_cell()
    for _ in range(4):
        b.store_ref(child)
    with pytest.raises(CellOverflow):
        b.store_ref(child)


def test_underflow() -> None:
    s = begin_cell().store_uint(1, 4).end_cell().begin_parse()
    with pytest.raises(CellUnderflow) as ei:
        s.load_uint(5)
    assert ei.value.code == ExitCode.CELL_UNDERFLOW
    with pytest.raises(CellUnderflow):
        s.load_ref()


def test_end_parse_rejects_trailing() -> None:
    s = begin_cell().store_uint(3, 2).end_cell().begin_parse()
    s.load_bit()
    with pytest.raises(CellError):
        s.end_parse()


def test_maybe_and_either() -> None:
    payload = begin_cell().store_uint(7, 3).end_cell()
    c = (
        begin_cell()
        .store_maybe_ref(None)
        .store_maybe_ref(payload)
        .store_bit(0)
        .store_uint(5, 3)
        .end_cell()
    )
    s = c.begin_parse()
    assert s.load_maybe_ref() is None
    assert s.load_maybe_ref() == payload
    inline = s.load_either_cell()
    assert inline.bit_len == 3 and inline.begin_parse().load_uint(3) == 5
    assert s.is_empty()


def test_store_slice_copies_remaining() -> None:
    child = begin_cell().store_uint(1, 1).end_cell()
    src = begin_cell().store_uint(0xF, 4).store_uint(0x3, 2).store_ref(child).end_cell()
    s = src.begin_parse()
    s.skip_bits(4)
    copy = begin_cell().store_slice(s).end_cell()
    assert copy.bit_len == 2
    assert copy.refs == (child,)


# --------------------------------- hashing -----------------------------------


def test_empty_cell_hash() -> None:
    assert Cell().hash.hex() == EMPTY_CELL_HASH


def test_hash_depends_on_refs_and_bits() -> None:
    a = begin_cell().store_uint(1, 8).end_cell()
    b = begin_cell().store_uint(1, 8).store_ref(Cell()).end_cell()
    c = begin_cell().store_uint(1, 9).end_cell()
    assert len({a.hash, b.hash, c.hash}) == 3
    assert b.depth == 1 and a.depth == 0
    assert a == begin_cell().store_uint(1, 8).end_cell()


def test_cell_rejects_oversize() -> None:
    with pytest.raises(CellOverflow):
        Cell(0, 1024)


# ------------------------------ bag of cells ---------------------------------


def test_empty_cell_boc_bytes() -> None:
    assert Cell().to_boc().hex() == "b5ee9c72010101010002000000"


def test_known_crc_boc_decodes() -> None:
    raw = base64.b64decode("te6cckEBAQEAAgAAAEysuc0=")
    assert deserialize_boc(raw) == Cell()
    assert serialize_boc(Cell(), with_crc=True) == raw


def test_crc_mismatch_rejected() -> None:
    raw = bytearray(Cell().to_boc(with_crc=True))
    raw[-1] ^= 0xFF
    with pytest.raises(CellError):
        deserialize_boc(bytes(raw))


def test_crc32c_check_value() -> None:
    assert crc32c(b"123456789") == 0xE3069283


def test_boc_roundtrip_with_shared_child() -> None:
    shared = begin_cell().store_uint(0xDEAD, 16).end_cell()
    mid = begin_cell().store_ref(shared).end_cell()
    root = begin_cell().store_uint(1, 1).store_ref(shared).store_ref(mid).end_cell()
    data = root.to_boc()
    # three distinct cells; the shared child is stored once
    assert data[6] == 3
    back = Cell.from_boc(data)
    assert back == root
    assert back.refs[0] == back.refs[1].refs[0]


def test_boc_bad_magic() -> None:
    with pytest.raises(CellError):
        deserialize_boc(b"\x00" * 16)


def test_boc_truncated() -> None:
    data = begin_cell().store_uint(1, 64).end_cell().to_boc()
    with pytest.raises(CellError):
        deserialize_boc(data[:-3])


def test_parse_boc_text_forms() -> None:
    c = begin_cell().store_uint(0xBEEF, 16).end_cell()
    raw = c.to_boc()
    assert parse_boc_text(raw.hex()) == c
    assert parse_boc_text("0x" + raw.hex()) == c
    assert parse_boc_text(base64.b64encode(raw).decode()) == c
    with pytest.raises(CellError):
        parse_boc_text("not a boc!")

"""
escrow_py.cell
==============

Bit-level cells, addresses and bag-of-cells serialization.

Everything the unit persists or exchanges is a cell: the deal record, every
inbound and outbound message body, and the StateInit cells addresses derive
from. Pure Python, deterministic, no third-party deps.
"""

from __future__ import annotations

from .address import Address, AddressError, coerce_address
from .boc import crc32c, deserialize_boc, parse_boc_text, serialize_boc
from .cell import MAX_BITS, MAX_REFS, Builder, Cell, Slice, begin_cell
from .state_init import contract_address, state_init

__all__ = [
    "Address",
    "AddressError",
    "coerce_address",
    "Builder",
    "Cell",
    "Slice",
    "begin_cell",
    "MAX_BITS",
    "MAX_REFS",
    "serialize_boc",
    "deserialize_boc",
    "parse_boc_text",
    "crc32c",
    "state_init",
    "contract_address",
]

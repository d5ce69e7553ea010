"""
Bit-level cells: the substrate for the persisted deal record and every message body.

A cell is an immutable bit string of at most 1023 bits plus up to four
references to child cells. Values are packed big-endian with no alignment:

- uintN:      N bits, unsigned
- intN:       N bits, two's complement
- coins:      4-bit byte length L, then L*8 bits unsigned (VarUInteger 16)
- address:    2-bit tag; `00` = none, `10` = std: anycast bit (0),
              int8 workchain, 256-bit account hash
- maybe ^X:   1 bit presence flag, then a reference when set
- either X:   1 bit; 0 = X inline in the remaining bits, 1 = X in a reference

Builders check capacities eagerly (CellOverflow); slices check remaining
data eagerly (CellUnderflow), so decode failures never yield partial values.
"""

from __future__ import annotations

import hashlib
from typing import Iterator, Optional, Sequence, Tuple

from ..errors import CellError, CellOverflow, CellUnderflow
from .address import Address

MAX_BITS = 1023
MAX_REFS = 4
MAX_COINS_BYTES = 15

__all__ = ["Cell", "Builder", "Slice", "begin_cell", "MAX_BITS", "MAX_REFS"]


def _padded_bytes(bits: int, n: int) -> bytes:
    """Data bytes with the completion tag appended when n is not byte-aligned."""
    full, rem = divmod(n, 8)
    if rem == 0:
        return bits.to_bytes(full, "big") if full else b""
    pad = 8 - rem
    return ((bits << pad) | (1 << (pad - 1))).to_bytes(full + 1, "big")


def _unpad(data: bytes, aligned: bool) -> Tuple[int, int]:
    """Inverse of _padded_bytes: returns (bits, bit_length)."""
    if not data:
        return 0, 0
    v = int.from_bytes(data, "big")
    if aligned:
        return v, len(data) * 8
    if v == 0:
        raise CellError("missing completion tag in cell data")
    tz = (v & -v).bit_length() - 1
    return v >> (tz + 1), len(data) * 8 - tz - 1


class Cell:
    """Immutable ordinary cell."""

    __slots__ = ("_bits", "_len", "_refs", "_depth", "_hash")

    def __init__(self, bits: int = 0, bit_len: int = 0, refs: Sequence["Cell"] = ()) -> None:
        if bit_len < 0 or bit_len > MAX_BITS:
            raise CellOverflow(f"cell holds at most {MAX_BITS} bits, got {bit_len}")
        if len(refs) > MAX_REFS:
            raise CellOverflow(f"cell holds at most {MAX_REFS} refs, got {len(refs)}")
        if bits < 0 or bits >> bit_len:
            raise CellError("cell bits do not fit the declared length")
        self._bits = bits
        self._len = bit_len
        self._refs: Tuple[Cell, ...] = tuple(refs)
        self._depth = 1 + max(r.depth for r in self._refs) if self._refs else 0
        self._hash: Optional[bytes] = None

    # ---- views ---- #

    @property
    def bits(self) -> int:
        return self._bits

    @property
    def bit_len(self) -> int:
        return self._len

    @property
    def refs(self) -> Tuple["Cell", ...]:
        return self._refs

    @property
    def depth(self) -> int:
        return self._depth

    def descriptors(self) -> bytes:
        d1 = len(self._refs)
        d2 = (self._len // 8) + ((self._len + 7) // 8)
        return bytes((d1, d2))

    def data(self) -> bytes:
        return _padded_bytes(self._bits, self._len)

    @property
    def hash(self) -> bytes:
        """Representation hash (SHA-256) of an ordinary level-0 cell."""
        if self._hash is None:
            h = hashlib.sha256()
            h.update(self.descriptors())
            h.update(self.data())
            for r in self._refs:
                h.update(r.depth.to_bytes(2, "big"))
            for r in self._refs:
                h.update(r.hash)
            self._hash = h.digest()
        return self._hash

    def begin_parse(self) -> "Slice":
        return Slice(self)

    def is_empty(self) -> bool:
        return self._len == 0 and not self._refs

    def iter_tree(self) -> Iterator["Cell"]:
        yield self
        for r in self._refs:
            yield from r.iter_tree()

    # ---- serialization shortcuts ---- #

    def to_boc(self, *, with_crc: bool = False) -> bytes:
        from .boc import serialize_boc

        return serialize_boc(self, with_crc=with_crc)

    @classmethod
    def from_boc(cls, data: bytes) -> "Cell":
        from .boc import deserialize_boc

        return deserialize_boc(data)

    # ---- dunder ---- #

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        return self.hash == other.hash

    def __hash__(self) -> int:
        return hash(self.hash)

    def __repr__(self) -> str:
        return f"Cell(bits={self._len}, refs={len(self._refs)}, hash={self.hash.hex()[:16]}…)"


class Builder:
    """Append-only cell builder."""

    __slots__ = ("_bits", "_len", "_refs")

    def __init__(self) -> None:
        self._bits = 0
        self._len = 0
        self._refs: list[Cell] = []

    @property
    def bits_left(self) -> int:
        return MAX_BITS - self._len

    @property
    def refs_left(self) -> int:
        return MAX_REFS - len(self._refs)

    def _append(self, value: int, n: int) -> "Builder":
        if n > self.bits_left:
            raise CellOverflow(
                "builder bit capacity exceeded",
                context={"need": n, "left": self.bits_left},
            )
        self._bits = (self._bits << n) | value
        self._len += n
        return self

    def store_bit(self, bit: bool | int) -> "Builder":
        return self._append(1 if bit else 0, 1)

    def store_uint(self, value: int, n: int) -> "Builder":
        if not isinstance(value, int) or value < 0 or value >> n:
            raise ValueError(f"value {value!r} does not fit uint{n}")
        return self._append(value, n)

    def store_int(self, value: int, n: int) -> "Builder":
        lo, hi = -(1 << (n - 1)), (1 << (n - 1)) - 1
        if not isinstance(value, int) or value < lo or value > hi:
            raise ValueError(f"value {value!r} does not fit int{n}")
        return self._append(value & ((1 << n) - 1), n)

    def store_coins(self, amount: int) -> "Builder":
        if not isinstance(amount, int) or amount < 0:
            raise ValueError(f"coins must be a non-negative int, got {amount!r}")
        length = (amount.bit_length() + 7) // 8
        if length > MAX_COINS_BYTES:
            raise ValueError("coins amount exceeds 120 bits")
        self.store_uint(length, 4)
        return self._append(amount, length * 8) if length else self

    def store_address(self, addr: Optional[Address]) -> "Builder":
        if addr is None:
            return self._append(0b00, 2)
        self._append(0b100, 3)  # addr_std$10, anycast nothing$0
        self.store_int(addr.workchain, 8)
        return self._append(int.from_bytes(addr.hash_part, "big"), 256)

    def store_ref(self, cell: Cell) -> "Builder":
        if not self.refs_left:
            raise CellOverflow("builder reference capacity exceeded")
        self._refs.append(cell)
        return self

    def store_maybe_ref(self, cell: Optional[Cell]) -> "Builder":
        if cell is None:
            return self.store_bit(0)
        self.store_bit(1)
        return self.store_ref(cell)

    def store_slice(self, s: "Slice") -> "Builder":
        bits, n = s.remaining_bits_value()
        self._append(bits, n)
        for r in s.remaining_ref_cells():
            self.store_ref(r)
        return self

    def store_cell(self, cell: Cell) -> "Builder":
        return self.store_slice(cell.begin_parse())

    def end_cell(self) -> Cell:
        return Cell(self._bits, self._len, self._refs)


def begin_cell() -> Builder:
    return Builder()


class Slice:
    """Read cursor over a cell."""

    __slots__ = ("_cell", "_pos", "_ref_pos")

    def __init__(self, cell: Cell) -> None:
        self._cell = cell
        self._pos = 0
        self._ref_pos = 0

    @property
    def remaining_bits(self) -> int:
        return self._cell.bit_len - self._pos

    @property
    def remaining_refs(self) -> int:
        return len(self._cell.refs) - self._ref_pos

    def is_empty(self) -> bool:
        return self.remaining_bits == 0 and self.remaining_refs == 0

    def _peek(self, n: int) -> int:
        if n > self.remaining_bits:
            raise CellUnderflow(
                "not enough bits in slice",
                context={"need": n, "left": self.remaining_bits},
            )
        shift = self.remaining_bits - n
        return (self._cell.bits >> shift) & ((1 << n) - 1)

    def _take(self, n: int) -> int:
        v = self._peek(n)
        self._pos += n
        return v

    def load_bit(self) -> bool:
        return bool(self._take(1))

    def load_uint(self, n: int) -> int:
        return self._take(n)

    def preload_uint(self, n: int) -> int:
        return self._peek(n)

    def load_int(self, n: int) -> int:
        v = self._take(n)
        return v - (1 << n) if v >> (n - 1) else v

    def skip_bits(self, n: int) -> "Slice":
        self._take(n)
        return self

    def load_coins(self) -> int:
        length = self._take(4)
        return self._take(length * 8) if length else 0

    def load_address_opt(self) -> Optional[Address]:
        tag = self._take(2)
        if tag == 0b00:
            return None
        if tag != 0b10:
            raise CellError(f"unsupported address tag {tag:02b}")
        if self._take(1):
            raise CellError("anycast addresses are not supported")
        wc = self.load_int(8)
        return Address(wc, self._take(256).to_bytes(32, "big"))

    def load_address(self) -> Address:
        addr = self.load_address_opt()
        if addr is None:
            raise CellError("expected an address, got addr_none")
        return addr

    def load_ref(self) -> Cell:
        if not self.remaining_refs:
            raise CellUnderflow("no references left in slice")
        cell = self._cell.refs[self._ref_pos]
        self._ref_pos += 1
        return cell

    def load_maybe_ref(self) -> Optional[Cell]:
        return self.load_ref() if self.load_bit() else None

    def load_either_cell(self) -> Cell:
        """Either X ^X: returns the payload as a standalone cell in both cases."""
        if self.load_bit():
            return self.load_ref()
        return self.load_remainder()

    def load_remainder(self) -> Cell:
        bits, n = self.remaining_bits_value()
        refs = self.remaining_ref_cells()
        self._pos = self._cell.bit_len
        self._ref_pos = len(self._cell.refs)
        return Cell(bits, n, refs)

    def remaining_bits_value(self) -> Tuple[int, int]:
        n = self.remaining_bits
        return self._peek(n) if n else 0, n

    def remaining_ref_cells(self) -> Tuple[Cell, ...]:
        return self._cell.refs[self._ref_pos:]

    def end_parse(self) -> None:
        if not self.is_empty():
            raise CellError(
                "unexpected trailing data",
                context={"bits": self.remaining_bits, "refs": self.remaining_refs},
            )

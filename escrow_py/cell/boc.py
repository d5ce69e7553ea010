"""
Bag-of-cells (BoC) serialization for a single root cell.

Layout written (no index; CRC32-C optional):

    magic        b5ee9c72
    flags        has_idx:1 has_crc32c:1 has_cache_bits:1 flags:2 size:3
    off_bytes    1 byte
    cells        size bytes
    roots        size bytes (always 1)
    absent       size bytes (always 0)
    tot_cells    off_bytes
    root_index   size bytes (always 0)
    cell*        d1 d2 data ref_index*(size bytes)
    crc32c       4 bytes little-endian, when flagged

Cells are deduplicated by hash and ordered so every reference points to a
higher index. Reading accepts indexed and CRC-protected bags as well.
"""

from __future__ import annotations

import base64
import binascii
from typing import Dict, List, Tuple

from ..errors import CellError
from .cell import Cell, _unpad

__all__ = ["serialize_boc", "deserialize_boc", "parse_boc_text", "crc32c"]

BOC_MAGIC = bytes.fromhex("b5ee9c72")

_CRC32C_TABLE: List[int] = []
for _i in range(256):
    _c = _i
    for _ in range(8):
        _c = (_c >> 1) ^ 0x82F63B78 if _c & 1 else _c >> 1
    _CRC32C_TABLE.append(_c)


def crc32c(data: bytes) -> int:
    crc = 0xFFFFFFFF
    for b in data:
        crc = _CRC32C_TABLE[(crc ^ b) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


def _byte_len(n: int) -> int:
    return max(1, (n.bit_length() + 7) // 8)


def _topo_order(root: Cell) -> List[Cell]:
    """Reverse post-order: parents before every descendant, root first."""
    seen: Dict[bytes, Cell] = {}
    post: List[Cell] = []

    def visit(c: Cell) -> None:
        if c.hash in seen:
            return
        seen[c.hash] = c
        for r in c.refs:
            visit(r)
        post.append(c)

    visit(root)
    post.reverse()
    return post


def serialize_boc(root: Cell, *, with_crc: bool = False) -> bytes:
    cells = _topo_order(root)
    index = {c.hash: i for i, c in enumerate(cells)}
    size = _byte_len(len(cells))

    body = bytearray()
    for c in cells:
        body += c.descriptors()
        body += c.data()
        for r in c.refs:
            body += index[r.hash].to_bytes(size, "big")

    off = _byte_len(len(body))
    out = bytearray(BOC_MAGIC)
    out.append((0x40 if with_crc else 0) | size)
    out.append(off)
    out += len(cells).to_bytes(size, "big")
    out += (1).to_bytes(size, "big")
    out += (0).to_bytes(size, "big")
    out += len(body).to_bytes(off, "big")
    out += (0).to_bytes(size, "big")
    out += body
    if with_crc:
        out += crc32c(bytes(out)).to_bytes(4, "little")
    return bytes(out)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        j = self.pos + n
        if j > len(self.data):
            raise CellError("truncated bag of cells")
        out = self.data[self.pos:j]
        self.pos = j
        return out

    def uint(self, n: int) -> int:
        return int.from_bytes(self.take(n), "big")


def deserialize_boc(data: bytes) -> Cell:
    if not isinstance(data, (bytes, bytearray)):
        raise CellError("bag of cells must be bytes")
    data = bytes(data)
    rd = _Reader(data)
    if rd.take(4) != BOC_MAGIC:
        raise CellError("bad bag-of-cells magic")
    flags = rd.uint(1)
    has_idx = bool(flags & 0x80)
    has_crc = bool(flags & 0x40)
    size = flags & 0x07
    if not 1 <= size <= 4:
        raise CellError(f"invalid reference size {size}")
    off = rd.uint(1)
    if not 1 <= off <= 8:
        raise CellError(f"invalid offset size {off}")
    n_cells = rd.uint(size)
    n_roots = rd.uint(size)
    rd.uint(size)  # absent
    tot = rd.uint(off)
    if n_roots != 1:
        raise CellError(f"expected exactly one root, got {n_roots}")
    root_idx = rd.uint(size)
    if has_idx:
        rd.take(n_cells * off)

    if has_crc:
        if len(data) < 4 or crc32c(data[:-4]) != int.from_bytes(data[-4:], "little"):
            raise CellError("bag-of-cells crc32c mismatch")

    start = rd.pos
    raw: List[Tuple[int, int, List[int]]] = []
    for _ in range(n_cells):
        d1, d2 = rd.take(2)
        n_refs = d1 & 0x07
        if d1 & 0x08:
            raise CellError("exotic cells are not supported")
        if n_refs > 4:
            raise CellError("cell has more than four refs")
        data_len = (d2 + 1) // 2
        bits, bit_len = _unpad(rd.take(data_len), aligned=(d2 % 2 == 0))
        refs = [rd.uint(size) for _ in range(n_refs)]
        raw.append((bits, bit_len, refs))
    if rd.pos - start != tot:
        raise CellError("cell data size does not match header")

    built: List[Cell] = [Cell()] * n_cells
    for i in range(n_cells - 1, -1, -1):
        bits, bit_len, refs = raw[i]
        for r in refs:
            if r <= i or r >= n_cells:
                raise CellError("bag-of-cells reference is not topologically ordered")
        built[i] = Cell(bits, bit_len, [built[r] for r in refs])
    if root_idx >= n_cells:
        raise CellError("root index out of range")
    return built[root_idx]


def parse_boc_text(text: str) -> Cell:
    """Accept a BoC as hex (optionally 0x-prefixed) or base64."""
    s = text.strip()
    if s.startswith(("0x", "0X")):
        s = s[2:]
    try:
        raw = bytes.fromhex(s)
    except ValueError:
        try:
            raw = base64.b64decode(s, validate=True)
        except binascii.Error as e:
            raise CellError("bag of cells must be hex or base64") from e
    return deserialize_boc(raw)

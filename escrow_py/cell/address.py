"""
Account addresses: a signed 8-bit workchain plus a 32-byte account hash.

Two textual forms are accepted and produced:

- raw:           "<workchain>:<64 hex digits>", e.g. "0:3f1a…"
- user-friendly: 48 base64 (or base64url) characters encoding 36 bytes:
                 flags(1) | workchain(1) | hash(32) | crc16-xmodem(2)
                 flags: 0x11 bounceable, 0x51 non-bounceable, |0x80 testnet-only
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Union

__all__ = ["Address", "AddressError", "coerce_address"]

_TAG_BOUNCEABLE = 0x11
_TAG_NON_BOUNCEABLE = 0x51
_TAG_TESTNET = 0x80


class AddressError(ValueError):
    """Raised when a textual or binary address is malformed."""


def _crc16(data: bytes) -> bytes:
    return binascii.crc_hqx(data, 0).to_bytes(2, "big")


@dataclass(frozen=True, order=True)
class Address:
    workchain: int
    hash_part: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.workchain, int) or not -128 <= self.workchain <= 127:
            raise AddressError(f"workchain must fit int8, got {self.workchain!r}")
        if not isinstance(self.hash_part, (bytes, bytearray)) or len(self.hash_part) != 32:
            raise AddressError("account hash must be exactly 32 bytes")
        object.__setattr__(self, "hash_part", bytes(self.hash_part))

    # ---- constructors ---- #

    @classmethod
    def parse(cls, text: str) -> "Address":
        if not isinstance(text, str):
            raise AddressError(f"address must be str, got {type(text).__name__}")
        s = text.strip()
        if ":" in s:
            return cls.parse_raw(s)
        return cls.parse_friendly(s)

    @classmethod
    def parse_raw(cls, s: str) -> "Address":
        wc_part, _, hex_part = s.partition(":")
        try:
            wc = int(wc_part, 10)
            h = bytes.fromhex(hex_part)
        except ValueError as e:
            raise AddressError(f"invalid raw address: {s!r}") from e
        return cls(wc, h)

    @classmethod
    def parse_friendly(cls, s: str) -> "Address":
        if len(s) != 48:
            raise AddressError(f"user-friendly address must be 48 chars, got {len(s)}")
        try:
            raw = base64.b64decode(s.replace("-", "+").replace("_", "/"), validate=True)
        except binascii.Error as e:
            raise AddressError(f"invalid base64 address: {s!r}") from e
        if _crc16(raw[:34]) != raw[34:]:
            raise AddressError("address checksum mismatch")
        tag = raw[0] & ~_TAG_TESTNET
        if tag not in (_TAG_BOUNCEABLE, _TAG_NON_BOUNCEABLE):
            raise AddressError(f"unknown address flags 0x{raw[0]:02x}")
        wc = raw[1] - 256 if raw[1] > 127 else raw[1]
        return cls(wc, raw[2:34])

    # ---- views ---- #

    def to_raw(self) -> str:
        return f"{self.workchain}:{self.hash_part.hex()}"

    def to_friendly(self, *, bounceable: bool = True, testnet: bool = False, url_safe: bool = True) -> str:
        tag = _TAG_BOUNCEABLE if bounceable else _TAG_NON_BOUNCEABLE
        if testnet:
            tag |= _TAG_TESTNET
        body = bytes((tag, self.workchain & 0xFF)) + self.hash_part
        raw = body + _crc16(body)
        enc = base64.urlsafe_b64encode(raw) if url_safe else base64.b64encode(raw)
        return enc.decode("ascii")

    def __str__(self) -> str:
        return self.to_raw()


def coerce_address(value: Union[Address, str, Any]) -> Address:
    """Accept an Address or any textual form of one."""
    if isinstance(value, Address):
        return value
    if isinstance(value, str):
        return Address.parse(value)
    raise AddressError(f"cannot interpret {type(value).__name__} as an address")

"""
escrow_py.config — value constants and numeric caps for the settlement unit.

This module centralizes configuration for the escrow runtime. It has NO
third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (ESCROW_*)
  2) Hardcoded safe defaults below

Key env vars (case-insensitive where boolean):
  - ESCROW_JETTON_TRANSFER_FEE   (int)    default: 55_000_000  (0.055 in nano units)
  - ESCROW_FORWARD_TON_AMOUNT    (int)    default: 1
  - ESCROW_NOTIFICATION_VALUE    (int)    default: 0
  - ESCROW_MAX_FEE_BPS           (int)    default: 1023        (10-bit storage width)
  - ESCROW_STRICT                (bool)   default: false
  - ESCROW_LOG_LEVEL             (str)    default: WARNING

Usage:
    from escrow_py.config import load_config
    CFG = load_config()
    fee = CFG.jetton_transfer_fee
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict

# Widest value a VarUInteger 16 ("coins") field can carry.
MAX_COINS = (1 << 120) - 1

# guarantor_fee_bps is stored in 10 bits.
FEE_BPS_BITS = 10
MAX_FEE_BPS_WIDTH = (1 << FEE_BPS_BITS) - 1

BPS_DENOMINATOR = 10_000

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ----------------------------- helpers ---------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_level(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip().upper()
    return raw if raw in _LEVELS else default


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class EscrowConfig:
    # Native value attached to each token-ledger `transfer` the unit sends.
    jetton_transfer_fee: int
    # Forwarded to the token recipient so it receives a transfer_notification.
    forward_ton_amount: int
    # Native value attached to pure notification messages.
    notification_value: int
    # Ceiling for guarantor_fee_bps when building initial data.
    max_fee_bps: int
    # Reject inbound bodies with unread trailing bits/refs.
    strict_mode: bool
    log_level: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "jetton_transfer_fee": self.jetton_transfer_fee,
            "forward_ton_amount": self.forward_ton_amount,
            "notification_value": self.notification_value,
            "max_fee_bps": self.max_fee_bps,
            "strict_mode": self.strict_mode,
            "log_level": self.log_level,
        }

    @property
    def log_level_no(self) -> int:
        return int(getattr(logging, self.log_level, logging.WARNING))


@lru_cache(maxsize=1)
def load_config() -> EscrowConfig:
    """
    Build and cache an EscrowConfig from environment + safe defaults.
    """
    return EscrowConfig(
        jetton_transfer_fee=_env_int(
            "ESCROW_JETTON_TRANSFER_FEE", 55_000_000, min_v=0, max_v=MAX_COINS
        ),
        forward_ton_amount=_env_int(
            "ESCROW_FORWARD_TON_AMOUNT", 1, min_v=0, max_v=MAX_COINS
        ),
        notification_value=_env_int(
            "ESCROW_NOTIFICATION_VALUE", 0, min_v=0, max_v=MAX_COINS
        ),
        max_fee_bps=_env_int(
            "ESCROW_MAX_FEE_BPS", MAX_FEE_BPS_WIDTH, min_v=0, max_v=MAX_FEE_BPS_WIDTH
        ),
        strict_mode=_env_bool("ESCROW_STRICT", False),
        log_level=_env_level("ESCROW_LOG_LEVEL", "WARNING"),
    )


__all__ = [
    "EscrowConfig",
    "load_config",
    "MAX_COINS",
    "FEE_BPS_BITS",
    "MAX_FEE_BPS_WIDTH",
    "BPS_DENOMINATOR",
]

"""
escrow_py.runtime
=================

Execution side of the escrow unit:

  • context  — inbound MessageContext (sender, value, body, now, flags)
  • assets   — NativeAsset / TokenAsset, fee split, token returns
  • outbound — SendMode, OutboundMessage, per-outcome message sets
  • machine  — DealState / Outcome and the SettlementMachine
  • ledger   — token wallet address derivation
  • unit     — EscrowUnit, the locked host committing each delivery atomically
"""

from __future__ import annotations

from .assets import Asset, NativeAsset, TokenAsset, asset_for, fee_split
from .context import ContextError, MessageContext
from .ledger import WalletResolver, derive_wallet_address, wallet_data, wallet_resolver
from .machine import DealState, Outcome, SettlementMachine, Transition, state_of
from .outbound import OutboundBuilder, OutboundMessage, SendMode
from .unit import DeliveryResult, EscrowUnit, bounce_message, resolve_values

__all__ = [
    "Asset",
    "NativeAsset",
    "TokenAsset",
    "asset_for",
    "fee_split",
    "ContextError",
    "MessageContext",
    "WalletResolver",
    "derive_wallet_address",
    "wallet_data",
    "wallet_resolver",
    "DealState",
    "Outcome",
    "SettlementMachine",
    "Transition",
    "state_of",
    "OutboundBuilder",
    "OutboundMessage",
    "SendMode",
    "DeliveryResult",
    "EscrowUnit",
    "bounce_message",
    "resolve_values",
]

"""
escrow_py — guarantor-mediated escrow settlement unit (native or token mode).

A small, stable façade over the package:

- __version__: semantic version of the installed distribution
- EscrowUnit(data, *, balance=0, cfg=None)
    Host for one deal; `deliver(MessageContext) -> DeliveryResult`.
- initial_data(DealConfig) -> Cell / deploy_body(needed, token_wallet=None) -> Cell
    Pre-deploy data cell and the seller's deploy body.
- encode_deal / decode_deal
    Bit-exact codec for the persisted Deal record.
- derive_wallet_address(owner, master, wallet_code) -> Address
    Token-ledger wallet derivation, for pre-computing the unit's wallet.
"""

from __future__ import annotations

from .cell import Address, Cell, begin_cell
from .codec import Deal, DealConfig, Op, decode_body, decode_deal, deploy_body, encode_deal, initial_data
from .config import EscrowConfig, load_config
from .errors import EscrowError, ExitCode
from .runtime import (
    DealState,
    DeliveryResult,
    EscrowUnit,
    MessageContext,
    Outcome,
    SendMode,
    derive_wallet_address,
)
from .version import __version__


def version() -> str:
    """Return the escrow_py semantic version string."""
    return __version__


__all__ = [
    "__version__",
    "version",
    "Address",
    "Cell",
    "begin_cell",
    "Deal",
    "DealConfig",
    "Op",
    "decode_body",
    "decode_deal",
    "deploy_body",
    "encode_deal",
    "initial_data",
    "EscrowConfig",
    "load_config",
    "EscrowError",
    "ExitCode",
    "DealState",
    "DeliveryResult",
    "EscrowUnit",
    "MessageContext",
    "Outcome",
    "SendMode",
    "derive_wallet_address",
]

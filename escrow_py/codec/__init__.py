"""
escrow_py.codec
===============

Storage and message codecs built on `escrow_py.cell`:

  • opcodes  — 32-bit wire opcodes
  • storage  — the persisted Deal record (bit-exact layout)
  • messages — header + per-opcode payloads, deploy body, token-ledger schemas
"""

from __future__ import annotations

from .messages import (
    DecodedBody,
    DeployBody,
    InternalTransfer,
    JettonTransfer,
    MessageHeader,
    TransferNotification,
    begin_message,
    decode_body,
    deploy_body,
    describe_body,
    op_body,
    parse_deploy_body,
    parse_header,
)
from .opcodes import INBOUND_COMMANDS, Op, op_name
from .storage import Deal, DealConfig, decode_deal, encode_deal, initial_data

__all__ = [
    "Op",
    "INBOUND_COMMANDS",
    "op_name",
    "Deal",
    "DealConfig",
    "encode_deal",
    "decode_deal",
    "initial_data",
    "MessageHeader",
    "DeployBody",
    "JettonTransfer",
    "InternalTransfer",
    "TransferNotification",
    "DecodedBody",
    "begin_message",
    "op_body",
    "deploy_body",
    "parse_deploy_body",
    "parse_header",
    "decode_body",
    "describe_body",
]

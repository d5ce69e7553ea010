"""
escrow-py - offline tooling for escrow units.

Commands:
  - init-data        Build the pre-deploy data cell for a deal
  - deploy-body      Build the seller's deploy message body
  - inspect-data     Decode a unit's data cell into its Deal record
  - decode-message   Decode an inbound or outbound message body
  - wallet-address   Derive a token-ledger wallet address
  - config           Show the effective configuration

Global options:
  --json                 Output JSON instead of human-readable text
  --verbose / -v         Debug logging

Cells are read and printed as bag-of-cells blobs (hex; base64 is accepted on
input). Addresses accept raw `wc:hex` or user-friendly base64url forms.

Examples:
  escrow-py init-data --buyer 0:ab.. --seller 0:cd.. --guarantor 0:ef.. --fee-bps 250
  escrow-py --json inspect-data b5ee9c72...
  escrow-py decode-message b5ee9c72...
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, NoReturn, Optional

import typer

from ..cell import Address, Cell, coerce_address, parse_boc_text
from ..codec.messages import deploy_body as build_deploy_body
from ..codec.messages import describe_body
from ..codec.storage import DealConfig, decode_deal, initial_data
from ..config import load_config
from ..errors import EscrowError
from ..runtime.ledger import derive_wallet_address
from ..version import __version__

app = typer.Typer(
    name="escrow-py",
    help="Escrow unit tooling: data cells, message bodies, wallet addresses",
    no_args_is_help=True,
    add_completion=False,
)


class GlobalContext:
    def __init__(self) -> None:
        self.json_output: bool = False
        self.verbose: bool = False


_ctx = GlobalContext()


@app.callback()
def main_callback(
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output JSON instead of human-readable text",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Increase verbosity",
    ),
) -> None:
    """
    escrow-py — build and inspect escrow unit cells offline.

    Runtime knobs (transfer fees, strict decoding, log level) come from
    ESCROW_* environment variables; see `escrow-py config`.
    """
    _ctx.json_output = json_output
    _ctx.verbose = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else load_config().log_level_no,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---- helpers ---- #


def _pretty(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


def _fail(msg: str) -> NoReturn:
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(1)


def _address(value: str, what: str) -> Address:
    try:
        return coerce_address(value)
    except ValueError as e:
        _fail(f"invalid {what} address: {e}")


def _cell(text: str) -> Cell:
    try:
        return parse_boc_text(text)
    except ValueError as e:
        _fail(f"invalid bag of cells: {e}")


def _emit(payload: Dict[str, Any], human: Optional[str] = None) -> None:
    if _ctx.json_output or human is None:
        typer.echo(_pretty(payload))
    else:
        typer.echo(human)


# ---- commands ---- #


@app.command("init-data")
def init_data(
    buyer: str = typer.Option(..., "--buyer", help="Buyer address"),
    seller: str = typer.Option(..., "--seller", help="Seller address"),
    guarantor: str = typer.Option(..., "--guarantor", help="Guarantor address"),
    deal_id: int = typer.Option(0, "--deal-id", min=0, help="Opaque 64-bit deal id"),
    duration: int = typer.Option(600, "--duration", min=0, help="Confirmation window, seconds"),
    fee_bps: int = typer.Option(0, "--fee-bps", min=0, help="Guarantor fee, basis points"),
    token: bool = typer.Option(False, "--token", help="Settle in tokens instead of native value"),
) -> None:
    """Print the pre-deploy data cell (BoC hex)."""
    config = DealConfig(
        uses_token=token,
        buyer=_address(buyer, "buyer"),
        seller=_address(seller, "seller"),
        guarantor=_address(guarantor, "guarantor"),
        guarantor_fee_bps=fee_bps,
        confirmation_duration=duration,
        deal_id=deal_id,
    )
    try:
        cell = initial_data(config)
    except ValueError as e:
        _fail(str(e))
    boc = cell.to_boc().hex()
    _emit({"data": boc, "hash": cell.hash.hex(), "deal": decode_deal(cell).to_dict()}, boc)


@app.command("deploy-body")
def deploy_body(
    needed: int = typer.Option(..., "--needed", min=0, help="Settlement amount, nano units"),
    token_wallet: Optional[str] = typer.Option(None, "--token-wallet", help="Unit's token wallet"),
) -> None:
    """Print the seller's deploy body (BoC hex)."""
    wallet = _address(token_wallet, "token wallet") if token_wallet else None
    try:
        cell = build_deploy_body(needed, wallet)
    except ValueError as e:
        _fail(str(e))
    boc = cell.to_boc().hex()
    _emit({"body": boc}, boc)


@app.command("inspect-data")
def inspect_data(boc: str = typer.Argument(..., help="Data cell BoC (hex or base64)")) -> None:
    """Decode a data cell into its Deal record."""
    cell = _cell(boc)
    try:
        deal = decode_deal(cell)
    except (EscrowError, ValueError) as e:
        _fail(f"not a deal record: {e}")
    d = deal.to_dict()
    d["funded"] = deal.funded
    d["deadline"] = deal.deadline if deal.funded else None
    if _ctx.json_output:
        _emit(d)
        return
    typer.echo("Deal:")
    typer.echo("-" * 60)
    for k, v in d.items():
        typer.echo(f"{k + ':':<24}{v}")


@app.command("decode-message")
def decode_message(boc: str = typer.Argument(..., help="Message body BoC (hex or base64)")) -> None:
    """Decode a message body: opcode, query id and known payloads."""
    _emit(describe_body(_cell(boc)))


@app.command("wallet-address")
def wallet_address(
    owner: str = typer.Option(..., "--owner", help="Wallet owner address"),
    master: str = typer.Option(..., "--master", help="Token ledger master address"),
    wallet_code: str = typer.Option(..., "--wallet-code", help="Wallet code cell BoC"),
    testnet: bool = typer.Option(False, "--testnet", help="Use testnet flag in friendly form"),
) -> None:
    """Derive the ledger wallet address for `owner`."""
    addr = derive_wallet_address(
        _address(owner, "owner"), _address(master, "master"), _cell(wallet_code)
    )
    friendly = addr.to_friendly(bounceable=True, testnet=testnet)
    _emit({"raw": addr.to_raw(), "friendly": friendly}, f"{addr.to_raw()}\n{friendly}")


@app.command("config")
def show_config() -> None:
    """Print the effective configuration."""
    cfg = load_config().as_dict()
    cfg["version"] = __version__
    _emit(cfg)


def main() -> None:
    """Entry point for the escrow-py CLI."""
    app()


if __name__ == "__main__":
    main()

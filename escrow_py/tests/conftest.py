# -*- coding: utf-8 -*-
"""
escrow_py.tests.conftest
========================

Deterministic fixtures for the escrow unit tests.

- Party addresses derive from SHA3 over a label, so every run (and every
  failure message) shows the same addresses.
- Terms mirror a realistic deal: 10 native units needed, 2.5% guarantor fee,
  a 10 minute confirmation window.
- `harness(uses_token=...)` builds a unit and offers one-line helpers to
  deploy, fund and send commands, returning the unit's DeliveryResult.

Usage:
    def test_confirm(harness, parties):
        h = harness(funded=True)
        res = h.send(parties.guarantor, Op.CONFIRM_DEAL)
        assert res.success
"""
from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from typing import Callable, Optional

import pytest

from escrow_py.cell import Address, Cell, begin_cell
from escrow_py.codec import DealConfig, Op, TransferNotification, deploy_body, initial_data
from escrow_py.config import EscrowConfig
from escrow_py.runtime import DeliveryResult, EscrowUnit, MessageContext

os.environ.setdefault("TZ", "UTC")

TON = 1_000_000_000


def addr(label: str, workchain: int = 0) -> Address:
    return Address(workchain, hashlib.sha3_256(b"escrow-tests|" + label.encode()).digest())


@dataclass(frozen=True)
class Parties:
    buyer: Address
    seller: Address
    guarantor: Address
    stranger: Address
    token_wallet: Address
    rogue_wallet: Address


@dataclass(frozen=True)
class Terms:
    needed: int = 10 * TON
    fee_bps: int = 250
    duration: int = 600
    deal_id: int = 42
    now: int = 1_800_000_000
    deploy_native: int = TON // 20
    deploy_token: int = TON // 10
    command_value: int = TON // 20

    @property
    def fee(self) -> int:
        return self.needed * self.fee_bps // 10_000

    @property
    def payout(self) -> int:
        return self.needed - self.fee

    @property
    def deadline(self) -> int:
        return self.now + self.duration


@pytest.fixture(scope="session")
def parties() -> Parties:
    return Parties(
        buyer=addr("buyer"),
        seller=addr("seller"),
        guarantor=addr("guarantor"),
        stranger=addr("stranger"),
        token_wallet=addr("escrow-token-wallet"),
        rogue_wallet=addr("rogue-wallet"),
    )


@pytest.fixture(scope="session")
def terms() -> Terms:
    return Terms()


@pytest.fixture()
def cfg() -> EscrowConfig:
    """Explicit config so tests never depend on ESCROW_* in the environment."""
    return EscrowConfig(
        jetton_transfer_fee=55_000_000,
        forward_ton_amount=1,
        notification_value=0,
        max_fee_bps=1023,
        strict_mode=False,
        log_level="WARNING",
    )


@pytest.fixture()
def deal_config(parties: Parties, terms: Terms) -> Callable[..., DealConfig]:
    def make(uses_token: bool = False, **overrides) -> DealConfig:
        fields = dict(
            uses_token=uses_token,
            buyer=parties.buyer,
            seller=parties.seller,
            guarantor=parties.guarantor,
            guarantor_fee_bps=terms.fee_bps,
            confirmation_duration=terms.duration,
            deal_id=terms.deal_id,
        )
        fields.update(overrides)
        return DealConfig(**fields)

    return make


class Harness:
    def __init__(self, unit: EscrowUnit, parties: Parties, terms: Terms) -> None:
        self.unit = unit
        self.parties = parties
        self.terms = terms

    @property
    def deal(self):
        return self.unit.get_deal()

    def deliver(
        self,
        sender: Address,
        body: Cell,
        *,
        value: int = 0,
        now: Optional[int] = None,
        bounceable: bool = True,
        bounced: bool = False,
    ) -> DeliveryResult:
        ctx = MessageContext(
            sender=sender,
            value=value,
            body=body,
            now=self.terms.now if now is None else now,
            bounced=bounced,
            bounceable=bounceable,
        )
        return self.unit.deliver(ctx)

    def send(
        self,
        sender: Address,
        op: int,
        *,
        value: Optional[int] = None,
        now: Optional[int] = None,
        query_id: int = 0,
        bounceable: bool = True,
    ) -> DeliveryResult:
        ctx = MessageContext.command(
            sender,
            op,
            now=self.terms.now if now is None else now,
            value=self.terms.command_value if value is None else value,
            query_id=query_id,
            bounceable=bounceable,
        )
        return self.unit.deliver(ctx)

    def deploy(self, *, sender: Optional[Address] = None, token_wallet: Optional[Address] = None) -> DeliveryResult:
        uses_token = self.deal.uses_token
        value = self.terms.deploy_token if uses_token else self.terms.deploy_native
        return self.deliver(
            sender or self.parties.seller,
            deploy_body(self.terms.needed, token_wallet),
            value=value,
        )

    def deposit_native(self, *, sender: Optional[Address] = None, value: Optional[int] = None) -> DeliveryResult:
        return self.send(
            sender or self.parties.buyer,
            Op.DEPOSIT,
            value=self.terms.needed if value is None else value,
        )

    def notify(
        self,
        *,
        wallet: Optional[Address] = None,
        from_address: Optional[Address] = None,
        amount: Optional[int] = None,
        value: int = 1,
        query_id: int = 0,
        now: Optional[int] = None,
    ) -> DeliveryResult:
        note = TransferNotification(
            query_id=query_id,
            amount=self.terms.needed if amount is None else amount,
            sender=from_address or self.parties.buyer,
        )
        return self.deliver(
            wallet or self.parties.token_wallet,
            note.to_cell(),
            value=value,
            now=now,
        )


@pytest.fixture()
def harness(
    parties: Parties, terms: Terms, cfg: EscrowConfig, deal_config: Callable[..., DealConfig]
) -> Callable[..., Harness]:
    """
    Factory: harness(uses_token=False, deployed=True, funded=False, known_wallet=True).

    `known_wallet` controls whether the token wallet is passed in the deploy
    body or left for the unit to adopt from the first valid notification.
    """

    def make(
        uses_token: bool = False,
        *,
        deployed: bool = True,
        funded: bool = False,
        known_wallet: bool = True,
    ) -> Harness:
        unit = EscrowUnit(initial_data(deal_config(uses_token), cfg=cfg), cfg=cfg)
        h = Harness(unit, parties, terms)
        if deployed or funded:
            wallet = parties.token_wallet if (uses_token and known_wallet) else None
            assert h.deploy(token_wallet=wallet).success
        if funded:
            res = h.notify() if uses_token else h.deposit_native()
            assert res.success and res.returned is None
        return h

    return make


@pytest.fixture()
def empty_body() -> Cell:
    return begin_cell().end_cell()

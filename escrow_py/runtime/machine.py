"""
escrow_py.runtime.machine — the settlement state machine.

Pure decision logic: given the current Deal, one inbound MessageContext and
the unit's native balance (inbound value already credited), produce a
Transition or raise an EscrowError. Nothing here mutates anything; the unit
commits a Transition atomically or not at all.

Lifecycle
---------
    UNINITIALIZED --deploy--> AWAITING_FUNDS --deposit--> FUNDED
    FUNDED --confirm|reject|refund--> RESOLVED (tombstone)

Permissions
-----------
    deploy          seller
    deposit         buyer (native value) / buyer via the unit's token wallet
    confirm/reject  guarantor, while now <= start_time + confirmation_duration
    refund          buyer,     once  now >  start_time + confirmation_duration

Token deposits are special: the tokens have already moved when the
notification arrives, so a failed check is not an error. It is a successful
transition whose only effect is a transfer returning the tokens.

Wallet adoption: a token-mode deal deployed without a token wallet takes the
sender of the first acceptable notification as its wallet. Nothing here can
tell a genuine token wallet from any other contract sending a well-formed
notification, so such a deal can be marked funded without real tokens.
Deployers should pass the wallet in the deploy body, precomputed with
`escrow_py.runtime.ledger.derive_wallet_address`; adoption is logged at
WARNING.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..cell import Address
from ..codec.messages import (
    DecodedBody,
    TransferNotification,
    decode_body,
    parse_deploy_body,
    parse_header,
)
from ..codec.opcodes import Op, op_name
from ..codec.storage import MAX_NEEDED_AMOUNT, Deal
from ..config import EscrowConfig, load_config
from ..errors import (
    CellOverflow,
    ConfirmationDeadlineHasOccurred,
    ConfirmationDeadlineNotComeYet,
    ExitCode,
    InsufficientAmount,
    JettonPaymentRequired,
    UnknownOp,
    WrongSender,
    WrongState,
)
from .assets import Asset
from .context import MessageContext
from .outbound import OutboundBuilder, OutboundMessage

log = logging.getLogger(__name__)

__all__ = ["DealState", "Outcome", "Transition", "SettlementMachine", "state_of"]


class DealState(Enum):
    UNINITIALIZED = "uninitialized"
    AWAITING_FUNDS = "awaiting_funds"
    FUNDED = "funded"
    RESOLVED = "resolved"


class Outcome(Enum):
    SETTLED = "settled"
    REJECTED = "rejected"
    REFUNDED = "refunded"


def state_of(deal: Deal, outcome: Optional[Outcome] = None) -> DealState:
    if outcome is not None:
        return DealState.RESOLVED
    if not deal.initialized:
        return DealState.UNINITIALIZED
    if not deal.funded:
        return DealState.AWAITING_FUNDS
    return DealState.FUNDED


@dataclass(frozen=True)
class Transition:
    """
    Result of one accepted message.

    deal:     record to persist (the input deal when nothing changed)
    messages: outbound set, in emission order, values not yet resolved
    outcome:  set on terminal transitions
    returned: exit code explaining why a token deposit was sent back
    action:   short tag for logs and results
    """

    deal: Deal
    messages: Tuple[OutboundMessage, ...] = ()
    outcome: Optional[Outcome] = None
    returned: Optional[ExitCode] = None
    action: str = "noop"


class SettlementMachine:
    def __init__(self, asset: Asset, cfg: Optional[EscrowConfig] = None) -> None:
        self.asset = asset
        self.cfg = cfg or load_config()
        self._handlers: Dict[int, Callable[[Deal, MessageContext, DecodedBody, int], Transition]] = {
            Op.DEPOSIT: self.deposit_native,
            Op.TRANSFER_NOTIFICATION: self.deposit_token,
            Op.CONFIRM_DEAL: self.confirm,
            Op.REJECT_DEAL: self.reject,
            Op.REFUND: self.refund,
        }

    # ---- dispatch ---- #

    def handle(self, deal: Deal, ctx: MessageContext, balance: int) -> Transition:
        if ctx.bounced:
            log.debug("ignoring bounced message from %s", ctx.sender)
            return Transition(deal, action="ignored_bounce")
        if not deal.initialized:
            return self.deploy(deal, ctx)
        if ctx.body.is_empty():
            return Transition(deal, action="top_up")

        # Opcode lookup precedes payload decoding: token-ledger opcodes carry
        # payloads but are not commands to this unit.
        op = parse_header(ctx.body.begin_parse()).op
        handler = self._handlers.get(op)
        if handler is None:
            raise UnknownOp(
                f"unsupported opcode 0x{op:08x}",
                context={"op": op, "name": op_name(op)},
            )
        body = decode_body(ctx.body, strict=self.cfg.strict_mode)
        return handler(deal, ctx, body, balance)

    # ---- guards ---- #

    @staticmethod
    def _require_sender(sender: Address, expected: Address, role: str) -> None:
        if sender != expected:
            raise WrongSender(
                f"only the {role} may send this message",
                context={"sender": sender.to_raw(), "expected": expected.to_raw()},
            )

    @staticmethod
    def _require_state(deal: Deal, expected: DealState) -> None:
        actual = state_of(deal)
        if actual is not expected:
            raise WrongState(
                f"deal is {actual.value}, expected {expected.value}",
                context={"state": actual.value},
            )

    @staticmethod
    def _require_before_deadline(deal: Deal, now: int) -> None:
        if now > deal.deadline:
            raise ConfirmationDeadlineHasOccurred(
                "confirmation window has closed",
                context={"now": now, "deadline": deal.deadline},
            )

    def _builder(self, deal: Deal, query_id: int) -> OutboundBuilder:
        return OutboundBuilder(deal, self.asset, query_id, self.cfg)

    def _resolve(
        self, deal: Deal, messages: List[OutboundMessage], balance: int, outcome: Outcome
    ) -> Transition:
        self.asset.ensure_covered(messages, balance)
        log.info("deal %d resolved: %s", deal.deal_id, outcome.value)
        return Transition(deal, tuple(messages), outcome=outcome, action=outcome.value)

    # ---- operations ---- #

    def deploy(self, deal: Deal, ctx: MessageContext) -> Transition:
        self._require_sender(ctx.sender, deal.seller, "seller")
        body = parse_deploy_body(ctx.body, uses_token=deal.uses_token, strict=self.cfg.strict_mode)
        if body.needed_amount > MAX_NEEDED_AMOUNT:
            raise CellOverflow(
                "needed amount does not fit the deal record",
                context={"needed": body.needed_amount},
            )
        changes: Dict[str, Any] = {"initialized": True, "needed_amount": body.needed_amount}
        if deal.uses_token and body.token_wallet is not None:
            changes["token_wallet"] = body.token_wallet
        new = deal.replace(**changes)
        log.info(
            "deal %d deployed: needed=%d mode=%s",
            deal.deal_id,
            new.needed_amount,
            self.asset.kind,
        )
        return Transition(new, action="deploy")

    def deposit_native(
        self, deal: Deal, ctx: MessageContext, body: DecodedBody, balance: int
    ) -> Transition:
        self._require_state(deal, DealState.AWAITING_FUNDS)
        self._require_sender(ctx.sender, deal.buyer, "buyer")
        if ctx.value < deal.needed_amount:
            raise InsufficientAmount(
                "deposit is below the needed amount",
                context={"value": ctx.value, "needed": deal.needed_amount},
            )
        if not self.asset.accepts_native_deposit:
            raise JettonPaymentRequired("this deal settles in tokens")
        log.info("deal %d funded with %d native at %d", deal.deal_id, ctx.value, ctx.now)
        return Transition(deal.replace(start_time=ctx.now), action="deposit")

    def _token_rejection(self, deal: Deal, wallet: Address, note: TransferNotification) -> Optional[ExitCode]:
        if not self.asset.accepts_token_deposit or state_of(deal) is not DealState.AWAITING_FUNDS:
            return ExitCode.WRONG_STATE
        if deal.token_wallet is not None and wallet != deal.token_wallet:
            return ExitCode.WRONG_SENDER
        if note.sender != deal.buyer:
            return ExitCode.WRONG_SENDER
        if note.amount < deal.needed_amount:
            return ExitCode.INSUFFICIENT_AMOUNT
        return None

    def deposit_token(
        self, deal: Deal, ctx: MessageContext, body: DecodedBody, balance: int
    ) -> Transition:
        note = body.payload
        if not isinstance(note, TransferNotification):
            raise UnknownOp("transfer_notification without payload")
        wallet = ctx.sender
        reason = self._token_rejection(deal, wallet, note)
        if reason is not None:
            log.warning(
                "returning %d tokens to %s via %s: %s",
                note.amount,
                note.sender,
                wallet,
                reason.name.lower(),
            )
            back = self.asset.return_to_sender(wallet, note.sender, note.amount, body.query_id)
            return Transition(deal, (back,), returned=reason, action="token_returned")

        changes: Dict[str, Any] = {"start_time": ctx.now}
        if deal.token_wallet is None:
            log.warning(
                "deal %d adopting unregistered token wallet %s; the notification is unverified",
                deal.deal_id,
                wallet,
            )
            changes["token_wallet"] = wallet
        log.info("deal %d funded with %d tokens at %d", deal.deal_id, note.amount, ctx.now)
        return Transition(deal.replace(**changes), action="deposit")

    def confirm(self, deal: Deal, ctx: MessageContext, body: DecodedBody, balance: int) -> Transition:
        self._require_state(deal, DealState.FUNDED)
        self._require_sender(ctx.sender, deal.guarantor, "guarantor")
        self._require_before_deadline(deal, ctx.now)
        return self._resolve(deal, self._builder(deal, body.query_id).settled(), balance, Outcome.SETTLED)

    def reject(self, deal: Deal, ctx: MessageContext, body: DecodedBody, balance: int) -> Transition:
        self._require_state(deal, DealState.FUNDED)
        self._require_sender(ctx.sender, deal.guarantor, "guarantor")
        self._require_before_deadline(deal, ctx.now)
        return self._resolve(deal, self._builder(deal, body.query_id).rejected(), balance, Outcome.REJECTED)

    def refund(self, deal: Deal, ctx: MessageContext, body: DecodedBody, balance: int) -> Transition:
        self._require_state(deal, DealState.FUNDED)
        self._require_sender(ctx.sender, deal.buyer, "buyer")
        if ctx.now <= deal.deadline:
            raise ConfirmationDeadlineNotComeYet(
                "refund is available only after the confirmation window",
                context={"now": ctx.now, "deadline": deal.deadline},
            )
        return self._resolve(deal, self._builder(deal, body.query_id).refunded(), balance, Outcome.REFUNDED)

"""Tipping service - wires all components together."""

from __future__ import annotations

import logging

from fireside_tips.engine.amounts import (
    compute_on_chain_amount,
    compute_per_recipient_share,
    parse_usd_amount,
)
from fireside_tips.engine.batcher import split_into_batches
from fireside_tips.engine.executor import (
    ProgressCallback,
    SubmissionTracker,
    select_executor,
)
from fireside_tips.engine.planner import build_call_plan
from fireside_tips.engine.recipients import resolve_recipients
from fireside_tips.engine.reconcile import ReconciliationHandler
from fireside_tips.errors import InvalidAmount, PriceUnavailable, SubmissionInFlight
from fireside_tips.evm.wallet import JsonRpcWallet
from fireside_tips.interfaces.executor import TransactionExecutor
from fireside_tips.interfaces.notifier import TipNotifier
from fireside_tips.interfaces.price import PriceSource
from fireside_tips.interfaces.roster import RosterResolver
from fireside_tips.interfaces.store import TipStore
from fireside_tips.interfaces.wallet import WalletTransport
from fireside_tips.models.config import EngineConfig
from fireside_tips.models.plan import PreparedTip
from fireside_tips.models.records import ReconciliationOutcome
from fireside_tips.models.tip import TipRequest
from fireside_tips.notify.webhook import WebhookTipNotifier
from fireside_tips.pricing.quotes import HttpPriceSource
from fireside_tips.roster.peers import HttpRosterResolver
from fireside_tips.storage.sqlite import SQLiteTipStore

log = logging.getLogger(__name__)


class TippingService:
    """Turns a confirmed TipRequest into on-chain payments.

    prepare() is a dry run (no wallet involved). submit() sends a prepared
    plan as built; send() does both. Each run is logged and reconciled.
    """

    def __init__(
        self,
        cfg: EngineConfig,
        wallet: WalletTransport,
        price_source: PriceSource | None = None,
        roster: RosterResolver | None = None,
        notifier: TipNotifier | None = None,
        store: TipStore | None = None,
        tracker: SubmissionTracker | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._cfg = cfg
        self.wallet = wallet
        self.price_source = price_source
        self.roster = roster
        self.store = store
        self.tracker = tracker or SubmissionTracker()
        self.reconciler = ReconciliationHandler(notifier=notifier, store=store)
        self.executor: TransactionExecutor | None = None
        self._on_progress = on_progress
        self._preparing: set[str] = set()

    @classmethod
    def from_config(cls, cfg: EngineConfig) -> TippingService:
        """Build a service backed by the HTTP/JSON-RPC/SQLite adapters."""
        wallet = JsonRpcWallet(
            cfg.wallet_rpc_url,
            cfg.from_address,
            cfg.chain_id,
            timeout=cfg.wallet_timeout,
            poll_interval=cfg.status_poll_interval,
            max_attempts=cfg.status_max_attempts,
        )
        return cls(
            cfg,
            wallet,
            price_source=HttpPriceSource(cfg.pricing),
            roster=HttpRosterResolver(cfg.roster),
            notifier=WebhookTipNotifier(cfg.notify) if cfg.notify.url else None,
            store=SQLiteTipStore(cfg.db_path),
        )

    async def initialize(self) -> None:
        """Open the store and pick the submission strategy."""
        log.info("Initializing tipping service")
        log.info("  Chain: %d", self._cfg.chain_id)
        log.info("  Contract: %s", self._cfg.distribution_contract[:16] or "(unset)")
        log.info("  Max batch size: %d", self._cfg.max_batch_size)
        if self.store is not None:
            await self.store.initialize()
        self.executor = await select_executor(self.wallet, self.tracker, self._on_progress)
        log.info("  Strategy: %s", self.executor.strategy)

    async def close(self) -> None:
        if self.store is not None:
            await self.store.close()

    # ── Preparation (dry run) ──────────────────────────────

    async def prepare(self, request: TipRequest) -> PreparedTip:
        """Validate, resolve, price, split, batch and plan a tip.

        Raises InvalidAmount, NoRecipients or PriceUnavailable, in that order
        of checking. Nothing is submitted.
        """
        usd = parse_usd_amount(request.usd_amount)
        recipients = await resolve_recipients(
            request.recipient_selector, request.room_id, self.roster,
        )

        currency = request.currency
        price = None
        if currency.needs_price:
            if self.price_source is None:
                raise PriceUnavailable(currency.symbol, "no price source configured")
            price = await self.price_source.get_usd_price(currency)
            if price is None:
                raise PriceUnavailable(currency.symbol)

        total = compute_on_chain_amount(usd, currency, price)
        distribution = compute_per_recipient_share(total, len(recipients))
        if distribution.share == 0:
            raise InvalidAmount(
                f"${usd} is too small to split across {len(recipients)} recipient(s)"
            )

        batches = split_into_batches(recipients, self._cfg.max_batch_size, distribution.share)
        plan = build_call_plan(currency, batches, self._cfg.contracts(), request.payer_id)
        self.tracker.mark_built(request.payer_id)

        log.info(
            "Prepared $%s %s tip from %s: %d recipient(s), %d batch(es), %d call(s)",
            usd, currency.symbol, request.payer_id, len(recipients), len(batches), len(plan),
        )
        return PreparedTip(
            request=request,
            usd_amount=usd,
            recipients=tuple(recipients),
            price=price,
            on_chain_amount=total,
            distribution=distribution,
            batches=tuple(batches),
            plan=plan,
        )

    # ── Submission ─────────────────────────────────────────

    async def send(self, request: TipRequest) -> ReconciliationOutcome:
        """Prepare and submit a tip, then reconcile the result.

        Errors before submission are raised. After submission starts, the
        outcome carries any error instead. The payer is reserved before any
        roster or price lookup, so a concurrent send is refused up front.
        """
        payer = request.payer_id
        if self.tracker.is_in_flight(payer) or payer in self._preparing:
            raise SubmissionInFlight(payer)
        self._preparing.add(payer)
        try:
            prepared = await self.prepare(request)
        finally:
            self._preparing.discard(payer)
        return await self.submit(prepared)

    async def submit(self, prepared: PreparedTip) -> ReconciliationOutcome:
        """Submit an already prepared plan exactly as built, then reconcile.

        No lookup is repeated: the amounts and recipients are the ones the
        caller saw in ``prepared``.
        """
        request = prepared.request
        if self.tracker.is_in_flight(request.payer_id):
            raise SubmissionInFlight(request.payer_id)
        if self.executor is None:
            await self.initialize()

        result = await self.executor.submit(prepared.plan)

        if self.store is not None:
            failure = result.first_failure
            try:
                await self.store.log_submission(
                    request.room_id, result, error=failure.error if failure else None,
                )
            except Exception as exc:
                log.error("Logging submission for %s failed: %s", request.payer_id, exc)

        outcome = await self.reconciler.reconcile(request, result)
        log.info(
            "Tip from %s finished: %s (%d paid, %d unpaid)",
            request.payer_id, outcome.status.value,
            len(outcome.covered_recipients), len(outcome.uncovered_recipients),
        )
        return outcome

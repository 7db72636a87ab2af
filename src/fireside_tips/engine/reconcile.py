"""Reconciliation - turns a terminal execution result into side effects.

Broadcast and persistence happen at most once per call to ``reconcile``, and
only for recipients whose distribution call actually succeeded. Nothing here
changes the execution outcome: the on-chain payment has already happened.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import ROUND_FLOOR, Decimal

from fireside_tips.engine.amounts import parse_usd_amount, to_human_units
from fireside_tips.errors import (
    CallSubmissionRejected,
    OnChainExecutionFailed,
    PartialBatchFailure,
    PaymentUnconfirmed,
    PersistenceFailure,
    TipError,
)
from fireside_tips.interfaces.notifier import TipNotifier
from fireside_tips.interfaces.store import TipStore
from fireside_tips.models.records import (
    ExecutionResult,
    ExecutionStatus,
    FailureReason,
    ReconciliationOutcome,
    TipEvent,
    TipRecord,
)
from fireside_tips.models.tip import TipRequest

log = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _emoji(usd: Decimal) -> str:
    if usd >= 100:
        return "💸"
    if usd >= 25:
        return "🎉"
    return "👍"


def format_tip_message(tipper: str, recipients: str, usd: Decimal, currency: str) -> str:
    """Room broadcast text, e.g. '🎉 alice tipped hosts $25 in USDC!'."""
    return f"{_emoji(usd)} {tipper} tipped {recipients} ${usd} in {currency}!"


def covered_usd(usd_amount: Decimal, covered: int, total: int) -> Decimal:
    """USD attributable to ``covered`` of ``total`` recipients, floored to cents."""
    if covered >= total:
        return usd_amount
    return (usd_amount * covered / total).quantize(_CENT, rounding=ROUND_FLOOR)


def _check_before_retry(tx_hash: str | None) -> str:
    if tx_hash:
        return f"Check transaction {tx_hash} before retrying; it may still go through."
    return "Check the wallet's activity before retrying; the transaction may still go through."


def _failure_error(result: ExecutionResult) -> TipError:
    failure = result.first_failure
    if failure is not None and failure.reason == FailureReason.TIMEOUT:
        return PaymentUnconfirmed(
            failure.error or "transaction was not confirmed in time", tx_hash=failure.tx_hash,
        )
    if failure is not None and failure.reason == FailureReason.USER_REJECTED:
        return CallSubmissionRejected("Transaction was declined in the wallet")
    detail = (failure.error if failure else None) or "transaction failed"
    if result.status == ExecutionStatus.PARTIAL_FAILURE:
        detail = f"token approval went through but no distribution call did ({detail})"
    return OnChainExecutionFailed(detail, tx_hash=failure.tx_hash if failure else None)


class ReconciliationHandler:
    """Classifies execution results and triggers notification + persistence."""

    def __init__(
        self,
        notifier: TipNotifier | None = None,
        store: TipStore | None = None,
    ) -> None:
        self._notifier = notifier
        self._store = store

    async def reconcile(
        self, request: TipRequest, result: ExecutionResult,
    ) -> ReconciliationOutcome:
        covered = list(result.covered_recipients)
        uncovered = list(result.uncovered_recipients)

        if not result.any_payment_succeeded:
            error = _failure_error(result)
            unknown = isinstance(error, PaymentUnconfirmed)
            if unknown:
                log.warning(
                    "Tip from %s has an unknown outcome (%s): %s",
                    request.payer_id, result.status.value, error,
                )
                message = (
                    f"Payment outcome unknown: {error}. "
                    f"{_check_before_retry(error.tx_hash)}"
                )
            else:
                log.warning(
                    "Tip from %s paid nobody (%s): %s",
                    request.payer_id, result.status.value, error,
                )
                message = f"No payment went through: {error}. Nothing was sent."
            return ReconciliationOutcome(
                status=result.status,
                any_payment=False,
                outcome_unknown=unknown,
                error=error,
                covered_recipients=[],
                uncovered_recipients=uncovered,
                message=message,
            )

        record, event = self._build_record(request, result, covered)
        outcome = ReconciliationOutcome(
            status=result.status,
            any_payment=True,
            record=record,
            covered_recipients=covered,
            uncovered_recipients=uncovered,
        )

        if result.status == ExecutionStatus.PARTIAL_FAILURE:
            failure = result.first_failure
            cause = ""
            if failure is not None:
                cause = failure.error or (failure.reason.value if failure.reason else "")
            outcome.error = PartialBatchFailure(
                covered=covered,
                uncovered=uncovered,
                succeeded_batches=list(result.succeeded_batches),
                cause=cause,
            )
            if failure is not None and failure.reason == FailureReason.TIMEOUT:
                outcome.outcome_unknown = True
                outcome.message = (
                    f"Partial tip: {len(covered)} of {len(covered) + len(uncovered)} "
                    f"recipients were paid; {len(uncovered)} are unconfirmed. "
                    f"{_check_before_retry(failure.tx_hash)}"
                )
            else:
                outcome.message = (
                    f"Partial tip: {len(covered)} of {len(covered) + len(uncovered)} "
                    f"recipients were paid; {len(uncovered)} were not. "
                    "Re-send only to the unpaid recipients if you still want to tip them."
                )
        else:
            outcome.message = f"Tip sent to {len(covered)} recipient(s)."

        outcome.notified = await self._notify(event)
        outcome.persisted = await self._persist(record, outcome)
        return outcome

    def _build_record(
        self, request: TipRequest, result: ExecutionResult, covered: list[str],
    ) -> tuple[TipRecord, TipEvent]:
        currency = result.plan.currency
        total_recipients = sum(len(b) for b in result.plan.batches)
        usd = covered_usd(parse_usd_amount(request.usd_amount), len(covered), total_recipients)
        native = to_human_units(result.distributed_amount, currency.decimals)
        timestamp = _now()

        if len(covered) == total_recipients:
            who = request.recipient_selector.describe()
        else:
            who = f"{len(covered)} recipient(s)"

        record = TipRecord(
            id=uuid.uuid4().hex,
            room_id=request.room_id,
            payer_id=request.payer_id,
            tipper_name=request.tipper_name,
            recipients=covered,
            usd_amount=usd,
            currency=currency.symbol,
            on_chain_amount=result.distributed_amount,
            native_amount=native,
            tx_hashes=result.tx_hashes,
            timestamp=timestamp,
        )
        event = TipEvent(
            room_id=request.room_id,
            tipper_name=request.tipper_name,
            recipients=covered,
            usd_amount=usd,
            currency=currency.symbol,
            native_amount=native,
            message=format_tip_message(request.tipper_name, who, usd, currency.symbol),
            timestamp=timestamp,
        )
        return record, event

    async def _notify(self, event: TipEvent) -> bool:
        if self._notifier is None:
            return False
        try:
            await self._notifier.broadcast(event)
            return True
        except Exception as exc:
            # Fire-and-forget: delivery problems never affect the outcome.
            log.warning("Tip broadcast failed for room %s: %s", event.room_id, exc)
            return False

    async def _persist(self, record: TipRecord, outcome: ReconciliationOutcome) -> bool:
        if self._store is None:
            return False
        try:
            await self._store.save_tip_record(record)
            return True
        except Exception as exc:
            log.error("Saving tip record %s failed: %s", record.id, exc)
            outcome.persistence_error = PersistenceFailure(
                f"tip was paid on-chain but could not be recorded: {exc}"
            )
            return False

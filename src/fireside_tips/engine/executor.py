"""Transaction executors - atomic bundle and sequential submission strategies.

Both strategies implement the TransactionExecutor protocol. Which one is
used is decided once, at construction, from what the wallet reports
supporting (see ``select_executor``).
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fireside_tips.errors import ConfigurationError, SubmissionInFlight
from fireside_tips.interfaces.wallet import WalletTransport
from fireside_tips.models.plan import CallPlan, ContractCall
from fireside_tips.models.records import (
    CallOutcome,
    CallResult,
    ExecutionResult,
    ExecutionStatus,
    ExecutorState,
    FailureReason,
    SubmissionOutcome,
)

log = logging.getLogger(__name__)

ProgressCallback = Callable[[ContractCall, CallResult], Awaitable[None]]

_TERMINAL = {
    ExecutionStatus.SUCCEEDED: ExecutorState.SUCCEEDED,
    ExecutionStatus.PARTIAL_FAILURE: ExecutorState.PARTIAL_FAILURE,
    ExecutionStatus.FAILED: ExecutorState.FAILED,
}


class SubmissionTracker:
    """Per-payer single-flight guard and last known executor state.

    The in-flight flag is the only shared mutable state in the engine. It is
    set on BUILT -> SUBMITTING and cleared when a terminal state is reached.
    """

    def __init__(self) -> None:
        self._in_flight: set[str] = set()
        self._states: dict[str, ExecutorState] = {}

    def state(self, payer_id: str) -> ExecutorState:
        return self._states.get(payer_id, ExecutorState.IDLE)

    def is_in_flight(self, payer_id: str) -> bool:
        return payer_id in self._in_flight

    def mark_built(self, payer_id: str) -> None:
        if payer_id not in self._in_flight:
            self._states[payer_id] = ExecutorState.BUILT

    def begin(self, payer_id: str) -> None:
        """Claim the payer's submission slot or raise SubmissionInFlight."""
        if payer_id in self._in_flight:
            log.warning("Rejecting concurrent submission for payer %s", payer_id)
            raise SubmissionInFlight(payer_id)
        self._in_flight.add(payer_id)
        self._states[payer_id] = ExecutorState.SUBMITTING

    def finish(self, payer_id: str, state: ExecutorState) -> None:
        self._in_flight.discard(payer_id)
        self._states[payer_id] = state


def _failed_outcome(exc: Exception) -> SubmissionOutcome:
    return SubmissionOutcome(success=False, reason=FailureReason.ERROR, error=str(exc))


class AtomicBundleExecutor:
    """Submits the whole plan as one all-or-nothing bundle.

    There is no partial failure here: every call shares the bundle's fate.
    """

    strategy = "atomic"

    def __init__(self, wallet: WalletTransport, tracker: SubmissionTracker | None = None) -> None:
        self._wallet = wallet
        self._tracker = tracker or SubmissionTracker()

    @property
    def tracker(self) -> SubmissionTracker:
        return self._tracker

    async def submit(self, plan: CallPlan) -> ExecutionResult:
        self._tracker.begin(plan.payer_id)
        final = ExecutorState.FAILED
        try:
            log.info(
                "Submitting %d-call %s bundle for %s",
                len(plan), plan.currency.symbol, plan.payer_id,
            )
            try:
                outcome = await self._wallet.submit_atomic(list(plan.calls))
            except Exception as exc:
                log.error("Atomic submission raised for %s: %s", plan.payer_id, exc)
                outcome = _failed_outcome(exc)

            hashes = outcome.tx_hashes
            results = []
            for i in range(len(plan.calls)):
                tx_hash = hashes[i] if len(hashes) == len(plan.calls) else outcome.tx_hash
                if outcome.success:
                    results.append(CallResult(index=i, outcome=CallOutcome.SUCCEEDED, tx_hash=tx_hash))
                else:
                    results.append(CallResult(
                        index=i,
                        outcome=CallOutcome.FAILED,
                        tx_hash=tx_hash,
                        reason=outcome.reason or FailureReason.ERROR,
                        error=outcome.error,
                    ))

            status = ExecutionStatus.SUCCEEDED if outcome.success else ExecutionStatus.FAILED
            final = _TERMINAL[status]
            if outcome.success:
                log.info("Bundle confirmed for %s", plan.payer_id)
            else:
                log.warning(
                    "Bundle failed for %s: %s (%s)",
                    plan.payer_id, outcome.reason.value if outcome.reason else "?", outcome.error,
                )
            return ExecutionResult(
                plan=plan, results=tuple(results), status=status, strategy=self.strategy,
            )
        finally:
            self._tracker.finish(plan.payer_id, final)


class SequentialExecutor:
    """Submits calls one at a time, in plan order, stopping at the first failure."""

    strategy = "sequential"

    def __init__(
        self,
        wallet: WalletTransport,
        tracker: SubmissionTracker | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._wallet = wallet
        self._tracker = tracker or SubmissionTracker()
        self._on_progress = on_progress

    @property
    def tracker(self) -> SubmissionTracker:
        return self._tracker

    async def submit(self, plan: CallPlan) -> ExecutionResult:
        self._tracker.begin(plan.payer_id)
        final = ExecutorState.FAILED
        try:
            results = await self._run(plan)
            succeeded = sum(1 for r in results if r.outcome == CallOutcome.SUCCEEDED)
            if succeeded == len(results):
                status = ExecutionStatus.SUCCEEDED
            elif succeeded > 0:
                status = ExecutionStatus.PARTIAL_FAILURE
            else:
                status = ExecutionStatus.FAILED
            final = _TERMINAL[status]
            log.info(
                "Sequential submission for %s finished: %s (%d/%d calls)",
                plan.payer_id, status.value, succeeded, len(results),
            )
            return ExecutionResult(
                plan=plan, results=tuple(results), status=status, strategy=self.strategy,
            )
        finally:
            self._tracker.finish(plan.payer_id, final)

    async def _run(self, plan: CallPlan) -> list[CallResult]:
        results: list[CallResult] = []
        for i, call in enumerate(plan.calls):
            log.info(
                "Submitting call %d/%d (%s) to %s",
                i + 1, len(plan), call.kind.value, call.target[:10],
            )
            try:
                outcome = await self._wallet.submit_one(call)
            except Exception as exc:
                log.error("Call %d raised: %s", i + 1, exc)
                outcome = _failed_outcome(exc)

            if outcome.success:
                result = CallResult(index=i, outcome=CallOutcome.SUCCEEDED, tx_hash=outcome.tx_hash)
            else:
                result = CallResult(
                    index=i,
                    outcome=CallOutcome.FAILED,
                    tx_hash=outcome.tx_hash,
                    reason=outcome.reason or FailureReason.ERROR,
                    error=outcome.error,
                )
            results.append(result)

            if self._on_progress is not None:
                try:
                    await self._on_progress(call, result)
                except Exception as exc:
                    log.warning("Progress callback failed: %s", exc)

            if not outcome.success:
                log.warning(
                    "Call %d/%d failed (%s): %s; skipping %d remaining",
                    i + 1, len(plan), result.reason.value if result.reason else "?",
                    outcome.error, len(plan) - i - 1,
                )
                results.extend(
                    CallResult(index=j, outcome=CallOutcome.NOT_ATTEMPTED)
                    for j in range(i + 1, len(plan))
                )
                break
        return results


async def select_executor(
    wallet: WalletTransport,
    tracker: SubmissionTracker | None = None,
    on_progress: ProgressCallback | None = None,
) -> AtomicBundleExecutor | SequentialExecutor:
    """Probe the wallet once and pick the strategy it supports.

    Atomic bundling is preferred; sequential submission is the fallback.
    """
    caps = await wallet.capabilities()
    if caps.atomic:
        log.info("Wallet supports atomic call bundles")
        return AtomicBundleExecutor(wallet, tracker)
    if caps.sequential:
        log.info("Wallet lacks atomic bundles; using sequential submission")
        return SequentialExecutor(wallet, tracker, on_progress)
    raise ConfigurationError("wallet supports neither atomic nor sequential submission")

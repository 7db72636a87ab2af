"""Tests 20-27: Atomic and sequential executors, strategy selection, single-flight."""

from __future__ import annotations

import asyncio

import pytest

from fireside_tips.engine.executor import (
    AtomicBundleExecutor,
    SequentialExecutor,
    SubmissionTracker,
    select_executor,
)
from fireside_tips.errors import ConfigurationError, SubmissionInFlight
from fireside_tips.models.currency import ETH
from fireside_tips.models.records import (
    CallOutcome,
    ExecutionStatus,
    ExecutorState,
    FailureReason,
    SubmissionOutcome,
)

from tests.factories import make_addresses, make_plan
from tests.mocks import MockWallet


def _reverted(tx: str = "0xdead") -> SubmissionOutcome:
    return SubmissionOutcome(
        success=False, tx_hash=tx, reason=FailureReason.REVERTED, error="execution reverted",
    )


# ── Test 20: Scenario D ───────────────────────────────────────────


async def test_scenario_d_sequential_partial_failure():
    """3 calls, call 2 fails → SUCCEEDED, FAILED, NOT_ATTEMPTED; PARTIAL_FAILURE."""
    recipients = make_addresses(45)
    plan = make_plan(recipients, share=10, currency=ETH)
    wallet = MockWallet(outcomes=[SubmissionOutcome(success=True, tx_hash="0x01"), _reverted()])
    executor = SequentialExecutor(wallet)

    result = await executor.submit(plan)

    assert [r.outcome for r in result.results] == [
        CallOutcome.SUCCEEDED, CallOutcome.FAILED, CallOutcome.NOT_ATTEMPTED,
    ]
    assert result.status == ExecutionStatus.PARTIAL_FAILURE
    assert result.strategy == "sequential"
    assert len(wallet.one_calls) == 2  # third never submitted
    assert result.succeeded_batches == (0,)
    assert list(result.covered_recipients) == recipients[:20]
    assert list(result.uncovered_recipients) == recipients[20:]
    assert result.distributed_amount == 200
    assert result.results[1].reason == FailureReason.REVERTED
    assert executor.tracker.state("payer-1") == ExecutorState.PARTIAL_FAILURE


# ── Test 21: Sequential happy path & first-call failure ───────────


async def test_sequential_all_succeed_in_order():
    plan = make_plan(make_addresses(25), max_batch_size=10)
    wallet = MockWallet()
    result = await SequentialExecutor(wallet).submit(plan)

    assert result.status == ExecutionStatus.SUCCEEDED
    assert wallet.one_calls == list(plan.calls)
    assert len(result.tx_hashes) == len(plan)


async def test_sequential_first_call_rejected():
    """User declines the approval → FAILED, nothing else attempted."""
    rejected = SubmissionOutcome(
        success=False, reason=FailureReason.USER_REJECTED, error="rejected by user",
    )
    plan = make_plan(make_addresses(3))
    wallet = MockWallet(outcomes=[rejected])
    result = await SequentialExecutor(wallet).submit(plan)

    assert result.status == ExecutionStatus.FAILED
    assert result.results[0].reason == FailureReason.USER_REJECTED
    assert result.count(CallOutcome.NOT_ATTEMPTED) == len(plan) - 1
    assert not result.any_payment_succeeded


async def test_sequential_wallet_exception_is_a_failed_call():
    """Adapter exceptions become FAILED(ERROR) and stop the run."""
    plan = make_plan(make_addresses(3))
    wallet = MockWallet(outcomes=[RuntimeError("socket closed")])
    executor = SequentialExecutor(wallet)
    result = await executor.submit(plan)

    assert result.status == ExecutionStatus.FAILED
    assert result.results[0].reason == FailureReason.ERROR
    assert "socket closed" in result.results[0].error
    assert not executor.tracker.is_in_flight("payer-1")


async def test_progress_callback_sees_each_call():
    seen = []

    async def on_progress(call, res):
        seen.append((call.kind.value, res.outcome))
        raise RuntimeError("ui went away")  # must not break submission

    plan = make_plan(make_addresses(3))
    result = await SequentialExecutor(MockWallet(), on_progress=on_progress).submit(plan)
    assert result.status == ExecutionStatus.SUCCEEDED
    assert seen == [("approve", CallOutcome.SUCCEEDED), ("distribute", CallOutcome.SUCCEEDED)]


# ── Test 22: Atomic bundles ───────────────────────────────────────


async def test_atomic_success_marks_every_call():
    plan = make_plan(make_addresses(45))
    wallet = MockWallet(atomic=True, outcomes=[
        SubmissionOutcome(success=True, tx_hash="0xbundle", tx_hashes=["0xbundle"]),
    ])
    result = await AtomicBundleExecutor(wallet).submit(plan)

    assert result.status == ExecutionStatus.SUCCEEDED
    assert result.strategy == "atomic"
    assert wallet.atomic_calls == [list(plan.calls)]
    assert all(r.outcome == CallOutcome.SUCCEEDED for r in result.results)
    assert result.tx_hashes == ["0xbundle"]


async def test_atomic_failure_has_no_partial_state():
    """Bundle revert → every call FAILED, nothing covered."""
    plan = make_plan(make_addresses(45))
    wallet = MockWallet(atomic=True, outcomes=[_reverted("0xbundle")])
    result = await AtomicBundleExecutor(wallet).submit(plan)

    assert result.status == ExecutionStatus.FAILED
    assert all(r.outcome == CallOutcome.FAILED for r in result.results)
    assert result.covered_recipients == ()
    assert result.distributed_amount == 0


async def test_atomic_exception_maps_to_failed():
    plan = make_plan(make_addresses(3))
    executor = AtomicBundleExecutor(MockWallet(atomic=True, outcomes=[ValueError("bad json")]))
    result = await executor.submit(plan)
    assert result.status == ExecutionStatus.FAILED
    assert result.results[0].reason == FailureReason.ERROR
    assert executor.tracker.state("payer-1") == ExecutorState.FAILED


# ── Test 23: Strategy selection ───────────────────────────────────


async def test_select_prefers_atomic():
    executor = await select_executor(MockWallet(atomic=True))
    assert isinstance(executor, AtomicBundleExecutor)


async def test_select_falls_back_to_sequential():
    executor = await select_executor(MockWallet(atomic=False))
    assert isinstance(executor, SequentialExecutor)


async def test_select_with_no_strategy():
    with pytest.raises(ConfigurationError):
        await select_executor(MockWallet(atomic=False, sequential=False))


# ── Test 24: Single-flight per payer ──────────────────────────────


async def test_concurrent_submission_rejected():
    """Second submit for the same payer while one is in flight → SubmissionInFlight."""
    wallet = MockWallet()
    wallet.gate = asyncio.Event()
    executor = SequentialExecutor(wallet)
    plan = make_plan(make_addresses(3))

    first = asyncio.create_task(executor.submit(plan))
    await asyncio.sleep(0)
    assert executor.tracker.is_in_flight("payer-1")
    assert executor.tracker.state("payer-1") == ExecutorState.SUBMITTING

    with pytest.raises(SubmissionInFlight):
        await executor.submit(plan)

    wallet.gate.set()
    result = await first
    assert result.status == ExecutionStatus.SUCCEEDED
    assert not executor.tracker.is_in_flight("payer-1")


async def test_other_payers_not_blocked():
    wallet = MockWallet()
    wallet.gate = asyncio.Event()
    tracker = SubmissionTracker()
    executor = SequentialExecutor(wallet, tracker)

    first = asyncio.create_task(executor.submit(make_plan(make_addresses(3), payer_id="a")))
    await asyncio.sleep(0)
    second = asyncio.create_task(executor.submit(make_plan(make_addresses(3), payer_id="b")))
    await asyncio.sleep(0)
    assert tracker.is_in_flight("a") and tracker.is_in_flight("b")

    wallet.gate.set()
    await asyncio.gather(first, second)
    assert not tracker.is_in_flight("a") and not tracker.is_in_flight("b")


# ── Test 25: Flag cleared on every exit path ──────────────────────


async def test_in_flight_cleared_on_cancellation():
    """Even a cancelled submission releases the payer's slot."""
    wallet = MockWallet(atomic=True, outcomes=[asyncio.CancelledError()])
    executor = AtomicBundleExecutor(wallet)

    with pytest.raises(asyncio.CancelledError):
        await executor.submit(make_plan(make_addresses(3)))
    assert not executor.tracker.is_in_flight("payer-1")
    assert executor.tracker.state("payer-1") == ExecutorState.FAILED


# ── Test 26: Tracker lifecycle ────────────────────────────────────


def test_tracker_states():
    tracker = SubmissionTracker()
    assert tracker.state("p") == ExecutorState.IDLE
    tracker.mark_built("p")
    assert tracker.state("p") == ExecutorState.BUILT
    tracker.begin("p")
    tracker.mark_built("p")  # ignored while submitting
    assert tracker.state("p") == ExecutorState.SUBMITTING
    tracker.finish("p", ExecutorState.SUCCEEDED)
    assert tracker.state("p") == ExecutorState.SUCCEEDED
    assert not tracker.is_in_flight("p")

"""Tests 36-44: TippingService end to end with mocked collaborators."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from fireside_tips.engine.executor import AtomicBundleExecutor, SequentialExecutor
from fireside_tips.errors import (
    InvalidAmount,
    NoRecipients,
    PartialBatchFailure,
    PriceUnavailable,
    SubmissionInFlight,
)
from fireside_tips.models.currency import ETH, USDC
from fireside_tips.models.records import (
    ExecutionStatus,
    ExecutorState,
    FailureReason,
    SubmissionOutcome,
)
from fireside_tips.service import TippingService

from tests.conftest import make_test_config
from tests.factories import make_addresses, make_tip_request
from tests.mocks import MockPriceSource, MockRoster, MockTipStore, MockWallet


# ── Test 36: Dry-run preparation ──────────────────────────────────


async def test_prepare_usdc_scenario_b(service, mock_wallet, mock_price):
    """$1 USDC to 3 recipients → 333333 each, approve + 1 distribute, no wallet use."""
    prepared = await service.prepare(make_tip_request(make_addresses(3), usd_amount="1.00"))

    assert prepared.on_chain_amount == 1_000000
    assert prepared.distribution.share == 333333
    assert prepared.distribution.remainder == 1
    assert len(prepared.plan) == 2
    assert prepared.price is None
    assert mock_price.calls == []  # pegged: no quote needed
    assert mock_wallet.one_calls == []
    assert service.tracker.state("payer-1") == ExecutorState.BUILT


async def test_prepare_native_uses_price(service, mock_price):
    """Scenario C through the service: $5 at $2500 → 2e15 wei."""
    prepared = await service.prepare(
        make_tip_request(make_addresses(1), usd_amount="5", currency=ETH),
    )
    assert prepared.price == Decimal("2500")
    assert prepared.on_chain_amount == 2_000000000000000
    assert prepared.plan.total_value == 2_000000000000000
    assert mock_price.calls == ["ETH"]


# ── Test 37: Error ordering ───────────────────────────────────────


async def test_invalid_amount_checked_first(service, mock_roster):
    with pytest.raises(InvalidAmount):
        await service.prepare(make_tip_request(roles=["host"], usd_amount="0"))
    assert mock_roster.calls == []


async def test_no_recipients_before_amount_math(service, monkeypatch):
    """Zero resolved recipients → NoRecipients, conversion never called."""
    calls = []

    def spy(*args, **kwargs):
        calls.append(args)
        raise AssertionError("amount math must not run")

    monkeypatch.setattr("fireside_tips.service.compute_on_chain_amount", spy)
    monkeypatch.setattr("fireside_tips.service.split_into_batches", spy)

    with pytest.raises(NoRecipients):
        await service.prepare(make_tip_request(roles=["speaker"]))
    assert calls == []


async def test_price_unavailable_blocks_submission(test_config, store):
    wallet = MockWallet()
    svc = TippingService(test_config, wallet, price_source=MockPriceSource(None), store=store)
    await svc.initialize()

    with pytest.raises(PriceUnavailable):
        await svc.send(make_tip_request(make_addresses(2), currency=ETH))
    assert wallet.one_calls == []
    assert await store.get_submissions() == []


async def test_amount_too_small_to_split(service):
    with pytest.raises(InvalidAmount, match="too small"):
        await service.prepare(make_tip_request(make_addresses(3), usd_amount="0.000001"))


# ── Test 38: Role-based send ──────────────────────────────────────


async def test_send_role_based_success(service, mock_roster, mock_wallet, mock_notifier, store):
    """Role tip → roster resolved at send time, paid, broadcast and stored."""
    hosts = make_addresses(2, start=100)
    mock_roster.roles = {"host": hosts}

    outcome = await service.send(make_tip_request(roles=["host"], usd_amount="10"))

    assert outcome.status == ExecutionStatus.SUCCEEDED
    assert outcome.covered_recipients == hosts
    assert len(mock_wallet.one_calls) == 2  # approve + distribute
    assert len(mock_notifier.events) == 1

    tips = await store.get_recent_tips("room-1")
    assert len(tips) == 1
    assert tips[0].recipients == hosts
    assert tips[0].usd_amount == Decimal("10")

    subs = await store.get_submissions("payer-1")
    assert len(subs) == 1
    assert subs[0].status == "succeeded"
    assert subs[0].strategy == "sequential"


# ── Test 39: Scenario D through the service ───────────────────────


async def test_send_partial_failure(test_config, store):
    recipients = make_addresses(45)
    wallet = MockWallet(outcomes=[
        SubmissionOutcome(success=True, tx_hash="0x01"),
        SubmissionOutcome(success=False, reason=FailureReason.REVERTED, error="out of gas"),
    ])
    svc = TippingService(
        test_config, wallet, price_source=MockPriceSource(Decimal("2500")), store=store,
    )
    await svc.initialize()

    outcome = await svc.send(make_tip_request(recipients, usd_amount="45", currency=ETH))

    assert outcome.status == ExecutionStatus.PARTIAL_FAILURE
    assert isinstance(outcome.error, PartialBatchFailure)
    assert outcome.covered_recipients == recipients[:20]
    assert outcome.uncovered_recipients == recipients[20:]

    tips = await store.get_all_tips("room-1")
    assert len(tips) == 1 and tips[0].recipients == recipients[:20]

    (sub,) = await store.get_submissions()
    assert (sub.calls_succeeded, sub.calls_failed, sub.calls_not_attempted) == (1, 1, 1)
    assert sub.uncovered == recipients[20:]
    assert sub.error == "out of gas"
    assert not svc.tracker.is_in_flight("payer-1")


# ── Test 40: Strategy chosen at initialize ────────────────────────


async def test_initialize_selects_atomic(test_config):
    wallet = MockWallet(atomic=True)
    store = MockTipStore()
    svc = TippingService(test_config, wallet, store=store)
    await svc.initialize()

    assert isinstance(svc.executor, AtomicBundleExecutor)
    assert store.initialized
    outcome = await svc.send(make_tip_request(make_addresses(3)))
    assert outcome.status == ExecutionStatus.SUCCEEDED
    assert len(wallet.atomic_calls) == 1
    await svc.close()
    assert not store.initialized


async def test_send_initializes_lazily(test_config):
    wallet = MockWallet()
    svc = TippingService(test_config, wallet)
    await svc.send(make_tip_request(make_addresses(1)))
    assert isinstance(svc.executor, SequentialExecutor)
    assert wallet.capability_calls == 1


# ── Test 41: Single-flight at the service level ───────────────────


async def test_send_rejects_in_flight_payer(service):
    service.tracker.begin("payer-1")
    with pytest.raises(SubmissionInFlight):
        await service.send(make_tip_request())


# ── Test 42: Submission log failures don't change the outcome ─────


async def test_submission_log_failure_is_logged(test_config):
    store = MockTipStore(fail_log=True)
    svc = TippingService(test_config, MockWallet(), store=store)
    await svc.initialize()
    outcome = await svc.send(make_tip_request(make_addresses(3)))
    assert outcome.status == ExecutionStatus.SUCCEEDED
    assert outcome.persisted


# ── Test 43: Batch size from config ───────────────────────────────


async def test_custom_batch_size(store):
    svc = TippingService(make_test_config(max_batch_size=2), MockWallet(), store=store)
    prepared = await svc.prepare(make_tip_request(make_addresses(5)))
    assert [len(b) for b in prepared.batches] == [2, 2, 1]
    assert len(prepared.plan) == 4


# ── Test 44: Adapters from config ─────────────────────────────────


def test_from_config_wires_http_adapters(test_config):
    svc = TippingService.from_config(test_config)
    assert svc.price_source is not None
    assert svc.roster is not None
    assert svc.store is not None
    assert svc.executor is None


# ── Test 77: Submitting a prepared plan ───────────────────────────


async def test_submit_sends_the_prepared_plan(test_config, store):
    """Quote moves between prepare and submit → the confirmed amount is paid."""
    wallet = MockWallet()
    price = MockPriceSource([Decimal("2500"), Decimal("1000")])
    svc = TippingService(test_config, wallet, price_source=price, store=store)
    await svc.initialize()

    prepared = await svc.prepare(
        make_tip_request(make_addresses(1), usd_amount="5", currency=ETH),
    )
    outcome = await svc.submit(prepared)

    assert outcome.status == ExecutionStatus.SUCCEEDED
    assert price.calls == ["ETH"]
    assert [c.value for c in wallet.one_calls] == [2_000000000000000]
    assert tuple(wallet.one_calls) == prepared.plan.calls
    assert outcome.record.on_chain_amount == 2_000000000000000


async def test_submit_keeps_confirmed_role_recipients(service, mock_roster, mock_wallet):
    """Roster changes after prepare → the recipients shown are the ones paid."""
    first, later = make_addresses(2, start=10), make_addresses(3, start=50)
    mock_roster.roles = {"host": first}
    prepared = await service.prepare(make_tip_request(roles=["host"]))

    mock_roster.roles = {"host": later}
    outcome = await service.submit(prepared)

    assert outcome.covered_recipients == first
    assert mock_roster.calls == [("room-1", "host")]
    assert tuple(mock_wallet.one_calls) == prepared.plan.calls


async def test_send_resolves_roles_once(service, mock_roster):
    mock_roster.roles = {"host": make_addresses(2)}
    await service.send(make_tip_request(roles=["host"]))
    assert mock_roster.calls == [("room-1", "host")]


# ── Test 78: Concurrent send refused before lookups ───────────────


async def test_concurrent_send_refused_before_lookups(test_config, store):
    """Second send while the first is still quoting → refused, no extra lookup."""
    price = MockPriceSource(Decimal("2500"))
    price.gate = asyncio.Event()
    wallet = MockWallet()
    svc = TippingService(test_config, wallet, price_source=price, store=store)
    await svc.initialize()
    request = make_tip_request(make_addresses(2), usd_amount="5", currency=ETH)

    first = asyncio.create_task(svc.send(request))
    while not price.calls:
        await asyncio.sleep(0)

    with pytest.raises(SubmissionInFlight):
        await svc.send(request)
    assert price.calls == ["ETH"]

    price.gate.set()
    outcome = await first
    assert outcome.status == ExecutionStatus.SUCCEEDED
    assert not svc.tracker.is_in_flight("payer-1")

    await svc.send(request)  # reservation released
    assert len(price.calls) == 2


async def test_failed_prepare_releases_reservation(test_config):
    svc = TippingService(test_config, MockWallet(), price_source=MockPriceSource(None))
    request = make_tip_request(make_addresses(1), currency=ETH)
    for _ in range(2):
        with pytest.raises(PriceUnavailable):
            await svc.send(request)

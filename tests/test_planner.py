"""Tests 14-19: Call plan construction and ABI encoding."""

from __future__ import annotations

import pytest
from eth_abi import decode

from fireside_tips.engine.batcher import split_into_batches
from fireside_tips.engine.planner import build_call_plan
from fireside_tips.errors import ConfigurationError, NoRecipients
from fireside_tips.evm.abi import (
    APPROVE_SELECTOR,
    DISTRIBUTE_NATIVE_SELECTOR,
    DISTRIBUTE_TOKEN_SELECTOR,
)
from fireside_tips.models.config import ContractAddresses
from fireside_tips.models.currency import ETH, USDC, Currency, CurrencyKind
from fireside_tips.models.plan import CallKind

from tests.factories import DIST_CONTRACT, make_addresses

CONTRACTS = ContractAddresses(DIST_CONTRACT)


def _lower(addrs):
    return [a.lower() for a in addrs]


# ── Test 14: TOKEN plan shape ─────────────────────────────────────


def test_token_plan_approve_first():
    """TOKEN: approval at index 0 for the sum of batch totals, then one call per batch."""
    recipients = make_addresses(45)
    batches = split_into_batches(recipients, 20, share=333333)
    plan = build_call_plan(USDC, batches, CONTRACTS, "payer-1")

    assert len(plan) == 4
    approve = plan.calls[0]
    assert approve.kind == CallKind.APPROVE
    assert approve.target == USDC.token_address
    assert approve.value == 0
    assert approve.batch_index is None
    assert approve.payload[:4] == APPROVE_SELECTOR

    spender, amount = decode(["address", "uint256"], approve.payload[4:])
    assert spender.lower() == DIST_CONTRACT.lower()
    assert amount == 333333 * 45 == sum(b.total for b in batches)

    for call, batch in zip(plan.calls[1:], batches):
        assert call.kind == CallKind.DISTRIBUTE
        assert call.target == DIST_CONTRACT
        assert call.value == 0
        assert call.batch_index == batch.index
        assert call.payload[:4] == DISTRIBUTE_TOKEN_SELECTOR
        token, addrs, total = decode(["address", "address[]", "uint256"], call.payload[4:])
        assert token.lower() == USDC.token_address.lower()
        assert _lower(addrs) == _lower(batch.recipients)
        assert total == batch.total


# ── Test 15: NATIVE plan shape ────────────────────────────────────


def test_native_plan_values_sum_to_distributed():
    """NATIVE: no approval, one call per batch, values sum to share * count."""
    recipients = make_addresses(45)
    share = 44444444444444
    batches = split_into_batches(recipients, 20, share=share)
    plan = build_call_plan(ETH, batches, CONTRACTS, "payer-1")

    assert len(plan) == 3
    assert all(c.kind == CallKind.DISTRIBUTE for c in plan.calls)
    assert [c.value for c in plan.calls] == [share * 20, share * 20, share * 5]
    assert plan.total_value == share * 45

    for call, batch in zip(plan.calls, batches):
        assert call.payload[:4] == DISTRIBUTE_NATIVE_SELECTOR
        (addrs,) = decode(["address[]"], call.payload[4:])
        assert _lower(addrs) == _lower(batch.recipients)


def test_to_rpc_form():
    plan = build_call_plan(ETH, split_into_batches(make_addresses(2), 20, share=5), CONTRACTS)
    rpc = plan.calls[0].to_rpc()
    assert rpc["to"] == DIST_CONTRACT
    assert rpc["value"] == hex(10)
    assert rpc["data"].startswith("0x" + DISTRIBUTE_NATIVE_SELECTOR.hex())


# ── Test 16: Idempotence ──────────────────────────────────────────


@pytest.mark.parametrize("currency", [ETH, USDC])
def test_build_call_plan_is_deterministic(currency):
    """Same input twice → byte-identical plans."""
    batches = split_into_batches(make_addresses(45), 20, share=777)
    first = build_call_plan(currency, batches, CONTRACTS, "payer-1")
    second = build_call_plan(currency, batches, CONTRACTS, "payer-1")
    assert first == second
    assert [c.payload for c in first.calls] == [c.payload for c in second.calls]


# ── Test 17: Batch lookup helpers ─────────────────────────────────


def test_batch_for_and_distribution_calls():
    batches = split_into_batches(make_addresses(25), 20, share=1)
    plan = build_call_plan(USDC, batches, CONTRACTS)
    assert plan.batch_for(plan.calls[0]) is None
    assert plan.batch_for(plan.calls[2]) == batches[1]
    assert len(plan.distribution_calls) == 2


# ── Test 18: Empty input ──────────────────────────────────────────


def test_no_batches_raises():
    with pytest.raises(NoRecipients):
        build_call_plan(USDC, [], CONTRACTS)


# ── Test 19: Configuration problems ───────────────────────────────


def test_missing_distribution_contract():
    batches = split_into_batches(make_addresses(1), 20, share=1)
    with pytest.raises(ConfigurationError):
        build_call_plan(ETH, batches, ContractAddresses(""))


def test_token_without_address():
    broken = Currency(symbol="XYZ", kind=CurrencyKind.TOKEN, decimals=18)
    batches = split_into_batches(make_addresses(1), 20, share=1)
    with pytest.raises(ConfigurationError, match="XYZ"):
        build_call_plan(broken, batches, CONTRACTS)

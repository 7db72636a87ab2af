"""Call plan builder - turns batches into ordered contract calls.

Pure data transformation: no network, no wallet, no randomness. The
NATIVE/TOKEN dispatch happens here and nowhere else.
"""

from __future__ import annotations

import logging
from typing import Sequence

from fireside_tips.errors import ConfigurationError, NoRecipients
from fireside_tips.evm.abi import (
    encode_approve,
    encode_distribute_native,
    encode_distribute_token,
)
from fireside_tips.models.config import ContractAddresses
from fireside_tips.models.currency import Currency, CurrencyKind
from fireside_tips.models.plan import CallKind, CallPlan, ContractCall
from fireside_tips.models.tip import Batch

log = logging.getLogger(__name__)


def _native_calls(batches: Sequence[Batch], contracts: ContractAddresses) -> list[ContractCall]:
    return [
        ContractCall(
            kind=CallKind.DISTRIBUTE,
            target=contracts.distribution_contract,
            value=batch.value,
            payload=encode_distribute_native(batch.recipients),
            batch_index=batch.index,
        )
        for batch in batches
    ]


def _token_calls(
    currency: Currency, batches: Sequence[Batch], contracts: ContractAddresses,
) -> list[ContractCall]:
    if not currency.token_address:
        raise ConfigurationError(f"{currency.symbol} has no token contract address")

    # Approval always sits at index 0 and covers every batch that follows.
    approve = ContractCall(
        kind=CallKind.APPROVE,
        target=currency.token_address,
        value=0,
        payload=encode_approve(
            contracts.distribution_contract, sum(b.total for b in batches),
        ),
    )
    distributes = [
        ContractCall(
            kind=CallKind.DISTRIBUTE,
            target=contracts.distribution_contract,
            value=0,
            payload=encode_distribute_token(
                currency.token_address, batch.recipients, batch.total,
            ),
            batch_index=batch.index,
        )
        for batch in batches
    ]
    return [approve, *distributes]


def build_call_plan(
    currency: Currency,
    batches: Sequence[Batch],
    contracts: ContractAddresses,
    payer_id: str = "",
) -> CallPlan:
    """Build the ordered call list for one tip."""
    if not batches:
        raise NoRecipients("Cannot build a call plan without recipients")
    if not contracts.distribution_contract:
        raise ConfigurationError("distribution contract address is not configured")

    if currency.kind == CurrencyKind.NATIVE:
        calls = _native_calls(batches, contracts)
    else:
        calls = _token_calls(currency, batches, contracts)

    log.debug(
        "Built %s plan: %d call(s) for %d batch(es)",
        currency.symbol, len(calls), len(batches),
    )
    return CallPlan(
        payer_id=payer_id,
        currency=currency,
        calls=tuple(calls),
        batches=tuple(batches),
    )

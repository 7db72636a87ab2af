"""Tipping engine - amount math, batching, call planning, execution, reconciliation."""

from fireside_tips.engine.amounts import (
    compute_on_chain_amount,
    compute_per_recipient_share,
    parse_usd_amount,
    to_human_units,
)
from fireside_tips.engine.batcher import split_into_batches, validate_batch_size
from fireside_tips.engine.executor import (
    AtomicBundleExecutor,
    SequentialExecutor,
    SubmissionTracker,
    select_executor,
)
from fireside_tips.engine.planner import build_call_plan
from fireside_tips.engine.recipients import normalize_addresses, resolve_recipients
from fireside_tips.engine.reconcile import ReconciliationHandler, format_tip_message

__all__ = [
    "AtomicBundleExecutor",
    "ReconciliationHandler",
    "SequentialExecutor",
    "SubmissionTracker",
    "build_call_plan",
    "compute_on_chain_amount",
    "compute_per_recipient_share",
    "format_tip_message",
    "normalize_addresses",
    "parse_usd_amount",
    "resolve_recipients",
    "select_executor",
    "split_into_batches",
    "to_human_units",
    "validate_batch_size",
]

"""Data models for the fireside_tips engine."""

from fireside_tips.models.currency import (
    DEFAULT_CURRENCIES,
    ETH,
    FIRE,
    USDC,
    Currency,
    CurrencyKind,
)
from fireside_tips.models.tip import Batch, Distribution, RecipientSelector, TipRequest
from fireside_tips.models.plan import CallKind, CallPlan, ContractCall, PreparedTip
from fireside_tips.models.records import (
    CallOutcome,
    CallResult,
    CurrencyTotals,
    ExecutionResult,
    ExecutionStatus,
    ExecutorState,
    FailureReason,
    ReconciliationOutcome,
    SubmissionOutcome,
    SubmissionRecord,
    TipEvent,
    TipRecord,
    TipStatistics,
    WalletCapabilities,
)
from fireside_tips.models.config import (
    ContractAddresses,
    EngineConfig,
    NotifyConfig,
    PricingConfig,
    RosterConfig,
)

__all__ = [
    "Currency", "CurrencyKind", "DEFAULT_CURRENCIES", "ETH", "FIRE", "USDC",
    "Batch", "Distribution", "RecipientSelector", "TipRequest",
    "CallKind", "CallPlan", "ContractCall", "PreparedTip",
    "CallOutcome", "CallResult", "CurrencyTotals", "ExecutionResult",
    "ExecutionStatus", "ExecutorState", "FailureReason", "ReconciliationOutcome",
    "SubmissionOutcome", "SubmissionRecord", "TipEvent", "TipRecord",
    "TipStatistics", "WalletCapabilities",
    "ContractAddresses", "EngineConfig", "NotifyConfig", "PricingConfig",
    "RosterConfig",
]

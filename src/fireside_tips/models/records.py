"""Execution results, reconciliation outcomes, and persisted records."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from fireside_tips.errors import TipError
from fireside_tips.models.plan import CallKind, CallPlan


class CallOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"


class ExecutionStatus(str, Enum):
    SUCCEEDED = "succeeded"
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"


class ExecutorState(str, Enum):
    """Per-payer submission lifecycle. The last three are terminal."""

    IDLE = "idle"
    BUILT = "built"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"


class FailureReason(str, Enum):
    USER_REJECTED = "user_rejected"  # declined in the wallet
    REVERTED = "reverted"  # accepted by the network, then failed
    TIMEOUT = "timeout"  # status never became final
    ERROR = "error"  # transport / unexpected wallet error


# ---------------------------------------------------------------------------
# Wallet transport results
# ---------------------------------------------------------------------------


@dataclass
class WalletCapabilities:
    """What the active wallet integration reports supporting."""

    atomic: bool = False  # wallet_sendCalls with all-or-nothing execution
    sequential: bool = True  # one eth_sendTransaction at a time


@dataclass
class SubmissionOutcome:
    """Result of one submit_atomic() or submit_one() round-trip."""

    success: bool
    tx_hash: str | None = None
    tx_hashes: list[str] = field(default_factory=list)  # atomic bundles may yield several
    reason: FailureReason | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Executor output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CallResult:
    """Outcome of a single call in the plan."""

    index: int
    outcome: CallOutcome
    tx_hash: str | None = None
    reason: FailureReason | None = None
    error: str | None = None


@dataclass(frozen=True)
class ExecutionResult:
    """One outcome per call plus the derived overall status."""

    plan: CallPlan
    results: tuple[CallResult, ...]
    status: ExecutionStatus
    strategy: str  # "atomic" | "sequential"

    @property
    def succeeded_batches(self) -> tuple[int, ...]:
        out = []
        for call, res in zip(self.plan.calls, self.results):
            if call.kind == CallKind.DISTRIBUTE and res.outcome == CallOutcome.SUCCEEDED:
                out.append(call.batch_index)
        return tuple(out)

    @property
    def covered_recipients(self) -> tuple[str, ...]:
        """Recipients whose distribution call succeeded, in plan order."""
        covered: list[str] = []
        for idx in self.succeeded_batches:
            covered.extend(self.plan.batches[idx].recipients)
        return tuple(covered)

    @property
    def uncovered_recipients(self) -> tuple[str, ...]:
        done = set(self.succeeded_batches)
        uncovered: list[str] = []
        for batch in self.plan.batches:
            if batch.index not in done:
                uncovered.extend(batch.recipients)
        return tuple(uncovered)

    @property
    def distributed_amount(self) -> int:
        """Sum of batch totals that actually went out."""
        return sum(self.plan.batches[i].total for i in self.succeeded_batches)

    @property
    def any_payment_succeeded(self) -> bool:
        return bool(self.succeeded_batches)

    @property
    def tx_hashes(self) -> list[str]:
        seen: list[str] = []
        for r in self.results:
            if r.tx_hash and r.tx_hash not in seen:
                seen.append(r.tx_hash)
        return seen

    @property
    def first_failure(self) -> CallResult | None:
        for r in self.results:
            if r.outcome == CallOutcome.FAILED:
                return r
        return None

    def count(self, outcome: CallOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


@dataclass
class TipRecord:
    """A completed (possibly partial) tip as persisted for the room."""

    id: str
    room_id: str
    payer_id: str
    tipper_name: str
    recipients: list[str]
    usd_amount: Decimal
    currency: str
    on_chain_amount: int  # smallest units actually distributed
    native_amount: Decimal  # on_chain_amount in whole currency units
    tx_hashes: list[str] = field(default_factory=list)
    timestamp: str = ""  # ISO 8601


@dataclass
class TipEvent:
    """Broadcast payload announcing a tip to the room."""

    room_id: str
    tipper_name: str
    recipients: list[str]
    usd_amount: Decimal
    currency: str
    native_amount: Decimal
    message: str
    timestamp: str = ""

    def to_dict(self) -> dict:
        return {
            "type": "TIP_RECEIVED",
            "roomId": self.room_id,
            "tipper": {"username": self.tipper_name},
            "recipients": [{"id": r} for r in self.recipients],
            "amount": {
                "usd": str(self.usd_amount),
                "currency": self.currency,
                "native": str(self.native_amount),
            },
            "message": self.message,
            "timestamp": self.timestamp,
        }


@dataclass
class ReconciliationOutcome:
    """What the caller needs after a submission reached a terminal state."""

    status: ExecutionStatus
    any_payment: bool
    outcome_unknown: bool = False  # a timed-out call may still land
    notified: bool = False
    persisted: bool = False
    record: TipRecord | None = None
    error: TipError | None = None
    persistence_error: TipError | None = None
    covered_recipients: list[str] = field(default_factory=list)
    uncovered_recipients: list[str] = field(default_factory=list)
    message: str = ""


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


@dataclass
class CurrencyTotals:
    count: int = 0
    total_usd: Decimal = Decimal("0")
    total_native: Decimal = Decimal("0")


@dataclass
class TipStatistics:
    """Aggregated tips for a room."""

    room_id: str
    tip_count: int = 0
    total_usd: Decimal = Decimal("0")
    by_currency: dict[str, CurrencyTotals] = field(default_factory=dict)
    recent_tips: list[TipRecord] = field(default_factory=list)


@dataclass
class SubmissionRecord:
    """One executor run as kept in the submission log."""

    id: int
    payer_id: str
    room_id: str
    currency: str
    strategy: str
    status: str
    calls_succeeded: int
    calls_failed: int
    calls_not_attempted: int
    covered: list[str]
    uncovered: list[str]
    error: str | None
    created_at: str

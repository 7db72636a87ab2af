"""Call plan models: the ordered contract calls handed to the executor."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from fireside_tips.models.currency import Currency
from fireside_tips.models.tip import Batch, Distribution, TipRequest


class CallKind(str, Enum):
    APPROVE = "approve"
    DISTRIBUTE = "distribute"


@dataclass(frozen=True)
class ContractCall:
    """One opaque call: target contract, attached native value, calldata."""

    kind: CallKind
    target: str
    value: int
    payload: bytes
    batch_index: int | None = None  # None for the token approval

    def to_rpc(self) -> dict:
        """Wallet JSON form used by wallet_sendCalls / eth_sendTransaction."""
        return {
            "to": self.target,
            "value": hex(self.value),
            "data": "0x" + self.payload.hex(),
        }


@dataclass(frozen=True)
class CallPlan:
    """Ordered calls for one tip. TOKEN plans start with the approval."""

    payer_id: str
    currency: Currency
    calls: tuple[ContractCall, ...]
    batches: tuple[Batch, ...]

    @property
    def total_value(self) -> int:
        """Native value attached across all calls."""
        return sum(c.value for c in self.calls)

    @property
    def distribution_calls(self) -> tuple[ContractCall, ...]:
        return tuple(c for c in self.calls if c.kind == CallKind.DISTRIBUTE)

    def batch_for(self, call: ContractCall) -> Batch | None:
        if call.batch_index is None:
            return None
        return self.batches[call.batch_index]

    def __len__(self) -> int:
        return len(self.calls)


@dataclass(frozen=True)
class PreparedTip:
    """Everything computed for a request up to (not including) submission."""

    request: TipRequest
    usd_amount: Decimal
    recipients: tuple[str, ...]
    price: Decimal | None
    on_chain_amount: int
    distribution: Distribution
    batches: tuple[Batch, ...]
    plan: CallPlan

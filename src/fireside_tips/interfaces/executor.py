"""TransactionExecutor protocol - submits a call plan and reports per-call outcomes."""

from __future__ import annotations

from typing import Protocol

from fireside_tips.models.plan import CallPlan
from fireside_tips.models.records import ExecutionResult


class TransactionExecutor(Protocol):
    """One submission strategy (atomic bundle or sequential)."""

    strategy: str

    async def submit(self, plan: CallPlan) -> ExecutionResult:
        """Submit every call in the plan. Never retries."""
        ...

"""WalletTransport protocol - the active wallet's transaction interface."""

from __future__ import annotations

from typing import Protocol

from fireside_tips.models.plan import ContractCall
from fireside_tips.models.records import SubmissionOutcome, WalletCapabilities


class WalletTransport(Protocol):
    """Submits contract calls through the user's wallet."""

    async def capabilities(self) -> WalletCapabilities:
        """Report which submission strategies this wallet supports."""
        ...

    async def submit_atomic(self, calls: list[ContractCall]) -> SubmissionOutcome:
        """Submit all calls as one all-or-nothing bundle and wait for finality."""
        ...

    async def submit_one(self, call: ContractCall) -> SubmissionOutcome:
        """Submit a single call and wait for its receipt."""
        ...

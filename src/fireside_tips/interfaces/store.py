"""TipStore protocol - persists tip records and the submission log."""

from __future__ import annotations

from typing import Protocol

from fireside_tips.models.records import (
    ExecutionResult,
    SubmissionRecord,
    TipRecord,
    TipStatistics,
)


class TipStore(Protocol):
    """Persistence for completed tips and executor runs."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    # ── Tip records ────────────────────────────────────────

    async def save_tip_record(self, record: TipRecord) -> None:
        """Persist a tip. Raises on failure."""
        ...

    async def get_recent_tips(self, room_id: str, limit: int = 5) -> list[TipRecord]:
        ...

    async def get_all_tips(self, room_id: str) -> list[TipRecord]:
        ...

    async def get_tip_statistics(self, room_id: str) -> TipStatistics:
        ...

    async def delete_room_tips(self, room_id: str) -> int:
        ...

    async def purge_expired(self, max_age_days: int = 7) -> int:
        ...

    # ── Submission log ─────────────────────────────────────

    async def log_submission(
        self, room_id: str, result: ExecutionResult, error: str | None = None,
    ) -> None:
        ...

    async def get_submissions(
        self, payer_id: str | None = None, limit: int = 50,
    ) -> list[SubmissionRecord]:
        ...

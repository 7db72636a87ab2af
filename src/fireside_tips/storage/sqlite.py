"""SQLite implementation of the TipStore protocol."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import aiosqlite

from fireside_tips.models.records import (
    CallOutcome,
    CurrencyTotals,
    ExecutionResult,
    SubmissionRecord,
    TipRecord,
    TipStatistics,
)

SCHEMA = """
-- Completed (possibly partial) tips; amounts as TEXT to keep full precision
CREATE TABLE IF NOT EXISTS tip_records (
    id TEXT PRIMARY KEY,
    room_id TEXT NOT NULL,
    payer_id TEXT NOT NULL,
    tipper_name TEXT NOT NULL,
    recipients TEXT NOT NULL,
    usd_amount TEXT NOT NULL,
    currency TEXT NOT NULL,
    on_chain_amount TEXT NOT NULL,
    native_amount TEXT NOT NULL,
    tx_hashes TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_tips_room ON tip_records(room_id, created_at);

-- One row per executor run
CREATE TABLE IF NOT EXISTS submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    payer_id TEXT NOT NULL,
    room_id TEXT NOT NULL,
    currency TEXT NOT NULL,
    strategy TEXT NOT NULL,
    status TEXT NOT NULL,
    calls_succeeded INTEGER NOT NULL,
    calls_failed INTEGER NOT NULL,
    calls_not_attempted INTEGER NOT NULL,
    covered TEXT NOT NULL,
    uncovered TEXT NOT NULL,
    error TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_submissions_payer ON submissions(payer_id, created_at);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteTipStore:
    """SQLite-backed implementation of the TipStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db is not None:
            return
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Tip records ────────────────────────────────────────

    async def save_tip_record(self, record: TipRecord) -> None:
        await self.db.execute(
            "INSERT INTO tip_records"
            " (id, room_id, payer_id, tipper_name, recipients, usd_amount, currency,"
            "  on_chain_amount, native_amount, tx_hashes, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                record.id, record.room_id, record.payer_id, record.tipper_name,
                json.dumps(record.recipients), str(record.usd_amount), record.currency,
                str(record.on_chain_amount), str(record.native_amount),
                json.dumps(record.tx_hashes), record.timestamp or _now(),
            ),
        )
        await self.db.commit()

    async def get_recent_tips(self, room_id: str, limit: int = 5) -> list[TipRecord]:
        async with self.db.execute(
            "SELECT * FROM tip_records WHERE room_id=? ORDER BY created_at DESC LIMIT ?",
            (room_id, limit),
        ) as cur:
            return [_row_to_tip(row) async for row in cur]

    async def get_all_tips(self, room_id: str) -> list[TipRecord]:
        async with self.db.execute(
            "SELECT * FROM tip_records WHERE room_id=? ORDER BY created_at", (room_id,)
        ) as cur:
            return [_row_to_tip(row) async for row in cur]

    async def get_tip_statistics(self, room_id: str) -> TipStatistics:
        stats = TipStatistics(room_id=room_id)
        # Summed in Python: the amounts are TEXT and SQL SUM would go through floats.
        for tip in await self.get_all_tips(room_id):
            stats.tip_count += 1
            stats.total_usd += tip.usd_amount
            totals = stats.by_currency.setdefault(tip.currency, CurrencyTotals())
            totals.count += 1
            totals.total_usd += tip.usd_amount
            totals.total_native += tip.native_amount
        stats.recent_tips = await self.get_recent_tips(room_id)
        return stats

    async def delete_room_tips(self, room_id: str) -> int:
        cur = await self.db.execute("DELETE FROM tip_records WHERE room_id=?", (room_id,))
        await self.db.commit()
        return cur.rowcount

    async def purge_expired(self, max_age_days: int = 7) -> int:
        cutoff = (datetime.now(timezone.utc) - timedelta(days=max_age_days)).isoformat()
        cur = await self.db.execute("DELETE FROM tip_records WHERE created_at < ?", (cutoff,))
        await self.db.commit()
        return cur.rowcount

    # ── Submission log ─────────────────────────────────────

    async def log_submission(
        self, room_id: str, result: ExecutionResult, error: str | None = None,
    ) -> None:
        await self.db.execute(
            "INSERT INTO submissions"
            " (payer_id, room_id, currency, strategy, status, calls_succeeded,"
            "  calls_failed, calls_not_attempted, covered, uncovered, error, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                result.plan.payer_id, room_id, result.plan.currency.symbol,
                result.strategy, result.status.value,
                result.count(CallOutcome.SUCCEEDED),
                result.count(CallOutcome.FAILED),
                result.count(CallOutcome.NOT_ATTEMPTED),
                json.dumps(list(result.covered_recipients)),
                json.dumps(list(result.uncovered_recipients)),
                error, _now(),
            ),
        )
        await self.db.commit()

    async def get_submissions(
        self, payer_id: str | None = None, limit: int = 50,
    ) -> list[SubmissionRecord]:
        if payer_id:
            query = "SELECT * FROM submissions WHERE payer_id=? ORDER BY id DESC LIMIT ?"
            params: tuple = (payer_id, limit)
        else:
            query = "SELECT * FROM submissions ORDER BY id DESC LIMIT ?"
            params = (limit,)
        async with self.db.execute(query, params) as cur:
            return [
                SubmissionRecord(
                    id=row["id"],
                    payer_id=row["payer_id"],
                    room_id=row["room_id"],
                    currency=row["currency"],
                    strategy=row["strategy"],
                    status=row["status"],
                    calls_succeeded=row["calls_succeeded"],
                    calls_failed=row["calls_failed"],
                    calls_not_attempted=row["calls_not_attempted"],
                    covered=json.loads(row["covered"]),
                    uncovered=json.loads(row["uncovered"]),
                    error=row["error"],
                    created_at=row["created_at"],
                )
                async for row in cur
            ]


def _row_to_tip(row: aiosqlite.Row) -> TipRecord:
    return TipRecord(
        id=row["id"],
        room_id=row["room_id"],
        payer_id=row["payer_id"],
        tipper_name=row["tipper_name"],
        recipients=json.loads(row["recipients"]),
        usd_amount=Decimal(row["usd_amount"]),
        currency=row["currency"],
        on_chain_amount=int(row["on_chain_amount"]),
        native_amount=Decimal(row["native_amount"]),
        tx_hashes=json.loads(row["tx_hashes"]),
        timestamp=row["created_at"],
    )

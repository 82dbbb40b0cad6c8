"""Durable, priority-ordered, retryable work queue on SQLite.

Item lifecycle::

    pending -> processing -> completed
                          -> retrying -> processing -> ...
                          -> failed            (attempts >= max_attempts)

Items are never deleted, only marked terminal, so the table doubles as an audit
trail. Claiming is a conditional UPDATE on the row's status, so two workers can
never hold the same item.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .errors import QueueError
from .models import QUEUE_STATUSES, QueueItem, QueueStats

logger = logging.getLogger(__name__)

# Expensive external calls fail fast and get re-triggered by the next scheduled run.
MAX_ATTEMPTS: Dict[str, int] = {
    "email_send": 3,
    "job_scrape": 2,
    "ai_match": 2,
    "user_processing": 3,
}

_SCHEMA = """
CREATE TABLE IF NOT EXISTS job_queue (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    priority INTEGER NOT NULL,
    payload TEXT NOT NULL,
    attempts INTEGER NOT NULL DEFAULT 0,
    max_attempts INTEGER NOT NULL,
    created_at REAL NOT NULL,
    scheduled_for REAL NOT NULL,
    updated_at REAL NOT NULL,
    status TEXT NOT NULL,
    error TEXT,
    result TEXT
)
"""

_INDEX = """
CREATE INDEX IF NOT EXISTS job_queue_claim
ON job_queue (status, type, scheduled_for)
"""


def _ts(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _epoch(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


class WorkQueue:
    """SQLite-backed polling queue."""

    def __init__(
        self,
        db_path: Union[str, Path],
        backoff_base_s: float = 1.0,
        backoff_cap_s: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db_path = str(db_path)
        self.backoff_base_s = backoff_base_s
        self.backoff_cap_s = backoff_cap_s
        self._clock = clock
        self._init_db()

    @contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._tx() as conn:
            conn.execute(_SCHEMA)
            conn.execute(_INDEX)

    @staticmethod
    def _to_item(row: sqlite3.Row) -> QueueItem:
        return QueueItem(
            id=row["id"],
            type=row["type"],
            priority=row["priority"],
            payload=json.loads(row["payload"]),
            attempts=row["attempts"],
            max_attempts=row["max_attempts"],
            created_at=_ts(row["created_at"]),
            scheduled_for=_ts(row["scheduled_for"]),
            status=row["status"],
            error=row["error"],
            result=json.loads(row["result"]) if row["result"] is not None else None,
        )

    def backoff_delay(self, attempts: int) -> float:
        """Retry delay after `attempts` failures: base * 2**attempts, capped."""
        return min(self.backoff_base_s * (2 ** attempts), self.backoff_cap_s)

    # -- producer side -----------------------------------------------------

    def enqueue(
        self,
        type: str,
        payload: Dict[str, Any],
        priority: int = 5,
        scheduled_for: Optional[datetime] = None,
    ) -> str:
        """Add an item and return its id."""
        if type not in MAX_ATTEMPTS:
            raise QueueError(f"unknown queue type {type!r}")
        if isinstance(priority, bool) or not isinstance(priority, int) or not 1 <= priority <= 10:
            raise QueueError(f"priority must be an integer in 1..10, got {priority!r}")
        try:
            payload_json = json.dumps(payload, default=str)
        except (TypeError, ValueError) as exc:
            raise QueueError(f"payload is not JSON-serializable: {exc}") from exc

        now = self._clock()
        item_id = f"job_{int(now * 1000)}_{uuid.uuid4().hex[:9]}"
        due = _epoch(scheduled_for) if scheduled_for else now

        with self._tx() as conn:
            conn.execute(
                "INSERT INTO job_queue (id, type, priority, payload, attempts, max_attempts, "
                "created_at, scheduled_for, updated_at, status) VALUES (?, ?, ?, ?, 0, ?, ?, ?, ?, 'pending')",
                (item_id, type, priority, payload_json, MAX_ATTEMPTS[type], now, due, now),
            )
        logger.info("Queued %s (type=%s, priority=%s)", item_id, type, priority)
        return item_id

    # -- worker side -------------------------------------------------------

    def claim_next(self, type: Optional[str] = None) -> Optional[QueueItem]:
        """Atomically claim the most urgent due item, or return None."""
        now = self._clock()
        sql = (
            "SELECT id FROM job_queue WHERE status IN ('pending', 'retrying') AND scheduled_for <= ?"
        )
        params: List[Any] = [now]
        if type is not None:
            sql += " AND type = ?"
            params.append(type)
        sql += " ORDER BY priority DESC, scheduled_for ASC, created_at ASC LIMIT 10"

        with self._tx() as conn:
            for row in conn.execute(sql, params).fetchall():
                cur = conn.execute(
                    "UPDATE job_queue SET status = 'processing', updated_at = ? "
                    "WHERE id = ? AND status IN ('pending', 'retrying')",
                    (now, row["id"]),
                )
                if cur.rowcount == 1:
                    claimed = conn.execute("SELECT * FROM job_queue WHERE id = ?", (row["id"],)).fetchone()
                    return self._to_item(claimed)
                # Another worker won this row; try the next candidate.
        return None

    def mark_result(
        self,
        item_id: str,
        status: str,
        error: Optional[str] = None,
        result: Optional[Any] = None,
    ) -> QueueItem:
        """Report the outcome of a claimed item.

        `completed` is terminal. `failed` counts an attempt: the item is retried
        with exponential backoff until `max_attempts`, then marked `failed` for good.
        """
        if status not in ("completed", "failed"):
            raise QueueError(f"cannot mark an item {status!r}; use 'completed' or 'failed'")

        now = self._clock()
        with self._tx() as conn:
            row = conn.execute("SELECT * FROM job_queue WHERE id = ?", (item_id,)).fetchone()
            if row is None:
                raise QueueError(f"unknown queue item {item_id!r}")
            if row["status"] != "processing":
                raise QueueError(f"item {item_id} is {row['status']}, not processing")

            if status == "completed":
                conn.execute(
                    "UPDATE job_queue SET status = 'completed', result = ?, updated_at = ? "
                    "WHERE id = ? AND status = 'processing'",
                    (json.dumps(result, default=str), now, item_id),
                )
                logger.info("Item %s completed", item_id)
            else:
                self._record_failure(conn, row, error or "unknown error", now)

            updated = conn.execute("SELECT * FROM job_queue WHERE id = ?", (item_id,)).fetchone()
        return self._to_item(updated)

    def _record_failure(self, conn: sqlite3.Connection, row: sqlite3.Row, error: str, now: float) -> None:
        attempts = row["attempts"] + 1
        if attempts >= row["max_attempts"]:
            conn.execute(
                "UPDATE job_queue SET status = 'failed', attempts = ?, error = ?, updated_at = ? "
                "WHERE id = ? AND status = 'processing'",
                (attempts, error, now, row["id"]),
            )
            logger.error("Item %s failed permanently after %s attempts: %s", row["id"], attempts, error)
            return

        delay = self.backoff_delay(attempts)
        conn.execute(
            "UPDATE job_queue SET status = 'retrying', attempts = ?, error = ?, scheduled_for = ?, "
            "updated_at = ? WHERE id = ? AND status = 'processing'",
            (attempts, error, now + delay, now, row["id"]),
        )
        logger.warning(
            "Item %s will retry in %.0fs (attempt %s/%s): %s",
            row["id"],
            delay,
            attempts,
            row["max_attempts"],
            error,
        )

    def requeue_stale(self, older_than_s: float) -> int:
        """Count items stuck in `processing` (e.g. a crashed worker) as a failed attempt."""
        now = self._clock()
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT * FROM job_queue WHERE status = 'processing' AND updated_at < ?",
                (now - older_than_s,),
            ).fetchall()
            for row in rows:
                self._record_failure(conn, row, f"stale: no result after {older_than_s:.0f}s", now)
        if rows:
            logger.warning("Requeued %s stale item(s)", len(rows))
        return len(rows)

    # -- observability -----------------------------------------------------

    def get(self, item_id: str) -> Optional[QueueItem]:
        with self._tx() as conn:
            row = conn.execute("SELECT * FROM job_queue WHERE id = ?", (item_id,)).fetchone()
        return self._to_item(row) if row else None

    def stats(self, window_hours: float = 24.0) -> QueueStats:
        """Counts by status and by type for items created inside the window."""
        since = self._clock() - window_hours * 3600
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT status, type, COUNT(*) AS n FROM job_queue WHERE created_at >= ? GROUP BY status, type",
                (since,),
            ).fetchall()

        out = QueueStats(window_hours=window_hours, by_status={s: 0 for s in QUEUE_STATUSES})
        for row in rows:
            out.by_status[row["status"]] = out.by_status.get(row["status"], 0) + row["n"]
            out.by_type[row["type"]] = out.by_type.get(row["type"], 0) + row["n"]
            out.total += row["n"]
        return out

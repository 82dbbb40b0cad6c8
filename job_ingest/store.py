"""SQLite job store keyed by fingerprint, plus per-run ingestion metadata.

The fingerprint is the upsert conflict key: the first sighting of a posting
writes every column, later sightings only bump `last_seen_at` and `seen_count`.
That is what makes deduplication hold across batches and runs.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

from .models import NormalizedJob, RunMetrics

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS jobs (
        fingerprint TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        company TEXT NOT NULL,
        location TEXT NOT NULL,
        description TEXT NOT NULL,
        url TEXT NOT NULL,
        posted_at TEXT,
        source TEXT NOT NULL,
        track TEXT NOT NULL,
        is_early_career INTEGER NOT NULL,
        location_type TEXT NOT NULL DEFAULT 'unknown',
        career_path TEXT,
        first_seen_at REAL NOT NULL,
        last_seen_at REAL NOT NULL,
        seen_count INTEGER NOT NULL DEFAULT 1
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_jobs_source ON jobs(source)",
    """
    CREATE TABLE IF NOT EXISTS ingest_runs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source TEXT NOT NULL,
        track TEXT NOT NULL,
        query TEXT NOT NULL,
        total_found INTEGER NOT NULL,
        kept_after_classification INTEGER NOT NULL,
        unique_after_dedup INTEGER NOT NULL,
        requests_used INTEGER NOT NULL,
        errors INTEGER NOT NULL,
        location_types TEXT NOT NULL DEFAULT '{}',
        career_paths TEXT NOT NULL DEFAULT '{}',
        start_time TEXT NOT NULL,
        recorded_at REAL NOT NULL
    )
    """,
)

_UPSERT = """
INSERT INTO jobs (
    fingerprint, title, company, location, description, url, posted_at,
    source, track, is_early_career, location_type, career_path,
    first_seen_at, last_seen_at, seen_count
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)
ON CONFLICT(fingerprint) DO UPDATE SET
    last_seen_at = excluded.last_seen_at,
    seen_count = jobs.seen_count + 1
"""


class JobStore:
    """Long-term job table. Only the upsert contract is relied on by the pipeline."""

    def __init__(self, db_path: Union[str, Path], clock: Callable[[], float] = time.time) -> None:
        self.db_path = str(db_path)
        self._clock = clock
        with self._connect() as conn:
            for stmt in _SCHEMA:
                conn.execute(stmt)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @staticmethod
    def _row_values(job: NormalizedJob, now: float) -> tuple:
        return (
            job.fingerprint,
            job.title,
            job.company,
            job.location,
            job.description,
            str(job.url),
            job.posted_at.isoformat() if job.posted_at else None,
            job.source,
            job.track,
            int(job.is_early_career),
            job.location_type,
            job.career_path,
            now,
            now,
        )

    def _upsert(self, conn: sqlite3.Connection, job: NormalizedJob, now: float) -> str:
        existed = conn.execute(
            "SELECT 1 FROM jobs WHERE fingerprint = ?", (job.fingerprint,)
        ).fetchone()
        conn.execute(_UPSERT, self._row_values(job, now))
        return "updated" if existed else "inserted"

    def upsert(self, job: NormalizedJob) -> str:
        """Insert or refresh one job; returns "inserted" or "updated"."""
        with self._connect() as conn:
            return self._upsert(conn, job, self._clock())

    def upsert_many(self, jobs: Iterable[NormalizedJob]) -> Dict[str, int]:
        counts = {"inserted": 0, "updated": 0}
        now = self._clock()
        with self._connect() as conn:
            for job in jobs:
                counts[self._upsert(conn, job, now)] += 1
        logger.info("Stored jobs: %s inserted, %s updated", counts["inserted"], counts["updated"])
        return counts

    def get(self, fingerprint: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE fingerprint = ?", (fingerprint,)).fetchone()
        return dict(row) if row else None

    def count(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0]

    # -- run metadata ------------------------------------------------------

    def record_run(self, metrics: RunMetrics) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO ingest_runs (source, track, query, total_found, kept_after_classification, "
                "unique_after_dedup, requests_used, errors, location_types, career_paths, start_time, recorded_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    metrics.source,
                    metrics.track,
                    metrics.query,
                    metrics.total_found,
                    metrics.kept_after_classification,
                    metrics.unique_after_dedup,
                    metrics.requests_used,
                    metrics.errors,
                    json.dumps(metrics.location_types),
                    json.dumps(metrics.career_paths),
                    metrics.start_time.isoformat(),
                    self._clock(),
                ),
            )
            return cur.lastrowid

    def recent_runs(self, limit: int = 20) -> List[RunMetrics]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM ingest_runs ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
        return [
            RunMetrics(
                source=r["source"],
                track=r["track"],
                query=r["query"],
                total_found=r["total_found"],
                kept_after_classification=r["kept_after_classification"],
                unique_after_dedup=r["unique_after_dedup"],
                requests_used=r["requests_used"],
                errors=r["errors"],
                location_types=json.loads(r["location_types"]),
                career_paths=json.loads(r["career_paths"]),
                start_time=r["start_time"],
            )
            for r in rows
        ]

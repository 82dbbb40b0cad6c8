"""Centralised configuration for the ingestion pipeline.

All environment variable reads are consolidated here into typed, frozen
dataclass instances. Other modules receive a `Settings` object (usually from
`get_settings()`) instead of calling `os.getenv()` directly.

A `.env` file in the working directory is loaded with python-dotenv before the
first read. Nothing secret is hard-coded.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

__all__ = [
    "StorageConfig",
    "IngestConfig",
    "QueueConfig",
    "AdminConfig",
    "Settings",
    "get_settings",
]


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(p.strip().lower() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class StorageConfig:
    """Where durable state lives.

    Attributes:
        db_path: SQLite file holding the work queue, the job store and run metadata.
        redis_url: Redis URL backing the boundary rate limiter.
    """

    db_path: str = field(
        default_factory=lambda: os.getenv("INGEST_DB_PATH", "ingest.db")
    )
    redis_url: str = field(
        default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379/0")
    )


@dataclass(frozen=True)
class IngestConfig:
    """Per-run ingestion behaviour.

    Attributes:
        sources: Enabled source names, in fan-out order.
        location: Location hint passed to every source.
        max_pages: Page cap per source-track run.
        http_timeout_s: Timeout applied to every outbound request.
        batch_priority: Priority of the batch task handed to the work queue.
    """

    sources: tuple[str, ...] = field(
        default_factory=lambda: _env_list("INGEST_SOURCES", "arbeitnow,arbeitsamt,remotive")
    )
    location: str = field(
        default_factory=lambda: os.getenv("INGEST_LOCATION", "")
    )
    max_pages: int = field(
        default_factory=lambda: int(os.getenv("INGEST_MAX_PAGES", "2"))
    )
    http_timeout_s: float = field(
        default_factory=lambda: float(os.getenv("HTTP_TIMEOUT_S", "15"))
    )
    batch_priority: int = field(
        default_factory=lambda: int(os.getenv("BATCH_PRIORITY", "5"))
    )


@dataclass(frozen=True)
class QueueConfig:
    """Work queue retry and observability knobs.

    Attributes:
        backoff_base_s: Base of the exponential retry delay.
        backoff_cap_s: Upper bound for a single retry delay.
        stats_window_hours: Rolling window used by queue stats.
        stale_after_s: How long an item may sit in `processing` before it is requeued.
        poll_interval_s: Idle sleep of the worker loop.
    """

    backoff_base_s: float = field(
        default_factory=lambda: float(os.getenv("QUEUE_BACKOFF_BASE_S", "1"))
    )
    backoff_cap_s: float = field(
        default_factory=lambda: float(os.getenv("QUEUE_BACKOFF_CAP_S", "300"))
    )
    stats_window_hours: float = field(
        default_factory=lambda: float(os.getenv("QUEUE_STATS_WINDOW_H", "24"))
    )
    stale_after_s: float = field(
        default_factory=lambda: float(os.getenv("QUEUE_STALE_AFTER_S", "900"))
    )
    poll_interval_s: float = field(
        default_factory=lambda: float(os.getenv("QUEUE_POLL_INTERVAL_S", "5"))
    )


@dataclass(frozen=True)
class AdminConfig:
    """Administrative HTTP surface.

    Attributes:
        api_key: Operator credential expected in the `X-API-Key` header.
        rate_limit: Requests allowed per identifier per window.
        rate_window_ms: Sliding window length.
        host: Bind address for `run_ingest.py serve`.
        port: Bind port for `run_ingest.py serve`.
    """

    api_key: str = field(
        default_factory=lambda: os.getenv("ADMIN_API_KEY", "")
    )
    rate_limit: int = field(
        default_factory=lambda: int(os.getenv("ADMIN_RATE_LIMIT", "20"))
    )
    rate_window_ms: int = field(
        default_factory=lambda: int(os.getenv("ADMIN_RATE_WINDOW_MS", "60000"))
    )
    host: str = field(
        default_factory=lambda: os.getenv("ADMIN_HOST", "127.0.0.1")
    )
    port: int = field(
        default_factory=lambda: int(os.getenv("ADMIN_PORT", "8080"))
    )


@dataclass(frozen=True)
class Settings:
    storage: StorageConfig = field(default_factory=StorageConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load `.env` once and build the settings singleton."""
    load_dotenv()
    return Settings()

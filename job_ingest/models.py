"""Data models for the ingestion pipeline.

The key idea: the pipeline owns a *stable* record shape regardless of the
upstream source(s). Sources produce `RawJobRecord`; the pipeline derives
`NormalizedJob`; the work queue stores `QueueItem`.

This file uses Pydantic v2.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from .utils import utcnow

QueueType = Literal["email_send", "job_scrape", "ai_match", "user_processing"]
QueueStatus = Literal["pending", "processing", "completed", "failed", "retrying"]
LocationType = Literal["europe", "remote-europe", "unknown"]

QUEUE_TYPES = ("email_send", "job_scrape", "ai_match", "user_processing")
QUEUE_STATUSES = ("pending", "processing", "completed", "failed", "retrying")


class RawJobRecord(BaseModel):
    """A posting as produced by a source adapter. Never persisted directly."""

    model_config = ConfigDict(frozen=True)

    title: str
    company: str
    location: str = "Unknown"
    description: str = ""
    url: HttpUrl
    posted_at: Optional[datetime] = Field(
        default=None,
        description="Posting timestamp when the source provides one.",
    )
    source: str = Field(..., description="Source identifier, e.g. 'arbeitnow'.")


class NormalizedJob(RawJobRecord):
    """A raw record plus the fields the pipeline derives for it."""

    is_early_career: bool
    fingerprint: str = Field(..., description="sha256 of the normalized [company, title, location] triple.")
    track: str
    location_type: LocationType = "unknown"
    career_path: Optional[str] = None
    ingested_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_raw(
        cls,
        raw: RawJobRecord,
        *,
        is_early_career: bool,
        fingerprint: str,
        track: str,
        location_type: LocationType = "unknown",
        career_path: Optional[str] = None,
        ingested_at: Optional[datetime] = None,
    ) -> "NormalizedJob":
        return cls(
            **raw.model_dump(),
            is_early_career=is_early_career,
            fingerprint=fingerprint,
            track=track,
            location_type=location_type,
            career_path=career_path,
            ingested_at=ingested_at or utcnow(),
        )


class QueueItem(BaseModel):
    """One unit of asynchronous work. Only the queue runtime mutates it."""

    id: str
    type: QueueType
    priority: int = Field(5, ge=1, le=10)
    payload: Dict[str, Any] = Field(default_factory=dict)
    attempts: int = 0
    max_attempts: int = 3
    created_at: datetime
    scheduled_for: datetime
    status: QueueStatus = "pending"
    error: Optional[str] = None
    result: Optional[Any] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")


class QueueStats(BaseModel):
    window_hours: float
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)


class RunMetrics(BaseModel):
    """Audit record for one source-track run."""

    source: str
    track: str
    query: str
    total_found: int = 0
    kept_after_classification: int = 0
    unique_after_dedup: int = 0
    requests_used: int = 0
    errors: int = 0
    location_types: Dict[str, int] = Field(default_factory=dict, description="Kept postings per location type.")
    career_paths: Dict[str, int] = Field(default_factory=dict, description="Kept postings per identified career path.")
    start_time: datetime = Field(default_factory=utcnow)

    def count_annotations(self, jobs: List["NormalizedJob"]) -> None:
        for job in jobs:
            self.location_types[job.location_type] = self.location_types.get(job.location_type, 0) + 1
            if job.career_path:
                self.career_paths[job.career_path] = self.career_paths.get(job.career_path, 0) + 1


class IngestionReport(BaseModel):
    """Totals for one ingestion run across all sources."""

    day: str
    total_found: int = 0
    kept: int = 0
    discarded: int = 0
    unique: int = 0
    duplicates: int = 0
    enqueued: int = 0
    requests_used: int = 0
    errors: int = 0
    failed_sources: List[str] = Field(default_factory=list)
    location_breakdown: Dict[str, int] = Field(default_factory=dict)
    career_path_breakdown: Dict[str, int] = Field(default_factory=dict)
    keep_rate: float = Field(0.0, description="kept / total_found, 0 when nothing was found.")


class RateLimitResult(BaseModel):
    allowed: bool
    remaining: int
    reset_time: int = Field(..., description="Epoch milliseconds when the window frees a slot.")
    degraded: bool = False


class MatchResult(BaseModel):
    match_score: float
    reason: str = ""

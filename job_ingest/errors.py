"""Exception types raised by the ingestion package."""

from __future__ import annotations

from typing import Optional


class IngestError(Exception):
    """Base class for ingestion errors."""


class SourceFetchError(IngestError):
    """A source request failed after its bounded retry, or failed non-retryably."""

    def __init__(self, source: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.status_code = status_code


class QueueError(IngestError):
    """Invalid queue operation (unknown type, bad priority, illegal transition)."""

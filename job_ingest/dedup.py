"""Fingerprinting and batch-local deduplication.

A fingerprint is the identity of a logical posting regardless of which source
produced it: sha256 over normalized company, title and location. It has no
time-dependent input, so replays and backfills produce the same keys. The
persistent store uses it as the upsert conflict key (see `store.py`).
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol, Set, Tuple, TypeVar

from .utils import normalize_key_part, stable_id

logger = logging.getLogger(__name__)


class _Identifiable(Protocol):
    company: str
    title: str
    location: str


J = TypeVar("J")


def fingerprint_parts(company: Optional[str], title: Optional[str], location: Optional[str]) -> str:
    return stable_id(
        normalize_key_part(company),
        normalize_key_part(title),
        normalize_key_part(location),
    )


def fingerprint(job: _Identifiable) -> str:
    """Fingerprint of anything with company/title/location attributes."""
    return fingerprint_parts(job.company, job.title, job.location)


class DedupIndex:
    """Set of fingerprints seen so far in one ingestion batch."""

    def __init__(self, seen: Optional[Iterable[str]] = None) -> None:
        self._seen: Set[str] = set(seen or ())

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, fp: str) -> bool:
        return fp in self._seen

    def is_duplicate(self, fp: str) -> bool:
        return fp in self._seen

    def record_seen(self, fp: str) -> None:
        self._seen.add(fp)

    def dedupe_batch(self, jobs: Iterable[J], key=None) -> Tuple[List[J], int]:
        """Keep the first sighting of every fingerprint; return (unique, dropped)."""
        key = key or (lambda j: j.fingerprint)
        unique: List[J] = []
        dropped = 0
        for job in jobs:
            fp = key(job)
            if self.is_duplicate(fp):
                dropped += 1
                continue
            self.record_seen(fp)
            unique.append(job)
        if dropped:
            logger.info("dedupe_batch: dropped %s duplicate(s), kept %s", dropped, len(unique))
        return unique, dropped

"""Base classes for source connectors.

A connector knows one source's request and response shape. The base class owns
everything that is common: the governed request with its single bounded retry,
the source-local "seen" cache, and pagination.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import httpx
from pydantic import ValidationError

from ..errors import SourceFetchError
from ..governor import RateGovernor
from ..models import RawJobRecord
from ..tracks import DEFAULT_TRACK_QUERIES

logger = logging.getLogger(__name__)

USER_AGENT = "job-ingest/0.3 (+https://github.com/job-ingest)"


class SeenCache:
    """Source-local keys handled recently, so pagination does not redo work.

    This is an optimization only; cross-source identity is the fingerprint.
    """

    def __init__(self, ttl_s: float, clock: Callable[[], float] = time.time) -> None:
        self._ttl_s = ttl_s
        self._clock = clock
        self._seen: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._seen)

    def sweep(self) -> int:
        cutoff = self._clock() - self._ttl_s
        expired = [k for k, ts in self._seen.items() if ts < cutoff]
        for k in expired:
            del self._seen[k]
        return len(expired)

    def check_and_add(self, key: str) -> bool:
        """Return True if `key` is new (and remember it), False if seen within the TTL."""
        now = self._clock()
        ts = self._seen.get(key)
        if ts is not None and ts >= now - self._ttl_s:
            return False
        self._seen[key] = now
        return True


@dataclass
class PageResult:
    records: List[RawJobRecord] = field(default_factory=list)
    has_more: bool = False
    raw_count: int = 0
    skipped_seen: int = 0
    item_errors: int = 0


@dataclass
class CollectResult:
    records: List[RawJobRecord] = field(default_factory=list)
    pages: int = 0
    requests_used: int = 0
    errors: int = 0
    item_errors: int = 0


class JobSource(ABC):
    """Abstract base class for a job source connector."""

    name: str
    base_url: str

    # Per-source budget defaults; subclasses override.
    min_interval_s: float = 2.0
    hourly_cap: int = 100
    seen_ttl_s: float = 48 * 3600
    retry_delay_s: float = 5.0
    page_size: int = 50
    track_queries: Mapping[str, str] = DEFAULT_TRACK_QUERIES

    def __init__(
        self,
        timeout_s: float = 15.0,
        governor: Optional[RateGovernor] = None,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._timeout = timeout_s
        self._transport = transport
        self.governor = governor or RateGovernor(self.name, self.min_interval_s, self.hourly_cap)
        self.seen = SeenCache(self.seen_ttl_s, clock=clock)

    # -- source-specific hooks -------------------------------------------

    @abstractmethod
    def build_params(self, query: str, location: str, page: int) -> Dict[str, Any]:
        """Query string for one page."""
        raise NotImplementedError

    @abstractmethod
    def parse_page(self, payload: Any, page: int) -> Tuple[List[Dict[str, Any]], bool]:
        """Split a response body into (items, has_more)."""
        raise NotImplementedError

    @abstractmethod
    def item_key(self, item: Dict[str, Any]) -> str:
        """Source-local identity of an item."""
        raise NotImplementedError

    @abstractmethod
    def to_record(self, item: Dict[str, Any]) -> Optional[RawJobRecord]:
        """Map a source item to a RawJobRecord, or None if it lacks required fields."""
        raise NotImplementedError

    # -- shared machinery --------------------------------------------------

    def client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self._timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            transport=self._transport,
        )

    def request(self, client: httpx.Client, params: Dict[str, Any]) -> Any:
        """GET `base_url` through the governor, retrying once on 429/5xx/timeouts."""
        reason = ""
        status: Optional[int] = None
        for attempt in (1, 2):
            self.governor.throttle()
            try:
                resp = client.get(self.base_url, params=params)
            except httpx.TransportError as exc:
                reason, status = type(exc).__name__, None
            else:
                status = resp.status_code
                if status == 429 or status >= 500:
                    reason = f"HTTP {status}"
                elif resp.is_error:
                    raise SourceFetchError(self.name, f"HTTP {status}", status)
                else:
                    self.governor.record_success()
                    try:
                        return resp.json()
                    except ValueError as exc:
                        raise SourceFetchError(self.name, "response is not JSON", status) from exc

            if attempt == 1:
                self.governor.backoff(self.retry_delay_s, reason)

        raise SourceFetchError(self.name, f"{reason} after retry", status)

    def _fetch_page(self, client: httpx.Client, query: str, location: str, page: int) -> PageResult:
        payload = self.request(client, self.build_params(query, location, page))
        items, has_more = self.parse_page(payload, page)
        result = PageResult(has_more=has_more, raw_count=len(items))

        self.seen.sweep()
        for item in items:
            key = self.item_key(item)
            if key and not self.seen.check_and_add(key):
                result.skipped_seen += 1
                continue
            try:
                record = self.to_record(item)
            except ValidationError as exc:
                logger.warning("%s: dropping item %s: %s", self.name, key, exc.errors()[0].get("msg"))
                result.item_errors += 1
                continue
            if record is None:
                logger.debug("%s: dropping item %s with missing title/company/url", self.name, key)
                continue
            result.records.append(record)
        return result

    def fetch_page(
        self,
        query: str,
        location: str = "",
        page: int = 1,
        client: Optional[httpx.Client] = None,
    ) -> List[RawJobRecord]:
        """Fetch one page and return its records (already filtered by the seen cache)."""
        if client is not None:
            return self._fetch_page(client, query, location, page).records
        with self.client() as own:
            return self._fetch_page(own, query, location, page).records

    def collect(self, query: str, location: str = "", max_pages: int = 1) -> CollectResult:
        """Paginate in request order until the source runs dry, `max_pages`, or an error.

        A request that still fails after its retry ends the run with `errors=1`;
        records from earlier pages are kept.
        """
        out = CollectResult()
        before = self.governor.budget.total_requests
        with self.client() as client:
            for page in range(1, max(max_pages, 0) + 1):
                try:
                    result = self._fetch_page(client, query, location, page)
                except SourceFetchError as exc:
                    logger.error("%s: page %s failed: %s", self.name, page, exc)
                    out.errors += 1
                    break
                out.pages += 1
                out.records.extend(result.records)
                out.item_errors += result.item_errors
                logger.info(
                    "%s: page %s -> %s items (%s new, %s already seen)",
                    self.name,
                    page,
                    result.raw_count,
                    len(result.records),
                    result.skipped_seen,
                )
                if not result.has_more:
                    break
        out.requests_used = self.governor.budget.total_requests - before
        return out

    def status(self) -> Dict[str, Any]:
        status = self.governor.status()
        status["seen_jobs"] = len(self.seen)
        return status


def first_text(item: Dict[str, Any], *keys: str) -> str:
    """First non-empty string value among `keys`, stripped."""
    for k in keys:
        val = item.get(k)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return ""

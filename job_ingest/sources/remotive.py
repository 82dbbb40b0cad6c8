"""Remotive jobs source connector.

Remotive provides a public JSON endpoint that returns every match in one
response, so this connector is a single-page source.

Docs: https://remotive.com/api/remote-jobs

Note: Free APIs can change; treat this as a pluggable connector.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ..models import RawJobRecord
from ..normalize import clean_description
from ..utils import parse_posted_at
from .base import JobSource, first_text

REMOTIVE_TRACK_QUERIES = {
    "A": "junior developer",
    "B": "junior analyst",
    "C": "junior marketing",
    "D": "junior data",
    "E": "junior design",
}


class RemotiveSource(JobSource):
    """Fetch jobs from Remotive and normalize them."""

    name = "remotive"
    base_url = "https://remotive.com/api/remote-jobs"

    min_interval_s = 3.0
    hourly_cap = 100
    seen_ttl_s = 48 * 3600
    retry_delay_s = 5.0
    page_size = 100
    track_queries = REMOTIVE_TRACK_QUERIES

    def build_params(self, query: str, location: str, page: int) -> Dict[str, Any]:
        # Remotive does not filter by location and has no pagination.
        params: Dict[str, Any] = {"limit": self.page_size}
        if query:
            params["search"] = query
        return params

    def parse_page(self, payload: Any, page: int) -> Tuple[List[Dict[str, Any]], bool]:
        if not isinstance(payload, dict):
            return [], False
        return list(payload.get("jobs") or []), False

    def item_key(self, item: Dict[str, Any]) -> str:
        return str(item.get("id") or item.get("url") or "")

    def to_record(self, item: Dict[str, Any]) -> Optional[RawJobRecord]:
        title = first_text(item, "title")
        company = first_text(item, "company_name")
        url = first_text(item, "url")
        if not (title and company and url):
            return None

        return RawJobRecord(
            title=title,
            company=company,
            location=first_text(item, "candidate_required_location") or "Remote",
            description=clean_description(item.get("description")),
            url=url,
            # "publication_date" like "2024-01-01T12:34:56"
            posted_at=parse_posted_at(item.get("publication_date")),
            source=self.name,
        )

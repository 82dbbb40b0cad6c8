"""Arbeitnow jobs source connector (Germany + remote EU).

Docs: https://www.arbeitnow.com/api/job-board-api

No API key required. We page through the public job board API with the day's
track query and map items to RawJobRecord. Descriptions arrive as HTML.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ..models import RawJobRecord
from ..normalize import clean_description
from ..utils import parse_posted_at
from .base import JobSource, first_text


class ArbeitnowSource(JobSource):
    """Fetch jobs from Arbeitnow and normalize them."""

    name = "arbeitnow"
    base_url = "https://www.arbeitnow.com/api/job-board-api"

    min_interval_s = 2.0
    hourly_cap = 100
    seen_ttl_s = 48 * 3600
    retry_delay_s = 5.0
    page_size = 50

    def build_params(self, query: str, location: str, page: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page}
        if query:
            params["search"] = query
        if location:
            params["location"] = location
        return params

    def parse_page(self, payload: Any, page: int) -> Tuple[List[Dict[str, Any]], bool]:
        if not isinstance(payload, dict):
            return [], False
        jobs = payload.get("data") or payload.get("jobs") or []
        links = payload.get("links") or {}
        meta = payload.get("meta") or {}
        if "next" in links:
            has_more = bool(links.get("next"))
        else:
            has_more = int(meta.get("current_page") or page) < int(meta.get("last_page") or 0)
        return list(jobs), bool(jobs) and has_more

    def item_key(self, item: Dict[str, Any]) -> str:
        return f"{item.get('slug') or item.get('url') or ''}_{item.get('company_name') or ''}"

    def to_record(self, item: Dict[str, Any]) -> Optional[RawJobRecord]:
        title = first_text(item, "title")
        company = first_text(item, "company_name", "company")
        url = first_text(item, "url")
        if not (title and company and url):
            return None

        if item.get("remote"):
            location = "Remote, Germany"
        else:
            location = first_text(item, "location") or "Germany"

        return RawJobRecord(
            title=title,
            company=company,
            location=location,
            description=clean_description(item.get("description")),
            url=url,
            posted_at=parse_posted_at(item.get("created_at")),
            source=self.name,
        )

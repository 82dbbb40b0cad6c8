"""Bundesagentur fuer Arbeit jobs source connector (German federal job agency).

Docs: https://jobsuche.api.bund.dev/

The public search endpoint takes German query terms (`was`) and a location
(`wo`) and pages through `stellenangebote`. Search results carry no full
description, so the title doubles as the description text.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..models import RawJobRecord
from ..normalize import clean_description
from ..utils import parse_posted_at
from .base import JobSource, first_text

ARBEITSAMT_TRACK_QUERIES = {
    "A": "software entwickler OR IT absolvent",
    "B": "trainee OR junior analyst",
    "C": "marketing OR vertrieb absolvent",
    "D": "datenanalyst OR business intelligence",
    "E": "ingenieur OR techniker absolvent",
}

# Public client id documented for the jobsuche API.
API_KEY_HEADER = {"X-API-Key": "jobboerse-jobsuche"}
DETAIL_URL = "https://www.arbeitsagentur.de/jobsuche/jobdetail/{ref}"


class ArbeitsamtSource(JobSource):
    """Fetch jobs from the Arbeitsagentur jobsuche API and normalize them."""

    name = "arbeitsamt"
    base_url = "https://rest.arbeitsagentur.de/jobboerse/jobsuche-service/pc/v4/jobs"

    min_interval_s = 3.0
    hourly_cap = 200
    seen_ttl_s = 72 * 3600
    retry_delay_s = 10.0
    page_size = 100
    track_queries = ARBEITSAMT_TRACK_QUERIES

    def client(self) -> httpx.Client:
        client = super().client()
        client.headers.update(API_KEY_HEADER)
        return client

    def build_params(self, query: str, location: str, page: int) -> Dict[str, Any]:
        return {
            "was": query,
            "wo": location or "deutschland",
            "page": page,
            "size": self.page_size,
        }

    def parse_page(self, payload: Any, page: int) -> Tuple[List[Dict[str, Any]], bool]:
        if not isinstance(payload, dict):
            return [], False
        jobs = list(payload.get("stellenangebote") or [])
        total = int(payload.get("maxErgebnisse") or 0)
        size = int(payload.get("size") or self.page_size)
        return jobs, bool(jobs) and page * size < total

    def item_key(self, item: Dict[str, Any]) -> str:
        return str(item.get("refnr") or item.get("hashId") or "")

    def to_record(self, item: Dict[str, Any]) -> Optional[RawJobRecord]:
        title = first_text(item, "titel", "beruf")
        company = first_text(item, "arbeitgeber")
        ref = first_text(item, "refnr", "hashId")
        url = first_text(item, "externeUrl") or (DETAIL_URL.format(ref=ref) if ref else "")
        if not (title and company and url):
            return None

        place = item.get("arbeitsort") or {}
        city = first_text(place, "ort") if isinstance(place, dict) else ""
        location = f"{city}, Germany" if city else "Germany"

        return RawJobRecord(
            title=title,
            company=company,
            location=location,
            description=clean_description(item.get("stellenbeschreibung")) or title,
            url=url,
            posted_at=parse_posted_at(
                item.get("aktuelleVeroeffentlichungsdatum") or item.get("modifikationsTimestamp")
            ),
            source=self.name,
        )

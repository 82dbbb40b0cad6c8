"""Derived annotations for kept postings: location type and career path.

Neither annotation takes part in the keep decision (see `normalize.py`); they
feed the run report and give downstream matching something to group by.

Like the classifier terms, the tables below are plain data.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Optional, Tuple

from .models import LocationType, RawJobRecord

# Checked first: a location naming any of these is remote within Europe.
REMOTE_EUROPE_TERMS: Tuple[str, ...] = (
    "remote",
    "eu",
    "europe",
    "european",
    "emea",
)

EUROPEAN_REGIONS: Tuple[str, ...] = (
    # Western
    "United Kingdom", "UK", "England", "Scotland", "Wales", "Northern Ireland",
    "Ireland", "France", "Germany", "Deutschland", "Netherlands", "Belgium",
    "Luxembourg", "Switzerland", "Schweiz", "Austria", "Österreich", "Italy",
    "Spain", "Portugal",
    # Northern
    "Denmark", "Norway", "Sweden", "Finland", "Iceland",
    # Eastern
    "Poland", "Czech Republic", "Slovakia", "Hungary", "Romania", "Bulgaria",
    "Croatia", "Slovenia", "Estonia", "Latvia", "Lithuania",
    # Southern
    "Greece", "Cyprus", "Malta",
)

EUROPEAN_CITIES: Tuple[str, ...] = (
    "London", "Paris", "Berlin", "Madrid", "Barcelona", "Amsterdam", "Rome",
    "Milan", "Zurich", "Zürich", "Dublin", "Copenhagen", "Stockholm", "Oslo",
    "Helsinki", "Munich", "München", "Hamburg", "Frankfurt", "Köln", "Cologne",
    "Vienna", "Wien", "Lisbon", "Brussels", "Warsaw", "Prague",
)

CAREER_PATHS: Dict[str, Tuple[str, ...]] = {
    "Strategy & Business Design": (
        "consulting", "strategy", "business design", "transformation", "corporate development",
        "business analyst", "strategy analyst", "transformation analyst",
    ),
    "Data & Analytics": (
        "data analyst", "business intelligence", "data scientist", "research analyst",
        "analytics", "insights", "reporting", "data",
    ),
    "Retail & Luxury": (
        "retail", "merchandising", "luxury", "brand", "fashion", "consumer goods",
        "retail management", "brand strategy", "merchandising analyst",
    ),
    "Sales & Client Success": (
        "sales", "client success", "account manager", "business development",
        "customer success", "sales development", "account executive",
    ),
    "Marketing & Growth": (
        "marketing", "digital marketing", "brand marketing", "content", "growth",
        "social media", "SEO", "PPC", "growth marketing",
    ),
    "Finance & Investment": (
        "finance", "investment", "banking", "venture capital", "private equity",
        "investment analyst", "financial analyst", "corporate finance",
    ),
    "Operations & Supply Chain": (
        "operations", "supply chain", "logistics", "procurement", "process",
        "operations analyst", "supply chain analyst", "logistics coordinator",
    ),
    "Product & Innovation": (
        "product", "innovation", "product management", "innovation analyst",
        "product operations", "product analyst",
    ),
    "Tech & Transformation": (
        "IT", "digital transformation", "business analyst", "product owner",
        "digital", "transformation", "IT analyst",
    ),
    "Sustainability & ESG": (
        "sustainability", "ESG", "environmental", "social", "governance",
        "sustainability analyst", "ESG consultant", "impact investing",
    ),
}

# A career path needs at least this many distinct keyword hits.
MIN_CAREER_PATH_HITS = 2


def _term_re(term: str) -> re.Pattern[str]:
    # Acronyms ("IT", "ESG") only match in capitals so "it" and "seo" in prose don't count.
    flags = 0 if term.isupper() else re.IGNORECASE
    return re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)", flags)


def _compile(terms: Iterable[str]) -> Tuple[Tuple[str, re.Pattern[str]], ...]:
    return tuple((t, _term_re(t)) for t in terms)


_REMOTE_RES = _compile(REMOTE_EUROPE_TERMS)
_PLACE_RES = _compile(EUROPEAN_REGIONS + EUROPEAN_CITIES)
_CAREER_RES = {path: _compile(keywords) for path, keywords in CAREER_PATHS.items()}


def location_type(location: Optional[str]) -> LocationType:
    """Place a location string: remote-europe, europe, or unknown."""
    text = location or ""
    if any(rx.search(text) for _, rx in _REMOTE_RES):
        return "remote-europe"
    if any(rx.search(text) for _, rx in _PLACE_RES):
        return "europe"
    return "unknown"


def career_path_hits(title: Optional[str], description: Optional[str]) -> Dict[str, int]:
    """Distinct keyword hits per career path (paths with no hits omitted)."""
    blob = f"{title or ''}\n{description or ''}"
    hits: Dict[str, int] = {}
    for path, terms in _CAREER_RES.items():
        n = sum(1 for _, rx in terms if rx.search(blob))
        if n:
            hits[path] = n
    return hits


def career_path(title: Optional[str], description: Optional[str]) -> Optional[str]:
    """The best-matching career path, or None below `MIN_CAREER_PATH_HITS`.

    Ties go to the path listed first in `CAREER_PATHS`.
    """
    best, best_hits = None, 0
    for path, n in career_path_hits(title, description).items():
        if n > best_hits:
            best, best_hits = path, n
    return best if best_hits >= MIN_CAREER_PATH_HITS else None


def annotate(record: RawJobRecord) -> Tuple[LocationType, Optional[str]]:
    return location_type(record.location), career_path(record.title, record.description)

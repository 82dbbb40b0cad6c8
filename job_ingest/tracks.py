"""Track rotation: one topical query template per calendar day.

The same day always yields the same track, so a run can be replayed for a date
without persisted state. Tracks and templates are data; the scheduler only owns
the selection rule.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Mapping, Optional, Union

DEFAULT_TRACK_QUERIES: Dict[str, str] = {
    "A": "graduate developer OR junior software",
    "B": "trainee consultant OR entry analyst",
    "C": "junior marketing OR graduate sales",
    "D": "data analyst OR business intelligence",
    "E": "product manager OR UX designer",
}


def day_of_year(day: Union[date, datetime]) -> int:
    """1-based day of year (January 1st is 1)."""
    return day.timetuple().tm_yday


class TrackScheduler:
    """Deterministic date -> track -> query mapping."""

    def __init__(self, queries: Optional[Mapping[str, str]] = None) -> None:
        self._queries: Dict[str, str] = dict(DEFAULT_TRACK_QUERIES if queries is None else queries)
        if not self._queries:
            raise ValueError("TrackScheduler needs at least one track")
        self._tracks: List[str] = list(self._queries)

    @property
    def tracks(self) -> List[str]:
        return list(self._tracks)

    def select_track(self, day: Union[date, datetime]) -> str:
        return self._tracks[day_of_year(day) % len(self._tracks)]

    def query_for(self, track: str) -> str:
        return self._queries[track]

    def plan(self, day: Union[date, datetime]) -> tuple[str, str]:
        """Return (track, query) for a day."""
        track = self.select_track(day)
        return track, self.query_for(track)

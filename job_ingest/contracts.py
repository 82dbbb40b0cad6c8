"""Interfaces consumed by the queue handlers, with small default implementations.

The real match-scoring model and the email sender live outside this package;
handlers only depend on these protocols.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Protocol, Sequence

from .models import MatchResult

logger = logging.getLogger(__name__)


class MatchScorer(Protocol):
    def score(self, job: Mapping[str, Any], profile: Mapping[str, Any]) -> MatchResult: ...


class Notifier(Protocol):
    def send(self, jobs: Sequence[Mapping[str, Any]], recipient: str) -> bool: ...


class KeywordScorer:
    """Deterministic fallback scorer: share of profile keywords found in the posting.

    Used when the primary scorer raises. A profile without keywords gets a flat
    score so recent postings still surface.
    """

    base_score = 30.0

    def score(self, job: Mapping[str, Any], profile: Mapping[str, Any]) -> MatchResult:
        terms = _profile_terms(profile)
        if not terms:
            return MatchResult(match_score=self.base_score, reason="Recent opportunity")

        text = f"{job.get('title', '')}\n{job.get('description', '')}".lower()
        hits = [t for t in terms if re.search(r"\b" + re.escape(t) + r"\b", text)]
        share = len(hits) / len(terms)
        score = round(self.base_score + (100.0 - self.base_score) * share, 1)
        reason = f"Matched {', '.join(hits)}" if hits else "No profile keywords matched"
        return MatchResult(match_score=score, reason=reason)


def _profile_terms(profile: Mapping[str, Any]) -> List[str]:
    terms: List[str] = []
    for key in ("keywords", "target_roles", "skills"):
        for value in profile.get(key) or []:
            value = str(value).strip().lower()
            if value and value not in terms:
                terms.append(value)
    return terms


class LoggingNotifier:
    """Notifier that only logs; stands in when no email transport is configured."""

    def __init__(self) -> None:
        self.sent: Dict[str, int] = {}

    def send(self, jobs: Sequence[Mapping[str, Any]], recipient: str) -> bool:
        if not recipient:
            return False
        self.sent[recipient] = self.sent.get(recipient, 0) + len(jobs)
        logger.info("Would send %s job(s) to %s", len(jobs), recipient)
        return True

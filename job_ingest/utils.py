"""Utility helpers shared across the ingestion package."""

from __future__ import annotations

import hashlib
import json
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

_WS_RE = re.compile(r"\s+")


def stable_id(*parts: Optional[str]) -> str:
    """Create a deterministic identifier from a set of string parts.

    Parts are hashed as a JSON array, so a delimiter inside one part can never
    make two different part lists collide.
    """
    encoded = json.dumps([p.strip() if p is not None else None for p in parts], ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def normalize_key_part(value: Optional[str]) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return _WS_RE.sub(" ", (value or "").strip()).lower()


def parse_posted_at(value: Any) -> Optional[datetime]:
    """Normalize the various posting-date formats sources return to an aware datetime."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        ts = float(value)
        # Some sources return epoch in ms.
        if ts > 1e12:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            # Best effort: leading YYYY-MM-DD.
            try:
                parsed = datetime.strptime(value[:10], "%Y-%m-%d")
            except ValueError:
                return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def uniq_preserve_order(items: Iterable[str]) -> List[str]:
    """Deduplicate while preserving first-seen order."""
    seen = set()
    out: List[str] = []
    for it in items:
        if not it:
            continue
        key = it.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(it)
    return out

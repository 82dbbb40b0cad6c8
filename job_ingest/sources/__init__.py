"""Source connectors, keyed by name."""

from __future__ import annotations

from typing import Dict, Iterable, List, Type

from .arbeitnow import ArbeitnowSource
from .arbeitsamt import ArbeitsamtSource
from .base import JobSource
from .remotive import RemotiveSource

SOURCES: Dict[str, Type[JobSource]] = {
    ArbeitnowSource.name: ArbeitnowSource,
    ArbeitsamtSource.name: ArbeitsamtSource,
    RemotiveSource.name: RemotiveSource,
}


def build_sources(names: Iterable[str], timeout_s: float = 15.0) -> List[JobSource]:
    """Instantiate connectors by name; unknown names raise KeyError."""
    out: List[JobSource] = []
    for name in names:
        try:
            cls = SOURCES[name]
        except KeyError:
            raise KeyError(f"unknown source {name!r}; known: {', '.join(sorted(SOURCES))}") from None
        out.append(cls(timeout_s=timeout_s))
    return out


__all__ = ["JobSource", "ArbeitnowSource", "ArbeitsamtSource", "RemotiveSource", "SOURCES", "build_sources"]

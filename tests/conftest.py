from __future__ import annotations

from typing import Dict

import pytest


class FakeClock:
    """Manually advanced clock; `sleep` advances it instead of blocking."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(seconds, 0.0)

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakeRedis:
    """Just enough of the redis-py sorted-set API for the limiter."""

    def __init__(self) -> None:
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.ttls: Dict[str, int] = {}

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)

    def zremrangebyscore(self, key, lo, hi) -> int:
        zset = self.zsets.get(key, {})
        doomed = [m for m, s in zset.items() if float(lo) <= s <= float(hi)]
        for m in doomed:
            del zset[m]
        return len(doomed)

    def zadd(self, key, mapping) -> int:
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    def zcard(self, key) -> int:
        return len(self.zsets.get(key, {}))

    def zcount(self, key, lo, hi) -> int:
        return sum(1 for s in self.zsets.get(key, {}).values() if float(lo) <= s <= float(hi))

    def zrem(self, key, member) -> int:
        return 1 if self.zsets.get(key, {}).pop(member, None) is not None else 0

    def zrange(self, key, start, end, withscores=False):
        items = sorted(self.zsets.get(key, {}).items(), key=lambda kv: kv[1])
        items = items[start:] if end == -1 else items[start:end + 1]
        return items if withscores else [m for m, _ in items]

    def pexpire(self, key, ms) -> bool:
        self.ttls[key] = ms
        return True

    def delete(self, key) -> int:
        return 1 if self.zsets.pop(key, None) is not None else 0

    def scan_iter(self, match=None):
        prefix = (match or "*").rstrip("*")
        return [k for k in list(self.zsets) if k.startswith(prefix)]


class FakePipeline:
    def __init__(self, client: FakeRedis) -> None:
        self.client = client
        self.calls = []

    def __getattr__(self, name):
        def queue(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return queue

    def execute(self):
        return [getattr(self.client, name)(*args, **kwargs) for name, args, kwargs in self.calls]


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from job_ingest.api import create_app
from job_ingest.config import AdminConfig
from job_ingest.limiter import SlidingWindowLimiter
from job_ingest.queue import WorkQueue

KEY = {"X-API-Key": "s3cret"}


class DownRedis:
    def pipeline(self, transaction: bool = True):
        raise RedisConnectionError("connection refused")


def _admin(**kw) -> AdminConfig:
    values = {"api_key": "s3cret", "rate_limit": 20, "rate_window_ms": 60_000, "host": "127.0.0.1", "port": 8080}
    values.update(kw)
    return AdminConfig(**values)


@pytest.fixture
def queue(tmp_path, clock) -> WorkQueue:
    return WorkQueue(tmp_path / "ingest.db", clock=clock)


def _client(queue, clock, redis_client, **admin) -> TestClient:
    limiter = SlidingWindowLimiter(redis_client, clock=clock)
    return TestClient(create_app(queue, limiter, _admin(**admin)))


def test_health_is_open(queue, clock, fake_redis) -> None:
    resp = _client(queue, clock, fake_redis).get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_enqueue_requires_matching_key(queue, clock, fake_redis) -> None:
    client = _client(queue, clock, fake_redis)
    body = {"type": "email_send", "payload": {"recipient": "grad@example.com"}}

    assert client.post("/queue", json=body).status_code == 401
    assert client.post("/queue", json=body, headers={"X-API-Key": "wrong"}).status_code == 401

    resp = client.post("/queue", json=body, headers=KEY)
    assert resp.status_code == 201
    item = queue.get(resp.json()["id"])
    assert item.type == "email_send"
    assert item.payload == {"recipient": "grad@example.com"}
    assert item.priority == 5


def test_enqueue_with_priority_and_schedule(queue, clock, fake_redis) -> None:
    client = _client(queue, clock, fake_redis)
    resp = client.post(
        "/queue",
        json={"type": "ai_match", "payload": {}, "priority": 9, "scheduled_for": "2030-01-01T00:00:00Z"},
        headers=KEY,
    )
    item = queue.get(resp.json()["id"])
    assert item.priority == 9
    assert item.scheduled_for.year == 2030


@pytest.mark.parametrize("body", [
    {"type": "not_a_type", "payload": {}},
    {"type": "email_send", "payload": {}, "priority": 11},
    {"type": "email_send", "payload": {}, "priority": 0},
])
def test_enqueue_rejects_invalid_items(queue, clock, fake_redis, body) -> None:
    resp = _client(queue, clock, fake_redis).post("/queue", json=body, headers=KEY)
    assert resp.status_code == 422
    assert queue.stats().total == 0


def test_stats(queue, clock, fake_redis) -> None:
    queue.enqueue("job_scrape", {})
    queue.enqueue("email_send", {})
    resp = _client(queue, clock, fake_redis).get("/queue/stats", headers=KEY)

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 2
    assert data["by_status"]["pending"] == 2
    assert data["by_type"] == {"job_scrape": 1, "email_send": 1}


def test_unconfigured_key_closes_the_surface(queue, clock, fake_redis) -> None:
    client = _client(queue, clock, fake_redis, api_key="")
    assert client.get("/queue/stats", headers={"X-API-Key": ""}).status_code == 503


def test_rate_limit_headers_and_rejection(queue, clock, fake_redis) -> None:
    client = _client(queue, clock, fake_redis, rate_limit=2)

    first = client.get("/queue/stats", headers=KEY)
    second = client.get("/queue/stats", headers=KEY)
    third = client.get("/queue/stats", headers=KEY)

    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert second.headers["X-RateLimit-Remaining"] == "0"
    assert third.status_code == 429
    assert third.headers["Retry-After"] == "60"


def test_limiter_outage_fails_open(queue, clock, caplog) -> None:
    client = _client(queue, clock, DownRedis())
    resp = client.get("/queue/stats", headers=KEY)
    assert resp.status_code == 200
    assert "degraded" in caplog.text

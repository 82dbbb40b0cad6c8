from job_ingest.config import AdminConfig, IngestConfig, QueueConfig, Settings


def test_defaults(monkeypatch) -> None:
    for name in ("INGEST_SOURCES", "INGEST_MAX_PAGES", "QUEUE_BACKOFF_CAP_S", "ADMIN_API_KEY", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()

    assert settings.ingest.sources == ("arbeitnow", "arbeitsamt", "remotive")
    assert settings.ingest.max_pages == 2
    assert settings.queue.backoff_cap_s == 300.0
    assert settings.admin.api_key == ""
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("INGEST_SOURCES", " Remotive, arbeitnow ,,")
    monkeypatch.setenv("BATCH_PRIORITY", "8")
    monkeypatch.setenv("QUEUE_STATS_WINDOW_H", "6")
    monkeypatch.setenv("ADMIN_RATE_LIMIT", "5")

    assert IngestConfig().sources == ("remotive", "arbeitnow")
    assert IngestConfig().batch_priority == 8
    assert QueueConfig().stats_window_hours == 6.0
    assert AdminConfig().rate_limit == 5

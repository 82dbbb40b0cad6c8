"""CLI entry point.

Subcommands:
    ingest   run one ingestion pass (fan out over sources, enqueue one batch)
    work     consume the work queue until interrupted (or once with --once)
    serve    run the admin HTTP API
    stats    print queue statistics as JSON

Examples:
    python run_ingest.py ingest --day 2024-01-10
    python run_ingest.py ingest --sources arbeitnow,remotive --max-pages 1
    python run_ingest.py work --once
    python run_ingest.py serve --port 8080

Settings come from the environment (or a .env file); see job_ingest/config.py.
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
from datetime import date

from job_ingest.config import Settings, get_settings
from job_ingest.contracts import LoggingNotifier
from job_ingest.pipeline import IngestionPipeline
from job_ingest.queue import WorkQueue
from job_ingest.sources import build_sources
from job_ingest.store import JobStore
from job_ingest.workers import QueueWorker, default_handlers

logger = logging.getLogger("run_ingest")


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Ingest early-career job postings into a durable work queue.")
    sub = p.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Run one ingestion pass.")
    ingest.add_argument("--day", type=date.fromisoformat, default=None, help="Day to plan tracks for (YYYY-MM-DD).")
    ingest.add_argument("--sources", type=str, default=None, help="Comma-separated source names.")
    ingest.add_argument("--max-pages", type=int, default=None, help="Page cap per source.")
    ingest.add_argument("--location", type=str, default=None, help="Location hint passed to sources.")

    work = sub.add_parser("work", help="Consume the work queue.")
    work.add_argument("--once", action="store_true", help="Drain due items once and exit.")
    work.add_argument("--types", type=str, default=None, help="Comma-separated queue types to consume.")

    serve = sub.add_parser("serve", help="Run the admin HTTP API.")
    serve.add_argument("--host", type=str, default=None)
    serve.add_argument("--port", type=int, default=None)

    stats = sub.add_parser("stats", help="Print queue statistics.")
    stats.add_argument("--hours", type=float, default=None, help="Stats window in hours.")
    return p.parse_args()


def _split(value: str) -> list[str]:
    return [v.strip().lower() for v in value.split(",") if v.strip()]


def _queue(settings: Settings) -> WorkQueue:
    return WorkQueue(
        settings.storage.db_path,
        backoff_base_s=settings.queue.backoff_base_s,
        backoff_cap_s=settings.queue.backoff_cap_s,
    )


def cmd_ingest(args: argparse.Namespace, settings: Settings) -> None:
    names = _split(args.sources) if args.sources else list(settings.ingest.sources)
    pipeline = IngestionPipeline(
        build_sources(names, timeout_s=settings.ingest.http_timeout_s),
        _queue(settings),
        store=JobStore(settings.storage.db_path),
        max_pages=args.max_pages if args.max_pages is not None else settings.ingest.max_pages,
        location=args.location if args.location is not None else settings.ingest.location,
        batch_priority=settings.ingest.batch_priority,
    )
    summary = pipeline.run(args.day)
    for m in summary.runs:
        print(
            f"{m.source:<12} track {m.track}  found {m.total_found:>4}  kept {m.kept_after_classification:>4}  "
            f"unique {m.unique_after_dedup:>4}  requests {m.requests_used:>3}  errors {m.errors}"
        )
    print(f"Enqueued {summary.enqueued} jobs as {summary.batch_id or '<nothing>'}")
    report = summary.report()
    print(f"Kept {report.kept}/{report.total_found} ({report.keep_rate:.0%}), discarded {report.discarded}")
    if report.location_breakdown:
        print("Locations:    " + ", ".join(f"{k} {v}" for k, v in sorted(report.location_breakdown.items())))
    if report.career_path_breakdown:
        print("Career paths: " + ", ".join(f"{k} {v}" for k, v in sorted(report.career_path_breakdown.items())))


def cmd_work(args: argparse.Namespace, settings: Settings) -> None:
    queue = _queue(settings)
    worker = QueueWorker(
        queue,
        default_handlers(JobStore(settings.storage.db_path), LoggingNotifier()),
        poll_interval_s=settings.queue.poll_interval_s,
        stale_after_s=settings.queue.stale_after_s,
    )
    types = _split(args.types) if args.types else None
    if args.once:
        queue.requeue_stale(settings.queue.stale_after_s)
        print(f"Processed {worker.run_once(types)} item(s)")
        return

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    worker.run_forever(stop, types)


def cmd_serve(args: argparse.Namespace, settings: Settings) -> None:
    import uvicorn

    from job_ingest.api import create_app
    from job_ingest.limiter import SlidingWindowLimiter

    app = create_app(
        _queue(settings),
        SlidingWindowLimiter.from_url(settings.storage.redis_url),
        settings.admin,
        stats_window_hours=settings.queue.stats_window_hours,
    )
    uvicorn.run(
        app,
        host=args.host or settings.admin.host,
        port=args.port or settings.admin.port,
        log_level=settings.log_level.lower(),
    )


def cmd_stats(args: argparse.Namespace, settings: Settings) -> None:
    hours = args.hours if args.hours is not None else settings.queue.stats_window_hours
    print(json.dumps(_queue(settings).stats(hours).model_dump(), indent=2))


COMMANDS = {
    "ingest": cmd_ingest,
    "work": cmd_work,
    "serve": cmd_serve,
    "stats": cmd_stats,
}


def main() -> None:
    args = parse_args()
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    COMMANDS[args.command](args, settings)


if __name__ == "__main__":
    main()

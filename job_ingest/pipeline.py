"""One ingestion run: fan out over sources, classify, fingerprint, fan in to the queue.

Each source gets its own task on a thread pool. Sources pace themselves through
their own governors, so a slow or failing source never holds up the others. All
surviving postings are deduplicated together and handed to the work queue as a
single `job_scrape` batch.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

from .annotate import annotate
from .dedup import DedupIndex, fingerprint
from .models import IngestionReport, NormalizedJob, RunMetrics
from .normalize import find_evidence, is_early_career
from .queue import WorkQueue
from .sources.base import JobSource
from .store import JobStore
from .tracks import TrackScheduler

logger = logging.getLogger(__name__)


@dataclass
class SourceRun:
    metrics: RunMetrics
    jobs: List[NormalizedJob] = field(default_factory=list)


@dataclass
class RunSummary:
    day: date
    runs: List[RunMetrics] = field(default_factory=list)
    enqueued: int = 0
    duplicates: int = 0
    batch_id: Optional[str] = None
    failed_sources: List[str] = field(default_factory=list)

    def report(self) -> IngestionReport:
        """Roll the per-source metrics up into one report for the run."""
        out = IngestionReport(
            day=self.day.isoformat(),
            duplicates=self.duplicates,
            enqueued=self.enqueued,
            failed_sources=list(self.failed_sources),
        )
        for m in self.runs:
            out.total_found += m.total_found
            out.kept += m.kept_after_classification
            out.unique += m.unique_after_dedup
            out.requests_used += m.requests_used
            out.errors += m.errors
            for name, n in m.location_types.items():
                out.location_breakdown[name] = out.location_breakdown.get(name, 0) + n
            for name, n in m.career_paths.items():
                out.career_path_breakdown[name] = out.career_path_breakdown.get(name, 0) + n
        out.discarded = out.total_found - out.kept
        out.keep_rate = out.kept / out.total_found if out.total_found else 0.0
        return out


class IngestionPipeline:
    def __init__(
        self,
        sources: Sequence[JobSource],
        queue: WorkQueue,
        store: Optional[JobStore] = None,
        max_pages: int = 2,
        location: str = "",
        batch_priority: int = 5,
        max_workers: Optional[int] = None,
    ) -> None:
        self.sources = list(sources)
        self.queue = queue
        self.store = store
        self.max_pages = max_pages
        self.location = location
        self.batch_priority = batch_priority
        self.max_workers = max_workers or max(len(self.sources), 1)

    def run_source(self, source: JobSource, day: date) -> SourceRun:
        """Collect the day's track for one source and keep the early-career postings."""
        track, query = TrackScheduler(source.track_queries).plan(day)
        metrics = RunMetrics(source=source.name, track=track, query=query)
        logger.info("%s: track %s, query %r", source.name, track, query)

        collected = source.collect(query, location=self.location, max_pages=self.max_pages)
        metrics.total_found = len(collected.records)
        metrics.requests_used = collected.requests_used
        metrics.errors = collected.errors

        run = SourceRun(metrics=metrics)
        for raw in collected.records:
            if not is_early_career(raw):
                if logger.isEnabledFor(logging.DEBUG):
                    pos, neg = find_evidence(raw.title, raw.description)
                    logger.debug("%s: rejected %r (positive=%s, negative=%s)", source.name, raw.title, pos, neg)
                continue
            place, path = annotate(raw)
            run.jobs.append(
                NormalizedJob.from_raw(
                    raw,
                    is_early_career=True,
                    fingerprint=fingerprint(raw),
                    track=track,
                    location_type=place,
                    career_path=path,
                )
            )
        metrics.kept_after_classification = len(run.jobs)
        metrics.count_annotations(run.jobs)
        return run

    def _failed_run(self, source: JobSource, day: date, requests_before: int) -> SourceRun:
        track, query = TrackScheduler(source.track_queries).plan(day)
        metrics = RunMetrics(
            source=source.name,
            track=track,
            query=query,
            requests_used=source.governor.budget.total_requests - requests_before,
            errors=1,
        )
        return SourceRun(metrics=metrics)

    def run(self, day: Optional[date] = None) -> RunSummary:
        day = day or date.today()
        summary = RunSummary(day=day)
        results: Dict[str, SourceRun] = {}
        requests_before = {s.name: s.governor.budget.total_requests for s in self.sources}

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="ingest") as pool:
            futures = {pool.submit(self.run_source, s, day): s for s in self.sources}
            for future in as_completed(futures):
                source = futures[future]
                try:
                    results[source.name] = future.result()
                except Exception:
                    logger.exception("%s: run failed", source.name)
                    summary.failed_sources.append(source.name)
                    results[source.name] = self._failed_run(source, day, requests_before[source.name])

        # Fan-in in configured source order so the first sighting is deterministic.
        index = DedupIndex()
        batch: List[NormalizedJob] = []
        for source in self.sources:
            run = results[source.name]
            unique, dropped = index.dedupe_batch(run.jobs)
            run.metrics.unique_after_dedup = len(unique)
            summary.duplicates += dropped
            batch.extend(unique)
            summary.runs.append(run.metrics)

        if batch:
            summary.batch_id = self.queue.enqueue(
                "job_scrape",
                {
                    "day": day.isoformat(),
                    "tracks": {m.source: m.track for m in summary.runs},
                    "jobs": [j.model_dump(mode="json") for j in batch],
                },
                priority=self.batch_priority,
            )
            summary.enqueued = len(batch)

        if self.store is not None:
            for metrics in summary.runs:
                self.store.record_run(metrics)

        logger.info(
            "Ingestion for %s: %s unique job(s) enqueued, %s duplicate(s) dropped, %s source error(s)",
            day.isoformat(),
            summary.enqueued,
            summary.duplicates,
            sum(m.errors for m in summary.runs),
        )
        return summary

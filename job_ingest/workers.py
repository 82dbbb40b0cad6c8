"""Queue consumers: the worker loop and one handler per queue type.

A handler takes a claimed `QueueItem` and returns a JSON-serializable result,
or raises. The worker records either outcome on the item and moves on; one bad
item never stops the loop.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .contracts import KeywordScorer, MatchScorer, Notifier
from .errors import IngestError, QueueError
from .models import NormalizedJob, QueueItem
from .queue import WorkQueue
from .store import JobStore

logger = logging.getLogger(__name__)

Handler = Callable[[QueueItem], Any]


class QueueWorker:
    def __init__(
        self,
        queue: WorkQueue,
        handlers: Mapping[str, Handler],
        poll_interval_s: float = 5.0,
        stale_after_s: Optional[float] = None,
    ) -> None:
        self.queue = queue
        self.handlers: Dict[str, Handler] = dict(handlers)
        self.poll_interval_s = poll_interval_s
        self.stale_after_s = stale_after_s

    def process(self, item: QueueItem) -> QueueItem:
        """Run the handler for one claimed item and record its outcome."""
        handler = self.handlers.get(item.type)
        try:
            if handler is None:
                raise IngestError(f"no handler registered for {item.type!r}")
            result = handler(item)
        except Exception as exc:
            logger.exception("Item %s (%s) failed", item.id, item.type)
            return self._record(item, "failed", error=f"{type(exc).__name__}: {exc}")
        return self._record(item, "completed", result=result)

    def _record(self, item: QueueItem, status: str, **outcome: Any) -> QueueItem:
        try:
            return self.queue.mark_result(item.id, status, **outcome)
        except QueueError as exc:
            # The item moved on without us (e.g. requeued as stale); its current state stands.
            logger.warning("Dropped %s result for item %s: %s", status, item.id, exc)
            return item

    def run_once(self, types: Optional[Iterable[str]] = None, limit: int = 50) -> int:
        """Drain due items of the given types (default: every handled type). Returns the count."""
        processed = 0
        for qtype in list(types or self.handlers):
            while processed < limit:
                item = self.queue.claim_next(qtype)
                if item is None:
                    break
                self.process(item)
                processed += 1
        return processed

    def poll(self, types: Optional[Iterable[str]] = None) -> int:
        """One loop iteration: requeue stale items, then drain due ones."""
        if self.stale_after_s:
            self.queue.requeue_stale(self.stale_after_s)
        return self.run_once(types)

    def run_forever(self, stop: threading.Event, types: Optional[Iterable[str]] = None) -> None:
        types = list(types or self.handlers)
        logger.info("Worker started for %s", ", ".join(types))
        while not stop.is_set():
            try:
                processed = self.poll(types)
            except Exception:
                logger.exception("Worker poll failed; retrying in %.1fs", self.poll_interval_s)
                processed = 0
            if processed == 0:
                stop.wait(self.poll_interval_s)
        logger.info("Worker stopped")


# -- handlers -----------------------------------------------------------------


def persist_batch_handler(store: JobStore) -> Handler:
    """`job_scrape`: upsert a fan-in batch into the job store."""

    def handle(item: QueueItem) -> Dict[str, int]:
        jobs = [NormalizedJob.model_validate(j) for j in item.payload.get("jobs") or []]
        return store.upsert_many(jobs)

    return handle


def match_handler(scorer: Optional[MatchScorer] = None, fallback: Optional[MatchScorer] = None) -> Handler:
    """`ai_match`: score each job for a profile; a scorer failure falls back per job."""
    fallback = fallback or KeywordScorer()
    primary = scorer or fallback

    def handle(item: QueueItem) -> Dict[str, Any]:
        profile = item.payload.get("profile") or {}
        matches: List[Dict[str, Any]] = []
        fallback_used = 0
        for job in item.payload.get("jobs") or []:
            try:
                res = primary.score(job, profile)
            except Exception as exc:
                logger.warning("Scorer failed for %s, using fallback: %s", job.get("url"), exc)
                res = fallback.score(job, profile)
                fallback_used += 1
            matches.append(
                {
                    "fingerprint": job.get("fingerprint"),
                    "url": job.get("url"),
                    "match_score": res.match_score,
                    "reason": res.reason,
                }
            )
        matches.sort(key=lambda m: m["match_score"], reverse=True)
        return {"matches": matches, "fallback_used": fallback_used}

    return handle


def email_handler(notifier: Notifier) -> Handler:
    """`email_send`: hand the jobs to the notifier; a falsy return is a failure."""

    def handle(item: QueueItem) -> Dict[str, Any]:
        recipient = item.payload.get("recipient") or ""
        jobs = item.payload.get("jobs") or []
        if not notifier.send(jobs, recipient):
            raise IngestError(f"delivery to {recipient or '<no recipient>'} was rejected")
        return {"recipient": recipient, "sent": len(jobs)}

    return handle


def user_processing_handler(actions: Mapping[str, Callable[[Dict[str, Any]], Any]]) -> Handler:
    """`user_processing`: dispatch on `payload["action"]`."""

    def handle(item: QueueItem) -> Any:
        action = item.payload.get("action")
        if action not in actions:
            raise IngestError(f"unknown user action {action!r}")
        return actions[action](item.payload)

    return handle


def default_handlers(
    store: JobStore,
    notifier: Notifier,
    scorer: Optional[MatchScorer] = None,
    actions: Optional[Mapping[str, Callable[[Dict[str, Any]], Any]]] = None,
) -> Dict[str, Handler]:
    return {
        "job_scrape": persist_batch_handler(store),
        "ai_match": match_handler(scorer),
        "email_send": email_handler(notifier),
        "user_processing": user_processing_handler(actions or {}),
    }

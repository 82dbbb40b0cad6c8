"""Administrative HTTP surface for the work queue.

Endpoints:
    POST /queue         enqueue an item               (API key + rate limit)
    GET  /queue/stats   counts by status and type     (API key + rate limit)
    GET  /health        liveness                      (open)

Build the app with `create_app(...)`; `run_ingest.py serve` runs it with uvicorn.
"""

from __future__ import annotations

import hmac
import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from pydantic import BaseModel, Field

from . import __version__
from .config import AdminConfig
from .errors import QueueError
from .limiter import SlidingWindowLimiter
from .models import QueueStats, QueueType
from .queue import WorkQueue

logger = logging.getLogger(__name__)


class EnqueueRequest(BaseModel):
    type: QueueType
    payload: Dict[str, Any] = Field(default_factory=dict)
    priority: int = Field(5, ge=1, le=10)
    scheduled_for: Optional[datetime] = None


class EnqueueResponse(BaseModel):
    id: str


def create_app(
    queue: WorkQueue,
    limiter: SlidingWindowLimiter,
    admin: AdminConfig,
    stats_window_hours: float = 24.0,
) -> FastAPI:
    app = FastAPI(title="job-ingest admin", version=__version__)

    def verify_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> str:
        """Compare the `X-API-Key` header with the configured key.

        With no key configured the surface stays closed (503) rather than open.
        """
        if not admin.api_key:
            logger.error("ADMIN_API_KEY not set; rejecting admin request")
            raise HTTPException(status_code=503, detail="Admin API key not configured")
        if not x_api_key or not hmac.compare_digest(x_api_key, admin.api_key):
            raise HTTPException(status_code=401, detail="Invalid API key")
        return x_api_key

    def rate_limit(request: Request, response: Response) -> None:
        identifier = f"admin:{request.client.host if request.client else 'unknown'}"
        result = limiter.check_limit(identifier, admin.rate_limit, admin.rate_window_ms)
        if not result.allowed:
            retry_after = max(math.ceil((result.reset_time - limiter.now_ms()) / 1000), 1)
            raise HTTPException(
                status_code=429,
                detail="Too many requests",
                headers={"Retry-After": str(retry_after)},
            )
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)

    guarded = [Depends(rate_limit), Depends(verify_api_key)]

    @app.post("/queue", response_model=EnqueueResponse, status_code=201, dependencies=guarded)
    def enqueue(body: EnqueueRequest) -> EnqueueResponse:
        try:
            item_id = queue.enqueue(body.type, body.payload, body.priority, body.scheduled_for)
        except QueueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return EnqueueResponse(id=item_id)

    @app.get("/queue/stats", response_model=QueueStats, dependencies=guarded)
    def queue_stats() -> QueueStats:
        return queue.stats(stats_window_hours)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app

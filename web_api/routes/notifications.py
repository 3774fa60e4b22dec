"""
Notification queue API routes.

Operational monitoring only; nothing here affects delivery.

Endpoints:
- GET /api/notifications/queue/stats - Job counts by state
- POST /api/notifications/queue/clean - Drop old completed/failed jobs
"""

import sys
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from core.notifications.queue import JobStore
from web_api.auth import require_manager

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def get_job_store(request: Request) -> JobStore:
    """Dependency returning the queue created in the app lifespan."""
    job_store = getattr(request.app.state, "job_store", None)
    if job_store is None:
        raise HTTPException(503, "Notification queue not running")
    return job_store


@router.get("/queue/stats")
async def queue_stats(
    job_store: JobStore = Depends(get_job_store),
    manager: dict = Depends(require_manager),
) -> dict[str, Any]:
    """
    Job counts by state.

    Returns {waiting, active, completed, failed, delayed}.
    """
    return {"success": True, "data": job_store.get_stats()}


@router.post("/queue/clean")
async def clean_queue(
    job_store: JobStore = Depends(get_job_store),
    manager: dict = Depends(require_manager),
) -> dict[str, Any]:
    """Remove completed jobs older than 24 hours and failed jobs older than 7 days."""
    removed = job_store.clean()
    return {"success": True, "data": {"removed": removed}}

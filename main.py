"""
Unified backend entry point.

Architecture:
- One Python process, one asyncio event loop
- Two peer services running concurrently:
  1. FastAPI (HTTP server)
  2. Notification queue (APScheduler triggers + worker handling due jobs)

The queue, scheduler and worker are built once in the lifespan and stored
on app.state; route handlers reach them through dependencies instead of
module globals.

Run with: python main.py [--port PORT]
"""

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Set up import paths before any local imports
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")  # Local overrides (gitignored)
load_dotenv()  # Fallback to .env

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import (
    check_required_env_vars,
    get_allowed_origins,
    get_api_port,
    get_notification_settings,
)
from core.database import close_engine, get_sync_database_url, is_configured
from core.notifications import (
    EmailDispatcher,
    JobStore,
    NotificationDataStore,
    NotificationScheduler,
    NotificationWorker,
    build_scheduler,
    log_job_event,
)
from web_api.routes.notifications import router as notifications_router

if os.environ.get("SENTRY_DSN"):
    sentry_sdk.init(
        dsn=os.environ["SENTRY_DSN"],
        environment=os.environ.get("APP_ENV", "development"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Builds the notification pipeline, registers the weekly reminder and
    starts the queue. Everything runs in the same event loop as FastAPI.
    """
    ok, warnings = check_required_env_vars()
    for warning in warnings:
        print(warning)
    if not ok:
        raise RuntimeError("Missing required environment variables")

    settings = get_notification_settings()
    database_url = get_sync_database_url(connect_timeout=5) if is_configured() else None

    job_store = JobStore(
        build_scheduler(database_url),
        concurrency=settings.concurrency,
        stall_timeout=settings.stall_timeout,
        timezone=settings.timezone,
    )
    job_store.events.subscribe(log_job_event)

    worker = NotificationWorker(
        job_store,
        NotificationDataStore(),
        EmailDispatcher(),
        timezone=settings.timezone,
    )
    worker.start()

    scheduler = NotificationScheduler(job_store, settings)
    job_store.start()
    scheduler.schedule_weekly_reminders()

    app.state.job_store = job_store
    app.state.notification_scheduler = scheduler

    yield  # FastAPI runs here, the queue fires jobs alongside it

    print("Shutting down peer services...")
    job_store.shutdown()
    await close_engine()


app = FastAPI(
    title="Course Management Platform API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notifications_router)


@app.get("/health")
async def health():
    """Health check endpoint with queue status."""
    job_store = getattr(app.state, "job_store", None)
    return {
        "status": "healthy",
        "notification_queue": job_store.get_stats() if job_store else None,
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Course Management Platform Server")
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: API_PORT or 8000)",
    )
    args = parser.parse_args()

    # Pass app object directly (not string) to avoid module reimport issues
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )

"""
Notification job queue built on APScheduler.

APScheduler owns timing and persistence: every queued job is an APScheduler
job with a date trigger (delayed or immediate work, and retries) or a cron
trigger (recurring work), stored in PostgreSQL via SQLAlchemyJobStore so
it survives restarts.

JobStore adds what APScheduler doesn't have: per-job attempt counting,
exponential backoff retries, a waiting/active/completed/failed/delayed
lifecycle, retention of finished jobs for inspection, and an event stream
the app can subscribe to.

The store is created once at startup and passed to the scheduler and
worker. Persisted APScheduler jobs reference the module-level
_run_queued_job / _run_recurring_job functions (bound methods can't be
serialized), which find the live store by queue name.
"""

import asyncio
import enum
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

import sentry_sdk
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import OperationalError

from core.notifications.jobs import NotificationPayload, NotificationType, decode_payload

logger = logging.getLogger(__name__)


DEFAULT_QUEUE_NAME = "notifications"
COMPLETED_JOB_MAX_AGE = timedelta(hours=24)
FAILED_JOB_MAX_AGE = timedelta(days=7)

# Live stores by queue name, for persisted triggers to call back into
_stores: dict[str, "JobStore"] = {}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Job model
# =============================================================================


class JobState(str, enum.Enum):
    waiting = "waiting"
    active = "active"
    completed = "completed"
    failed = "failed"
    delayed = "delayed"


@dataclass(frozen=True)
class BackoffPolicy:
    """Delay between attempts after a failure."""

    type: str = "exponential"
    delay_ms: int = 2000

    def delay_for(self, attempts_made: int) -> int:
        """
        Milliseconds to wait before the next attempt.

        Args:
            attempts_made: Attempts already run (1 after the first failure)

        Returns:
            2000, 4000, 8000, ... for exponential; delay_ms for fixed
        """
        if self.type == "fixed":
            return self.delay_ms
        return self.delay_ms * 2 ** max(attempts_made - 1, 0)


@dataclass(frozen=True)
class JobOptions:
    """Delivery policy applied to every job unless overridden."""

    max_attempts: int = 3
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    # Finished jobs kept for inspection (True = drop immediately, None = keep all)
    remove_on_complete: int | bool | None = 10
    remove_on_fail: int | bool | None = 5

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "backoff": {"type": self.backoff.type, "delay_ms": self.backoff.delay_ms},
            "remove_on_complete": self.remove_on_complete,
            "remove_on_fail": self.remove_on_fail,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobOptions":
        return cls(
            max_attempts=data.get("max_attempts", 3),
            backoff=BackoffPolicy(**data.get("backoff", {})),
            remove_on_complete=data.get("remove_on_complete", 10),
            remove_on_fail=data.get("remove_on_fail", 5),
        )


@dataclass
class Job:
    """A unit of deferred notification work."""

    id: str
    type: str
    data: dict[str, Any]
    options: JobOptions = field(default_factory=JobOptions)
    state: JobState = JobState.waiting
    attempts_made: int = 0
    scheduled_for: datetime | None = None
    cron: str | None = None
    repeat_key: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    processed_at: datetime | None = None
    finished_at: datetime | None = None
    failed_reason: str | None = None
    retry_delays_ms: list[int] = field(default_factory=list)

    def payload(self) -> NotificationPayload:
        """Decode data into its typed payload (may raise UnknownJobTypeError)."""
        return decode_payload(self.type, self.data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to primitives for APScheduler's persistent job store."""
        return {
            "id": self.id,
            "type": self.type,
            "data": self.data,
            "options": self.options.to_dict(),
            "attempts_made": self.attempts_made,
            "cron": self.cron,
            "repeat_key": self.repeat_key,
            "created_at": self.created_at.isoformat(),
            "retry_delays_ms": list(self.retry_delays_ms),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Job":
        return cls(
            id=data["id"],
            type=data["type"],
            data=data.get("data", {}),
            options=JobOptions.from_dict(data.get("options", {})),
            attempts_made=data.get("attempts_made", 0),
            cron=data.get("cron"),
            repeat_key=data.get("repeat_key"),
            created_at=datetime.fromisoformat(data["created_at"])
            if data.get("created_at")
            else _utcnow(),
            retry_delays_ms=list(data.get("retry_delays_ms", [])),
        )


JobHandler = Callable[[Job], Awaitable[None]]


class JobStalledError(TimeoutError):
    """A handler ran longer than the store's stall timeout."""


# =============================================================================
# Event stream
# =============================================================================


class JobEvent(str, enum.Enum):
    completed = "completed"
    failed = "failed"  # terminal, no attempts left
    retrying = "retrying"
    stalled = "stalled"


JobListener = Callable[[JobEvent, Job, BaseException | None], Any]


class JobEvents:
    """
    Subscribable stream of job lifecycle events.

    Listeners may be plain functions or coroutines. A failing listener is
    logged and never changes the job's outcome.
    """

    def __init__(self) -> None:
        self._listeners: list[JobListener] = []

    def subscribe(self, listener: JobListener) -> Callable[[], None]:
        """Add a listener. Returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def emit(
        self, event: JobEvent, job: Job, error: BaseException | None = None
    ) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event, job, error)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Job event listener failed on {event.value}: {e}")


def log_job_event(event: JobEvent, job: Job, error: BaseException | None) -> None:
    """Default listener: one log line per lifecycle event."""
    if event is JobEvent.completed:
        logger.info(f"Job {job.id} of type {job.type} completed")
    elif event is JobEvent.retrying:
        logger.warning(
            f"Job {job.id} of type {job.type} failed attempt {job.attempts_made}, "
            f"retrying in {job.retry_delays_ms[-1]}ms: {error}"
        )
    elif event is JobEvent.failed:
        logger.error(f"Job {job.id} of type {job.type} failed: {error}")
    elif event is JobEvent.stalled:
        logger.warning(f"Job {job.id} of type {job.type} stalled")


# =============================================================================
# APScheduler setup
# =============================================================================


JOB_DEFAULTS = {
    "coalesce": True,  # Combine missed runs into one
    "max_instances": 1,
    "misfire_grace_time": 3600,  # Allow 1 hour late execution
}


def build_scheduler(database_url: str | None = None) -> AsyncIOScheduler:
    """
    Create (but don't start) the APScheduler instance.

    Args:
        database_url: Sync PostgreSQL URL for job persistence. None gives
            a memory-only scheduler whose jobs are lost on restart.
    """
    jobstores = {}
    if database_url:
        jobstores["default"] = SQLAlchemyJobStore(
            url=database_url,
            tablename="apscheduler_jobs",
        )
    return AsyncIOScheduler(jobstores=jobstores, job_defaults=JOB_DEFAULTS)


# =============================================================================
# Job store
# =============================================================================


class JobStore:
    """
    Persistent delay queue for notification jobs.

    Usage:
        store = JobStore(build_scheduler(url))
        store.process(worker.handle)
        store.start()
        store.enqueue(NotificationType.deadline_reminder, payload, delay_ms=60_000)
    """

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        name: str = DEFAULT_QUEUE_NAME,
        concurrency: int = 1,
        stall_timeout: float | None = None,
        timezone: str = "UTC",
        default_options: JobOptions | None = None,
    ):
        self.name = name
        self.timezone = timezone
        self.stall_timeout = stall_timeout
        self.default_options = default_options or JobOptions()
        self.events = JobEvents()
        self._scheduler = scheduler
        if concurrency < 1:
            raise ValueError(f"Queue concurrency must be at least 1, got {concurrency}")
        self._semaphore = asyncio.Semaphore(concurrency)
        self._handler: JobHandler | None = None
        self._jobs: dict[str, Job] = {}
        self._repeatables: dict[str, Job] = {}
        _stores[name] = self

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def process(self, handler: JobHandler) -> None:
        """Register the coroutine that runs each job."""
        self._handler = handler

    def start(self, skip_if_db_unavailable: bool = True) -> None:
        """
        Start the underlying scheduler.

        Args:
            skip_if_db_unavailable: If the persistent job store can't reach
                the database, fall back to memory-only instead of failing.
        """
        if self._scheduler.running:
            return
        try:
            self._scheduler.start()
            print("Notification queue started")
        except OperationalError as e:
            if not skip_if_db_unavailable:
                raise
            print(f"Warning: Could not connect to database for notification queue: {e}")
            print("  └─ Queue running in memory-only mode (jobs won't persist)")
            self._scheduler = build_scheduler(database_url=None)
            self._scheduler.start()
            print("Notification queue started (memory-only)")

    def shutdown(self) -> None:
        """Stop the scheduler, waiting for running jobs."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=True)
            print("Notification queue stopped")
        if _stores.get(self.name) is self:
            del _stores[self.name]

    # -------------------------------------------------------------------------
    # Producer API
    # -------------------------------------------------------------------------

    def enqueue(
        self,
        job_type: NotificationType,
        payload: dict[str, Any],
        *,
        delay_ms: int | None = None,
        cron: str | None = None,
        options: JobOptions | None = None,
    ) -> Job:
        """
        Add a job to the queue.

        Args:
            job_type: Which notification this job produces
            payload: Serialized payload (see core.notifications.jobs)
            delay_ms: Run this many milliseconds from now (None/0 = now)
            cron: Crontab expression for a recurring job, evaluated in the
                store's timezone. Recurring jobs with the same type, cron and
                timezone share one trigger: enqueuing again replaces it.
            options: Attempts/backoff/retention; defaults to default_options

        Returns:
            The created Job (for recurring jobs, the template each run copies)

        Raises:
            Whatever APScheduler raises when its job store is unreachable.
        """
        job = Job(
            id=uuid.uuid4().hex,
            type=NotificationType(job_type).value,
            data=payload,
            options=options or self.default_options,
        )

        try:
            if cron:
                self._add_repeatable(job, cron)
            else:
                job.state = JobState.delayed if delay_ms else JobState.waiting
                job.scheduled_for = _utcnow() + timedelta(milliseconds=delay_ms or 0)
                self._add_trigger(job)
                self._jobs[job.id] = job
        except Exception as e:
            logger.error(f"Failed to add job {job.type} to queue: {e}")
            raise

        logger.info(f"Job {job.type} added to queue with ID: {job.id}")
        return job

    def _add_repeatable(self, job: Job, cron: str) -> None:
        repeat_key = f"repeat:{job.type}:{cron}:{self.timezone}"
        job.cron = cron
        job.repeat_key = repeat_key
        job.state = JobState.delayed
        self._remove_other_schedules(job.type, keep=repeat_key)
        self._scheduler.add_job(
            _run_recurring_job,
            trigger=CronTrigger.from_crontab(cron, timezone=self.timezone),
            id=f"{self.name}:{repeat_key}",
            replace_existing=True,
            kwargs={"queue_name": self.name, "template": job.to_dict()},
        )
        self._repeatables[repeat_key] = job

    def _remove_other_schedules(self, job_type: str, keep: str) -> None:
        """
        Drop recurring triggers of the same type under a different schedule.

        A changed cron expression or timezone produces a new repeat key; the
        trigger persisted under the old key would otherwise keep firing.
        """
        prefix = f"repeat:{job_type}:"
        for job_id in self._scheduled_job_ids():
            if job_id.startswith(prefix) and job_id != keep:
                self._scheduler.remove_job(f"{self.name}:{job_id}")
                logger.info(f"Removed outdated recurring job {job_id}")
        for repeat_key in list(self._repeatables):
            if repeat_key.startswith(prefix) and repeat_key != keep:
                del self._repeatables[repeat_key]

    def _scheduled_job_ids(self) -> list[str]:
        """IDs (without the queue prefix) of this queue's APScheduler jobs."""
        prefix = f"{self.name}:"
        return [
            scheduled.id[len(prefix):]
            for scheduled in self._scheduler.get_jobs()
            if scheduled.id.startswith(prefix)
        ]

    def _add_trigger(self, job: Job) -> None:
        self._scheduler.add_job(
            _run_queued_job,
            trigger="date",
            run_date=job.scheduled_for,
            id=f"{self.name}:{job.id}",
            replace_existing=True,
            kwargs={"queue_name": self.name, "job_data": job.to_dict()},
        )

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def run(self, job_data: dict[str, Any]) -> Job:
        """
        Run one attempt of a job. Called when its trigger fires.

        Jobs restored from the persistent store after a restart aren't in
        memory yet, so they're rebuilt from job_data.
        """
        job = self._jobs.get(job_data["id"])
        if job is None:
            job = Job.from_dict(job_data)
            self._jobs[job.id] = job

        if job.state in (JobState.completed, JobState.failed):
            logger.info(f"Job {job.id} already {job.state.value}, skipping")
            return job

        async with self._semaphore:
            job.state = JobState.active
            job.attempts_made += 1
            job.processed_at = _utcnow()
            logger.info(f"Processing job: {job.type} with ID: {job.id}")

            try:
                await self._call_handler(job)
            except JobStalledError as e:
                await self.events.emit(JobEvent.stalled, job, e)
                await self._fail(job, e)
            except Exception as e:
                await self._fail(job, e)
            else:
                await self._complete(job)

        return job

    async def run_recurring(self, template: dict[str, Any]) -> Job:
        """Spawn a fresh job from a recurring template and run it."""
        source = Job.from_dict(template)
        job = Job(
            id=uuid.uuid4().hex,
            type=source.type,
            data=dict(source.data),
            options=source.options,
            cron=source.cron,
            repeat_key=source.repeat_key,
            scheduled_for=_utcnow(),
        )
        self._jobs[job.id] = job
        return await self.run(job.to_dict())

    async def _call_handler(self, job: Job) -> None:
        if self._handler is None:
            raise RuntimeError(f"No processor registered for queue {self.name}")
        if self.stall_timeout is None:
            await self._handler(job)
            return
        try:
            await asyncio.wait_for(self._handler(job), timeout=self.stall_timeout)
        except asyncio.TimeoutError as e:
            raise JobStalledError(
                f"Job {job.id} exceeded {self.stall_timeout}s stall timeout"
            ) from e

    async def _complete(self, job: Job) -> None:
        job.state = JobState.completed
        job.finished_at = _utcnow()
        job.failed_reason = None
        await self.events.emit(JobEvent.completed, job)
        self._apply_retention(JobState.completed, job.options.remove_on_complete)

    async def _fail(self, job: Job, error: BaseException) -> None:
        job.failed_reason = str(error)
        sentry_sdk.capture_exception(error)

        if job.attempts_made < job.options.max_attempts:
            delay_ms = job.options.backoff.delay_for(job.attempts_made)
            job.retry_delays_ms.append(delay_ms)
            job.state = JobState.delayed
            job.scheduled_for = _utcnow() + timedelta(milliseconds=delay_ms)
            try:
                self._add_trigger(job)
            except Exception as e:
                logger.error(f"Could not schedule retry for job {job.id}: {e}")
            else:
                await self.events.emit(JobEvent.retrying, job, error)
                return

        job.state = JobState.failed
        job.finished_at = _utcnow()
        sentry_sdk.capture_message(
            f"Notification job {job.type} ({job.id}) failed permanently "
            f"after {job.attempts_made} attempts"
        )
        await self.events.emit(JobEvent.failed, job, error)
        self._apply_retention(JobState.failed, job.options.remove_on_fail)

    def _apply_retention(self, state: JobState, keep: int | bool | None) -> None:
        if keep is None or keep is False:
            return
        limit = 0 if keep is True else int(keep)
        finished = sorted(
            self.get_jobs(state), key=lambda j: j.finished_at or j.created_at
        )
        for job in finished[: max(len(finished) - limit, 0)]:
            del self._jobs[job.id]

    # -------------------------------------------------------------------------
    # Inspection and maintenance
    # -------------------------------------------------------------------------

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def get_jobs(self, *states: JobState) -> list[Job]:
        return [job for job in self._jobs.values() if not states or job.state in states]

    def get_repeatable_jobs(self) -> list[Job]:
        return list(self._repeatables.values())

    def get_stats(self) -> dict[str, int]:
        """
        Count jobs by state.

        Recurring templates count as delayed: each always has a next run
        pending. So do triggers restored from the persistent job store that
        haven't fired since a restart and so aren't tracked in memory yet.
        """
        stats = {state.value: 0 for state in JobState}
        for job in self._jobs.values():
            stats[job.state.value] += 1
        stats[JobState.delayed.value] += len(self._repeatables)
        stats[JobState.delayed.value] += sum(
            1
            for job_id in self._scheduled_job_ids()
            if job_id not in self._jobs and job_id not in self._repeatables
        )
        return stats

    def clean(
        self,
        completed_max_age: timedelta = COMPLETED_JOB_MAX_AGE,
        failed_max_age: timedelta = FAILED_JOB_MAX_AGE,
    ) -> int:
        """
        Drop finished jobs older than their retention window.

        Returns:
            Number of jobs removed
        """
        now = _utcnow()
        cutoffs = {
            JobState.completed: now - completed_max_age,
            JobState.failed: now - failed_max_age,
        }
        stale = [
            job.id
            for job in self._jobs.values()
            if job.state in cutoffs
            and job.finished_at is not None
            and job.finished_at < cutoffs[job.state]
        ]
        for job_id in stale:
            del self._jobs[job_id]

        logger.info(f"Queue {self.name} cleaned, removed {len(stale)} jobs")
        return len(stale)


# =============================================================================
# APScheduler entry points
# =============================================================================


def get_store(queue_name: str) -> JobStore | None:
    return _stores.get(queue_name)


async def _run_queued_job(queue_name: str, job_data: dict[str, Any]) -> None:
    """Called by APScheduler when a delayed/immediate/retry trigger fires."""
    store = get_store(queue_name)
    if store is None:
        logger.error(f"No job store named {queue_name}, dropping job {job_data['id']}")
        return
    await store.run(job_data)


async def _run_recurring_job(queue_name: str, template: dict[str, Any]) -> None:
    """Called by APScheduler each time a recurring cron trigger fires."""
    store = get_store(queue_name)
    if store is None:
        logger.error(f"No job store named {queue_name}, skipping {template['type']}")
        return
    await store.run_recurring(template)

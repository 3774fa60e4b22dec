"""
Notification worker - runs queued notification jobs.

Every handler re-reads the current state before sending anything. A reminder
or late alert for a tracker that has been submitted since the job was
queued completes without sending. This is the only way to "cancel" a
queued notification.

Errors raised here fail the job attempt; the job store retries with
backoff and gives up after max_attempts. The weekly reminder is the
exception: one facilitator's failed send is logged and the batch carries on.
"""

import logging
from typing import Any, Awaitable, Callable

import sentry_sdk

from core.enums import ActivityStatus, UserRole
from core.notifications.context import (
    NotificationDataStore,
    build_assignment_context,
    build_deadline_context,
    build_weekly_context,
    full_name,
)
from core.notifications.dispatcher import EmailDispatcher, NotificationKind
from core.notifications.jobs import (
    CourseAssignmentNotification,
    DeadlineReminder,
    LateSubmissionAlert,
    NotificationPayload,
    UnknownJobTypeError,
    WeeklyActivityReminder,
)
from core.notifications.queue import Job, JobStore

logger = logging.getLogger(__name__)


class MissingReferenceError(LookupError):
    """A user or course offering referenced by a job no longer exists."""


class NotificationWorker:
    """
    Consumer side of the notification pipeline.

    Args:
        job_store: Queue to consume from
        data_store: Current-state lookups (trackers, users, offerings)
        dispatcher: Email sender; send() raises on delivery failure
        timezone: Reference timezone for dates shown in emails
    """

    def __init__(
        self,
        job_store: JobStore,
        data_store: NotificationDataStore,
        dispatcher: EmailDispatcher,
        timezone: str = "UTC",
    ):
        self.job_store = job_store
        self.data_store = data_store
        self.dispatcher = dispatcher
        self.timezone = timezone
        self._handlers: dict[type, Callable[[Any], Awaitable[None]]] = {
            DeadlineReminder: self._process_deadline_reminder,
            LateSubmissionAlert: self._process_late_submission_alert,
            CourseAssignmentNotification: self._process_course_assignment,
            WeeklyActivityReminder: self._process_weekly_activity_reminder,
        }

    def start(self) -> None:
        """Register with the job store as its processor."""
        self.job_store.process(self.handle)
        print("Notification worker started and listening for jobs")

    async def handle(self, job: Job) -> None:
        """Run one job. Raises to signal a failed attempt."""
        try:
            payload = job.payload()
        except UnknownJobTypeError:
            logger.warning(f"Unknown job type: {job.type}, skipping job {job.id}")
            return

        logger.info(f"Running {describe_payload(payload)} (job {job.id})")
        await self._handlers[type(payload)](payload)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _process_deadline_reminder(self, payload: DeadlineReminder) -> None:
        activity = await self._find_submission(payload)
        if activity and activity["status"] == ActivityStatus.submitted:
            logger.info(
                f"Activity already submitted for facilitator {payload.facilitator_id}, "
                f"week {payload.week_number}, skipping reminder"
            )
            return

        facilitator = await self._require_user(payload.facilitator_id)
        offering = await self._require_offering(payload.course_offering_id)

        await self.dispatcher.send(
            NotificationKind.deadline_reminder,
            facilitator,
            build_deadline_context(
                facilitator,
                offering,
                payload.week_number,
                payload.due_date,
                self.timezone,
            ),
        )

    async def _process_late_submission_alert(self, payload: LateSubmissionAlert) -> None:
        activity = await self._find_submission(payload)
        if activity and activity["status"] == ActivityStatus.submitted:
            logger.info(
                f"Activity was submitted for facilitator {payload.facilitator_id}, "
                f"week {payload.week_number}, skipping late alert"
            )
            return

        if activity:
            marked = await self.data_store.update_submission_status(
                activity["activity_tracker_id"], ActivityStatus.late
            )
            if not marked:
                # Submitted (or removed) between our read and the update
                logger.info(
                    f"Activity {activity['activity_tracker_id']} changed before it "
                    "could be marked late, skipping late alert"
                )
                return

        facilitator = await self._require_user(payload.facilitator_id)
        offering = await self._require_offering(payload.course_offering_id)

        managers = await self.data_store.find_users_by_role(
            UserRole.manager, active_only=True
        )
        if not managers:
            logger.warning(
                f"No active managers to alert about facilitator "
                f"{payload.facilitator_id}, week {payload.week_number}"
            )
            return

        await self.dispatcher.send(
            NotificationKind.late_submission_alert,
            managers,
            build_deadline_context(
                facilitator,
                offering,
                payload.week_number,
                payload.due_date,
                self.timezone,
            ),
        )

    async def _process_course_assignment(
        self, payload: CourseAssignmentNotification
    ) -> None:
        facilitator = await self._require_user(payload.facilitator_id)
        offering = await self._require_offering(payload.course_offering_id)

        await self.dispatcher.send(
            NotificationKind.course_assignment,
            facilitator,
            build_assignment_context(facilitator, offering, self.timezone),
        )

    async def _process_weekly_activity_reminder(
        self, payload: WeeklyActivityReminder
    ) -> None:
        facilitators = await self.data_store.find_users_by_role(
            UserRole.facilitator, active_only=True
        )
        if not facilitators:
            logger.info("No active facilitators found")
            return

        sent = 0
        for facilitator in facilitators:
            try:
                await self.dispatcher.send(
                    NotificationKind.weekly_activity_reminder,
                    facilitator,
                    build_weekly_context(facilitator),
                )
                sent += 1
            except Exception as e:
                logger.error(
                    f"Failed to send weekly reminder to {full_name(facilitator)} "
                    f"({facilitator.get('email')}): {e}"
                )
                sentry_sdk.capture_exception(e)

        logger.info(f"Weekly reminder sent to {sent}/{len(facilitators)} facilitators")

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def _find_submission(
        self, payload: DeadlineReminder | LateSubmissionAlert
    ) -> dict[str, Any] | None:
        return await self.data_store.find_submission(
            payload.facilitator_id, payload.course_offering_id, payload.week_number
        )

    async def _require_user(self, user_id: int) -> dict[str, Any]:
        user = await self.data_store.find_user(user_id)
        if not user:
            raise MissingReferenceError(f"Facilitator with ID {user_id} not found")
        return user

    async def _require_offering(self, course_offering_id: int) -> dict[str, Any]:
        offering = await self.data_store.find_course_offering(
            course_offering_id, with_course=True
        )
        if not offering:
            raise MissingReferenceError(
                f"Course offering with ID {course_offering_id} not found"
            )
        return offering


def describe_payload(payload: NotificationPayload) -> str:
    """Short human-readable label for log lines."""
    if isinstance(payload, (DeadlineReminder, LateSubmissionAlert)):
        return (
            f"{payload.job_type.value} facilitator={payload.facilitator_id} "
            f"offering={payload.course_offering_id} week={payload.week_number}"
        )
    if isinstance(payload, CourseAssignmentNotification):
        return (
            f"{payload.job_type.value} facilitator={payload.facilitator_id} "
            f"offering={payload.course_offering_id}"
        )
    return payload.job_type.value

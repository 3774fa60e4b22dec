"""
Notification scheduling - turns domain timing into queue jobs.

Called when an activity tracker is created or a facilitator is assigned to
a course offering, and once at startup for the weekly reminder.

Jobs are lightweight: they store IDs and the due date only, and the worker
fetches fresh context at execution time. This avoids stale data issues.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from core.config import NotificationSettings
from core.notifications.jobs import (
    CourseAssignmentNotification,
    DeadlineReminder,
    LateSubmissionAlert,
    WeeklyActivityReminder,
)
from core.notifications.queue import Job, JobStore

logger = logging.getLogger(__name__)


def _milliseconds_until(run_at: datetime) -> int:
    if run_at.tzinfo is None:
        run_at = run_at.replace(tzinfo=timezone.utc)
    return int((run_at - datetime.now(timezone.utc)).total_seconds() * 1000)


class NotificationScheduler:
    """
    Producer side of the notification pipeline.

    Scheduling is best-effort relative to the domain write that triggered it:
    errors from the queue propagate here, and callers decide what to do
    (see core.notifications.actions).
    """

    def __init__(self, job_store: JobStore, settings: NotificationSettings):
        self.job_store = job_store
        self.settings = settings

    def schedule_deadline_reminder(
        self,
        activity: dict[str, Any],
        reminder_time: datetime | None = None,
    ) -> Job | None:
        """
        Schedule a reminder for an activity tracker that isn't submitted yet.

        Args:
            activity: Tracker with facilitator_id, course_offering_id,
                week_number and due_date
            reminder_time: When to remind. Defaults to the configured lead
                time (24h) before the due date.

        Returns:
            The queued job, or None if the reminder time has already passed
        """
        payload = DeadlineReminder.from_activity(activity)
        run_at = reminder_time or payload.due_date - self.settings.reminder_lead_time
        delay_ms = _milliseconds_until(run_at)

        if delay_ms <= 0:
            logger.info(
                f"Deadline reminder for facilitator {payload.facilitator_id} "
                f"week {payload.week_number} is in the past, not scheduling"
            )
            return None

        return self.job_store.enqueue(
            payload.job_type, payload.to_dict(), delay_ms=delay_ms
        )

    def schedule_late_submission_alert(self, activity: dict[str, Any]) -> Job | None:
        """
        Schedule the manager alert for grace period after the due date.

        Returns:
            The queued job, or None if that moment has already passed
        """
        payload = LateSubmissionAlert.from_activity(activity)
        delay_ms = _milliseconds_until(payload.due_date + self.settings.late_alert_grace)

        if delay_ms <= 0:
            logger.info(
                f"Late alert for facilitator {payload.facilitator_id} "
                f"week {payload.week_number} is in the past, not scheduling"
            )
            return None

        return self.job_store.enqueue(
            payload.job_type, payload.to_dict(), delay_ms=delay_ms
        )

    def send_course_assignment_notification(self, assignment: dict[str, Any]) -> Job:
        """Queue an immediate notification for a new course assignment."""
        payload = CourseAssignmentNotification.from_dict(assignment)
        return self.job_store.enqueue(payload.job_type, payload.to_dict())

    def schedule_weekly_reminders(self) -> Job:
        """
        Register the recurring weekly reminder (Fridays at 10:00 by default).

        Safe to call on every startup: the queue keys recurring jobs by
        type and cron, so this replaces rather than duplicates.
        """
        payload = WeeklyActivityReminder()
        job = self.job_store.enqueue(
            payload.job_type,
            payload.to_dict(),
            cron=self.settings.weekly_reminder_cron,
        )
        logger.info(
            f"Weekly activity reminders scheduled ({self.settings.weekly_reminder_cron} "
            f"{self.settings.timezone})"
        )
        return job

    def schedule_activity_notifications(
        self, activity: dict[str, Any]
    ) -> dict[str, Job | None]:
        """Schedule both the deadline reminder and the late alert for a tracker."""
        return {
            "reminder": self.schedule_deadline_reminder(activity),
            "alert": self.schedule_late_submission_alert(activity),
        }

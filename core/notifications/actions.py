"""
High-level notification actions.

These functions are called by business logic (route handlers) right after
a domain write. Scheduling is best-effort: the tracker or offering has
already been saved, so a queue failure is logged and reported in the
returned dict instead of failing the request.
"""

import logging
from typing import Any

import sentry_sdk

from core.notifications.scheduler import NotificationScheduler

logger = logging.getLogger(__name__)


def schedule_activity_notifications(
    scheduler: NotificationScheduler,
    activity: dict[str, Any],
) -> dict[str, Any]:
    """
    Schedule the deadline reminder and late alert for a new activity tracker.

    Each job is queued independently, so a failure on one still reports
    the other's real job ID.

    Returns:
        {"reminder": job_id | None, "alert": job_id | None}, plus "error"
        if the queue rejected either job
    """
    result: dict[str, Any] = {"reminder": None, "alert": None}
    errors = []

    for kind, schedule in (
        ("reminder", scheduler.schedule_deadline_reminder),
        ("alert", scheduler.schedule_late_submission_alert),
    ):
        try:
            job = schedule(activity)
        except Exception as e:
            logger.error(
                f"Failed to schedule {kind} for activity tracker "
                f"{activity.get('activity_tracker_id')}: {e}"
            )
            sentry_sdk.capture_exception(e)
            errors.append(f"{kind}: {e}")
            continue
        result[kind] = job.id if job else None

    if errors:
        result["error"] = "; ".join(errors)
    return result


def notify_course_assignment(
    scheduler: NotificationScheduler,
    offering: dict[str, Any],
) -> dict[str, Any]:
    """
    Queue the assignment email after a facilitator is put on an offering.

    Args:
        offering: Course offering row (needs course_offering_id, facilitator_id)

    Returns:
        {"job": job_id | None}, plus "error" on failure
    """
    try:
        job = scheduler.send_course_assignment_notification(
            {
                "facilitator_id": offering["facilitator_id"],
                "course_offering_id": offering["course_offering_id"],
            }
        )
    except Exception as e:
        logger.error(
            f"Failed to queue assignment notification for offering "
            f"{offering.get('course_offering_id')}: {e}"
        )
        sentry_sdk.capture_exception(e)
        return {"job": None, "error": str(e)}

    return {"job": job.id}

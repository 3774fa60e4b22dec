"""
Data access and context building for notification jobs.

The worker never trusts what was true when a job was scheduled. It reads
the current tracker, user and offering rows through NotificationDataStore
at execution time, then builds template context from them with the pure
build_*_context functions below.
"""

from datetime import datetime
from typing import Any

from core.database import get_connection, get_transaction
from core.enums import ActivityStatus, UserRole
from core.notifications.jobs import parse_datetime
from core.notifications.urls import build_activities_url, build_offering_url
from core.queries.activities import get_activity_tracker, update_activity_status
from core.queries.courses import get_course_offering
from core.queries.users import get_user_by_id, get_users_by_role
from core.timezone import format_date_in_timezone


class NotificationDataStore:
    """Database-backed lookups the notification worker needs."""

    async def find_submission(
        self,
        facilitator_id: int,
        course_offering_id: int,
        week_number: int,
    ) -> dict[str, Any] | None:
        async with get_connection() as conn:
            return await get_activity_tracker(
                conn, facilitator_id, course_offering_id, week_number
            )

    async def find_user(self, user_id: int) -> dict[str, Any] | None:
        async with get_connection() as conn:
            return await get_user_by_id(conn, user_id)

    async def find_course_offering(
        self, course_offering_id: int, with_course: bool = True
    ) -> dict[str, Any] | None:
        async with get_connection() as conn:
            return await get_course_offering(
                conn, course_offering_id, with_course=with_course
            )

    async def find_users_by_role(
        self, role: UserRole, active_only: bool = True
    ) -> list[dict[str, Any]]:
        async with get_connection() as conn:
            return await get_users_by_role(conn, role, active_only=active_only)

    async def update_submission_status(
        self, activity_tracker_id: int, status: ActivityStatus
    ) -> bool:
        """Returns False if the tracker was submitted (or deleted) meanwhile."""
        async with get_transaction() as conn:
            return await update_activity_status(conn, activity_tracker_id, status)


# =============================================================================
# Template context
# =============================================================================


def full_name(user: dict[str, Any]) -> str:
    return f"{user['first_name']} {user['last_name']}".strip()


def _format_date(value: datetime | str | None, tz_name: str) -> str:
    if value is None:
        return "TBD"
    if isinstance(value, str):
        value = parse_datetime(value)
    if not isinstance(value, datetime):
        # DATE columns come back as datetime.date
        return value.strftime("%A, %B %d").replace(" 0", " ")
    return format_date_in_timezone(value, tz_name)


def build_deadline_context(
    facilitator: dict[str, Any],
    offering: dict[str, Any],
    week_number: int,
    due_date: datetime,
    tz_name: str = "UTC",
) -> dict[str, Any]:
    """Context for the facilitator's deadline reminder (and late alert)."""
    return {
        "facilitator_name": full_name(facilitator),
        "first_name": facilitator["first_name"],
        "facilitator_email": facilitator["email"],
        "course_name": offering["course"]["name"],
        "week_number": week_number,
        "due_date": _format_date(due_date, tz_name),
        "activities_url": build_activities_url(),
    }


def build_assignment_context(
    facilitator: dict[str, Any],
    offering: dict[str, Any],
    tz_name: str = "UTC",
) -> dict[str, Any]:
    """Context for the course assignment notification."""
    return {
        "first_name": facilitator["first_name"],
        "course_name": offering["course"]["name"],
        "cohort_name": offering["cohort"]["name"],
        "start_date": _format_date(offering.get("start_date"), tz_name),
        "offering_url": build_offering_url(offering["course_offering_id"]),
    }


def build_weekly_context(facilitator: dict[str, Any]) -> dict[str, Any]:
    """Context for the Friday activity log reminder."""
    return {
        "first_name": facilitator["first_name"],
        "activities_url": build_activities_url(),
    }

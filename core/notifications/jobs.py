"""
Notification job types.

Each job type has its own payload dataclass. Payloads only carry IDs and
timing; anything shown to a human (course name, facilitator email, the
manager list) is looked up by the worker when the job runs, so a job that
sat in the queue for a week still sends current data.

Payloads round-trip through plain dicts because the job store persists
them (APScheduler pickles job kwargs into PostgreSQL).
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Union


class NotificationType(str, enum.Enum):
    deadline_reminder = "deadline_reminder"
    late_submission_alert = "late_submission_alert"
    course_assignment_notification = "course_assignment_notification"
    weekly_activity_reminder = "weekly_activity_reminder"


class UnknownJobTypeError(ValueError):
    """Raised when a stored job's type doesn't match any known payload."""


def parse_datetime(value: datetime | str) -> datetime:
    """Parse an ISO string or datetime, treating naive values as UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class _WeeklyActivityPayload:
    """Shared shape for jobs about one facilitator's weekly tracker."""

    facilitator_id: int
    course_offering_id: int
    week_number: int
    due_date: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "facilitator_id": self.facilitator_id,
            "course_offering_id": self.course_offering_id,
            "week_number": self.week_number,
            "due_date": self.due_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        return cls(
            facilitator_id=int(data["facilitator_id"]),
            course_offering_id=int(data["course_offering_id"]),
            week_number=int(data["week_number"]),
            due_date=parse_datetime(data["due_date"]),
        )

    @classmethod
    def from_activity(cls, activity: dict[str, Any]):
        """Build from an activity tracker row (or any dict with the same keys)."""
        return cls.from_dict(activity)


@dataclass(frozen=True)
class DeadlineReminder(_WeeklyActivityPayload):
    """Remind a facilitator that a weekly activity log is due soon."""

    job_type: ClassVar[NotificationType] = NotificationType.deadline_reminder


@dataclass(frozen=True)
class LateSubmissionAlert(_WeeklyActivityPayload):
    """Alert managers that a weekly activity log missed its deadline."""

    job_type: ClassVar[NotificationType] = NotificationType.late_submission_alert


@dataclass(frozen=True)
class CourseAssignmentNotification:
    """Tell a facilitator they were assigned to a course offering."""

    job_type: ClassVar[NotificationType] = (
        NotificationType.course_assignment_notification
    )

    facilitator_id: int
    course_offering_id: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "facilitator_id": self.facilitator_id,
            "course_offering_id": self.course_offering_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CourseAssignmentNotification":
        return cls(
            facilitator_id=int(data["facilitator_id"]),
            course_offering_id=int(data["course_offering_id"]),
        )


@dataclass(frozen=True)
class WeeklyActivityReminder:
    """Recurring nudge to every active facilitator."""

    job_type: ClassVar[NotificationType] = NotificationType.weekly_activity_reminder

    message: str = "Weekly activity log reminder"

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WeeklyActivityReminder":
        return cls(message=data.get("message", cls.message))


NotificationPayload = Union[
    DeadlineReminder,
    LateSubmissionAlert,
    CourseAssignmentNotification,
    WeeklyActivityReminder,
]

PAYLOAD_TYPES: dict[NotificationType, type] = {
    payload_cls.job_type: payload_cls
    for payload_cls in (
        DeadlineReminder,
        LateSubmissionAlert,
        CourseAssignmentNotification,
        WeeklyActivityReminder,
    )
}


def decode_payload(job_type: str, data: dict[str, Any]) -> NotificationPayload:
    """
    Turn a stored (type, data) pair back into a typed payload.

    Raises:
        UnknownJobTypeError: If job_type isn't a NotificationType
    """
    try:
        notification_type = NotificationType(job_type)
    except ValueError:
        raise UnknownJobTypeError(f"Unknown job type: {job_type}") from None
    return PAYLOAD_TYPES[notification_type].from_dict(data)

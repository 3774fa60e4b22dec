"""
Notification pipeline for deadline reminders and late-submission alerts.

Public API:
    JobStore(scheduler) - persistent delay queue (APScheduler underneath)
    NotificationScheduler(job_store, settings) - queue jobs from domain events
    NotificationWorker(job_store, data_store, dispatcher) - run queued jobs

High-level actions:
    schedule_activity_notifications(scheduler, activity) - reminder + late alert
    notify_course_assignment(scheduler, offering) - assignment email
"""

from .actions import notify_course_assignment, schedule_activity_notifications
from .context import NotificationDataStore
from .dispatcher import EmailDispatcher, NotificationDeliveryError, NotificationKind
from .jobs import NotificationType
from .queue import JobEvent, JobState, JobStore, build_scheduler, log_job_event
from .scheduler import NotificationScheduler
from .worker import MissingReferenceError, NotificationWorker

__all__ = [
    # Queue
    "JobStore",
    "JobState",
    "JobEvent",
    "build_scheduler",
    "log_job_event",
    "NotificationType",
    # Producer / consumer
    "NotificationScheduler",
    "NotificationWorker",
    "NotificationDataStore",
    "EmailDispatcher",
    "NotificationKind",
    "NotificationDeliveryError",
    "MissingReferenceError",
    # High-level actions
    "schedule_activity_notifications",
    "notify_course_assignment",
]

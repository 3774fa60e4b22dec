"""
Notification dispatcher - renders a message and hands it to the email channel.

Unlike the channel (which reports success as a bool), the dispatcher raises
NotificationDeliveryError on failure, so a failed send fails the queue job
and goes through the retry policy.
"""

import asyncio
import enum
import logging
from typing import Any, Iterable

from core.notifications.channels.email import EmailMessage, send_email
from core.notifications.templates import get_email

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    """Message types in messages.yaml."""

    deadline_reminder = "deadline_reminder"
    late_submission_alert = "late_submission_alert"
    course_assignment = "course_assignment"
    weekly_activity_reminder = "weekly_activity_reminder"


class NotificationDeliveryError(Exception):
    """The transport rejected or couldn't deliver a notification."""


class EmailDispatcher:
    """Sends rendered notification emails to one or more users."""

    async def send(
        self,
        kind: NotificationKind,
        recipients: dict[str, Any] | Iterable[dict[str, Any]],
        template_data: dict[str, Any],
    ) -> None:
        """
        Send one notification.

        Args:
            kind: Which template to render
            recipients: A user dict or list of user dicts (need "email")
            template_data: Template variables

        Raises:
            NotificationDeliveryError: No usable address, or send failed
        """
        if isinstance(recipients, dict):
            recipients = [recipients]
        to_emails = [user["email"] for user in recipients if user.get("email")]
        if not to_emails:
            raise NotificationDeliveryError(f"No recipient email for {kind.value}")

        subject, body = get_email(kind.value, template_data)
        message = EmailMessage(to_emails=to_emails, subject=subject, body=body)

        # SendGrid's client is blocking; keep it off the event loop
        sent = await asyncio.to_thread(send_email, message)
        if not sent:
            raise NotificationDeliveryError(
                f"Failed to send {kind.value} to {', '.join(to_emails)}"
            )

        logger.info(f"Sent {kind.value} email to {', '.join(to_emails)}")

"""Tests for notification dispatcher."""

import pytest
from unittest.mock import patch

from core.notifications.dispatcher import (
    EmailDispatcher,
    NotificationDeliveryError,
    NotificationKind,
)


WEEKLY_CONTEXT = {
    "first_name": "Alice",
    "activities_url": "https://courses.example.com/activities",
}


class TestEmailDispatcher:
    @pytest.mark.asyncio
    async def test_sends_rendered_email_to_single_user(self):
        captured = []

        def capture_email(message):
            captured.append(message)
            return True

        with patch(
            "core.notifications.dispatcher.send_email", side_effect=capture_email
        ):
            await EmailDispatcher().send(
                NotificationKind.weekly_activity_reminder,
                {"user_id": 1, "email": "alice@example.com"},
                WEEKLY_CONTEXT,
            )

        assert len(captured) == 1
        assert captured[0].to_emails == ["alice@example.com"]
        assert captured[0].subject == "Weekly Activity Log Reminder"
        assert "Hello Alice" in captured[0].body

    @pytest.mark.asyncio
    async def test_sends_to_every_recipient_in_list(self):
        with patch(
            "core.notifications.dispatcher.send_email", return_value=True
        ) as mock_send:
            await EmailDispatcher().send(
                NotificationKind.weekly_activity_reminder,
                [{"email": "m1@example.com"}, {"email": "m2@example.com"}],
                WEEKLY_CONTEXT,
            )

        message = mock_send.call_args[0][0]
        assert message.to_emails == ["m1@example.com", "m2@example.com"]

    @pytest.mark.asyncio
    async def test_raises_when_send_fails(self):
        """A failed send must fail the job so the queue retries it."""
        with patch("core.notifications.dispatcher.send_email", return_value=False):
            with pytest.raises(NotificationDeliveryError):
                await EmailDispatcher().send(
                    NotificationKind.weekly_activity_reminder,
                    {"email": "alice@example.com"},
                    WEEKLY_CONTEXT,
                )

    @pytest.mark.asyncio
    async def test_raises_without_recipient_email(self):
        with patch("core.notifications.dispatcher.send_email") as mock_send:
            with pytest.raises(NotificationDeliveryError):
                await EmailDispatcher().send(
                    NotificationKind.weekly_activity_reminder,
                    [{"email": None}],
                    WEEKLY_CONTEXT,
                )

        mock_send.assert_not_called()

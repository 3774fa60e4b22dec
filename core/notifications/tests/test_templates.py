"""Tests for message template loading and rendering."""

import pytest
from core.notifications.templates import get_email, load_templates, render_message


MESSAGE_TYPES = [
    "deadline_reminder",
    "late_submission_alert",
    "course_assignment",
    "weekly_activity_reminder",
]


class TestLoadTemplates:
    def test_loads_yaml_file(self):
        templates = load_templates()
        assert isinstance(templates, dict)
        assert set(MESSAGE_TYPES) <= set(templates)

    @pytest.mark.parametrize("message_type", MESSAGE_TYPES)
    def test_each_type_has_subject_and_body(self, message_type):
        template = load_templates()[message_type]
        assert "email_subject" in template
        assert "email_body" in template


class TestRenderMessage:
    def test_renders_simple_variable(self):
        result = render_message("Hello {name}!", {"name": "Alice"})
        assert result == "Hello Alice!"

    def test_missing_variable_raises(self):
        with pytest.raises(KeyError):
            render_message("Hello {name}!", {})


class TestGetEmail:
    def test_renders_deadline_reminder(self):
        subject, body = get_email(
            "deadline_reminder",
            {
                "first_name": "Alice",
                "course_name": "Intro to Python",
                "week_number": 3,
                "due_date": "Friday, March 13",
                "activities_url": "https://app.example.com/activities",
            },
        )

        assert subject == "Activity Log Deadline Reminder"
        assert "Hello Alice" in body
        assert "**Intro to Python** (Week 3)" in body
        assert "Friday, March 13" in body

    def test_renders_late_alert_with_facilitator_details(self):
        subject, body = get_email(
            "late_submission_alert",
            {
                "facilitator_name": "Alice Smith",
                "facilitator_email": "alice@example.com",
                "course_name": "Intro to Python",
                "week_number": 3,
                "due_date": "Friday, March 13",
            },
        )

        assert subject == "Late Activity Log Submission Alert"
        assert "Alice Smith (alice@example.com)" in body

    def test_unknown_message_type_raises(self):
        with pytest.raises(KeyError):
            get_email("does_not_exist", {})

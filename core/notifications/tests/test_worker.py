"""Tests for NotificationWorker (the consumer side of the queue).

The data store and dispatcher are mocked: these tests check which emails
go out given the state read at execution time.
"""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.enums import ActivityStatus, UserRole
from core.notifications.dispatcher import NotificationDeliveryError, NotificationKind
from core.notifications.jobs import NotificationType
from core.notifications.queue import Job, JobState, JobStore
from core.notifications.worker import MissingReferenceError, NotificationWorker


DUE_DATE = datetime(2026, 3, 13, 17, 0, tzinfo=timezone.utc)

FACILITATOR = {
    "user_id": 5,
    "email": "alice@example.com",
    "first_name": "Alice",
    "last_name": "Smith",
    "role": UserRole.facilitator,
    "is_active": True,
}

OFFERING = {
    "course_offering_id": 12,
    "facilitator_id": 5,
    "start_date": date(2026, 4, 6),
    "course": {"course_id": 1, "code": "PY101", "name": "Intro to Python"},
    "cohort": {"cohort_id": 2, "name": "2026 September"},
}

MANAGERS = [
    {"user_id": 1, "email": "m1@example.com", "first_name": "Mo", "last_name": "One"},
    {"user_id": 2, "email": "m2@example.com", "first_name": "Ann", "last_name": "Two"},
]

WEEKLY_DATA = {
    "facilitator_id": 5,
    "course_offering_id": 12,
    "week_number": 3,
    "due_date": DUE_DATE.isoformat(),
}


def _tracker(status: ActivityStatus) -> dict:
    return {
        "activity_tracker_id": 7,
        "facilitator_id": 5,
        "course_offering_id": 12,
        "week_number": 3,
        "due_date": DUE_DATE,
        "status": status,
    }


def _job(job_type: NotificationType, data: dict) -> Job:
    return Job(id="job-1", type=job_type.value, data=data)


@pytest.fixture
def data_store():
    store = MagicMock()
    store.find_submission = AsyncMock(return_value=None)
    store.find_user = AsyncMock(return_value=FACILITATOR)
    store.find_course_offering = AsyncMock(return_value=OFFERING)
    store.find_users_by_role = AsyncMock(return_value=MANAGERS)
    store.update_submission_status = AsyncMock(return_value=True)
    return store


@pytest.fixture
def dispatcher():
    mock = MagicMock()
    mock.send = AsyncMock()
    return mock


@pytest.fixture
def worker(data_store, dispatcher):
    return NotificationWorker(MagicMock(), data_store, dispatcher)


class TestDeadlineReminder:
    @pytest.mark.asyncio
    async def test_sends_reminder_when_not_submitted(self, worker, dispatcher, data_store):
        data_store.find_submission.return_value = _tracker(ActivityStatus.pending)

        await worker.handle(_job(NotificationType.deadline_reminder, WEEKLY_DATA))

        kind, recipient, context = dispatcher.send.call_args[0]
        assert kind == NotificationKind.deadline_reminder
        assert recipient == FACILITATOR
        assert context["course_name"] == "Intro to Python"
        assert context["week_number"] == 3
        assert context["due_date"] == "Friday, March 13"

    @pytest.mark.asyncio
    async def test_sends_reminder_when_no_tracker_yet(self, worker, dispatcher):
        await worker.handle(_job(NotificationType.deadline_reminder, WEEKLY_DATA))

        dispatcher.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skips_when_already_submitted(self, worker, dispatcher, data_store):
        data_store.find_submission.return_value = _tracker(ActivityStatus.submitted)

        await worker.handle(_job(NotificationType.deadline_reminder, WEEKLY_DATA))

        dispatcher.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_facilitator_fails_job(self, worker, data_store):
        data_store.find_user.return_value = None

        with pytest.raises(MissingReferenceError, match="Facilitator with ID 5"):
            await worker.handle(_job(NotificationType.deadline_reminder, WEEKLY_DATA))

    @pytest.mark.asyncio
    async def test_missing_offering_fails_job(self, worker, data_store):
        data_store.find_course_offering.return_value = None

        with pytest.raises(MissingReferenceError, match="Course offering with ID 12"):
            await worker.handle(_job(NotificationType.deadline_reminder, WEEKLY_DATA))


class TestLateSubmissionAlert:
    @pytest.mark.asyncio
    async def test_marks_late_and_alerts_managers(self, worker, dispatcher, data_store):
        data_store.find_submission.return_value = _tracker(ActivityStatus.pending)

        await worker.handle(_job(NotificationType.late_submission_alert, WEEKLY_DATA))

        data_store.update_submission_status.assert_awaited_once_with(
            7, ActivityStatus.late
        )
        data_store.find_users_by_role.assert_awaited_once_with(
            UserRole.manager, active_only=True
        )
        kind, recipients, context = dispatcher.send.call_args[0]
        assert kind == NotificationKind.late_submission_alert
        assert recipients == MANAGERS
        assert context["facilitator_name"] == "Alice Smith"
        assert context["facilitator_email"] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_skips_when_submitted(self, worker, dispatcher, data_store):
        data_store.find_submission.return_value = _tracker(ActivityStatus.submitted)

        await worker.handle(_job(NotificationType.late_submission_alert, WEEKLY_DATA))

        data_store.update_submission_status.assert_not_called()
        dispatcher.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_skips_when_submitted_during_check(self, worker, dispatcher, data_store):
        """The conditional update lost the race to a submission."""
        data_store.find_submission.return_value = _tracker(ActivityStatus.pending)
        data_store.update_submission_status.return_value = False

        await worker.handle(_job(NotificationType.late_submission_alert, WEEKLY_DATA))

        dispatcher.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_alerts_when_no_tracker_exists(self, worker, dispatcher, data_store):
        await worker.handle(_job(NotificationType.late_submission_alert, WEEKLY_DATA))

        data_store.update_submission_status.assert_not_called()
        dispatcher.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_active_managers_sends_nothing(self, worker, dispatcher, data_store):
        data_store.find_users_by_role.return_value = []

        await worker.handle(_job(NotificationType.late_submission_alert, WEEKLY_DATA))

        dispatcher.send.assert_not_called()


class TestCourseAssignment:
    @pytest.mark.asyncio
    async def test_sends_assignment_email(self, worker, dispatcher):
        await worker.handle(
            _job(
                NotificationType.course_assignment_notification,
                {"facilitator_id": 5, "course_offering_id": 12},
            )
        )

        kind, recipient, context = dispatcher.send.call_args[0]
        assert kind == NotificationKind.course_assignment
        assert recipient == FACILITATOR
        assert context["cohort_name"] == "2026 September"
        assert context["start_date"] == "Monday, April 6"
        assert context["offering_url"].endswith("/courses/offerings/12")

    @pytest.mark.asyncio
    async def test_missing_facilitator_fails_job(self, worker, dispatcher, data_store):
        data_store.find_user.return_value = None

        with pytest.raises(MissingReferenceError, match="Facilitator with ID 999"):
            await worker.handle(
                _job(
                    NotificationType.course_assignment_notification,
                    {"facilitator_id": 999, "course_offering_id": 12},
                )
            )

        dispatcher.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_offering_fails_job(self, worker, data_store):
        data_store.find_course_offering.return_value = None

        with pytest.raises(MissingReferenceError):
            await worker.handle(
                _job(
                    NotificationType.course_assignment_notification,
                    {"facilitator_id": 5, "course_offering_id": 12},
                )
            )


class TestWeeklyActivityReminder:
    @pytest.mark.asyncio
    async def test_sends_to_every_active_facilitator(self, worker, dispatcher, data_store):
        facilitators = [FACILITATOR, {**FACILITATOR, "user_id": 6, "email": "bo@example.com"}]
        data_store.find_users_by_role.return_value = facilitators

        await worker.handle(_job(NotificationType.weekly_activity_reminder, {}))

        data_store.find_users_by_role.assert_awaited_once_with(
            UserRole.facilitator, active_only=True
        )
        assert dispatcher.send.await_count == 2

    @pytest.mark.asyncio
    async def test_one_failed_send_does_not_stop_batch(self, worker, dispatcher, data_store):
        facilitators = [
            {**FACILITATOR, "user_id": n, "email": f"f{n}@example.com"} for n in (1, 2, 3)
        ]
        data_store.find_users_by_role.return_value = facilitators
        dispatcher.send.side_effect = [None, NotificationDeliveryError("bounced"), None]

        with patch("core.notifications.worker.sentry_sdk") as mock_sentry:
            await worker.handle(_job(NotificationType.weekly_activity_reminder, {}))

        assert dispatcher.send.await_count == 3
        mock_sentry.capture_exception.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_facilitators_completes_quietly(self, worker, dispatcher, data_store):
        data_store.find_users_by_role.return_value = []

        await worker.handle(_job(NotificationType.weekly_activity_reminder, {}))

        dispatcher.send.assert_not_called()


class TestHandle:
    @pytest.mark.asyncio
    async def test_unknown_job_type_is_skipped(self, worker, dispatcher):
        await worker.handle(Job(id="job-1", type="welcome_email", data={}))

        dispatcher.send.assert_not_called()

    def test_start_registers_processor(self, data_store, dispatcher):
        job_store = MagicMock()
        worker = NotificationWorker(job_store, data_store, dispatcher)

        worker.start()

        job_store.process.assert_called_once_with(worker.handle)


class TestPipeline:
    """Queue and worker together, with the scheduler mocked out."""

    @pytest.mark.asyncio
    async def test_delivery_failure_is_retried_then_succeeds(self, data_store, dispatcher):
        job_store = JobStore(MagicMock(), name="pipeline-queue")
        NotificationWorker(job_store, data_store, dispatcher).start()
        dispatcher.send.side_effect = [NotificationDeliveryError("SendGrid 503"), None]
        job = job_store.enqueue(NotificationType.deadline_reminder, WEEKLY_DATA)

        with patch("core.notifications.queue.sentry_sdk"):
            await job_store.run(job.to_dict())
            assert job.state == JobState.delayed
            await job_store.run(job.to_dict())

        assert job.state == JobState.completed
        assert job.attempts_made == 2
        job_store.shutdown()

    @pytest.mark.asyncio
    async def test_submitted_tracker_completes_without_email(self, data_store, dispatcher):
        job_store = JobStore(MagicMock(), name="pipeline-queue")
        NotificationWorker(job_store, data_store, dispatcher).start()
        data_store.find_submission.return_value = _tracker(ActivityStatus.submitted)
        job = job_store.enqueue(NotificationType.late_submission_alert, WEEKLY_DATA)

        await job_store.run(job.to_dict())

        assert job.state == JobState.completed
        dispatcher.send.assert_not_called()
        job_store.shutdown()

    @pytest.mark.asyncio
    async def test_assignment_for_deleted_facilitator_fails_after_three_attempts(
        self, data_store, dispatcher
    ):
        job_store = JobStore(MagicMock(), name="pipeline-queue")
        NotificationWorker(job_store, data_store, dispatcher).start()
        data_store.find_user.return_value = None
        job = job_store.enqueue(
            NotificationType.course_assignment_notification,
            {"facilitator_id": 999, "course_offering_id": 12},
        )

        with patch("core.notifications.queue.sentry_sdk"):
            for _ in range(3):
                await job_store.run(job.to_dict())

        assert job.state == JobState.failed
        assert job.attempts_made == 3
        assert job.retry_delays_ms == [2000, 4000]
        assert job.failed_reason == "Facilitator with ID 999 not found"
        dispatcher.send.assert_not_called()
        job_store.shutdown()

"""Tests for notification-facing queries."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from core.enums import ActivityStatus, UserRole


def _conn_returning(rows):
    mock_conn = AsyncMock()
    mock_result = MagicMock()
    mock_result.mappings.return_value.first.return_value = rows[0] if rows else None
    mock_result.mappings.return_value.__iter__.return_value = iter(rows)
    mock_conn.execute.return_value = mock_result
    return mock_conn


class TestUserQueries:
    @pytest.mark.asyncio
    async def test_get_user_by_id_never_selects_password(self):
        from core.queries.users import get_user_by_id

        mock_conn = _conn_returning([{"user_id": 5, "email": "alice@example.com"}])

        user = await get_user_by_id(mock_conn, 5)

        assert user == {"user_id": 5, "email": "alice@example.com"}
        query = mock_conn.execute.call_args[0][0]
        assert "password_hash" not in str(query)

    @pytest.mark.asyncio
    async def test_get_user_by_id_missing(self):
        from core.queries.users import get_user_by_id

        assert await get_user_by_id(_conn_returning([]), 99) is None

    @pytest.mark.asyncio
    async def test_get_users_by_role_filters_active(self):
        from core.queries.users import get_users_by_role

        mock_conn = _conn_returning([{"user_id": 1}, {"user_id": 2}])

        managers = await get_users_by_role(mock_conn, UserRole.manager)

        assert managers == [{"user_id": 1}, {"user_id": 2}]
        assert "is_active" in str(mock_conn.execute.call_args[0][0])


class TestActivityQueries:
    @pytest.mark.asyncio
    async def test_update_status_guards_against_submitted(self):
        from core.queries.activities import update_activity_status

        mock_conn = AsyncMock()
        mock_conn.execute.return_value = MagicMock(rowcount=1)

        updated = await update_activity_status(mock_conn, 7, ActivityStatus.late)

        assert updated is True
        statement = str(mock_conn.execute.call_args[0][0])
        assert "activity_trackers.status !=" in statement

    @pytest.mark.asyncio
    async def test_update_status_returns_false_when_nothing_changed(self):
        from core.queries.activities import update_activity_status

        mock_conn = AsyncMock()
        mock_conn.execute.return_value = MagicMock(rowcount=0)

        assert await update_activity_status(mock_conn, 7, ActivityStatus.late) is False


class TestCourseOfferingQueries:
    @pytest.mark.asyncio
    async def test_nests_course_and_cohort(self):
        from core.queries.courses import get_course_offering

        mock_conn = _conn_returning(
            [
                {
                    "course_offering_id": 12,
                    "course_id": 1,
                    "cohort_id": 2,
                    "course_code": "PY101",
                    "course_name": "Intro to Python",
                    "cohort_name": "2026 September",
                }
            ]
        )

        offering = await get_course_offering(mock_conn, 12, with_course=True)

        assert offering["course"] == {
            "course_id": 1,
            "code": "PY101",
            "name": "Intro to Python",
        }
        assert offering["cohort"] == {"cohort_id": 2, "name": "2026 September"}
        assert "course_name" not in offering

    @pytest.mark.asyncio
    async def test_missing_offering(self):
        from core.queries.courses import get_course_offering

        assert await get_course_offering(_conn_returning([]), 12, with_course=True) is None

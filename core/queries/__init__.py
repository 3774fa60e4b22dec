"""Query layer for database operations using SQLAlchemy Core."""

from .activities import get_activity_tracker, update_activity_status
from .courses import get_course_offering
from .users import get_user_by_id, get_users_by_role

__all__ = [
    # Users
    "get_user_by_id",
    "get_users_by_role",
    # Courses
    "get_course_offering",
    # Activities
    "get_activity_tracker",
    "update_activity_status",
]

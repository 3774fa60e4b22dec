"""SQLAlchemy enum definitions for the database schema."""

import enum

from sqlalchemy import Enum as SQLEnum


# =====================================================
# Python Enum Classes
# =====================================================


class UserRole(str, enum.Enum):
    manager = "manager"
    facilitator = "facilitator"
    student = "student"


class CourseOfferingStatus(str, enum.Enum):
    scheduled = "scheduled"
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class ActivityStatus(str, enum.Enum):
    pending = "pending"
    submitted = "submitted"
    late = "late"
    missed = "missed"


class CohortIntake(str, enum.Enum):
    january = "january"
    may = "may"
    september = "september"


# =====================================================
# SQLAlchemy Enum Types
# These reference existing PostgreSQL types (create_type=False)
# =====================================================

user_role_enum = SQLEnum(
    UserRole, name="user_role", create_type=False, native_enum=True
)
course_offering_status_enum = SQLEnum(
    CourseOfferingStatus,
    name="course_offering_status",
    create_type=False,
    native_enum=True,
)
activity_status_enum = SQLEnum(
    ActivityStatus, name="activity_status", create_type=False, native_enum=True
)
cohort_intake_enum = SQLEnum(
    CohortIntake, name="cohort_intake", create_type=False, native_enum=True
)

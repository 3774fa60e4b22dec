"""SQLAlchemy Core table definitions for the database schema."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

from .enums import (
    activity_status_enum,
    cohort_intake_enum,
    course_offering_status_enum,
    user_role_enum,
)

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. USERS
# =====================================================
users = Table(
    "users",
    metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("email", Text, nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("role", user_role_enum, nullable=False),
    Column("is_active", Boolean, server_default="true", nullable=False),
    Column("last_login_at", TIMESTAMP(timezone=True)),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_users_role_active", "role", "is_active"),
)


# =====================================================
# 2. COURSES (modules in the academic catalogue)
# =====================================================
courses = Table(
    "courses",
    metadata,
    Column("course_id", Integer, primary_key=True, autoincrement=True),
    Column("code", Text, nullable=False, unique=True),  # e.g. "SE101"
    Column("name", Text, nullable=False),
    Column("description", Text),
    Column("credits", Integer, server_default="3"),
    Column("is_active", Boolean, server_default="true", nullable=False),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    CheckConstraint("credits BETWEEN 1 AND 10", name="credits_range"),
)


# =====================================================
# 3. COHORTS
# =====================================================
cohorts = Table(
    "cohorts",
    metadata,
    Column("cohort_id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False, unique=True),
    Column("year", Integer, nullable=False),
    Column("intake", cohort_intake_enum, nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("is_active", Boolean, server_default="true", nullable=False),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
)


# =====================================================
# 4. MODES (online, in-person, hybrid)
# =====================================================
modes = Table(
    "modes",
    metadata,
    Column("mode_id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False, unique=True),
    Column("description", Text),
)


# =====================================================
# 5. COURSE_OFFERINGS
# =====================================================
course_offerings = Table(
    "course_offerings",
    metadata,
    Column("course_offering_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "course_id",
        Integer,
        ForeignKey("courses.course_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "cohort_id",
        Integer,
        ForeignKey("cohorts.cohort_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "facilitator_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("mode_id", Integer, ForeignKey("modes.mode_id", ondelete="RESTRICT")),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("status", course_offering_status_enum, server_default="scheduled"),
    Column("max_enrollment", Integer),
    Column("current_enrollment", Integer, server_default="0", nullable=False),
    Column("notes", Text),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_course_offerings_facilitator_id", "facilitator_id"),
    UniqueConstraint(
        "course_id",
        "cohort_id",
        "facilitator_id",
        name="course_offerings_course_cohort_facilitator_unique",
    ),
    CheckConstraint("end_date > start_date", name="end_after_start"),
)


# =====================================================
# 6. ACTIVITY_TRACKERS (weekly facilitator logs)
# =====================================================
activity_trackers = Table(
    "activity_trackers",
    metadata,
    Column("activity_tracker_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "course_offering_id",
        Integer,
        ForeignKey("course_offerings.course_offering_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "facilitator_id",
        Integer,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("week_number", Integer, nullable=False),
    Column("activities", JSONB),  # [{topic, duration, type}, ...]
    Column("status", activity_status_enum, server_default="pending", nullable=False),
    Column("submitted_at", TIMESTAMP(timezone=True)),
    Column("due_date", TIMESTAMP(timezone=True), nullable=False),
    Column("notes", Text),
    Column("attendance_count", Integer, server_default="0"),
    Column("challenges", Text),
    Column("achievements", Text),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Index("idx_activity_trackers_status", "status"),
    UniqueConstraint(
        "course_offering_id",
        "facilitator_id",
        "week_number",
        name="activity_trackers_offering_facilitator_week_unique",
    ),
    CheckConstraint("week_number BETWEEN 1 AND 52", name="week_number_range"),
    CheckConstraint("attendance_count >= 0", name="attendance_count_positive"),
)

"""Course management schema.

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates users, courses, cohorts, modes, course_offerings and
activity_trackers with their PostgreSQL enum types. The APScheduler job
table (apscheduler_jobs) is created by APScheduler itself on first start.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    "user_role": ("manager", "facilitator", "student"),
    "course_offering_status": ("scheduled", "active", "completed", "cancelled"),
    "activity_status": ("pending", "submitted", "late", "missed"),
    "cohort_intake": ("january", "may", "september"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("last_login_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("user_id", name=op.f("pk_users")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
    )
    op.create_index("idx_users_role_active", "users", ["role", "is_active"])

    op.create_table(
        "courses",
        sa.Column("course_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("credits", sa.Integer(), server_default="3", nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("credits BETWEEN 1 AND 10", name=op.f("ck_courses_credits_range")),
        sa.PrimaryKeyConstraint("course_id", name=op.f("pk_courses")),
        sa.UniqueConstraint("code", name=op.f("uq_courses_code")),
    )

    op.create_table(
        "cohorts",
        sa.Column("cohort_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("intake", _enum("cohort_intake"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("cohort_id", name=op.f("pk_cohorts")),
        sa.UniqueConstraint("name", name=op.f("uq_cohorts_name")),
    )

    op.create_table(
        "modes",
        sa.Column("mode_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("mode_id", name=op.f("pk_modes")),
        sa.UniqueConstraint("name", name=op.f("uq_modes_name")),
    )

    op.create_table(
        "course_offerings",
        sa.Column("course_offering_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("cohort_id", sa.Integer(), nullable=False),
        sa.Column("facilitator_id", sa.Integer(), nullable=False),
        sa.Column("mode_id", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            _enum("course_offering_status"),
            server_default="scheduled",
            nullable=True,
        ),
        sa.Column("max_enrollment", sa.Integer(), nullable=True),
        sa.Column("current_enrollment", sa.Integer(), server_default="0", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "end_date > start_date", name=op.f("ck_course_offerings_end_after_start")
        ),
        sa.ForeignKeyConstraint(
            ["course_id"],
            ["courses.course_id"],
            name=op.f("fk_course_offerings_course_id_courses"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["cohort_id"],
            ["cohorts.cohort_id"],
            name=op.f("fk_course_offerings_cohort_id_cohorts"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["facilitator_id"],
            ["users.user_id"],
            name=op.f("fk_course_offerings_facilitator_id_users"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["mode_id"],
            ["modes.mode_id"],
            name=op.f("fk_course_offerings_mode_id_modes"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("course_offering_id", name=op.f("pk_course_offerings")),
        sa.UniqueConstraint(
            "course_id",
            "cohort_id",
            "facilitator_id",
            name="course_offerings_course_cohort_facilitator_unique",
        ),
    )
    op.create_index(
        "idx_course_offerings_facilitator_id", "course_offerings", ["facilitator_id"]
    )

    op.create_table(
        "activity_trackers",
        sa.Column("activity_tracker_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("course_offering_id", sa.Integer(), nullable=False),
        sa.Column("facilitator_id", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("activities", postgresql.JSONB(), nullable=True),
        sa.Column(
            "status", _enum("activity_status"), server_default="pending", nullable=False
        ),
        sa.Column("submitted_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("due_date", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("attendance_count", sa.Integer(), server_default="0", nullable=True),
        sa.Column("challenges", sa.Text(), nullable=True),
        sa.Column("achievements", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "week_number BETWEEN 1 AND 52",
            name=op.f("ck_activity_trackers_week_number_range"),
        ),
        sa.CheckConstraint(
            "attendance_count >= 0",
            name=op.f("ck_activity_trackers_attendance_count_positive"),
        ),
        sa.ForeignKeyConstraint(
            ["course_offering_id"],
            ["course_offerings.course_offering_id"],
            name=op.f("fk_activity_trackers_course_offering_id_course_offerings"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["facilitator_id"],
            ["users.user_id"],
            name=op.f("fk_activity_trackers_facilitator_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("activity_tracker_id", name=op.f("pk_activity_trackers")),
        sa.UniqueConstraint(
            "course_offering_id",
            "facilitator_id",
            "week_number",
            name="activity_trackers_offering_facilitator_week_unique",
        ),
    )
    op.create_index("idx_activity_trackers_status", "activity_trackers", ["status"])


def downgrade() -> None:
    op.drop_index("idx_activity_trackers_status", table_name="activity_trackers")
    op.drop_table("activity_trackers")
    op.drop_index("idx_course_offerings_facilitator_id", table_name="course_offerings")
    op.drop_table("course_offerings")
    op.drop_table("modes")
    op.drop_table("cohorts")
    op.drop_table("courses")
    op.drop_index("idx_users_role_active", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)

"""Course offering queries using SQLAlchemy Core."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import cohorts, course_offerings, courses


async def get_course_offering(
    conn: AsyncConnection,
    course_offering_id: int,
    with_course: bool = False,
) -> dict[str, Any] | None:
    """
    Get a course offering by ID.

    Args:
        conn: Database connection
        course_offering_id: Offering to look up
        with_course: Also join the course and cohort, adding nested
            "course" and "cohort" dicts to the result

    Returns:
        Offering dict, or None if it doesn't exist
    """
    if not with_course:
        result = await conn.execute(
            select(course_offerings).where(
                course_offerings.c.course_offering_id == course_offering_id
            )
        )
        row = result.mappings().first()
        return dict(row) if row else None

    query = (
        select(
            course_offerings,
            courses.c.code.label("course_code"),
            courses.c.name.label("course_name"),
            cohorts.c.name.label("cohort_name"),
        )
        .select_from(
            course_offerings.join(
                courses, course_offerings.c.course_id == courses.c.course_id
            ).join(cohorts, course_offerings.c.cohort_id == cohorts.c.cohort_id)
        )
        .where(course_offerings.c.course_offering_id == course_offering_id)
    )
    result = await conn.execute(query)
    row = result.mappings().first()
    if not row:
        return None

    offering = dict(row)
    offering["course"] = {
        "course_id": offering["course_id"],
        "code": offering.pop("course_code"),
        "name": offering.pop("course_name"),
    }
    offering["cohort"] = {
        "cohort_id": offering["cohort_id"],
        "name": offering.pop("cohort_name"),
    }
    return offering

"""Activity tracker queries using SQLAlchemy Core."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import ActivityStatus
from ..tables import activity_trackers


async def get_activity_tracker(
    conn: AsyncConnection,
    facilitator_id: int,
    course_offering_id: int,
    week_number: int,
) -> dict[str, Any] | None:
    """Get the weekly tracker for a facilitator/offering/week, if any."""
    result = await conn.execute(
        select(activity_trackers).where(
            activity_trackers.c.facilitator_id == facilitator_id,
            activity_trackers.c.course_offering_id == course_offering_id,
            activity_trackers.c.week_number == week_number,
        )
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def update_activity_status(
    conn: AsyncConnection,
    activity_tracker_id: int,
    status: ActivityStatus,
) -> bool:
    """
    Set a tracker's status unless it has already been submitted.

    The submitted guard is part of the UPDATE, so a submission that lands
    between our read and this write is never overwritten.

    Returns:
        True if a row was updated, False if the tracker is gone or submitted
    """
    result = await conn.execute(
        update(activity_trackers)
        .where(activity_trackers.c.activity_tracker_id == activity_tracker_id)
        .where(activity_trackers.c.status != ActivityStatus.submitted)
        .values(status=status, updated_at=datetime.now(timezone.utc))
    )
    return result.rowcount > 0

"""User-related database queries using SQLAlchemy Core."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import UserRole
from ..tables import users

# Columns safe to hand to notification code (never the password hash)
_PUBLIC_COLUMNS = (
    users.c.user_id,
    users.c.email,
    users.c.first_name,
    users.c.last_name,
    users.c.role,
    users.c.is_active,
)


async def get_user_by_id(
    conn: AsyncConnection,
    user_id: int,
) -> dict[str, Any] | None:
    """Get a user by primary key."""
    result = await conn.execute(
        select(*_PUBLIC_COLUMNS).where(users.c.user_id == user_id)
    )
    row = result.mappings().first()
    return dict(row) if row else None


async def get_users_by_role(
    conn: AsyncConnection,
    role: UserRole,
    active_only: bool = True,
) -> list[dict[str, Any]]:
    """Get all users with a role, optionally only active accounts."""
    query = select(*_PUBLIC_COLUMNS).where(users.c.role == role)
    if active_only:
        query = query.where(users.c.is_active.is_(True))
    result = await conn.execute(query.order_by(users.c.user_id))
    return [dict(row) for row in result.mappings()]

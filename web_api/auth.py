"""
JWT authentication utilities for the web API.

Tokens are issued by the login flow; this module only verifies them and
enforces roles.

Security measures implemented:
- HS256 signing algorithm
- Token expiration (24 hours)
- Session cookie or Authorization: Bearer header
"""

import os
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import HTTPException, Request

JWT_SECRET = os.environ.get("JWT_SECRET")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = 24


def create_jwt(user_id: int, role: str) -> str:
    """
    Create a signed JWT token for an authenticated user.

    Args:
        user_id: Database user ID
        role: The user's role ("manager", "facilitator", "student")

    Returns:
        Signed JWT token string
    """
    if not JWT_SECRET:
        raise ValueError("JWT_SECRET environment variable not set")

    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=JWT_EXPIRATION_HOURS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_jwt(token: str) -> dict | None:
    """
    Verify and decode a JWT token.

    Returns:
        Decoded payload dict if valid, None if invalid
    """
    if not JWT_SECRET:
        raise ValueError("JWT_SECRET environment variable not set")

    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def _get_token(request: Request) -> str | None:
    token = request.cookies.get("session")
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:]
    return None


async def get_current_user(request: Request) -> dict:
    """
    FastAPI dependency to get the current authenticated user's token payload.

    Raises:
        HTTPException: 401 if not authenticated or invalid token
    """
    token = _get_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = verify_jwt(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return payload


async def require_manager(request: Request) -> dict:
    """
    FastAPI dependency that only lets active managers through.

    The role is re-checked against the database rather than trusted from
    the token, so a deactivated or demoted manager loses access immediately.

    Returns:
        The user's database record

    Raises:
        HTTPException: 401 if not authenticated, 403 if not an active manager
    """
    from core.database import get_connection
    from core.enums import UserRole
    from core.queries.users import get_user_by_id

    payload = await get_current_user(request)

    async with get_connection() as conn:
        user = await get_user_by_id(conn, int(payload["sub"]))

    if not user or not user["is_active"] or user["role"] != UserRole.manager:
        raise HTTPException(status_code=403, detail="Manager access required")

    return user

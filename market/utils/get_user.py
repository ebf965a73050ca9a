# market/utils/get_user.py
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from market.core.db import get_db
from market.core.errors import Forbidden, Unauthorized
from market.core.security import decode_token
from market.models.user_models import User


async def get_current_user(
    request: Request,
    token: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    # Support either header
    raw_token = token
    if not raw_token and authorization and authorization.startswith("Bearer "):
        raw_token = authorization.split("Bearer ", 1)[1]

    if not raw_token:
        raise Unauthorized("Access denied. No token provided or invalid format.")

    try:
        payload = decode_token(raw_token)
    except ValueError:
        raise Unauthorized("Invalid or expired token")

    user_id = payload.get("user_id")
    token_version = payload.get("token_version")
    if user_id is None or token_version is None or payload.get("type") != "access":
        raise Unauthorized("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()
    if not user:
        raise Unauthorized("User not found")
    if user.token_version != token_version:
        raise Unauthorized("Token invalidated. Please log in again.")
    if not user.is_active:
        raise Forbidden("User account is inactive.")

    request.state.user = user
    # plain copies survive a rollback that expires the ORM instance
    request.state.user_id = user.id
    request.state.username = user.username
    return user

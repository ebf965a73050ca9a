# market/services/auth_service.py
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES
from market.core.errors import Conflict, Unauthorized, Forbidden
from market.core.security import create_access_token, hash_password, verify_password
from market.models.user_models import User
from market.schemas.auth_schemas import RegisterRequest
from market.utils.activity_helpers import log_user_activity


async def register_user(db: AsyncSession, data: RegisterRequest) -> User:
    existing = await db.execute(
        select(User).where(or_(User.email == data.email, User.username == data.username))
    )
    user = existing.scalars().first()
    if user:
        if user.email == data.email:
            raise Conflict("User with this email already exists")
        raise Conflict("User with this username already exists")

    user = User(
        name=data.name,
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        role=data.role,
        phone=data.phone,
    )
    db.add(user)
    await db.flush()

    await log_user_activity(db, user_id=user.id, username=user.username, message=f"Registered as {user.role}")
    await db.commit()
    await db.refresh(user)
    return user


async def authenticate_user(db: AsyncSession, login: str, password: str) -> User:
    login = login.strip()
    result = await db.execute(
        select(User).where(or_(User.username == login, User.email == login.lower()))
    )
    user = result.scalars().first()
    if not user or not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid credentials")
    if not user.is_active:
        raise Forbidden("User account is inactive.")
    return user


async def create_tokens(db: AsyncSession, user: User) -> str:
    """
    Issue an access token carrying the user's token_version, so a logout
    (which bumps the version) invalidates every outstanding token.
    """
    expire_minutes = (
        ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES
        if user.role == "admin"
        else ACCESS_TOKEN_EXPIRE_MINUTES
    )

    access_token = create_access_token(
        {"sub": user.username, "user_id": user.id, "role": user.role},
        token_version=user.token_version,
        expires_delta=timedelta(minutes=expire_minutes),
    )

    user.last_login = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)
    return access_token


async def logout_user(db: AsyncSession, user: User) -> None:
    user.token_version += 1
    await log_user_activity(db, user_id=user.id, username=user.username, message="Logged out")
    await db.commit()

# market/routers/auth_router.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from market.core.db import get_db
from market.schemas.auth_schemas import LoginOut, RegisterRequest, UserLogin, UserOut
from market.schemas.response_schemas import ApiResponse, ok
from market.services.auth_service import authenticate_user, create_tokens, logout_user, register_user
from market.utils.activity_helpers import log_user_activity
from market.utils.get_user import get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=ApiResponse[UserOut], status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    user = await register_user(db, data)
    return ok(UserOut.model_validate(user), "User registered successfully", status.HTTP_201_CREATED)


@router.post("/login", response_model=ApiResponse[LoginOut])
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate with username or email and issue an access token."""
    user = await authenticate_user(db, data.login, data.password)
    access_token = await create_tokens(db, user)

    await log_user_activity(
        db,
        user_id=user.id,
        username=user.username,
        message=f"User '{user.username}' logged in.",
        commit=True,
    )
    return ok(
        LoginOut(access_token=access_token, user=UserOut.model_validate(user)),
        "Login successful",
    )


@router.get("/me", response_model=ApiResponse[UserOut])
async def me(current_user=Depends(get_current_user)):
    return ok(UserOut.model_validate(current_user), "Profile fetched successfully")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    """Invalidate every token issued to the current user."""
    await logout_user(db, current_user)
    return ok(None, "Logged out successfully")

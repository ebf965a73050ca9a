# market/schemas/auth_schemas.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None
    # admins are created from the CLI script, never through self-registration
    role: Literal["user", "reseller"] = "user"

    @field_validator("name", "username", "phone")
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    def lower_email(cls, value):
        return value.lower()


class UserLogin(BaseModel):
    # username or email
    login: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"


class UserOut(BaseModel):
    id: int
    name: str
    username: str
    email: str
    role: str
    phone: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginOut(TokenResponse):
    user: UserOut

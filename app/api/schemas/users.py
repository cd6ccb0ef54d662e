from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from app.domain.entities.user import Role, User


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
URL_PATTERN = r"^https?://\S+$"

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: T | None = None


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    avatar: str
    profile_picture: str | None
    auth_provider: str
    is_email_verified: bool
    is_active: bool
    is_blocked: bool
    last_login: datetime | None
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int
    page: int
    limit: int
    pages: int


class UpdateProfileRequest(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=50)
    email: str | None = Field(default=None, max_length=255, pattern=EMAIL_PATTERN)
    profile_picture: str | None = Field(default=None, max_length=2048, pattern=URL_PATTERN)


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


class TokenResponse(BaseModel):
    token: str
    expires_at: datetime
    user: UserResponse


class CreateInviteRequest(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    role_id: Role = "user"
    organization_id: str | None = Field(default=None, max_length=64)


class InviteResponse(BaseModel):
    token: str
    expires_at: datetime
    email: str
    role_id: Role
    organization_id: str | None
    inviter_id: str


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        avatar=user.avatar,
        profile_picture=user.profile_picture,
        auth_provider=user.auth_provider,
        is_email_verified=user.is_email_verified,
        is_active=user.is_active,
        is_blocked=user.is_blocked,
        last_login=user.last_login,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )

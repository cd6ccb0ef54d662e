from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from app.domain.entities.user import User


@dataclass(frozen=True)
class GoogleProfile:
    subject: str | None
    email: str | None
    email_verified: bool
    name: str | None
    picture: str | None


@dataclass(frozen=True)
class FederatedIdentityInput:
    provider_id: str | None
    email: str | None
    display_name: str | None
    picture_url: str | None
    email_verified: bool = True


@dataclass(frozen=True)
class GoogleCallbackInput:
    code: str


@dataclass(frozen=True)
class RefreshSessionInput:
    refresh_token: str


@dataclass(frozen=True)
class AuthTokensOutput:
    user: User
    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime


@dataclass(frozen=True)
class CreateInviteInput:
    inviter_id: str
    email: str
    role_id: str
    organization_id: str | None


@dataclass(frozen=True)
class InviteOutput:
    token: str
    expires_at: datetime
    email: str
    role_id: str
    organization_id: str | None
    inviter_id: str

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Union

from app.domain.entities.user import Role


TokenType = Literal["access", "refresh", "invite"]


@dataclass(frozen=True)
class AccessClaims:
    user_id: str
    email: str
    role: Role
    issued_at: int
    expires_at: int
    type: Literal["access"] = "access"


@dataclass(frozen=True)
class RefreshClaims:
    user_id: str
    issued_at: int
    expires_at: int
    type: Literal["refresh"] = "refresh"


@dataclass(frozen=True)
class InviteClaims:
    inviter_id: str
    organization_id: str | None
    email: str
    role_id: Role
    issued_at: int
    expires_at: int
    type: Literal["invite"] = "invite"


TokenClaims = Union[AccessClaims, RefreshClaims, InviteClaims]


@dataclass(frozen=True)
class InviteGrant:
    inviter_id: str
    email: str
    role_id: Role
    organization_id: str | None = None


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime

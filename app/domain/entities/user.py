from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, get_args
from urllib.parse import quote

from app.domain.exceptions import InvalidRoleError


Role = Literal["user", "admin", "manager", "doctor", "superAdmin"]
AuthProvider = Literal["google", "facebook", "local"]

ROLES: tuple[str, ...] = get_args(Role)
AUTH_PROVIDERS: tuple[str, ...] = get_args(AuthProvider)
DEFAULT_ROLE: Role = "user"

AVATAR_FALLBACK_URL = "https://ui-avatars.com/api/?name={name}&background=0D8ABC&color=fff"


def parse_role(value: object) -> Role:
    if not isinstance(value, str) or value not in ROLES:
        raise InvalidRoleError(f"Unknown role: {value!r}.")
    return value  # type: ignore[return-value]


def parse_auth_provider(value: object) -> AuthProvider:
    if not isinstance(value, str) or value not in AUTH_PROVIDERS:
        raise ValueError(f"Unknown auth provider: {value!r}.")
    return value  # type: ignore[return-value]


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    google_id: str | None
    profile_picture: str | None
    auth_provider: AuthProvider
    role: Role
    is_email_verified: bool
    is_active: bool
    is_blocked: bool
    is_deleted: bool
    last_login: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def avatar(self) -> str:
        if self.profile_picture:
            return self.profile_picture
        return AVATAR_FALLBACK_URL.format(name=quote(self.name, safe=""))

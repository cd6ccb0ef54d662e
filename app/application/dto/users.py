from __future__ import annotations

from dataclasses import dataclass

from app.domain.entities.user import User


@dataclass(frozen=True)
class UserMatch:
    """Rows whose email or google_id equals these values.

    A google_id match is preferred when two distinct rows qualify.
    """

    email: str
    google_id: str | None


@dataclass(frozen=True)
class UserListQuery:
    page: int
    limit: int
    search: str | None


@dataclass(frozen=True)
class UserPage:
    users: list[User]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


@dataclass(frozen=True)
class UpdateProfileInput:
    user_id: str
    name: str | None = None
    email: str | None = None
    profile_picture: str | None = None


@dataclass(frozen=True)
class UserActionInput:
    actor_id: str
    target_id: str

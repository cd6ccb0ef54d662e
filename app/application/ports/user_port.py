from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol

from app.application.dto.users import UserListQuery, UserMatch, UserPage
from app.domain.entities.user import User


class UserPort(Protocol):
    def get_user_by_id(self, *, user_id: str) -> User | None:
        ...

    def find_user_by_email_or_google_id(self, *, match: UserMatch) -> User | None:
        ...

    def upsert_user(
        self,
        *,
        match: UserMatch,
        insert_only: Mapping[str, Any],
        always_set: Mapping[str, Any],
        fill_missing: Mapping[str, Any],
    ) -> User:
        """Atomically update the matching row or insert a new one.

        `insert_only` applies only when inserting, `always_set` on both paths and
        `fill_missing` only to columns that are still null on the stored row.
        Raises UniqueConstraintError when the insert loses a uniqueness race.
        """
        ...

    def update_user_fields(self, *, user_id: str, fields: Mapping[str, Any], now: datetime) -> User | None:
        ...

    def update_last_login(self, *, user_id: str, last_login: datetime) -> User | None:
        ...

    def soft_delete_user(self, *, user_id: str, now: datetime) -> bool:
        ...

    def list_users(self, *, query: UserListQuery) -> UserPage:
        ...

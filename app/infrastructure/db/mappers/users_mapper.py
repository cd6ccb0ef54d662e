from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from app.domain.entities.user import User, parse_auth_provider, parse_role


def _as_str(value: Any) -> str:
    return str(value)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def map_row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_as_str(row["id"]),
        name=row["name"],
        email=row["email"],
        google_id=row.get("google_id"),
        profile_picture=row.get("profile_picture"),
        auth_provider=parse_auth_provider(row["auth_provider"]),
        role=parse_role(row["role"]),
        is_email_verified=bool(row["is_email_verified"]),
        is_active=bool(row["is_active"]),
        is_blocked=bool(row["is_blocked"]),
        is_deleted=bool(row["is_deleted"]),
        last_login=_as_utc(row.get("last_login")),
        created_at=_as_utc(row["created_at"]),
        updated_at=_as_utc(row["updated_at"]),
    )

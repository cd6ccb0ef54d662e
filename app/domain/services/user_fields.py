from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from app.domain.entities.user import parse_role
from app.domain.exceptions import InvalidUpdateError


SELF_SERVICE_FIELDS = frozenset({"name", "email", "profile_picture"})
ADMIN_FIELDS = SELF_SERVICE_FIELDS | frozenset({"role", "is_active", "is_blocked"})


def normalize_email(email: str) -> str:
    return email.strip().lower()


def allowed_update_fields(*, is_admin: bool) -> frozenset[str]:
    return ADMIN_FIELDS if is_admin else SELF_SERVICE_FIELDS


def sanitize_user_update(updates: Mapping[str, Any], *, is_admin: bool) -> dict[str, Any]:
    """Keep only the fields the caller may change, normalized for storage.

    Unset (None) values and fields outside the caller's allow-list are dropped
    silently. Raises InvalidUpdateError when nothing is left.
    """
    allowed = allowed_update_fields(is_admin=is_admin)
    sanitized: dict[str, Any] = {}
    for field in sorted(allowed):
        value = updates.get(field)
        if value is None:
            continue
        if field == "name":
            value = str(value).strip()
            if not value:
                continue
        elif field == "email":
            value = normalize_email(str(value))
            if not value:
                continue
        elif field == "role":
            value = parse_role(value)
        elif field in {"is_active", "is_blocked"}:
            value = bool(value)
        sanitized[field] = value

    if not sanitized:
        raise InvalidUpdateError("No valid fields to update.")
    return sanitized

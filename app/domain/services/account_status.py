from __future__ import annotations

from app.domain.entities.user import User
from app.domain.exceptions import AccountBlockedError, AccountDisabledError, AccountRemovedError


def ensure_account_usable(user: User) -> None:
    if not user.is_active:
        raise AccountDisabledError("Account is disabled.")
    if user.is_deleted:
        raise AccountRemovedError("User account has been removed.")
    if user.is_blocked:
        raise AccountBlockedError("Account is blocked.")

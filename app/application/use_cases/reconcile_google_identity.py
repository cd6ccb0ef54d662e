from __future__ import annotations

import logging
from uuid import uuid4

from app.application.dto.auth import FederatedIdentityInput
from app.application.dto.users import UserMatch
from app.application.ports.user_port import UserPort
from app.domain.entities.user import DEFAULT_ROLE, User
from app.domain.exceptions import (
    MissingEmailError,
    MissingIdentityError,
    UniqueConstraintError,
    UnverifiedEmailError,
)
from app.domain.services.user_fields import normalize_email

from .auth_common import utcnow


logger = logging.getLogger(__name__)

FALLBACK_DISPLAY_NAME = "Google User"


class ReconcileGoogleIdentityUseCase:
    """Find or create the local user for a Google identity.

    The lookup and the creation are a single storage upsert keyed on
    `google_id OR email`, so two callbacks racing for the same new identity end
    up on one row. If the insert still loses the race the row written by the
    winner is re-read and returned.
    """

    def __init__(self, *, user_port: UserPort):
        self._user_port = user_port

    def execute(self, command: FederatedIdentityInput) -> User:
        email = normalize_email(command.email or "")
        if not email:
            raise MissingEmailError("No email found in Google profile.")
        provider_id = (command.provider_id or "").strip()
        if not provider_id:
            raise MissingIdentityError("No Google ID found in profile.")
        # Rows are matched by email, so an unverified address must not reach the upsert.
        if not command.email_verified:
            raise UnverifiedEmailError("Google email address is not verified.")

        now = utcnow()
        match = UserMatch(email=email, google_id=provider_id)
        display_name = (command.display_name or "").strip() or FALLBACK_DISPLAY_NAME
        picture_url = command.picture_url or None

        try:
            user = self._user_port.upsert_user(
                match=match,
                insert_only={
                    "id": str(uuid4()),
                    "name": display_name,
                    "email": email,
                    "auth_provider": "google",
                    "role": DEFAULT_ROLE,
                    "is_email_verified": True,
                    "is_active": True,
                    "is_blocked": False,
                    "is_deleted": False,
                    "created_at": now,
                },
                always_set={
                    "last_login": now,
                    "updated_at": now,
                },
                fill_missing={
                    "google_id": provider_id,
                    "profile_picture": picture_url,
                },
            )
        except UniqueConstraintError:
            logger.info(
                "reconcile_google_identity: upsert_conflict_rereading email=%s google_id=%s",
                email,
                provider_id,
            )
            existing = self._user_port.find_user_by_email_or_google_id(match=match)
            if existing is None:
                raise
            user = self._user_port.update_last_login(user_id=existing.id, last_login=now) or existing

        logger.info(
            "reconcile_google_identity: reconciled user_id=%s google_id=%s",
            user.id,
            provider_id,
        )
        return user

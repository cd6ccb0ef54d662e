from __future__ import annotations

from datetime import datetime, timezone

from app.application.dto.auth import AuthTokensOutput
from app.application.ports.token_port import TokenPort
from app.domain.entities.user import User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def issue_tokens(*, user: User, token_port: TokenPort) -> AuthTokensOutput:
    now = utcnow()
    access = token_port.issue_access_token(user=user, now=now)
    refresh = token_port.issue_refresh_token(user=user, now=now)
    return AuthTokensOutput(
        user=user,
        access_token=access.token,
        access_expires_at=access.expires_at,
        refresh_token=refresh.token,
        refresh_expires_at=refresh.expires_at,
    )

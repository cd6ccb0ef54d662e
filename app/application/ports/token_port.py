from __future__ import annotations

from datetime import datetime
from typing import Protocol

from app.domain.entities.token import InviteGrant, IssuedToken, TokenClaims, TokenType
from app.domain.entities.user import User


class TokenPort(Protocol):
    def issue_access_token(self, *, user: User, now: datetime | None = None) -> IssuedToken:
        ...

    def issue_refresh_token(self, *, user: User, now: datetime | None = None) -> IssuedToken:
        ...

    def issue_invite_token(self, *, invite: InviteGrant, now: datetime | None = None) -> IssuedToken:
        ...

    def verify(self, *, token: str, expected_type: TokenType) -> TokenClaims:
        ...

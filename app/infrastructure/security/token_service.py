from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from app.application.ports.token_port import TokenPort
from app.domain.entities.token import (
    AccessClaims,
    InviteClaims,
    InviteGrant,
    IssuedToken,
    RefreshClaims,
    TokenClaims,
    TokenType,
)
from app.domain.entities.user import User, parse_role
from app.domain.exceptions import (
    ConfigError,
    InvalidRoleError,
    TokenExpiredError,
    TokenMalformedError,
    TokenTypeMismatchError,
)


TOKEN_AUDIENCE = "leelu-ai-api"
TOKEN_ISSUER = "leelu-ai-system"

_REQUIRED_CLAIMS = ["exp", "iat", "aud", "iss"]


class JwtTokenService(TokenPort):
    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        invite_secret: str | None = None,
        access_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=7),
        invite_ttl: timedelta = timedelta(days=3),
        algorithm: str = "HS256",
    ):
        if not access_secret:
            raise ConfigError("ACCESS_TOKEN_SECRET is required.")
        if not refresh_secret:
            raise ConfigError("REFRESH_TOKEN_SECRET is required.")
        self._secrets: dict[str, str] = {
            "access": access_secret,
            "refresh": refresh_secret,
            "invite": invite_secret or access_secret,
        }
        self._ttls: dict[str, timedelta] = {
            "access": access_ttl,
            "refresh": refresh_ttl,
            "invite": invite_ttl,
        }
        self._algorithm = algorithm

    def issue_access_token(self, *, user: User, now: datetime | None = None) -> IssuedToken:
        return self._encode(
            "access",
            {
                "id": user.id,
                "email": user.email,
                "role": user.role,
            },
            now=now,
        )

    def issue_refresh_token(self, *, user: User, now: datetime | None = None) -> IssuedToken:
        return self._encode("refresh", {"id": user.id}, now=now)

    def issue_invite_token(self, *, invite: InviteGrant, now: datetime | None = None) -> IssuedToken:
        return self._encode(
            "invite",
            {
                "inviterId": invite.inviter_id,
                "organizationId": invite.organization_id,
                "email": invite.email,
                "roleId": invite.role_id,
            },
            now=now,
        )

    def verify(self, *, token: str, expected_type: TokenType) -> TokenClaims:
        # The signing key follows the token's own claimed type, so a genuine
        # refresh or invite token is fully verified before the type check rejects it.
        try:
            unverified = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise TokenMalformedError("Invalid token format.") from exc

        claimed_type = unverified.get("type")
        if not isinstance(claimed_type, str) or claimed_type not in self._secrets:
            raise TokenMalformedError("Invalid token type.")

        try:
            payload = jwt.decode(
                token,
                self._secrets[claimed_type],
                algorithms=[self._algorithm],
                audience=TOKEN_AUDIENCE,
                issuer=TOKEN_ISSUER,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired.") from exc
        except jwt.PyJWTError as exc:
            raise TokenMalformedError("Invalid token.") from exc

        if claimed_type != expected_type:
            raise TokenTypeMismatchError(
                f"Expected a {expected_type} token but got a {claimed_type} token."
            )
        return _parse_claims(claimed_type, payload)

    def _encode(self, token_type: str, claims: dict[str, Any], *, now: datetime | None) -> IssuedToken:
        issued_at = now or utcnow()
        expires_at = issued_at + self._ttls[token_type]
        payload = {
            **claims,
            "type": token_type,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "aud": TOKEN_AUDIENCE,
            "iss": TOKEN_ISSUER,
        }
        token = jwt.encode(payload, self._secrets[token_type], algorithm=self._algorithm)
        return IssuedToken(token=token, expires_at=expires_at)


def _required_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not value or not isinstance(value, str):
        raise TokenMalformedError(f"Invalid token claim: {key}.")
    return value


def _parse_claims(token_type: str, payload: dict[str, Any]) -> TokenClaims:
    issued_at = int(payload["iat"])
    expires_at = int(payload["exp"])
    try:
        if token_type == "access":
            return AccessClaims(
                user_id=_required_str(payload, "id"),
                email=_required_str(payload, "email"),
                role=parse_role(payload.get("role")),
                issued_at=issued_at,
                expires_at=expires_at,
            )
        if token_type == "refresh":
            return RefreshClaims(
                user_id=_required_str(payload, "id"),
                issued_at=issued_at,
                expires_at=expires_at,
            )
        organization_id = payload.get("organizationId")
        return InviteClaims(
            inviter_id=_required_str(payload, "inviterId"),
            organization_id=str(organization_id) if organization_id is not None else None,
            email=_required_str(payload, "email"),
            role_id=parse_role(payload.get("roleId")),
            issued_at=issued_at,
            expires_at=expires_at,
        )
    except InvalidRoleError as exc:
        raise TokenMalformedError("Invalid token claim: role.") from exc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

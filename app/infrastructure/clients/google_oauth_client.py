from __future__ import annotations

import logging

import httpx
from google.auth.transport import requests
from google.oauth2 import id_token

from app.application.dto.auth import GoogleProfile
from app.application.ports.google_oauth_port import GoogleOauthPort
from app.domain.exceptions import GoogleOauthError


logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPES = "openid email profile"


class GoogleOauthClient(GoogleOauthPort):
    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout_seconds: float = 10.0,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._timeout_seconds = timeout_seconds

    def build_authorization_url(self, *, state: str) -> str:
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        }
        return str(httpx.URL(GOOGLE_AUTH_URL, params=params))

    def exchange_code(self, *, code: str) -> GoogleProfile:
        try:
            with httpx.Client(timeout=self._timeout_seconds) as client:
                response = client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "redirect_uri": self._redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
        except httpx.HTTPError as exc:
            raise GoogleOauthError("Google token endpoint is unreachable.") from exc

        if response.status_code != 200:
            logger.warning(
                "google_oauth_client: code_exchange_failed status=%s body=%s",
                response.status_code,
                response.text[:200],
            )
            raise GoogleOauthError("Google rejected the authorization code.")

        raw_id_token = response.json().get("id_token")
        if not raw_id_token:
            raise GoogleOauthError("Google token response has no id_token.")

        try:
            payload = id_token_verify(token=raw_id_token, audience=self._client_id)
        except Exception as exc:  # pragma: no cover - depends on external validation errors
            raise GoogleOauthError("Invalid Google id_token.") from exc

        return map_id_token_payload(payload)


def map_id_token_payload(payload: dict) -> GoogleProfile:
    email_verified_raw = payload.get("email_verified", False)
    email_verified = bool(email_verified_raw)
    if isinstance(email_verified_raw, str):
        email_verified = email_verified_raw.lower() == "true"

    name = payload.get("name") if isinstance(payload.get("name"), str) else None
    if not name:
        given = payload.get("given_name") or ""
        family = payload.get("family_name") or ""
        name = f"{given} {family}".strip() or None

    subject = payload.get("sub")
    email = payload.get("email")
    picture = payload.get("picture")
    return GoogleProfile(
        subject=str(subject) if subject else None,
        email=str(email) if email else None,
        email_verified=email_verified,
        name=name,
        picture=str(picture) if picture else None,
    )


def id_token_verify(*, token: str, audience: str) -> dict:
    request = requests.Request()
    return id_token.verify_oauth2_token(token, request, audience)

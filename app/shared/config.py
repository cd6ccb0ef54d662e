from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

from app.domain.services.token_lifetime import parse_token_lifetime


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _csv(name: str) -> list[str]:
    value = _env(name)
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str
    access_token_secret: str
    access_token_life: timedelta
    refresh_token_secret: str
    refresh_token_life: timedelta
    invite_token_secret: str
    invite_token_life: timedelta
    jwt_algorithm: str
    google_client_id: str
    google_client_secret: str
    google_callback_url: str
    google_http_timeout_seconds: float
    backend_url: str
    frontend_url: str
    cors_origins: list[str]
    cookie_secure: bool
    log_level: str


def get_settings() -> Settings:
    backend_url = _env("BACKEND_URL", "http://localhost:3001").rstrip("/")
    frontend_url = _env("FRONTEND_URL", "http://localhost:5173").rstrip("/")
    return Settings(
        database_url=_env("DATABASE_URL", ""),
        access_token_secret=_env("ACCESS_TOKEN_SECRET", ""),
        access_token_life=parse_token_lifetime(_env("ACCESS_TOKEN_LIFE", "1h")),
        refresh_token_secret=_env("REFRESH_TOKEN_SECRET", ""),
        refresh_token_life=parse_token_lifetime(_env("REFRESH_TOKEN_LIFE", "7d")),
        invite_token_secret=_env("INVITE_TOKEN_SECRET", ""),
        invite_token_life=parse_token_lifetime(_env("INVITE_TOKEN_LIFE", "3d")),
        jwt_algorithm=_env("JWT_ALGORITHM", "HS256"),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET", ""),
        google_callback_url=_env(
            "GOOGLE_CALLBACK_URL",
            f"{backend_url}/api/v1/user/google/callback",
        ),
        google_http_timeout_seconds=float(_env("GOOGLE_HTTP_TIMEOUT_SECONDS", "10")),
        backend_url=backend_url,
        frontend_url=frontend_url,
        cors_origins=_csv("FRONTEND_URL_CORS") or [frontend_url],
        cookie_secure=_bool("COOKIE_SECURE", False),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
    )

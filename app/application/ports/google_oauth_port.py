from __future__ import annotations

from typing import Protocol

from app.application.dto.auth import GoogleProfile


class GoogleOauthPort(Protocol):
    def build_authorization_url(self, *, state: str) -> str:
        ...

    def exchange_code(self, *, code: str) -> GoogleProfile:
        ...

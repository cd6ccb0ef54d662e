from __future__ import annotations

from app.application.dto.auth import AuthTokensOutput, RefreshSessionInput
from app.application.ports.token_port import TokenPort
from app.application.ports.user_port import UserPort
from app.domain.exceptions import TokenMalformedError, UserNotFoundError
from app.domain.services.account_status import ensure_account_usable

from .auth_common import issue_tokens


class RefreshSessionUseCase:
    def __init__(self, *, user_port: UserPort, token_port: TokenPort):
        self._user_port = user_port
        self._token_port = token_port

    def execute(self, command: RefreshSessionInput) -> AuthTokensOutput:
        token = command.refresh_token.strip()
        if not token:
            raise TokenMalformedError("Missing refresh token.")

        claims = self._token_port.verify(token=token, expected_type="refresh")
        user = self._user_port.get_user_by_id(user_id=claims.user_id)
        if user is None:
            raise UserNotFoundError("User not found for refresh token.")
        ensure_account_usable(user)

        return issue_tokens(user=user, token_port=self._token_port)

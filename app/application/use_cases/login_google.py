from __future__ import annotations

from app.application.dto.auth import AuthTokensOutput, FederatedIdentityInput, GoogleCallbackInput
from app.application.ports.google_oauth_port import GoogleOauthPort
from app.application.ports.token_port import TokenPort
from app.domain.services.account_status import ensure_account_usable

from .auth_common import issue_tokens
from .reconcile_google_identity import ReconcileGoogleIdentityUseCase


class LoginGoogleUseCase:
    def __init__(
        self,
        *,
        google_oauth_port: GoogleOauthPort,
        reconcile_identity_use_case: ReconcileGoogleIdentityUseCase,
        token_port: TokenPort,
    ):
        self._google_oauth_port = google_oauth_port
        self._reconcile_identity_use_case = reconcile_identity_use_case
        self._token_port = token_port

    def execute(self, command: GoogleCallbackInput) -> AuthTokensOutput:
        # Code exchange happens before any storage call.
        profile = self._google_oauth_port.exchange_code(code=command.code)
        user = self._reconcile_identity_use_case.execute(
            FederatedIdentityInput(
                provider_id=profile.subject,
                email=profile.email,
                display_name=profile.name,
                picture_url=profile.picture,
                email_verified=profile.email_verified,
            )
        )
        ensure_account_usable(user)
        return issue_tokens(user=user, token_port=self._token_port)

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache

from fastapi import Depends, Request

from app.api.errors import ApiError
from app.application.ports.google_oauth_port import GoogleOauthPort
from app.application.ports.token_port import TokenPort
from app.application.ports.user_port import UserPort
from app.application.use_cases.get_me import GetMeUseCase
from app.application.use_cases.invites import CreateInviteUseCase, VerifyInviteUseCase
from app.application.use_cases.list_users import ListUsersUseCase
from app.application.use_cases.login_google import LoginGoogleUseCase
from app.application.use_cases.manage_user import (
    BlockUserUseCase,
    DeleteUserUseCase,
    PromoteToAdminUseCase,
    RemoveAdminUseCase,
    UnblockUserUseCase,
)
from app.application.use_cases.reconcile_google_identity import ReconcileGoogleIdentityUseCase
from app.application.use_cases.refresh_session import RefreshSessionUseCase
from app.application.use_cases.update_profile import UpdateProfileUseCase
from app.domain.entities.user import User
from app.domain.exceptions import (
    AccountBlockedError,
    AccountDisabledError,
    AccountRemovedError,
    ConfigError,
    TokenError,
    TokenExpiredError,
)
from app.domain.services.account_status import ensure_account_usable
from app.domain.services.roles import has_capabilities
from app.infrastructure.clients.google_oauth_client import GoogleOauthClient
from app.infrastructure.db.engine import get_engine
from app.infrastructure.db.repositories.users_repository import SqlUsersRepository
from app.infrastructure.security.token_service import JwtTokenService
from app.shared.config import get_settings


logger = logging.getLogger(__name__)

ACCESS_COOKIE_NAME = "token"
REFRESH_COOKIE_NAME = "refresh_token"


def _get_db_engine():
    settings = get_settings()
    if not settings.database_url:
        raise ConfigError("DATABASE_URL is required.")
    return get_engine(settings.database_url)


@lru_cache(maxsize=1)
def _build_token_service() -> JwtTokenService:
    settings = get_settings()
    return JwtTokenService(
        access_secret=settings.access_token_secret,
        refresh_secret=settings.refresh_token_secret,
        invite_secret=settings.invite_token_secret or None,
        access_ttl=settings.access_token_life,
        refresh_ttl=settings.refresh_token_life,
        invite_ttl=settings.invite_token_life,
        algorithm=settings.jwt_algorithm,
    )


@lru_cache(maxsize=1)
def _build_google_oauth_client() -> GoogleOauthClient:
    settings = get_settings()
    if not settings.google_client_id or not settings.google_client_secret:
        raise ConfigError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required.")
    return GoogleOauthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_callback_url,
        timeout_seconds=settings.google_http_timeout_seconds,
    )


def get_user_repository() -> UserPort:
    return SqlUsersRepository(_get_db_engine())


def get_token_service() -> TokenPort:
    return _build_token_service()


def get_google_oauth_client() -> GoogleOauthPort:
    return _build_google_oauth_client()


def build_login_google_use_case() -> LoginGoogleUseCase:
    return LoginGoogleUseCase(
        google_oauth_port=get_google_oauth_client(),
        reconcile_identity_use_case=ReconcileGoogleIdentityUseCase(user_port=get_user_repository()),
        token_port=get_token_service(),
    )


def get_login_google_use_case_factory() -> Callable[[], LoginGoogleUseCase]:
    """The OAuth callback builds its use case itself so configuration errors end in a redirect."""
    return build_login_google_use_case


def get_refresh_session_use_case(
    user_port: UserPort = Depends(get_user_repository),
    token_port: TokenPort = Depends(get_token_service),
) -> RefreshSessionUseCase:
    return RefreshSessionUseCase(user_port=user_port, token_port=token_port)


def get_get_me_use_case(user_port: UserPort = Depends(get_user_repository)) -> GetMeUseCase:
    return GetMeUseCase(user_port=user_port)


def get_update_profile_use_case(user_port: UserPort = Depends(get_user_repository)) -> UpdateProfileUseCase:
    return UpdateProfileUseCase(user_port=user_port)


def get_list_users_use_case(user_port: UserPort = Depends(get_user_repository)) -> ListUsersUseCase:
    return ListUsersUseCase(user_port=user_port)


def get_block_user_use_case(user_port: UserPort = Depends(get_user_repository)) -> BlockUserUseCase:
    return BlockUserUseCase(user_port=user_port)


def get_unblock_user_use_case(user_port: UserPort = Depends(get_user_repository)) -> UnblockUserUseCase:
    return UnblockUserUseCase(user_port=user_port)


def get_promote_to_admin_use_case(
    user_port: UserPort = Depends(get_user_repository),
) -> PromoteToAdminUseCase:
    return PromoteToAdminUseCase(user_port=user_port)


def get_remove_admin_use_case(user_port: UserPort = Depends(get_user_repository)) -> RemoveAdminUseCase:
    return RemoveAdminUseCase(user_port=user_port)


def get_delete_user_use_case(user_port: UserPort = Depends(get_user_repository)) -> DeleteUserUseCase:
    return DeleteUserUseCase(user_port=user_port)


def get_create_invite_use_case(token_port: TokenPort = Depends(get_token_service)) -> CreateInviteUseCase:
    return CreateInviteUseCase(token_port=token_port)


def get_verify_invite_use_case(token_port: TokenPort = Depends(get_token_service)) -> VerifyInviteUseCase:
    return VerifyInviteUseCase(token_port=token_port)


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials


def extract_token(request: Request) -> str | None:
    """Cookie first, then the Authorization bearer, then x-access-token."""
    candidates = (
        request.cookies.get(ACCESS_COOKIE_NAME),
        bearer_token(request.headers.get("authorization")),
        request.headers.get("x-access-token"),
    )
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def authenticate_token(*, token: str | None, token_port: TokenPort, user_port: UserPort) -> User:
    if not token:
        raise ApiError(401, "Unauthorized: no token")

    try:
        claims = token_port.verify(token=token, expected_type="access")
    except TokenExpiredError as exc:
        raise ApiError(401, "Unauthorized: token expired") from exc
    except TokenError as exc:
        logger.info("auth: token_rejected reason=%s", exc)
        raise ApiError(401, "Unauthorized: invalid token") from exc

    user = user_port.get_user_by_id(user_id=claims.user_id)
    if user is None:
        raise ApiError(401, "Unauthorized: user not found")

    try:
        ensure_account_usable(user)
    except AccountDisabledError as exc:
        raise ApiError(403, "Forbidden: account disabled") from exc
    except AccountRemovedError as exc:
        raise ApiError(401, "Unauthorized: account removed") from exc
    except AccountBlockedError as exc:
        raise ApiError(403, "Forbidden: account blocked") from exc
    return user


def get_current_user(
    request: Request,
    token_port: TokenPort = Depends(get_token_service),
    user_port: UserPort = Depends(get_user_repository),
) -> User:
    return authenticate_token(token=extract_token(request), token_port=token_port, user_port=user_port)


def require_permissions(*capabilities: str):
    required = frozenset(capabilities)

    def _dependency(user: User = Depends(get_current_user)) -> User:
        if not has_capabilities(user.role, required):
            logger.info(
                "auth: permission_denied user_id=%s role=%s required=%s",
                user.id,
                user.role,
                ",".join(sorted(required)),
            )
            raise ApiError(403, "Forbidden: insufficient permissions")
        return user

    return _dependency

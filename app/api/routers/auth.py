from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timezone
from urllib.parse import urlencode

from fastapi import APIRouter, Cookie, Depends, Header, Response
from fastapi.responses import RedirectResponse

from app.api.deps import (
    ACCESS_COOKIE_NAME,
    REFRESH_COOKIE_NAME,
    authenticate_token,
    bearer_token,
    get_current_user,
    get_get_me_use_case,
    get_google_oauth_client,
    get_login_google_use_case_factory,
    get_refresh_session_use_case,
    get_token_service,
    get_update_profile_use_case,
    get_user_repository,
    get_verify_invite_use_case,
)
from app.api.errors import ApiError
from app.api.schemas.users import (
    ApiResponse,
    InviteResponse,
    RefreshRequest,
    TokenResponse,
    UpdateProfileRequest,
    UserResponse,
    to_user_response,
)
from app.application.dto.auth import GoogleCallbackInput, RefreshSessionInput
from app.application.dto.users import UpdateProfileInput
from app.application.ports.google_oauth_port import GoogleOauthPort
from app.application.ports.token_port import TokenPort
from app.application.ports.user_port import UserPort
from app.application.use_cases.get_me import GetMeUseCase
from app.application.use_cases.invites import VerifyInviteUseCase
from app.application.use_cases.login_google import LoginGoogleUseCase
from app.application.use_cases.refresh_session import RefreshSessionUseCase
from app.application.use_cases.update_profile import UpdateProfileUseCase
from app.domain.entities.user import User
from app.domain.exceptions import (
    AccountBlockedError,
    AccountDisabledError,
    AccountRemovedError,
    EmailAlreadyExistsError,
    GoogleOauthError,
    IdentityMissingFieldError,
    InvalidUpdateError,
    TokenError,
    TokenExpiredError,
    UserNotFoundError,
)
from app.shared.config import get_settings


logger = logging.getLogger(__name__)

router = APIRouter()

OAUTH_STATE_COOKIE_NAME = "oauth_state"
OAUTH_STATE_MAX_AGE_SECONDS = 600
USER_PATH = "/api/v1/user"


def _max_age_seconds(expires_at: datetime) -> int:
    now = datetime.now(timezone.utc)
    return max(int((expires_at - now).total_seconds()), 0)


def _set_cookie(response: Response, *, key: str, value: str, max_age: int, path: str = "/") -> None:
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        samesite="lax",
        secure=get_settings().cookie_secure,
        max_age=max_age,
        path=path,
    )


def _auth_error_redirect(error_code: str) -> RedirectResponse:
    query = urlencode({"error": error_code})
    response = RedirectResponse(f"{get_settings().frontend_url}/auth?{query}", status_code=302)
    response.delete_cookie(key=OAUTH_STATE_COOKIE_NAME, path=f"{USER_PATH}/google")
    return response


@router.get("/api/v1/user/google")
def google_login(oauth_client: GoogleOauthPort = Depends(get_google_oauth_client)):
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(oauth_client.build_authorization_url(state=state), status_code=302)
    _set_cookie(
        response,
        key=OAUTH_STATE_COOKIE_NAME,
        value=state,
        max_age=OAUTH_STATE_MAX_AGE_SECONDS,
        path=f"{USER_PATH}/google",
    )
    return response


@router.get("/api/v1/user/google/callback")
def google_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    state_cookie: str | None = Cookie(default=None, alias=OAUTH_STATE_COOKIE_NAME),
    use_case_factory: Callable[[], LoginGoogleUseCase] = Depends(get_login_google_use_case_factory),
):
    if error or not code:
        logger.info("auth_router: google_callback_denied error=%s", error)
        return _auth_error_redirect("auth_failed")
    if not state or not state_cookie or not secrets.compare_digest(state, state_cookie):
        logger.warning("auth_router: google_callback_state_mismatch")
        return _auth_error_redirect("auth_failed")

    try:
        output = use_case_factory().execute(GoogleCallbackInput(code=code))
    except IdentityMissingFieldError as exc:
        return _auth_error_redirect(exc.error_code)
    except GoogleOauthError as exc:
        logger.warning("auth_router: google_oauth_failed error=%s", exc)
        return _auth_error_redirect("auth_failed")
    except (AccountDisabledError, AccountRemovedError, AccountBlockedError):
        return _auth_error_redirect("account_disabled")
    except Exception:  # noqa: BLE001
        logger.exception("auth_router: google_callback_failed")
        return _auth_error_redirect("server_error")

    query = urlencode({"token": output.access_token})
    response = RedirectResponse(f"{get_settings().frontend_url}/auth/callback?{query}", status_code=302)
    response.delete_cookie(key=OAUTH_STATE_COOKIE_NAME, path=f"{USER_PATH}/google")
    _set_cookie(
        response,
        key=ACCESS_COOKIE_NAME,
        value=output.access_token,
        max_age=_max_age_seconds(output.access_expires_at),
    )
    _set_cookie(
        response,
        key=REFRESH_COOKIE_NAME,
        value=output.refresh_token,
        max_age=_max_age_seconds(output.refresh_expires_at),
        path=USER_PATH,
    )
    return response


@router.get("/api/v1/user/verify", response_model=ApiResponse[UserResponse])
def verify_token(
    authorization: str | None = Header(default=None),
    token_port: TokenPort = Depends(get_token_service),
    user_port: UserPort = Depends(get_user_repository),
):
    user = authenticate_token(
        token=bearer_token(authorization),
        token_port=token_port,
        user_port=user_port,
    )
    return ApiResponse(message="Token is valid.", data=to_user_response(user))


@router.get("/api/v1/user/profile", response_model=ApiResponse[UserResponse])
def get_profile(
    current_user: User = Depends(get_current_user),
    use_case: GetMeUseCase = Depends(get_get_me_use_case),
):
    try:
        user = use_case.execute(user=current_user)
    except UserNotFoundError as exc:
        raise ApiError(404, str(exc)) from exc
    return ApiResponse(message="Profile retrieved successfully.", data=to_user_response(user))


@router.put("/api/v1/user/profile", response_model=ApiResponse[UserResponse])
def update_profile(
    req: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    use_case: UpdateProfileUseCase = Depends(get_update_profile_use_case),
):
    try:
        user = use_case.execute(
            UpdateProfileInput(
                user_id=current_user.id,
                name=req.name,
                email=req.email,
                profile_picture=req.profile_picture,
            )
        )
    except InvalidUpdateError as exc:
        raise ApiError(400, str(exc)) from exc
    except EmailAlreadyExistsError as exc:
        raise ApiError(409, str(exc)) from exc
    except UserNotFoundError as exc:
        raise ApiError(404, str(exc)) from exc
    return ApiResponse(message="Profile updated successfully.", data=to_user_response(user))


@router.post("/api/v1/user/refresh", response_model=ApiResponse[TokenResponse])
def refresh_session(
    response: Response,
    req: RefreshRequest | None = None,
    refresh_token_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
    use_case: RefreshSessionUseCase = Depends(get_refresh_session_use_case),
):
    refresh_token = refresh_token_cookie or (req.refresh_token if req else None)
    if not refresh_token:
        raise ApiError(401, "Unauthorized: no refresh token")

    try:
        output = use_case.execute(RefreshSessionInput(refresh_token=refresh_token))
    except TokenExpiredError as exc:
        raise ApiError(401, "Unauthorized: refresh token expired") from exc
    except (TokenError, UserNotFoundError) as exc:
        raise ApiError(401, "Unauthorized: invalid refresh token") from exc
    except AccountRemovedError as exc:
        raise ApiError(401, "Unauthorized: account removed") from exc
    except AccountDisabledError as exc:
        raise ApiError(403, "Forbidden: account disabled") from exc
    except AccountBlockedError as exc:
        raise ApiError(403, "Forbidden: account blocked") from exc

    _set_cookie(
        response,
        key=ACCESS_COOKIE_NAME,
        value=output.access_token,
        max_age=_max_age_seconds(output.access_expires_at),
    )
    _set_cookie(
        response,
        key=REFRESH_COOKIE_NAME,
        value=output.refresh_token,
        max_age=_max_age_seconds(output.refresh_expires_at),
        path=USER_PATH,
    )
    return ApiResponse(
        message="Token refreshed successfully.",
        data=TokenResponse(
            token=output.access_token,
            expires_at=output.access_expires_at,
            user=to_user_response(output.user),
        ),
    )


@router.post("/api/v1/user/logout", response_model=ApiResponse[None])
def logout(response: Response):
    response.delete_cookie(key=ACCESS_COOKIE_NAME, path="/")
    response.delete_cookie(key=REFRESH_COOKIE_NAME, path=USER_PATH)
    return ApiResponse(message="Logged out successfully.")


@router.get("/api/v1/user/invites/{token}", response_model=ApiResponse[InviteResponse])
def verify_invite(
    token: str,
    use_case: VerifyInviteUseCase = Depends(get_verify_invite_use_case),
):
    try:
        claims = use_case.execute(token=token)
    except TokenExpiredError as exc:
        raise ApiError(410, "Invite has expired.") from exc
    except TokenError as exc:
        raise ApiError(400, "Invalid invite.") from exc
    return ApiResponse(
        message="Invite is valid.",
        data=InviteResponse(
            token=token,
            expires_at=datetime.fromtimestamp(claims.expires_at, tz=timezone.utc),
            email=claims.email,
            role_id=claims.role_id,
            organization_id=claims.organization_id,
            inviter_id=claims.inviter_id,
        ),
    )

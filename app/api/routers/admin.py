from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.deps import (
    get_block_user_use_case,
    get_create_invite_use_case,
    get_delete_user_use_case,
    get_list_users_use_case,
    get_promote_to_admin_use_case,
    get_remove_admin_use_case,
    get_unblock_user_use_case,
    require_permissions,
)
from app.api.errors import ApiError
from app.api.schemas.users import (
    ApiResponse,
    CreateInviteRequest,
    InviteResponse,
    UserListResponse,
    UserResponse,
    to_user_response,
)
from app.application.dto.auth import CreateInviteInput
from app.application.dto.users import UserActionInput, UserListQuery
from app.application.use_cases.invites import CreateInviteUseCase
from app.application.use_cases.list_users import MAX_PAGE_SIZE, ListUsersUseCase
from app.application.use_cases.manage_user import (
    BlockUserUseCase,
    DeleteUserUseCase,
    PromoteToAdminUseCase,
    RemoveAdminUseCase,
    UnblockUserUseCase,
)
from app.domain.entities.user import User
from app.domain.exceptions import (
    InvalidRoleError,
    InvalidUpdateError,
    SelfActionError,
    UserNotFoundError,
)
from app.domain.services.roles import (
    BLOCK_USER,
    DELETE_USER,
    INVITE_USER,
    PROMOTE_TO_ADMIN,
    REMOVE_ADMIN,
    UNBLOCK_USER,
    VIEW_ALL_USERS,
)


router = APIRouter()


def _run_user_action(use_case, *, actor: User, target_id: str):
    try:
        return use_case.execute(UserActionInput(actor_id=actor.id, target_id=target_id))
    except SelfActionError as exc:
        raise ApiError(400, str(exc)) from exc
    except UserNotFoundError as exc:
        raise ApiError(404, str(exc)) from exc


@router.get("/api/v1/admin/users", response_model=ApiResponse[UserListResponse])
def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
    search: str | None = Query(default=None, max_length=100),
    _actor: User = Depends(require_permissions(VIEW_ALL_USERS)),
    use_case: ListUsersUseCase = Depends(get_list_users_use_case),
):
    result = use_case.execute(UserListQuery(page=page, limit=limit, search=search))
    return ApiResponse(
        message="Users retrieved successfully.",
        data=UserListResponse(
            users=[to_user_response(user) for user in result.users],
            total=result.total,
            page=result.page,
            limit=result.limit,
            pages=result.pages,
        ),
    )


@router.patch("/api/v1/admin/users/{user_id}/block", response_model=ApiResponse[UserResponse])
def block_user(
    user_id: str,
    actor: User = Depends(require_permissions(VIEW_ALL_USERS, BLOCK_USER)),
    use_case: BlockUserUseCase = Depends(get_block_user_use_case),
):
    user = _run_user_action(use_case, actor=actor, target_id=user_id)
    return ApiResponse(message="User blocked successfully.", data=to_user_response(user))


@router.patch("/api/v1/admin/users/{user_id}/unblock", response_model=ApiResponse[UserResponse])
def unblock_user(
    user_id: str,
    actor: User = Depends(require_permissions(VIEW_ALL_USERS, UNBLOCK_USER)),
    use_case: UnblockUserUseCase = Depends(get_unblock_user_use_case),
):
    user = _run_user_action(use_case, actor=actor, target_id=user_id)
    return ApiResponse(message="User unblocked successfully.", data=to_user_response(user))


@router.patch("/api/v1/admin/users/{user_id}/promote", response_model=ApiResponse[UserResponse])
def promote_user(
    user_id: str,
    actor: User = Depends(require_permissions(VIEW_ALL_USERS, PROMOTE_TO_ADMIN)),
    use_case: PromoteToAdminUseCase = Depends(get_promote_to_admin_use_case),
):
    user = _run_user_action(use_case, actor=actor, target_id=user_id)
    return ApiResponse(message="User promoted to admin successfully.", data=to_user_response(user))


@router.patch("/api/v1/admin/users/{user_id}/demote", response_model=ApiResponse[UserResponse])
def demote_user(
    user_id: str,
    actor: User = Depends(require_permissions(VIEW_ALL_USERS, REMOVE_ADMIN)),
    use_case: RemoveAdminUseCase = Depends(get_remove_admin_use_case),
):
    user = _run_user_action(use_case, actor=actor, target_id=user_id)
    return ApiResponse(message="Admin privileges removed successfully.", data=to_user_response(user))


@router.delete("/api/v1/admin/users/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: str,
    actor: User = Depends(require_permissions(VIEW_ALL_USERS, DELETE_USER)),
    use_case: DeleteUserUseCase = Depends(get_delete_user_use_case),
):
    _run_user_action(use_case, actor=actor, target_id=user_id)
    return ApiResponse(message="User deleted successfully.")


@router.post("/api/v1/admin/invites", response_model=ApiResponse[InviteResponse], status_code=201)
def create_invite(
    req: CreateInviteRequest,
    actor: User = Depends(require_permissions(INVITE_USER)),
    use_case: CreateInviteUseCase = Depends(get_create_invite_use_case),
):
    try:
        output = use_case.execute(
            CreateInviteInput(
                inviter_id=actor.id,
                email=req.email,
                role_id=req.role_id,
                organization_id=req.organization_id,
            )
        )
    except (InvalidUpdateError, InvalidRoleError) as exc:
        raise ApiError(400, str(exc)) from exc
    return ApiResponse(
        message="Invite created successfully.",
        data=InviteResponse(
            token=output.token,
            expires_at=output.expires_at,
            email=output.email,
            role_id=output.role_id,
            organization_id=output.organization_id,
            inviter_id=output.inviter_id,
        ),
    )

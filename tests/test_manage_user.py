from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from app.application.dto.users import UpdateProfileInput, UserActionInput, UserListQuery, UserPage
from app.application.use_cases.list_users import ListUsersUseCase
from app.application.use_cases.manage_user import (
    BlockUserUseCase,
    DeleteUserUseCase,
    PromoteToAdminUseCase,
    RemoveAdminUseCase,
    UnblockUserUseCase,
)
from app.application.use_cases.update_profile import UpdateProfileUseCase
from app.domain.entities.user import User
from app.domain.exceptions import (
    EmailAlreadyExistsError,
    SelfActionError,
    UniqueConstraintError,
    UserNotFoundError,
)


def _user(user_id: str, **overrides) -> User:
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    values = dict(
        id=user_id,
        name=f"User {user_id}",
        email=f"{user_id}@example.com",
        google_id=None,
        profile_picture=None,
        auth_provider="google",
        role="user",
        is_email_verified=True,
        is_active=True,
        is_blocked=False,
        is_deleted=False,
        last_login=None,
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return User(**values)


class FakeUserPort:
    def __init__(self, *users: User):
        self.users = {user.id: user for user in users}
        self.update_calls: list[dict] = []
        self.last_list_query: UserListQuery | None = None
        self.taken_emails: set[str] = set()

    def update_user_fields(self, *, user_id, fields, now):
        self.update_calls.append(dict(fields))
        if fields.get("email") in self.taken_emails:
            raise UniqueConstraintError("duplicate email")
        user = self.users.get(user_id)
        if user is None or user.is_deleted:
            return None
        user = replace(user, **fields, updated_at=now)
        self.users[user_id] = user
        return user

    def soft_delete_user(self, *, user_id, now):
        user = self.users.get(user_id)
        if user is None or user.is_deleted:
            return False
        self.users[user_id] = replace(user, is_deleted=True, updated_at=now)
        return True

    def list_users(self, *, query):
        self.last_list_query = query
        return UserPage(users=[], total=0, page=query.page, limit=query.limit)


def test_block_self_is_rejected_without_touching_storage():
    port = FakeUserPort(_user("admin-1", role="admin"))

    with pytest.raises(SelfActionError):
        BlockUserUseCase(user_port=port).execute(UserActionInput(actor_id="admin-1", target_id="admin-1"))

    assert port.update_calls == []


def test_delete_self_is_rejected():
    port = FakeUserPort(_user("admin-1", role="admin"))

    with pytest.raises(SelfActionError):
        DeleteUserUseCase(user_port=port).execute(UserActionInput(actor_id="admin-1", target_id="admin-1"))

    assert port.users["admin-1"].is_deleted is False


def test_remove_own_admin_is_rejected():
    port = FakeUserPort(_user("admin-1", role="admin"))

    with pytest.raises(SelfActionError):
        RemoveAdminUseCase(user_port=port).execute(UserActionInput(actor_id="admin-1", target_id="admin-1"))


def test_block_and_unblock_other_user():
    port = FakeUserPort(_user("admin-1", role="admin"), _user("user-2"))
    command = UserActionInput(actor_id="admin-1", target_id="user-2")

    assert BlockUserUseCase(user_port=port).execute(command).is_blocked is True
    assert UnblockUserUseCase(user_port=port).execute(command).is_blocked is False


def test_promote_and_demote_set_role():
    port = FakeUserPort(_user("admin-1", role="admin"), _user("user-2"))
    command = UserActionInput(actor_id="admin-1", target_id="user-2")

    assert PromoteToAdminUseCase(user_port=port).execute(command).role == "admin"
    assert RemoveAdminUseCase(user_port=port).execute(command).role == "user"


def test_action_on_missing_user_raises_not_found():
    port = FakeUserPort(_user("admin-1", role="admin"))

    with pytest.raises(UserNotFoundError):
        PromoteToAdminUseCase(user_port=port).execute(UserActionInput(actor_id="admin-1", target_id="ghost"))


def test_delete_marks_user_removed_once():
    port = FakeUserPort(_user("admin-1", role="admin"), _user("user-2"))
    use_case = DeleteUserUseCase(user_port=port)
    command = UserActionInput(actor_id="admin-1", target_id="user-2")

    use_case.execute(command)

    assert port.users["user-2"].is_deleted is True
    with pytest.raises(UserNotFoundError):
        use_case.execute(command)


def test_update_profile_maps_duplicate_email():
    port = FakeUserPort(_user("user-2"))
    port.taken_emails.add("taken@example.com")

    with pytest.raises(EmailAlreadyExistsError):
        UpdateProfileUseCase(user_port=port).execute(
            UpdateProfileInput(user_id="user-2", email="Taken@Example.com")
        )


def test_update_profile_ignores_unset_fields():
    port = FakeUserPort(_user("user-2"))

    user = UpdateProfileUseCase(user_port=port).execute(UpdateProfileInput(user_id="user-2", name="Renamed"))

    assert user.name == "Renamed"
    assert port.update_calls == [{"name": "Renamed"}]


def test_list_users_clamps_paging():
    port = FakeUserPort()

    ListUsersUseCase(user_port=port).execute(UserListQuery(page=0, limit=500, search="  al  "))

    assert port.last_list_query == UserListQuery(page=1, limit=100, search="al")

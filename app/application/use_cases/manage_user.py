from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from app.application.dto.users import UserActionInput
from app.application.ports.user_port import UserPort
from app.domain.entities.user import User
from app.domain.exceptions import SelfActionError, UserNotFoundError
from app.domain.services.user_fields import sanitize_user_update

from .auth_common import utcnow


logger = logging.getLogger(__name__)


def _apply_admin_update(user_port: UserPort, *, target_id: str, updates: Mapping[str, Any]) -> User:
    fields = sanitize_user_update(updates, is_admin=True)
    user = user_port.update_user_fields(user_id=target_id, fields=fields, now=utcnow())
    if user is None:
        raise UserNotFoundError("User not found.")
    return user


class BlockUserUseCase:
    def __init__(self, *, user_port: UserPort):
        self._user_port = user_port

    def execute(self, command: UserActionInput) -> User:
        if command.actor_id == command.target_id:
            raise SelfActionError("Cannot block yourself.")
        user = _apply_admin_update(self._user_port, target_id=command.target_id, updates={"is_blocked": True})
        logger.info("manage_user: blocked target_id=%s actor_id=%s", command.target_id, command.actor_id)
        return user


class UnblockUserUseCase:
    def __init__(self, *, user_port: UserPort):
        self._user_port = user_port

    def execute(self, command: UserActionInput) -> User:
        user = _apply_admin_update(self._user_port, target_id=command.target_id, updates={"is_blocked": False})
        logger.info("manage_user: unblocked target_id=%s actor_id=%s", command.target_id, command.actor_id)
        return user


class PromoteToAdminUseCase:
    def __init__(self, *, user_port: UserPort):
        self._user_port = user_port

    def execute(self, command: UserActionInput) -> User:
        user = _apply_admin_update(self._user_port, target_id=command.target_id, updates={"role": "admin"})
        logger.info("manage_user: promoted target_id=%s actor_id=%s", command.target_id, command.actor_id)
        return user


class RemoveAdminUseCase:
    def __init__(self, *, user_port: UserPort):
        self._user_port = user_port

    def execute(self, command: UserActionInput) -> User:
        if command.actor_id == command.target_id:
            raise SelfActionError("Cannot remove your own admin privileges.")
        user = _apply_admin_update(self._user_port, target_id=command.target_id, updates={"role": "user"})
        logger.info("manage_user: demoted target_id=%s actor_id=%s", command.target_id, command.actor_id)
        return user


class DeleteUserUseCase:
    def __init__(self, *, user_port: UserPort):
        self._user_port = user_port

    def execute(self, command: UserActionInput) -> None:
        if command.actor_id == command.target_id:
            raise SelfActionError("Cannot delete yourself.")
        deleted = self._user_port.soft_delete_user(user_id=command.target_id, now=utcnow())
        if not deleted:
            raise UserNotFoundError("User not found.")
        logger.info("manage_user: deleted target_id=%s actor_id=%s", command.target_id, command.actor_id)

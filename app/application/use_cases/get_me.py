from __future__ import annotations

from app.application.ports.user_port import UserPort
from app.domain.entities.user import User
from app.domain.exceptions import UserNotFoundError


class GetMeUseCase:
    def __init__(self, *, user_port: UserPort):
        self._user_port = user_port

    def execute(self, *, user: User) -> User:
        fresh = self._user_port.get_user_by_id(user_id=user.id)
        if fresh is None:
            raise UserNotFoundError("User not found.")
        return fresh

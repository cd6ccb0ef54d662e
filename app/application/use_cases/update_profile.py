from __future__ import annotations

from app.application.dto.users import UpdateProfileInput
from app.application.ports.user_port import UserPort
from app.domain.entities.user import User
from app.domain.exceptions import EmailAlreadyExistsError, UniqueConstraintError, UserNotFoundError
from app.domain.services.user_fields import sanitize_user_update

from .auth_common import utcnow


class UpdateProfileUseCase:
    def __init__(self, *, user_port: UserPort):
        self._user_port = user_port

    def execute(self, command: UpdateProfileInput) -> User:
        fields = sanitize_user_update(
            {
                "name": command.name,
                "email": command.email,
                "profile_picture": command.profile_picture,
            },
            is_admin=False,
        )
        try:
            user = self._user_port.update_user_fields(user_id=command.user_id, fields=fields, now=utcnow())
        except UniqueConstraintError as exc:
            raise EmailAlreadyExistsError("Email already exists.") from exc
        if user is None:
            raise UserNotFoundError("User not found.")
        return user

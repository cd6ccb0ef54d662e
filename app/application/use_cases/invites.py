from __future__ import annotations

from app.application.dto.auth import CreateInviteInput, InviteOutput
from app.application.ports.token_port import TokenPort
from app.domain.entities.token import InviteGrant
from app.domain.entities.user import parse_role
from app.domain.exceptions import InvalidUpdateError
from app.domain.services.user_fields import normalize_email


class CreateInviteUseCase:
    def __init__(self, *, token_port: TokenPort):
        self._token_port = token_port

    def execute(self, command: CreateInviteInput) -> InviteOutput:
        email = normalize_email(command.email)
        if not email:
            raise InvalidUpdateError("Invitee email is required.")
        grant = InviteGrant(
            inviter_id=command.inviter_id,
            email=email,
            role_id=parse_role(command.role_id),
            organization_id=command.organization_id or None,
        )
        issued = self._token_port.issue_invite_token(invite=grant)
        return InviteOutput(
            token=issued.token,
            expires_at=issued.expires_at,
            email=grant.email,
            role_id=grant.role_id,
            organization_id=grant.organization_id,
            inviter_id=grant.inviter_id,
        )


class VerifyInviteUseCase:
    def __init__(self, *, token_port: TokenPort):
        self._token_port = token_port

    def execute(self, *, token: str):
        return self._token_port.verify(token=token, expected_type="invite")

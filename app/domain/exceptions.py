from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class ConfigError(DomainError):
    """Required configuration is missing or malformed."""


class TokenError(DomainError):
    """Token could not be accepted."""


class TokenExpiredError(TokenError):
    """Token is past its expiry."""


class TokenMalformedError(TokenError):
    """Signature, audience, issuer or claim structure is invalid."""


class TokenTypeMismatchError(TokenError):
    """Token is valid but was issued for another purpose."""


class IdentityMissingFieldError(DomainError):
    """Federated identity assertion lacks a required field."""

    error_code = "auth_failed"


class MissingEmailError(IdentityMissingFieldError):
    error_code = "missing_email"


class MissingIdentityError(IdentityMissingFieldError):
    error_code = "missing_identity"


class UnverifiedEmailError(IdentityMissingFieldError):
    """Google did not mark the asserted email as verified."""


class GoogleOauthError(DomainError):
    """Google rejected the code exchange or returned an invalid id_token."""


class UserNotFoundError(DomainError):
    """User does not exist."""


class AccountDisabledError(DomainError):
    """User account is inactive."""


class AccountRemovedError(DomainError):
    """User account was soft-deleted."""


class AccountBlockedError(DomainError):
    """User account is blocked by an administrator."""


class PermissionDeniedError(DomainError):
    """Role lacks the required capabilities."""


class SelfActionError(DomainError):
    """Destructive action targeted at the acting user."""


class InvalidUpdateError(DomainError):
    """Update carries no field the caller may change."""


class InvalidRoleError(DomainError, ValueError):
    """Role value is not one of the known roles."""


class EmailAlreadyExistsError(DomainError):
    """Email already belongs to another user."""


class UniqueConstraintError(DomainError):
    """Storage rejected a write because a unique key already exists."""

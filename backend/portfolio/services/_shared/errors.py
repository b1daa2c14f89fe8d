"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They serve as stable contracts between repositories, token
adapters and application services.

The translation to HTTP responses (RFC 7807) is handled by
``portfolio/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories, adapters or domain logic.
    - The API layer later translates them to ``APIError``.
    """

    pass


class ValidationError(ServiceError):
    """Raised when a command carries values that break a domain rule."""


class InvalidCredentialsError(ServiceError):
    """
    Raised when a login attempt fails.

    Unknown email and wrong password share this type and its message.
    """

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Token errors
# --------------------------------------------------------------------------- #


class InvalidTokenError(ServiceError):
    """Raised when a presented token cannot be used."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class TokenSignatureError(InvalidTokenError):
    """Token is malformed or its signature does not verify."""


class TokenExpiredError(InvalidTokenError):
    """Token is well-formed but past its expiry."""


class WrongTokenTypeError(InvalidTokenError):
    """Token ``type`` claim differs from the one the operation expects."""


class InvalidOrExpiredTokenError(InvalidTokenError):
    """Password reset token is unknown, already used or expired."""

    def __init__(self, message: str = "Invalid or expired reset token") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Entity errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"

from __future__ import annotations

import logging

from portfolio.core import errors as api_errors
from portfolio.services._shared.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from portfolio.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

log = logging.getLogger(__name__)

#: Single client-facing message for every rejected session token
INVALID_TOKEN_MESSAGE = "Invalid or expired token"
INVALID_RESET_TOKEN_MESSAGE = "Invalid or expired reset token"


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    - Credential rules (hashing, reset-token validity) live in the models.
    """

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork()

    # -------------------------- Error handling ------------------------------

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        # Reset-token failures are a bad request, not an auth failure.
        if isinstance(exc, InvalidOrExpiredTokenError):
            log.info("token.rejected", extra={"reason": type(exc).__name__})
            return api_errors.APIError(
                message=INVALID_RESET_TOKEN_MESSAGE, status_code=400, code="invalid_token"
            )

        if isinstance(exc, InvalidCredentialsError):
            return api_errors.Unauthorized(str(exc), code="invalid_credentials")

        # Signature, expiry, type and revocation failures look the same to callers
        if isinstance(exc, InvalidTokenError):
            log.info("token.rejected", extra={"reason": type(exc).__name__})
            return api_errors.Unauthorized(INVALID_TOKEN_MESSAGE, code="invalid_token")

        if isinstance(exc, ValidationError):
            return api_errors.APIError(message=str(exc), status_code=400, code="validation_error")

        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc

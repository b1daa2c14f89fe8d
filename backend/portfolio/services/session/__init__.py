"""Login, refresh rotation, logout and password reset use-cases."""

from .dto import (
    AuthTokenConfig,
    LoginIn,
    LoginOut,
    LogoutIn,
    PasswordResetIn,
    PasswordResetRequestIn,
    RefreshIn,
    TokenPairOut,
    UserOut,
)
from .service import SessionService, digest_reset_token, validate_password

__all__ = [
    "AuthTokenConfig",
    "LoginIn",
    "LoginOut",
    "LogoutIn",
    "PasswordResetIn",
    "PasswordResetRequestIn",
    "RefreshIn",
    "SessionService",
    "TokenPairOut",
    "UserOut",
    "digest_reset_token",
    "validate_password",
]

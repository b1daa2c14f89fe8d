"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    ForgotPasswordSchema,
    LoginResponseSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    ResetPasswordSchema,
    TokenPairSchema,
    UserSchema,
)

__all__ = [
    "ForgotPasswordSchema",
    "LoginResponseSchema",
    "LoginSchema",
    "LogoutSchema",
    "RefreshSchema",
    "ResetPasswordSchema",
    "TokenPairSchema",
    "UserSchema",
]

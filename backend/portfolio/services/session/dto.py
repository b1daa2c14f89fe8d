from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email (normalized by the repository).
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Encoded refresh JWT to revoke.
    :type refresh_token: str
    :param all_sessions: If True, revoke every refresh token of the owner.
    :type all_sessions: bool
    """

    refresh_token: str
    all_sessions: bool = False


@dataclass(frozen=True, slots=True)
class PasswordResetRequestIn:
    email: str


@dataclass(frozen=True, slots=True)
class PasswordResetIn:
    """
    Input DTO for consuming a password reset token.

    :param token: Raw reset token received by mail.
    :type token: str
    :param new_password: Replacement password.
    :type new_password: str
    """

    token: str
    new_password: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserOut:
    id: int
    email: str
    role: str


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class LoginOut:
    """
    Output DTO of a successful login.

    :param user: Public view of the authenticated user.
    :type user: UserOut
    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    """

    user: UserOut
    access_token: str
    refresh_token: str


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    :param reset_expires: Password reset token lifetime.
    :type reset_expires: timedelta
    :param revoke_sessions_on_reset: Revoke all refresh tokens after a reset.
    :type revoke_sessions_on_reset: bool
    """

    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=7)
    reset_expires: timedelta = timedelta(hours=1)
    revoke_sessions_on_reset: bool = True

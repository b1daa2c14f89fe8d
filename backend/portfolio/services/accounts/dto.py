from __future__ import annotations

from dataclasses import dataclass

from portfolio.models.user import Role


@dataclass(frozen=True, slots=True)
class UserCreateIn:
    """
    Input DTO for creating an account.

    :param email: Login email; stored trimmed and lower-cased.
    :type email: str
    :param password: Raw password, hashed before it is stored.
    :type password: str
    :param role: Account role (``"admin"`` or ``"user"``).
    :type role: str
    """

    email: str
    password: str
    role: str = Role.USER.value

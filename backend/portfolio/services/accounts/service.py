from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from portfolio.models.user import Role, User
from portfolio.services._shared.base import BaseService
from portfolio.services._shared.errors import ConflictError, ValidationError
from portfolio.services.accounts.dto import UserCreateIn
from portfolio.services.session.dto import UserOut
from portfolio.services.session.service import to_user_out, validate_password

log = logging.getLogger(__name__)


class AccountService(BaseService):
    """Account provisioning: explicit user creation and admin bootstrap."""

    def create_user(self, dto: UserCreateIn) -> UserOut:
        """
        Create a user with a hashed password.

        :param dto: Account data.
        :returns: Public view of the created user.
        :raises ValidationError: Invalid email, role or password.
        :raises ConflictError: If the email is already registered.
        """
        validate_password(dto.password)
        try:
            with self.rw_uow() as uow:
                if uow.users.exists_by_email(dto.email):
                    raise ConflictError("User", "email already registered")
                try:
                    user = User(email=dto.email, role=dto.role)
                except ValueError as exc:
                    raise ValidationError(str(exc)) from exc
                user.set_password(dto.password)
                uow.users.add(user)
                out = to_user_out(user)
        except IntegrityError as exc:
            # Lost a race against a concurrent insert of the same email
            raise ConflictError("User", "email already registered") from exc

        log.info("accounts.user.created", extra={"user_id": out.id})
        return out

    def ensure_admin(self, email: str, password: str) -> tuple[UserOut, bool]:
        """
        Create the admin account unless a user with ``email`` already exists.

        Existing accounts are left untouched (password and role included).

        :returns: ``(user, created)``.
        """
        with self.ro_uow() as uow:
            existing = uow.users.get_by_email(email)
            existing_out = to_user_out(existing) if existing is not None else None
        if existing_out is not None:
            return existing_out, False
        created = self.create_user(
            UserCreateIn(email=email, password=password, role=Role.ADMIN.value)
        )
        return created, True

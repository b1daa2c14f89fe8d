from __future__ import annotations

import hashlib
import logging
import secrets
from collections.abc import Callable
from typing import Any

from portfolio.core.clock import Clock, utcnow
from portfolio.models.user import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH, User
from portfolio.services._shared.base import BaseService
from portfolio.services._shared.errors import (
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from portfolio.services._shared.ports import (
    REFRESH_TOKEN_TYPE,
    Mailer,
    RefreshTokenStore,
    TokenProvider,
)
from portfolio.services.session.dto import (
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

log = logging.getLogger(__name__)

RESET_TOKEN_BYTES = 32


def digest_reset_token(raw_token: str) -> str:
    """Return the SHA-256 hex digest stored in place of a raw reset token."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def validate_password(raw: str) -> None:
    """
    Enforce the password length policy.

    :raises ValidationError: If ``raw`` is shorter than 8 or longer than 128 characters.
    """
    if not isinstance(raw, str) or len(raw) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(raw) > PASSWORD_MAX_LENGTH:
        raise ValidationError(f"Password must be at most {PASSWORD_MAX_LENGTH} characters long")


def to_user_out(user: User) -> UserOut:
    return UserOut(id=int(user.id), email=user.email, role=user.role)


class SessionService(BaseService):
    """
    Authentication lifecycle service.

    Covers login, refresh-token rotation, logout and the password reset flow.
    Tokens are issued and verified through a pluggable :class:`TokenProvider`;
    refresh tokens live in a :class:`RefreshTokenStore` whose conditional
    revoke makes rotation single-use under concurrency.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        refresh_store: RefreshTokenStore,
        mailer: Mailer,
        token_cfg: AuthTokenConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_provider: Adapter for issuing/verifying JWTs.
        :param refresh_store: Stateful store for refresh tokens.
        :param mailer: Delivery of password reset mails.
        :param token_cfg: Expiry configuration and reset policy.
        :param clock: Source of the current UTC instant.
        """
        self.tokens = token_provider
        self.refresh_store = refresh_store
        self.mailer = mailer
        self.cfg = token_cfg or AuthTokenConfig()
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> LoginOut:
        """
        Authenticate credentials and issue a fresh token pair.

        :param dto: Login input.
        :returns: The user and its access/refresh token pair.
        :raises InvalidCredentialsError: Unknown email or wrong password.
        """
        with self.ro_uow() as uow:
            user = uow.users.authenticate(dto.email, dto.password)
            if user is None:
                log.info("session.login.failed")
                raise InvalidCredentialsError()
            user_out = to_user_out(user)

        pair = self._issue_pair(user_out)
        log.info("session.login.succeeded", extra={"user_id": user_out.id})
        return LoginOut(
            user=user_out,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh_access_token(self, dto: RefreshIn) -> TokenPairOut:
        """
        Rotate a refresh token and emit a new token pair.

        The presented token is revoked with a conditional update *before* the
        new pair is issued; when two requests race on the same token only the
        one whose revoke applied gets a pair.

        :raises InvalidTokenError: Bad signature, expired, wrong type, unknown,
            revoked or already rotated token.
        """
        claims = self.tokens.verify(dto.refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        user_id = self._coerce_user_id(claims.get("sub"))
        jti = str(claims.get("jti") or "")
        now = self.clock()

        record = self.refresh_store.find_by_token(jti) if jti else None
        if record is None or record.user_id != user_id or not record.is_active(now):
            log.info(
                "session.refresh.rejected",
                extra={"user_id": user_id, "reason": "inactive_record"},
            )
            raise InvalidTokenError()

        if not self.refresh_store.revoke(jti, active_at=now):
            # Lost the race against a concurrent rotation or logout
            log.info(
                "session.refresh.rejected",
                extra={"user_id": user_id, "reason": "already_revoked"},
            )
            raise InvalidTokenError()

        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise InvalidTokenError()
            user_out = to_user_out(user)

        pair = self._issue_pair(user_out)
        log.info("session.refresh.rotated", extra={"user_id": user_out.id})
        return pair

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the presented refresh token.

        Malformed, unknown, expired or already revoked tokens are ignored.
        With ``all_sessions`` every refresh token of the owner is revoked too,
        provided the presented token was still active.
        """
        try:
            claims = self.tokens.verify(
                dto.refresh_token, expected_type=REFRESH_TOKEN_TYPE, allow_expired=True
            )
            user_id = self._coerce_user_id(claims.get("sub"))
        except InvalidTokenError:
            log.info("session.logout.ignored", extra={"reason": "invalid_token"})
            return

        jti = str(claims.get("jti") or "")
        record = self.refresh_store.find_by_token(jti) if jti else None
        if record is None or record.user_id != user_id:
            log.info("session.logout.ignored", extra={"reason": "unknown_token"})
            return

        revoked = self.refresh_store.revoke(jti)
        log.info("session.logout", extra={"user_id": user_id, "revoked": int(revoked)})

        if dto.all_sessions and revoked:
            count = self.refresh_store.revoke_all_for_user(user_id)
            log.info("session.logout.all", extra={"user_id": user_id, "revoked": count})

    # ------------------------------------------------------------------ #
    # Password reset
    # ------------------------------------------------------------------ #

    def request_password_reset(self, dto: PasswordResetRequestIn) -> None:
        """
        Start a password reset for ``dto.email``.

        Always returns normally so responses never reveal which emails exist.
        Only the SHA-256 digest of the token is stored; the raw token goes to
        the mailer and nowhere else.
        """
        raw_token = secrets.token_hex(RESET_TOKEN_BYTES)
        expires_at = self.clock() + self.cfg.reset_expires

        with self.rw_uow() as uow:
            user = uow.users.get_by_email(dto.email)
            if user is None:
                log.info("session.reset.requested", extra={"reason": "unknown_email"})
                return
            uow.users.set_reset_token(user, digest_reset_token(raw_token), expires_at)
            user_id, email = user.id, user.email

        log.info("session.reset.requested", extra={"user_id": user_id})
        self._deliver(self.mailer.send_password_reset_email, email, raw_token)

    def reset_password(self, dto: PasswordResetIn) -> None:
        """
        Consume a reset token and set a new password.

        :raises ValidationError: If the new password breaks the length policy.
        :raises InvalidOrExpiredTokenError: Unknown, used or expired token.
        """
        validate_password(dto.new_password)
        if not dto.token:
            raise InvalidOrExpiredTokenError()

        with self.rw_uow() as uow:
            user = uow.users.consume_reset_token(digest_reset_token(dto.token), self.clock())
            if user is not None:
                user.set_password(dto.new_password)
                user_id, email = user.id, user.email

        if user is None:
            log.info("session.reset.rejected", extra={"reason": "invalid_or_expired"})
            raise InvalidOrExpiredTokenError()

        revoked = 0
        if self.cfg.revoke_sessions_on_reset:
            revoked = self.refresh_store.revoke_all_for_user(user_id)
        log.info("session.reset.completed", extra={"user_id": user_id, "revoked": revoked})

        self._deliver(self.mailer.send_password_reset_confirmation, email)

    def verify_reset_token(self, token: str) -> bool:
        """Return ``True`` if ``token`` is a stored, unexpired reset token. Read-only."""
        if not token:
            return False
        with self.ro_uow() as uow:
            user = uow.users.find_by_reset_token(digest_reset_token(token))
            return user is not None and user.has_valid_reset_token(self.clock())

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_user(self, user_id: int | str) -> UserOut:
        """
        Return the public view of a user.

        :raises NotFoundError: If the user no longer exists.
        """
        uid = self._coerce_user_id(user_id)
        with self.ro_uow() as uow:
            user = uow.users.get(uid)
            if user is None:
                raise NotFoundError("User", uid)
            return to_user_out(user)

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    def _issue_pair(self, user: UserOut) -> TokenPairOut:
        # Persist the refresh record FIRST, then sign the tokens.
        token_id = self.refresh_store.new_token()
        self.refresh_store.create(
            token=token_id,
            user_id=user.id,
            expires_at=self.clock() + self.cfg.refresh_expires,
        )
        access = self.tokens.create_access_token(
            identity=user.id,
            additional_claims={"email": user.email, "role": user.role},
            expires_delta=self.cfg.access_expires,
        )
        refresh = self.tokens.create_refresh_token(
            identity=user.id,
            expires_delta=self.cfg.refresh_expires,
            jti=token_id,
        )
        return TokenPairOut(access_token=access, refresh_token=refresh)

    @staticmethod
    def _coerce_user_id(subject: Any) -> int:
        """Ensure the JWT subject can be treated as an integer user id."""
        if isinstance(subject, int) and not isinstance(subject, bool):
            return subject
        if isinstance(subject, str) and subject.isdigit():
            return int(subject)
        raise InvalidTokenError("Invalid token subject")

    @staticmethod
    def _deliver(send: Callable[..., None], *args: str) -> None:
        """Run a mailer call; delivery failures are logged, never raised."""
        try:
            send(*args)
        except OSError:
            log.warning("session.mail.failed", exc_info=True)

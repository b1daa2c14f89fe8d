from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from portfolio.core.clock import Clock, utcnow
from portfolio.services._shared.errors import (
    TokenExpiredError,
    TokenSignatureError,
    WrongTokenTypeError,
)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenProvider(Protocol):
    """Port for issuing and verifying signed tokens."""

    def create_access_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str: ...

    def create_refresh_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        jti: str,
    ) -> str: ...

    def verify(
        self, token: str, *, expected_type: str, allow_expired: bool = False
    ) -> dict[str, Any]:
        """
        Decode ``token`` and check its signature, expiry and type.

        :raises TokenSignatureError: Malformed or tampered token.
        :raises TokenExpiredError: Past its ``exp`` (unless ``allow_expired``).
        :raises WrongTokenTypeError: ``type`` claim differs from ``expected_type``.
        """
        ...


class StubTokenProvider(TokenProvider):
    """Deterministic token provider used in unit tests."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._seq = 0
        self._issued: dict[str, dict[str, Any]] = {}

    def _mk(
        self,
        *,
        identity: int | str,
        ttype: str,
        exp_delta: timedelta,
        jti: str | None = None,
        additional_claims: dict[str, Any] | None = None,
    ) -> str:
        self._seq += 1
        jti_value = jti or f"jti-{self._seq}"
        token = f"{ttype}.{identity}.{jti_value}.{self._seq}"
        payload: dict[str, Any] = {
            "sub": str(identity),
            "type": ttype,
            "jti": jti_value,
            "exp": int((self._clock() + exp_delta).timestamp()),
        }
        if additional_claims:
            payload.update(additional_claims)
        self._issued[token] = payload
        return token

    def create_access_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        return self._mk(
            identity=identity,
            ttype=ACCESS_TOKEN_TYPE,
            exp_delta=expires_delta or timedelta(minutes=15),
            additional_claims=additional_claims,
        )

    def create_refresh_token(
        self,
        *,
        identity: int | str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        jti: str,
    ) -> str:
        return self._mk(
            identity=identity,
            ttype=REFRESH_TOKEN_TYPE,
            exp_delta=expires_delta or timedelta(days=7),
            jti=jti,
            additional_claims=additional_claims,
        )

    def verify(
        self, token: str, *, expected_type: str, allow_expired: bool = False
    ) -> dict[str, Any]:
        payload = self._issued.get(token)
        if payload is None:
            raise TokenSignatureError("Token signature is invalid")
        exp = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
        if not allow_expired and exp <= self._clock():
            raise TokenExpiredError("Token has expired")
        if payload["type"] != expected_type:
            raise WrongTokenTypeError(f"Expected a {expected_type} token")
        return dict(payload)

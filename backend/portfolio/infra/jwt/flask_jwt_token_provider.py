from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from jwt import ExpiredSignatureError
from jwt import InvalidTokenError as PyJWTInvalidTokenError

from portfolio.services._shared.errors import (
    TokenExpiredError,
    TokenSignatureError,
    WrongTokenTypeError,
)
from portfolio.services._shared.ports import TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    .. note::
       Requires an active Flask app context with proper JWT settings
       (``JWT_SECRET_KEY`` and the default expiries).
    """

    def _merge_claims(self, base: dict[str, Any] | None, extra: dict[str, Any]) -> dict[str, Any]:
        """Merge claim dictionaries without mutating inputs."""
        merged = dict(base or {})
        merged.update(extra)
        return merged

    def create_access_token(
        self,
        *,
        identity: str | int,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        from flask_jwt_extended import create_access_token as _create_access

        return cast(
            str,
            _create_access(
                identity=str(identity),
                additional_claims=additional_claims,
                expires_delta=expires_delta,
                fresh=False,
            ),
        )

    def create_refresh_token(
        self,
        *,
        identity: str | int,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        jti: str,
    ) -> str:
        # The refresh jti MUST come from the refresh token store: the refresh
        # endpoint looks the record up by it.
        from flask_jwt_extended import create_refresh_token as _create_refresh
        from flask_jwt_extended import decode_token as _decode

        claims = self._merge_claims(additional_claims, {"jti": jti})

        token = cast(
            str,
            _create_refresh(
                identity=str(identity),
                additional_claims=claims,
                expires_delta=expires_delta,
            ),
        )

        # Fail fast if the library ever overrides the provided jti.
        actual = cast(dict[str, Any], _decode(token, allow_expired=True))["jti"]
        if actual != jti:
            raise RuntimeError("Refresh token jti mismatch after creation.")

        return token

    def verify(
        self, token: str, *, expected_type: str, allow_expired: bool = False
    ) -> dict[str, Any]:
        """
        Decode ``token`` and check signature, expiry and type.

        :param token: Encoded JWT.
        :param expected_type: ``"access"`` or ``"refresh"``.
        :param allow_expired: Skip the ``exp`` check (used by logout).
        :returns: Decoded claims.
        :raises TokenExpiredError: If the token is past its ``exp``.
        :raises TokenSignatureError: If the token is malformed or tampered.
        :raises WrongTokenTypeError: If the ``type`` claim mismatches.
        """
        from flask_jwt_extended import decode_token
        from flask_jwt_extended.exceptions import JWTExtendedException

        try:
            claims = cast(dict[str, Any], decode_token(token, allow_expired=allow_expired))
        except ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired") from exc
        except (PyJWTInvalidTokenError, JWTExtendedException) as exc:
            raise TokenSignatureError("Token signature is invalid") from exc

        if claims.get("type") != expected_type:
            raise WrongTokenTypeError(f"Expected a {expected_type} token")
        return claims

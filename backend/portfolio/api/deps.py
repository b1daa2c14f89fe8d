"""Shared API helpers: auth decorators, response helpers, service wiring."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Flask, Response, current_app, jsonify, request
from flask_jwt_extended import get_jwt, verify_jwt_in_request

from portfolio.core.errors import Forbidden
from portfolio.services._shared.ports import Mailer, RefreshTokenStore
from portfolio.services.session import AuthTokenConfig, SessionService

F = TypeVar("F", bound=Callable[..., Any])


def require_auth(func: F) -> F:
    """Ensure the request carries a valid JWT access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_role(*roles: str) -> Callable[[F], F]:
    """Ensure the verified access token carries one of ``roles`` in its ``role`` claim."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            verify_jwt_in_request(optional=False)
            claims = get_jwt() or {}
            if claims.get("role") not in roles:
                raise Forbidden("Insufficient permissions")
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


# ------------------------------ Service wiring ------------------------------


def build_refresh_store(app: Flask) -> RefreshTokenStore:
    """
    Return the refresh token store selected by ``REFRESH_TOKEN_BACKEND``.

    :raises RuntimeError: On an unknown backend name.
    """
    backend = str(app.config.get("REFRESH_TOKEN_BACKEND", "sql")).lower()
    if backend == "sql":
        from portfolio.infra.sql.sql_refresh_token_store import SQLRefreshTokenStore

        return SQLRefreshTokenStore()
    if backend == "redis":
        from portfolio.core.extensions import get_redis
        from portfolio.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore

        return RedisRefreshTokenStore(get_redis())
    raise RuntimeError(f"Unknown REFRESH_TOKEN_BACKEND: {backend!r}")


def token_config(app: Flask) -> AuthTokenConfig:
    cfg = app.config
    return AuthTokenConfig(
        access_expires=cfg["JWT_ACCESS_TOKEN_EXPIRES"],
        refresh_expires=cfg["JWT_REFRESH_TOKEN_EXPIRES"],
        reset_expires=cfg["PASSWORD_RESET_EXPIRES"],
        revoke_sessions_on_reset=bool(cfg.get("REVOKE_SESSIONS_ON_PASSWORD_RESET", True)),
    )


def get_session_service() -> SessionService:
    """Build a :class:`SessionService` wired from the current app's configuration."""
    from portfolio.infra.jwt.flask_jwt_token_provider import JWTTokenProvider

    return SessionService(
        token_provider=JWTTokenProvider(),
        refresh_store=build_refresh_store(current_app),
        mailer=cast(Mailer, current_app.extensions["mailer"]),
        token_cfg=token_config(current_app),
    )

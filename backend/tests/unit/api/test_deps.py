"""Tests for the shared API helpers."""

from __future__ import annotations

import pytest
from flask_jwt_extended import create_access_token
from portfolio.api.deps import build_refresh_store, require_role, token_config
from portfolio.core.errors import Forbidden
from portfolio.infra.sql.sql_refresh_token_store import SQLRefreshTokenStore


@require_role("admin")
def _admin_only():
    return "ok"


def _bearer(app, role: str) -> dict[str, str]:
    with app.app_context():
        token = create_access_token(identity="1", additional_claims={"role": role})
    return {"Authorization": f"Bearer {token}"}


def test_require_role_allows_matching_claim(app):
    with app.app_context(), app.test_request_context("/", headers=_bearer(app, "admin")):
        assert _admin_only() == "ok"


def test_require_role_rejects_other_roles(app):
    with app.app_context(), app.test_request_context("/", headers=_bearer(app, "user")):
        with pytest.raises(Forbidden):
            _admin_only()


def test_build_refresh_store(app, monkeypatch):
    assert isinstance(build_refresh_store(app), SQLRefreshTokenStore)

    monkeypatch.setitem(app.config, "REFRESH_TOKEN_BACKEND", "memcached")
    with pytest.raises(RuntimeError):
        build_refresh_store(app)


def test_token_config_reads_app_settings(app):
    cfg = token_config(app)

    assert cfg.access_expires == app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    assert cfg.reset_expires == app.config["PASSWORD_RESET_EXPIRES"]
    assert cfg.revoke_sessions_on_reset is True

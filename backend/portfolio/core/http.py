"""WSGI-level HTTP plumbing: reverse proxy headers and CORS."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from portfolio.core.logger import REQUEST_ID_HEADER


def parse_origins(raw: str | None) -> list[str]:
    """Split a comma-separated origin list, dropping blanks."""
    return [o.strip() for o in (raw or "").split(",") if o.strip()]


def init_app(app: Flask) -> None:
    """Apply proxy-header handling and the CORS policy for ``/api/*``.

    Parameters
    ----------
    app: flask.Flask
        Application to configure. ``USE_PROXYFIX`` (default ``True``) trusts a
        single hop of ``X-Forwarded-*`` headers. ``CORS_ORIGINS`` lists the
        allowed origins; blank or ``"*"`` allows any origin but disables
        credential support.
    """
    if app.config.get("USE_PROXYFIX", True):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    origins = parse_origins(app.config.get("CORS_ORIGINS"))
    wildcard = not origins or origins == ["*"]
    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        supports_credentials=not wildcard,
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )

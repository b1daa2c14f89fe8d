"""
portfolio.services._shared.ports
================================

Collection of *ports* (hexagonal interfaces) that define the contracts for
token issuing, refresh-token persistence and transactional mail.

These ports decouple the service layer from concrete implementations.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider`: abstraction for JWT creation and verification.

- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore` and :class:`~.RefreshTokenView`:
    persistence of revocable refresh tokens with atomic conditional revoke.

- :mod:`mailer`:
    Defines :class:`~.Mailer`: delivery of password reset mails.

Design Notes
------------
Concrete adapters (SQL, Redis, SMTP, Flask-JWT-Extended) implement these
interfaces under ``portfolio.infra``. The in-memory variants here back
unit tests.
"""

from __future__ import annotations

from .mailer import InMemoryMailer, Mailer, SentMail
from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshTokenStore,
    RefreshTokenView,
    new_refresh_token_id,
)
from .token_provider import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    StubTokenProvider,
    TokenProvider,
)

__all__ = [
    "ACCESS_TOKEN_TYPE",
    "REFRESH_TOKEN_TYPE",
    "TokenProvider",
    "StubTokenProvider",
    "RefreshTokenStore",
    "RefreshTokenView",
    "InMemoryRefreshTokenStore",
    "new_refresh_token_id",
    "Mailer",
    "SentMail",
    "InMemoryMailer",
]

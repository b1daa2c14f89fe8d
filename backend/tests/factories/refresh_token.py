"""Factory Boy definition for :class:`portfolio.models.refresh_token.RefreshToken`."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

import factory
from portfolio.models.refresh_token import RefreshToken
from tests.factories import BaseFactory
from tests.factories.user import UserFactory


class RefreshTokenFactory(BaseFactory):
    class Meta:
        model = RefreshToken

    id = None
    token = factory.LazyFunction(lambda: secrets.token_hex(32))
    user = factory.SubFactory(UserFactory)
    expires_at = factory.LazyFunction(lambda: datetime.now(UTC) + timedelta(days=7))
    revoked = False

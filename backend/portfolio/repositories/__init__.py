"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from portfolio.repositories.base import BaseRepository
from portfolio.repositories.refresh_token import RefreshTokenRepository
from portfolio.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
    "UserRepository",
]

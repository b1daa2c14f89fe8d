"""Unit tests for the in-memory refresh token store."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest
from portfolio.services._shared.ports import InMemoryRefreshTokenStore, new_refresh_token_id

NOW = datetime(2026, 1, 1, 12, tzinfo=UTC)


@pytest.fixture
def store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


def test_new_token_is_random_hex(store):
    a, b = store.new_token(), new_refresh_token_id()
    assert a != b
    assert len(a) == 64
    int(a, 16)


def test_create_duplicate_raises(store):
    store.create(token="x", user_id=1, expires_at=NOW)
    with pytest.raises(ValueError):
        store.create(token="x", user_id=2, expires_at=NOW)


def test_view_is_active(store):
    view = store.create(token="x", user_id=1, expires_at=NOW + timedelta(seconds=1))
    assert view.is_active(NOW) is True
    assert view.is_active(NOW + timedelta(seconds=1)) is False


def test_revoke_honours_active_at(store):
    store.create(token="x", user_id=1, expires_at=NOW)

    assert store.revoke("x", active_at=NOW) is False
    assert store.revoke("x") is True
    assert store.revoke("x") is False


def test_concurrent_revoke_has_one_winner(store):
    store.create(token="race", user_id=1, expires_at=NOW + timedelta(days=1))

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: store.revoke("race", active_at=NOW), range(32)))

    assert results.count(True) == 1


def test_revoke_all_counts_only_live_tokens(store):
    for tok in ("a", "b", "c"):
        store.create(token=tok, user_id=5, expires_at=NOW + timedelta(days=1))
    store.revoke("a")

    assert store.revoke_all_for_user(5) == 2
    assert store.revoke_all_for_user(5) == 0
    assert store.revoke_all_for_user(6) == 0

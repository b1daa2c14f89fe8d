# comments in English; reST docstrings
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

import redis  # type: ignore[import-untyped]

from portfolio.core.clock import as_utc, utcnow
from portfolio.services._shared.ports import (
    RefreshTokenStore,
    RefreshTokenView,
    new_refresh_token_id,
)


def _b(s: bytes | None, default: str = "") -> str:
    return s.decode() if s is not None else default


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store with optimistic-locking revocation.

    Layout: one hash per token (``rt:{token}``) holding ``user_id``,
    ``expires_at``, ``created_at`` (epoch seconds) and ``revoked``, plus one
    set per user (``rt:u:{user_id}``) indexing its tokens. Hashes expire with
    the token, so an expired token simply disappears.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token: str) -> str:
        return f"rt:{token}"

    @staticmethod
    def _ku(user_id: int) -> str:
        return f"rt:u:{user_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(as_utc(dt).timestamp())

    def _view(self, token: str, h: dict[bytes, bytes]) -> RefreshTokenView:
        created = h.get(b"created_at")
        return RefreshTokenView(
            token=token,
            user_id=int(_b(h.get(b"user_id"), "0")),
            expires_at=datetime.fromtimestamp(int(_b(h.get(b"expires_at"), "0")), tz=UTC),
            revoked=_b(h.get(b"revoked"), "0") == "1",
            created_at=datetime.fromtimestamp(int(created), tz=UTC) if created else None,
        )

    # -------------------- API ------------------------

    def new_token(self) -> str:
        return new_refresh_token_id()

    def create(self, *, token: str, user_id: int, expires_at: datetime) -> RefreshTokenView:
        """
        Insert the token record *before* the JWT is handed to the client.

        :raises ValueError: If a record with the same token already exists.
        """
        now = utcnow()
        key = self._k(token)
        ttl = max(1, self._to_ts(expires_at) - self._to_ts(now))
        mapping = {
            "user_id": str(int(user_id)),
            "expires_at": str(self._to_ts(expires_at)),
            "created_at": str(self._to_ts(now)),
            "revoked": "0",
        }

        if self.r.exists(key):
            raise ValueError("Refresh token already exists.")

        pipe = self.r.pipeline(transaction=True)
        pipe.hset(key, mapping=mapping)
        pipe.expire(key, ttl)
        pipe.sadd(self._ku(user_id), token)
        pipe.execute()
        return self._view(token, {k.encode(): v.encode() for k, v in mapping.items()})

    def find_by_token(self, token: str) -> RefreshTokenView | None:
        h = self.r.hgetall(self._k(token))
        if not h:
            return None
        return self._view(token, h)

    def revoke(self, token: str, *, active_at: datetime | None = None) -> bool:
        """
        Flip ``revoked`` to ``1`` with WATCH/MULTI/EXEC.

        A concurrent modification of the hash aborts the transaction and the
        check is re-run, so exactly one caller observes ``True``.
        """
        key = self._k(token)
        active_ts = self._to_ts(active_at) if active_at is not None else None

        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    h = p.hgetall(key)
                    if not h or _b(h.get(b"revoked"), "0") == "1":
                        p.unwatch()
                        return False
                    if active_ts is not None and int(_b(h.get(b"expires_at"), "0")) <= active_ts:
                        p.unwatch()
                        return False

                    p.multi()
                    p.hset(key, "revoked", "1")
                    p.execute()
                return True
            except redis.WatchError:
                # Concurrent modification detected; retry
                continue

    def revoke_all_for_user(self, user_id: int) -> int:
        key_u = self._ku(user_id)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key_u)
                    members = sorted(
                        m.decode() if isinstance(m, bytes | bytearray) else str(m)
                        for m in p.smembers(key_u)
                    )
                    if members:
                        p.watch(key_u, *(self._k(token) for token in members))
                    live: list[str] = []
                    stale: list[str] = []
                    for token in members:
                        revoked = p.hget(self._k(token), "revoked")
                        if revoked is None:
                            stale.append(token)
                        elif _b(revoked) != "1":
                            live.append(token)

                    p.multi()
                    for token in live:
                        p.hset(self._k(token), "revoked", "1")
                    if stale:
                        # Hash already expired: drop it from the index
                        p.srem(key_u, *stale)
                    p.execute()
                return len(live)
            except redis.WatchError:
                continue

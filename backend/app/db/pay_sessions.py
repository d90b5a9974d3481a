"""Pay session storage in Redis.

Each session is a hash at ``quicksite:pay_session:{id}`` with fields
``uid``, ``created_at``, ``expires_at``, ``used`` and ``used_at`` (ISO-8601
UTC). The key itself expires a retention period after ``expires_at`` so
expired sessions still answer "expired" for a while before disappearing.

The exchange runs as an optimistic transaction: WATCH the key, read, let
the callback decide, then MULTI/EXEC the staged write. A concurrent writer
aborts EXEC with WatchError and the callback is re-run on fresh data.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TypeVar

import structlog
from redis.asyncio import Redis
from redis.exceptions import WatchError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

MAX_TRANSACTION_ATTEMPTS = 5


@dataclass
class PaySessionRecord:
    session_id: str
    uid: str
    created_at: datetime | None
    expires_at: datetime | None
    used: bool = False
    used_at: datetime | None = None


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    # Naive values are not valid timestamps for this store
    return parsed if parsed.tzinfo is not None else None


def _decode(session_id: str, raw: dict) -> PaySessionRecord | None:
    if not raw:
        return None
    return PaySessionRecord(
        session_id=session_id,
        uid=raw.get("uid", ""),
        created_at=_parse_timestamp(raw.get("created_at")),
        expires_at=_parse_timestamp(raw.get("expires_at")),
        used=raw.get("used") == "1",
        used_at=_parse_timestamp(raw.get("used_at")),
    )


class PaySessionTransaction:
    """Read/stage handle for one session inside run_transaction()."""

    def __init__(self, record: PaySessionRecord | None) -> None:
        self._record = record
        self.used_at: datetime | None = None

    async def read(self) -> PaySessionRecord | None:
        return self._record

    def mark_used(self, at: datetime) -> None:
        self.used_at = at


class RedisPaySessionStore:
    KEY_PREFIX = "quicksite:pay_session:"

    def __init__(self, redis: Redis, retention_seconds: int = 86_400):
        self.redis = redis
        self.retention_seconds = retention_seconds

    def _key(self, session_id: str) -> str:
        return f"{self.KEY_PREFIX}{session_id}"

    async def create(self, record: PaySessionRecord) -> None:
        """Persist a fresh, unused session and schedule its eviction."""
        key = self._key(record.session_id)
        evict_at = record.expires_at + timedelta(seconds=self.retention_seconds)

        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                key,
                mapping={
                    "uid": record.uid,
                    "created_at": record.created_at.isoformat(),
                    "expires_at": record.expires_at.isoformat(),
                    "used": "0",
                },
            )
            pipe.expireat(key, int(evict_at.timestamp()))
            await pipe.execute()

    async def get(self, session_id: str) -> PaySessionRecord | None:
        raw = await self.redis.hgetall(self._key(session_id))
        return _decode(session_id, raw)

    async def run_transaction(
        self,
        session_id: str,
        fn: Callable[[PaySessionTransaction], Awaitable[T]],
    ) -> T:
        """Run ``fn`` against one session under WATCH; commit its staged write.

        ``fn`` may be invoked more than once on contention, so it must not
        have side effects beyond staging through the transaction handle.
        Raising from ``fn`` aborts without writing.
        """
        key = self._key(session_id)

        async with self.redis.pipeline(transaction=True) as pipe:
            for attempt in range(MAX_TRANSACTION_ATTEMPTS):
                try:
                    await pipe.watch(key)
                    raw = await pipe.hgetall(key)
                    txn = PaySessionTransaction(_decode(session_id, raw))

                    outcome = await fn(txn)

                    if txn.used_at is None:
                        await pipe.unwatch()
                        return outcome

                    pipe.multi()
                    pipe.hset(key, mapping={"used": "1", "used_at": txn.used_at.isoformat()})
                    await pipe.execute()
                    return outcome
                except WatchError:
                    logger.info("pay_session_transaction_retry", session_id=session_id, attempt=attempt)
                    await pipe.reset()

        raise RuntimeError(f"Pay session transaction for {session_id!r} did not settle")

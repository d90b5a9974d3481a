"""Shared test fixtures for all test groups."""

import os

# Business events are fire-and-forget CloudWatch calls; keep them off in tests.
# Must be set before the cached Settings is first built.
os.environ.setdefault("METRICS_ENABLED", "false")

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from fakeredis import FakeAsyncRedis

from app.db.datastore_memory import InMemoryDatastore
from app.db.pay_sessions import RedisPaySessionStore
from app.integrations.object_storage import S3ObjectStorage
from app.integrations.token_issuer_fake import FakeSignInTokenIssuer

# Fixed clock. Far enough in the future that fakeredis (which expires keys
# against the real clock) never evicts a pay session mid-test.
NOW = datetime(2030, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def datastore() -> InMemoryDatastore:
    """Empty in-memory datastore; catalogs fall back to the embedded defaults."""
    return InMemoryDatastore()


@pytest.fixture
def seed_profile(datastore):
    """Factory: store a profile document owned by ``uid``."""

    def _seed(username: str, uid: str, images=(), videos=(), avatar_url=None, **fields) -> dict:
        document = {
            "uid": uid,
            "published": fields.pop("published", True),
            "content": fields.pop("content", {}),
            "media": {"avatarUrl": avatar_url, "images": list(images), "videos": list(videos)},
            **fields,
        }
        datastore.profiles[username] = document
        return document

    return _seed


@pytest.fixture
def seed_user(datastore, now):
    """Factory: store a subscription record. ``expires_in`` is relative to the fixed clock."""

    def _seed(uid: str, plan: str = "free", expires_in: timedelta | None = None, **raw) -> dict:
        record = {"plan": plan, "planExpiresAt": now + expires_in if expires_in is not None else None}
        record.update(raw)
        datastore.users[uid] = record
        return record

    return _seed


@pytest.fixture
async def redis():
    """Create a fake Redis instance for testing."""
    fake_redis = FakeAsyncRedis(decode_responses=True)
    yield fake_redis
    await fake_redis.flushall()
    await fake_redis.aclose()


@pytest.fixture
def pay_session_store(redis) -> RedisPaySessionStore:
    return RedisPaySessionStore(redis)


@pytest.fixture
def token_issuer() -> FakeSignInTokenIssuer:
    return FakeSignInTokenIssuer()


@pytest.fixture
def storage():
    """Object storage double; ``storage.delete`` records cleanup calls."""
    return AsyncMock(spec=S3ObjectStorage)

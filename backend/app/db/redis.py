"""Redis client holding pay session records."""

import redis.asyncio as redis
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)

_client: redis.Redis | None = None


async def init_redis(url: str | None = None) -> None:
    """Connect the process-wide client; a failed ping aborts startup."""
    global _client

    if _client is not None:
        return

    settings = get_settings()
    client = redis.from_url(
        url or settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
    )
    await client.ping()
    _client = client
    logger.info("redis_connected")


async def close_redis() -> None:
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Return the pay session client.

    Raises RuntimeError if init_redis() has not been called.
    """
    if _client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _client

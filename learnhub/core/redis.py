# ruff: noqa: PLW0603
"""Redis connection management.

The client is optional: when Redis is unreachable at startup the API keeps
serving and notifications are only persisted, not pushed.
"""

import redis.asyncio as redis

from learnhub.config import get_settings
from learnhub.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Create the connection pool and verify it with a PING."""
    global _redis_client

    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        decode_responses=True,
    )

    try:
        await client.ping()
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        raise

    _redis_client = client
    logger.info("redis_connected", url=settings.redis_url)
    return _redis_client


async def shutdown_redis() -> None:
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    return _redis_client


def notification_channel(user_id: str) -> str:
    """Per-user pub/sub channel for in-app notifications."""
    return f"notifications:user:{user_id}"

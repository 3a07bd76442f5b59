"""Redis connection for the shared confirmation store."""

import logging
import os

import redis

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
CONNECT_TIMEOUT_SECONDS = 2


def get_redis_client(url: str | None = None) -> redis.Redis | None:
    """Connect to Redis, or return None so callers fall back to memory.

    ``REDIS_ENABLED=false`` skips the connection entirely. Otherwise the URL
    comes from the argument, then ``REDIS_URL``, then ``REDIS_HOST`` and
    ``REDIS_PORT`` for older deployments.
    """
    if os.environ.get("REDIS_ENABLED", "true").lower() == "false":
        logger.info("Redis disabled by REDIS_ENABLED")
        return None

    if url is None:
        url = os.environ.get("REDIS_URL")
    if url is None and "REDIS_HOST" in os.environ:
        url = f"redis://{os.environ['REDIS_HOST']}:{os.environ.get('REDIS_PORT', '6379')}/0"
    url = url or DEFAULT_REDIS_URL

    client = redis.Redis.from_url(
        url,
        socket_connect_timeout=CONNECT_TIMEOUT_SECONDS,
        socket_timeout=CONNECT_TIMEOUT_SECONDS,
    )
    try:
        client.ping()
    except redis.RedisError as e:
        logger.warning("Redis unreachable, confirmations stay in memory: %s", e)
        return None

    logger.info("Confirmations stored in Redis")
    return client

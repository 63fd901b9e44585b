"""
Redis connection management
"""

from functools import lru_cache
from typing import Dict, Any

import redis
import structlog

from booth_transitions.config import settings

logger = structlog.get_logger()


@lru_cache
def get_redis_connection() -> redis.Redis:
    """
    Get a cached Redis connection instance.

    Returns:
        redis.Redis: Redis client instance
    """
    connection = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password or None,
        decode_responses=True,
    )

    try:
        connection.ping()
        logger.info(
            "Connected to Redis",
            host=settings.redis_host,
            port=settings.redis_port,
        )
    except redis.ConnectionError as e:
        logger.error("Failed to connect to Redis", error=str(e))
        raise

    return connection


def get_redis_options() -> Dict[str, Any]:
    """Connection options in the shape BullMQ expects."""
    redis_opts: Dict[str, Any] = {
        "host": settings.redis_host,
        "port": settings.redis_port,
    }
    if settings.redis_password:
        redis_opts["password"] = settings.redis_password
    return redis_opts


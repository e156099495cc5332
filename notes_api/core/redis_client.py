import logging
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


async def init_redis(url: str) -> Optional[redis.Redis]:
    """Initialize Redis connection.

    Returns None, disabling the identity cache, when no URL is configured or
    the server cannot be reached.
    """
    if not url:
        logger.info("REDIS_URL not set, identity cache disabled")
        return None

    client = redis.from_url(url, decode_responses=True)

    # Test connection
    try:
        await client.ping()
    except (redis.RedisError, OSError) as e:
        logger.warning(f"Redis connection failed, identity cache disabled: {e}")
        await client.aclose()
        return None
    logger.info("Redis connection established")
    return client


async def close_redis(client: Optional[redis.Redis]) -> None:
    if client is not None:
        await client.aclose()

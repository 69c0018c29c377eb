"""Redis connectivity checks for the Celery broker."""

import redis.asyncio as redis

from searchhub.settings import Settings
from searchhub.utils import logger


async def check_redis_connection(s: Settings) -> bool:
    """
    Checks the connection to the Redis broker.
    Raises an exception if the connection fails.
    """
    try:
        async with redis.from_url(
            str(s.REDIS_URL), encoding="utf-8", decode_responses=True
        ) as redis_client:
            if await redis_client.ping():
                logger.info("Redis connection successful")
                return True
            raise ConnectionError("Redis connection failed: PING command returned False")
    except Exception as e:
        logger.error(f"Redis connection error: {e}")
        raise

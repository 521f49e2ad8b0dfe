import logging
from typing import Optional
from redis.asyncio import Redis
from portal_api.core.config import settings

logger = logging.getLogger(__name__)

redis: Optional[Redis] = None


class RedisUnavailable(RuntimeError):
    pass


async def init_redis(url: Optional[str] = None) -> Redis:
    global redis
    client = Redis.from_url(url or settings.REDIS_URL, decode_responses=False)
    try:
        await client.ping()
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        await client.close()
        raise
    redis = client
    logger.info("Connected to Redis")
    return redis


async def close_redis():
    global redis
    if redis is not None:
        await redis.close()
        redis = None


def redis_available() -> bool:
    return redis is not None


def get_redis() -> Redis:
    if redis is None:
        raise RedisUnavailable("Redis not initialized. Call init_redis() first.")
    return redis

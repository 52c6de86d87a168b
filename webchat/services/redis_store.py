from __future__ import annotations

import redis.asyncio as redis
from loguru import logger


def create_redis(url: str) -> redis.Redis:
    """Build the process-wide Redis client; the caller owns its lifecycle."""
    if not url:
        raise ValueError("REDIS_URL is not configured")
    logger.info("[Store] Connecting Redis client")
    return redis.from_url(url, decode_responses=True)


async def close_redis(client: redis.Redis | None) -> None:
    if client is not None:
        await client.aclose()
        logger.info("[Store] Redis client closed")

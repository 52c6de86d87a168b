"""Cache-aside storage for scraped pages, backed by Redis."""
from __future__ import annotations

import json
import time

import redis.asyncio as redis
from loguru import logger

from webchat.models.content import ScrapedContent, is_valid_scraped_payload

KEY_PREFIX = "scrape:"
MAX_KEY_URL_LENGTH = 200
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_MAX_BYTES = 1024000


def key_for(url: str) -> str:
    return f"{KEY_PREFIX}{url[:MAX_KEY_URL_LENGTH]}"


class ContentCache:
    def __init__(
        self,
        client: redis.Redis,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_bytes: int = DEFAULT_MAX_BYTES,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.max_bytes = max_bytes

    async def get(self, url: str) -> ScrapedContent | None:
        key = key_for(url)
        try:
            cached = await self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"[Cache] Retrieval error for {url}: {e}")
            return None

        if cached is None:
            logger.debug(f"[Cache] Miss for {url}")
            return None

        try:
            payload = json.loads(cached)
        except (TypeError, ValueError) as e:
            logger.warning(f"[Cache] Unparsable payload for {url}: {e}")
            await self._discard(key)
            return None

        if not is_valid_scraped_payload(payload):
            logger.warning(f"[Cache] Invalid cached content format for {url}")
            await self._discard(key)
            return None

        content = ScrapedContent.from_dict(payload)
        if content.cached_at:
            age_minutes = round((time.time() * 1000 - content.cached_at) / 60000)
            logger.debug(f"[Cache] Hit for {url} (age: {age_minutes} minutes)")
        return content

    async def put(self, url: str, content: ScrapedContent) -> bool:
        """Store `content`; oversized payloads are dropped rather than truncated."""
        key = key_for(url)
        content.cached_at = int(time.time() * 1000)
        payload = content.to_dict()
        if not is_valid_scraped_payload(payload):
            logger.error(f"[Cache] Refusing to cache invalid content for {url}")
            return False

        serialized = json.dumps(payload)
        size = len(serialized.encode("utf-8"))
        if size > self.max_bytes:
            logger.warning(f"[Cache] Content too large to cache for {url} ({size} bytes)")
            return False

        try:
            await self.client.set(key, serialized, ex=self.ttl_seconds)
        except redis.RedisError as e:
            logger.error(f"[Cache] Storage error for {url}: {e}")
            return False

        logger.debug(f"[Cache] Cached {url} ({size} bytes, TTL: {self.ttl_seconds}s)")
        return True

    async def _discard(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except redis.RedisError as e:
            logger.error(f"[Cache] Failed to delete {key}: {e}")

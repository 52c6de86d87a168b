from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass, field

import redis.asyncio as redis
from loguru import logger

ANONYMOUS_IDENTIFIER = "anonymous-user"


@dataclass
class RateLimitDecision:
    limited: bool
    count: int
    headers: dict[str, str] = field(default_factory=dict)


class RateLimiter:
    """Fixed-window request counter per (session, path)."""

    def __init__(
        self,
        client: redis.Redis,
        *,
        secret: str,
        window_seconds: int = 60,
        max_requests: int = 15,
    ):
        self.client = client
        self.secret = secret
        self.window_seconds = window_seconds
        self.max_requests = max_requests

    def key_for(self, session_id: str | None, path: str) -> str:
        identifier = session_id or ANONYMOUS_IDENTIFIER
        digest = hashlib.sha256(f"{identifier}:{path}:{self.secret}".encode("utf-8")).hexdigest()
        return f"rate_limit:{digest}"

    async def check(self, session_id: str | None, path: str) -> RateLimitDecision:
        key = self.key_for(session_id, path)
        # SET NX EX starts the window; INCR is atomic within it.
        await self.client.set(key, 0, ex=self.window_seconds, nx=True)
        count = int(await self.client.incr(key))

        reset_at = int(time.time()) + self.window_seconds
        headers = {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(max(0, self.max_requests - count)),
            "X-RateLimit-Reset": str(reset_at),
        }
        if count > self.max_requests:
            logger.warning(
                f"[RateLimit] Limit exceeded for {'session' if session_id else 'anonymous user'} on {path}"
            )
            headers["Retry-After"] = str(self.window_seconds)
            return RateLimitDecision(limited=True, count=count, headers=headers)

        logger.debug(f"[RateLimit] {path}: {count}/{self.max_requests}")
        return RateLimitDecision(limited=False, count=count, headers=headers)

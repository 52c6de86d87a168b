"""Anonymous browser sessions: opaque random ids stored with a sliding TTL."""
from __future__ import annotations

import json
import re
import secrets
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
from loguru import logger

from webchat.services import logger as log_service

SESSION_ID_BYTES = 32
SESSION_ID_PATTERN = re.compile(r"^[0-9a-f]{64}$")
DEFAULT_SESSION_TTL = 24 * 60 * 60


def is_valid_session_id(session_id: Any) -> bool:
    return isinstance(session_id, str) and bool(SESSION_ID_PATTERN.match(session_id))


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionManager:
    def __init__(self, client: redis.Redis, *, ttl_seconds: int = DEFAULT_SESSION_TTL):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def generate_session_id() -> str:
        return secrets.token_hex(SESSION_ID_BYTES)

    async def store_session(self, session_id: str, data: dict[str, Any]) -> bool:
        if not is_valid_session_id(session_id):
            logger.warning("[Session] Refusing to store session with invalid id format")
            return False
        try:
            await self.client.set(session_key(session_id), json.dumps(data), ex=self.ttl_seconds)
        except redis.RedisError as e:
            log_service.log_store_operation("set", "session", "error", error=str(e))
            return False
        return True

    async def create_session(self) -> str:
        session_id = self.generate_session_id()
        now = _now()
        if not await self.store_session(session_id, {"createdAt": now, "lastAccessed": now}):
            raise RuntimeError("Failed to store new session")
        logger.info("[Session] New session created")
        return session_id

    async def get_session(self, session_id: str | None) -> dict[str, Any] | None:
        """Return session data and slide its expiry, or None if unknown/invalid."""
        if not is_valid_session_id(session_id):
            return None
        raw = await self.client.get(session_key(session_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("[Session] Discarding unparsable session record")
            await self.client.delete(session_key(session_id))
            return None
        if not isinstance(data, dict):
            return None

        data["lastAccessed"] = _now()
        await self.client.set(session_key(session_id), json.dumps(data), ex=self.ttl_seconds)
        return data

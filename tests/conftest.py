from __future__ import annotations

from typing import Any

import pytest
import redis.asyncio as redis


class FakeRedis:
    """In-memory stand-in for a `decode_responses=True` asyncio Redis client."""

    def __init__(self):
        self.values: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}
        self.fail_with: Exception | None = None
        self.closed = False

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def get(self, key: str) -> str | None:
        self._check()
        value = self.values.get(key)
        return value if value is None or isinstance(value, str) else None

    async def set(self, key: str, value: Any, ex: int | None = None, px: int | None = None, nx: bool = False):
        self._check()
        if nx and key in self.values:
            return None
        self.values[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        elif px is not None:
            self.ttls[key] = px // 1000
        else:
            self.ttls.pop(key, None)
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def incr(self, key: str) -> int:
        self._check()
        value = int(self.values.get(key, "0")) + 1
        self.values[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self._check()
        if key not in self.values:
            return False
        self.ttls[key] = seconds
        return True

    async def sadd(self, key: str, *members: str) -> int:
        self._check()
        current = self.values.setdefault(key, set())
        before = len(current)
        current.update(members)
        return len(current) - before

    async def smembers(self, key: str) -> set[str]:
        self._check()
        return set(self.values.get(key, set()))

    async def srem(self, key: str, *members: str) -> int:
        self._check()
        current = self.values.get(key, set())
        removed = len(current & set(members))
        current.difference_update(members)
        return removed

    async def sismember(self, key: str, member: str) -> bool:
        self._check()
        return member in self.values.get(key, set())

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def broken_redis() -> FakeRedis:
    client = FakeRedis()
    client.fail_with = redis.ConnectionError("connection refused")
    return client


@pytest.fixture
def session_id() -> str:
    return "a" * 64


@pytest.fixture
def other_session_id() -> str:
    return "b" * 64

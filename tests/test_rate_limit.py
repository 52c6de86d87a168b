from __future__ import annotations

import pytest

from webchat.services.rate_limit import RateLimiter


@pytest.mark.asyncio
async def test_limit_is_per_session_and_path(fake_redis, session_id, other_session_id):
    limiter = RateLimiter(fake_redis, secret="s3cret", window_seconds=60, max_requests=2)

    first = await limiter.check(session_id, "/api/chat")
    second = await limiter.check(session_id, "/api/chat")
    third = await limiter.check(session_id, "/api/chat")

    assert not first.limited and first.headers["X-RateLimit-Remaining"] == "1"
    assert not second.limited and second.headers["X-RateLimit-Remaining"] == "0"
    assert third.limited
    assert third.headers["Retry-After"] == "60"
    assert third.headers["X-RateLimit-Limit"] == "2"

    assert not (await limiter.check(session_id, "/api/share")).limited
    assert not (await limiter.check(other_session_id, "/api/chat")).limited


@pytest.mark.asyncio
async def test_window_is_set_once(fake_redis, session_id):
    limiter = RateLimiter(fake_redis, secret="s3cret", window_seconds=60)
    key = limiter.key_for(session_id, "/api/chat")

    await limiter.check(session_id, "/api/chat")
    fake_redis.ttls[key] = 10
    await limiter.check(session_id, "/api/chat")

    assert fake_redis.ttls[key] == 10
    assert fake_redis.values[key] == "2"


def test_keys_are_hashed_with_secret(fake_redis, session_id):
    a = RateLimiter(fake_redis, secret="one").key_for(session_id, "/api/chat")
    b = RateLimiter(fake_redis, secret="two").key_for(session_id, "/api/chat")

    assert a.startswith("rate_limit:")
    assert session_id not in a
    assert a != b
    assert RateLimiter(fake_redis, secret="one").key_for(None, "/x") == RateLimiter(
        fake_redis, secret="one"
    ).key_for("", "/x")

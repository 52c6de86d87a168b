from __future__ import annotations

import json

import pytest

from webchat.models.content import Headings, ScrapedContent, is_valid_scraped_payload
from webchat.tools.content_cache import ContentCache, key_for


def _content(url: str = "https://example.com/a", body: str = "Hello world") -> ScrapedContent:
    return ScrapedContent(
        url=url,
        title="Example",
        headings=Headings(h1="Top", h2="Sub"),
        meta_description="An example page",
        content=body,
    )


def test_key_for_truncates_long_urls():
    url = "https://example.com/" + "x" * 500
    key = key_for(url)
    assert key.startswith("scrape:")
    assert len(key) == len("scrape:") + 200


@pytest.mark.asyncio
async def test_put_then_get_returns_content_with_timestamp(fake_redis):
    cache = ContentCache(fake_redis, ttl_seconds=3600)

    assert await cache.put("https://example.com/a", _content())
    assert fake_redis.ttls[key_for("https://example.com/a")] == 3600

    cached = await cache.get("https://example.com/a")
    assert cached is not None
    assert cached.content == "Hello world"
    assert cached.headings.h1 == "Top"
    assert cached.cached_at is not None


@pytest.mark.asyncio
async def test_get_miss_returns_none(fake_redis):
    cache = ContentCache(fake_redis)
    assert await cache.get("https://example.com/missing") is None


@pytest.mark.asyncio
async def test_oversized_content_is_not_cached(fake_redis):
    cache = ContentCache(fake_redis, max_bytes=100)

    assert await cache.put("https://example.com/big", _content(body="x" * 1000)) is False
    assert key_for("https://example.com/big") not in fake_redis.values


@pytest.mark.asyncio
async def test_invalid_payload_is_discarded(fake_redis):
    cache = ContentCache(fake_redis)
    key = key_for("https://example.com/bad")
    fake_redis.values[key] = json.dumps({"url": "https://example.com/bad", "title": 7})

    assert await cache.get("https://example.com/bad") is None
    assert key not in fake_redis.values


@pytest.mark.asyncio
async def test_error_payload_with_page_text_is_discarded(fake_redis):
    cache = ContentCache(fake_redis)
    key = key_for("https://example.com/mixed")
    payload = _content("https://example.com/mixed").to_dict()
    payload["error"] = "Failed to scrape URL"
    fake_redis.values[key] = json.dumps(payload)

    assert await cache.get("https://example.com/mixed") is None
    assert key not in fake_redis.values


def test_failed_scrape_payload_is_valid():
    assert is_valid_scraped_payload(ScrapedContent.failed("https://example.com/down").to_dict())


@pytest.mark.asyncio
async def test_unparsable_payload_is_discarded(fake_redis):
    cache = ContentCache(fake_redis)
    key = key_for("https://example.com/junk")
    fake_redis.values[key] = "{not json"

    assert await cache.get("https://example.com/junk") is None
    assert key not in fake_redis.values


@pytest.mark.asyncio
async def test_store_errors_degrade_to_misses(broken_redis):
    cache = ContentCache(broken_redis)

    assert await cache.get("https://example.com/a") is None
    assert await cache.put("https://example.com/a", _content()) is False

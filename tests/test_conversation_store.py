from __future__ import annotations

import json

import pytest

from webchat.services.conversation_store import (
    RATE_LIMIT_WINDOW,
    ConversationStore,
    conversation_key,
    owner_label,
    owner_key,
    rate_limit_key,
    session_conversations_key,
)

MESSAGES = [{"role": "user", "content": "hi"}, {"role": "ai", "content": "hello"}]


@pytest.fixture
def store(fake_redis) -> ConversationStore:
    return ConversationStore(fake_redis, conversation_ttl=600, shared_ttl=1200, daily_conversation_limit=50)


@pytest.mark.asyncio
async def test_save_records_ownership_both_ways(store, fake_redis, session_id):
    assert await store.save_conversation("c1", MESSAGES, session_id)

    assert fake_redis.values[owner_key("c1")] == session_id
    assert "c1" in fake_redis.values[session_conversations_key(session_id)]
    assert json.loads(fake_redis.values[conversation_key("c1")]) == MESSAGES
    assert fake_redis.ttls[conversation_key("c1")] == 600
    assert fake_redis.ttls[owner_key("c1")] == 600


@pytest.mark.asyncio
async def test_owner_can_overwrite_and_refreshes_expiry(store, fake_redis, session_id):
    assert await store.save_conversation("c1", MESSAGES, session_id)
    fake_redis.ttls[owner_key("c1")] = 5

    longer = MESSAGES + [{"role": "user", "content": "more"}]
    assert await store.save_conversation("c1", longer, session_id)

    assert await store.get_conversation("c1") == longer
    assert fake_redis.ttls[owner_key("c1")] == 600


@pytest.mark.asyncio
async def test_association_fails_closed_for_other_session(store, fake_redis, session_id, other_session_id):
    assert await store.save_conversation("c1", MESSAGES, session_id)

    assert not await store.associate_conversation_with_session("c1", other_session_id)
    assert not await store.save_conversation("c1", [], other_session_id)

    assert fake_redis.values[owner_key("c1")] == session_id
    assert await store.get_conversation("c1") == MESSAGES
    assert await store.get_session_conversations(other_session_id) == []


@pytest.mark.asyncio
async def test_association_rejects_invalid_ids(store):
    assert not await store.associate_conversation_with_session("c1", "not-a-session")
    assert not await store.associate_conversation_with_session("", "a" * 64)


@pytest.mark.asyncio
async def test_secure_read_enforces_ownership(store, session_id, other_session_id):
    await store.save_conversation("c1", MESSAGES, session_id)

    assert await store.get_conversation_secure("c1", session_id) == MESSAGES
    assert await store.get_conversation_secure("c1", other_session_id) is None
    assert await store.get_conversation_secure("missing", session_id) is None


@pytest.mark.asyncio
async def test_unowned_conversation_is_claimed_by_first_reader(store, fake_redis, session_id, other_session_id):
    fake_redis.values[conversation_key("legacy")] = json.dumps(MESSAGES)

    assert await store.get_conversation_secure("legacy", session_id) == MESSAGES
    assert await store.get_conversation_owner("legacy") == session_id
    assert await store.get_conversation_secure("legacy", other_session_id) is None


@pytest.mark.asyncio
async def test_unowned_conversation_stays_hidden_when_claiming_disabled(fake_redis, session_id):
    store = ConversationStore(fake_redis, claim_unowned=False)
    fake_redis.values[conversation_key("legacy")] = json.dumps(MESSAGES)

    assert await store.get_conversation_secure("legacy", session_id) is None
    assert await store.get_conversation_owner("legacy") is None


@pytest.mark.asyncio
async def test_listing_drops_entries_owned_elsewhere(store, fake_redis, session_id, other_session_id):
    await store.save_conversation("c2", MESSAGES, session_id)
    await store.save_conversation("c1", MESSAGES, session_id)
    await store.save_conversation("c3", MESSAGES, other_session_id)
    fake_redis.values[session_conversations_key(session_id)].add("c3")

    assert await store.get_session_conversations(session_id) == ["c1", "c2"]
    assert "c3" not in fake_redis.values[session_conversations_key(session_id)]
    assert await store.get_session_conversations("bogus") == []


@pytest.mark.asyncio
async def test_share_snapshots_owned_conversation(store, fake_redis, session_id):
    await store.save_conversation("c1", MESSAGES, session_id)

    shared_id = await store.create_shared_conversation("c1", session_id)
    assert shared_id and shared_id != "c1"
    assert fake_redis.ttls[f"shared:{shared_id}"] == 1200

    await store.save_conversation("c1", MESSAGES + [{"role": "user", "content": "later"}], session_id)

    shared = await store.get_shared_conversation(shared_id)
    assert shared is not None
    assert shared.messages == MESSAGES
    assert shared.original_id == "c1"
    assert shared.shared_by == owner_label(session_id, "")
    assert session_id not in fake_redis.values[f"shared:{shared_id}"]
    assert set(shared.metadata) == {"sharedBy", "sharedAt", "originalId"}


@pytest.mark.asyncio
async def test_share_denied_for_non_owner_or_unowned(store, fake_redis, session_id, other_session_id):
    await store.save_conversation("c1", MESSAGES, session_id)
    fake_redis.values[conversation_key("legacy")] = json.dumps(MESSAGES)

    assert await store.create_shared_conversation("c1", other_session_id) is None
    assert await store.create_shared_conversation("legacy", session_id) is None
    assert await store.create_shared_conversation("missing", session_id) is None


@pytest.mark.asyncio
async def test_share_returns_none_when_store_fails(store, fake_redis, session_id):
    await store.save_conversation("c1", MESSAGES, session_id)
    fake_redis.fail_with = ConnectionError("gone")

    assert await store.create_shared_conversation("c1", session_id) is None


@pytest.mark.asyncio
async def test_unknown_shared_id(store):
    assert await store.get_shared_conversation("nope") is None
    assert await store.get_shared_conversation("") is None


@pytest.mark.asyncio
async def test_daily_limit_allows_fifty_then_blocks(store, fake_redis, session_id):
    allowed = [await store.check_conversation_rate_limit(session_id) for _ in range(50)]
    assert all(allowed)
    assert fake_redis.ttls[rate_limit_key(session_id)] == RATE_LIMIT_WINDOW

    assert await store.check_conversation_rate_limit(session_id) is False


def test_generated_ids_are_unique():
    ids = {ConversationStore.generate_conversation_id() for _ in range(100)}
    assert len(ids) == 100

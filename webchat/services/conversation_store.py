"""Conversation persistence and per-session ownership on Redis.

Keys:
    conversation:{cid}                 JSON message list
    conversation:{cid}:session         owning session id (reverse pointer)
    session:{sid}:conversations        set of conversation ids (forward index)
    shared:{shared_id}                 JSON shared snapshot
    conversation_rate:{sid}            daily new-conversation counter

The reverse pointer is written with SET NX and is the source of truth for
ownership. The forward set is a derived index: listings drop any member whose
reverse pointer names a different session.
"""
from __future__ import annotations

import hashlib
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
from loguru import logger

from webchat.services import logger as log_service
from webchat.services.sessions import is_valid_session_id

DEFAULT_CONVERSATION_TTL = 7 * 24 * 60 * 60
DEFAULT_SHARED_TTL = 30 * 24 * 60 * 60
RATE_LIMIT_WINDOW = 24 * 60 * 60
DEFAULT_DAILY_LIMIT = 50
ID_BYTES = 16
OWNER_LABEL_LENGTH = 12


def conversation_key(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


def owner_key(conversation_id: str) -> str:
    return f"conversation:{conversation_id}:session"


def session_conversations_key(session_id: str) -> str:
    return f"session:{session_id}:conversations"


def shared_key(shared_id: str) -> str:
    return f"shared:{shared_id}"


def rate_limit_key(session_id: str) -> str:
    return f"conversation_rate:{session_id}"


def owner_label(session_id: str, secret: str) -> str:
    """Public, non-reversible name for the session that shared a conversation."""
    digest = hashlib.sha256(f"{session_id}:{secret}".encode("utf-8")).hexdigest()
    return digest[:OWNER_LABEL_LENGTH]


@dataclass
class SharedConversation:
    shared_id: str
    original_id: str
    messages: list[dict[str, Any]]
    shared_by: str
    shared_at: str

    @property
    def metadata(self) -> dict[str, str]:
        return {
            "sharedBy": self.shared_by,
            "sharedAt": self.shared_at,
            "originalId": self.original_id,
        }


def _parse_messages(raw: Any) -> list[dict[str, Any]] | None:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.error(f"[Conversations] Error parsing conversation data: {e}")
        return None
    if not isinstance(data, list):
        return None
    return data


class ConversationStore:
    def __init__(
        self,
        client: redis.Redis,
        *,
        conversation_ttl: int = DEFAULT_CONVERSATION_TTL,
        shared_ttl: int = DEFAULT_SHARED_TTL,
        daily_conversation_limit: int = DEFAULT_DAILY_LIMIT,
        claim_unowned: bool = True,
        label_secret: str = "",
    ):
        self.client = client
        self.conversation_ttl = conversation_ttl
        self.shared_ttl = shared_ttl
        self.daily_conversation_limit = daily_conversation_limit
        self.claim_unowned = claim_unowned
        self.label_secret = label_secret

    @staticmethod
    def generate_conversation_id() -> str:
        return secrets.token_urlsafe(ID_BYTES)

    # --- Ownership ---

    async def get_conversation_owner(self, conversation_id: str) -> str | None:
        return await self.client.get(owner_key(conversation_id))

    async def associate_conversation_with_session(self, conversation_id: str, session_id: str) -> bool:
        """Claim `conversation_id` for `session_id`; fails closed if another session owns it."""
        if not conversation_id or not is_valid_session_id(session_id):
            logger.warning("[Conversations] Association rejected: invalid conversation or session id")
            return False

        pointer = owner_key(conversation_id)
        claimed = await self.client.set(pointer, session_id, nx=True, ex=self.conversation_ttl)
        if not claimed:
            existing = await self.client.get(pointer)
            if existing != session_id:
                log_service.log_event(
                    event_type="ownership_conflict",
                    message="Conversation already owned by another session",
                    conversation_id=conversation_id,
                )
                return False
            await self.client.expire(pointer, self.conversation_ttl)

        forward = session_conversations_key(session_id)
        await self.client.sadd(forward, conversation_id)
        await self.client.expire(forward, self.conversation_ttl)

        # Read back both sides; a concurrent writer can still slip in between.
        owner = await self.client.get(pointer)
        listed = await self.client.sismember(forward, conversation_id)
        if owner != session_id or not listed:
            logger.error(f"[Conversations] Ownership verification failed for {conversation_id}")
            return False
        return True

    async def get_session_conversations(self, session_id: str) -> list[str]:
        if not is_valid_session_id(session_id):
            return []
        forward = session_conversations_key(session_id)
        members = await self.client.smembers(forward)
        owned: list[str] = []
        for conversation_id in sorted(members):
            if await self.get_conversation_owner(conversation_id) == session_id:
                owned.append(conversation_id)
            else:
                await self.client.srem(forward, conversation_id)
        return owned

    # --- Conversations ---

    async def save_conversation(
        self,
        conversation_id: str,
        messages: list[dict[str, Any]],
        session_id: str,
    ) -> bool:
        if not await self.associate_conversation_with_session(conversation_id, session_id):
            logger.warning(f"[Conversations] Save aborted, ownership not granted for {conversation_id}")
            return False
        await self.client.set(
            conversation_key(conversation_id),
            json.dumps(messages),
            ex=self.conversation_ttl,
        )
        log_service.log_store_operation(
            "set", "conversation", "success", details=f"{len(messages)} messages"
        )
        return True

    async def get_conversation(self, conversation_id: str) -> list[dict[str, Any]] | None:
        """Unchecked read; callers facing a client use get_conversation_secure."""
        raw = await self.client.get(conversation_key(conversation_id))
        if raw is None:
            return None
        return _parse_messages(raw)

    async def get_conversation_secure(
        self,
        conversation_id: str,
        session_id: str,
    ) -> list[dict[str, Any]] | None:
        if not conversation_id or not is_valid_session_id(session_id):
            return None

        owner = await self.get_conversation_owner(conversation_id)
        if owner is None:
            if not self.claim_unowned:
                return None
            # An existing conversation with no owner record goes to the first
            # session that asks for it.
            messages = await self.get_conversation(conversation_id)
            if messages is None:
                return None
            if not await self.associate_conversation_with_session(conversation_id, session_id):
                return None
            log_service.log_event(
                event_type="ownership_claimed",
                message="Unowned conversation claimed on read",
                conversation_id=conversation_id,
            )
            return messages

        if owner != session_id:
            logger.warning(f"[Conversations] Access denied to {conversation_id}")
            return None
        return await self.get_conversation(conversation_id)

    # --- Sharing ---

    async def create_shared_conversation(self, conversation_id: str, session_id: str) -> str | None:
        """Snapshot an owned conversation under a new public id; None on any failure."""
        try:
            if not is_valid_session_id(session_id):
                return None
            if await self.get_conversation_owner(conversation_id) != session_id:
                logger.warning(f"[Conversations] Share denied for {conversation_id}")
                return None
            messages = await self.get_conversation(conversation_id)
            if messages is None:
                return None

            shared_id = self.generate_conversation_id()
            payload = {
                "sharedId": shared_id,
                "originalId": conversation_id,
                "messages": messages,
                "sharedBy": owner_label(session_id, self.label_secret),
                "sharedAt": datetime.now(timezone.utc).isoformat(),
            }
            # json.dumps produces an independent copy of the message list.
            await self.client.set(shared_key(shared_id), json.dumps(payload), ex=self.shared_ttl)
            return shared_id
        except Exception as e:
            logger.opt(exception=e).error(f"[Conversations] Error creating shared conversation: {e}")
            return None

    async def get_shared_conversation(self, shared_id: str) -> SharedConversation | None:
        if not shared_id:
            return None
        raw = await self.client.get(shared_key(shared_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return SharedConversation(
                shared_id=data.get("sharedId", shared_id),
                original_id=data["originalId"],
                messages=list(data["messages"]),
                shared_by=data["sharedBy"],
                shared_at=data["sharedAt"],
            )
        except (TypeError, ValueError, KeyError) as e:
            logger.error(f"[Conversations] Malformed shared conversation {shared_id}: {e}")
            return None

    # --- Limits ---

    async def check_conversation_rate_limit(self, session_id: str) -> bool:
        """Count one new conversation; False once the daily cap is exceeded."""
        key = rate_limit_key(session_id)
        await self.client.set(key, 0, ex=RATE_LIMIT_WINDOW, nx=True)
        count = int(await self.client.incr(key))
        if count > self.daily_conversation_limit:
            logger.warning(f"[Conversations] Daily conversation limit reached ({count - 1})")
            return False
        return True

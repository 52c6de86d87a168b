from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from webchat.api.deps import AppServices, enforce_rate_limit, get_services, require_session
from webchat.models.schemas import ConversationListResponse, ConversationResponse, Message

router = APIRouter(prefix="/api", tags=["conversations"], dependencies=[Depends(enforce_rate_limit)])


@router.get("/conversation", response_model=ConversationResponse | ConversationListResponse)
async def get_conversation(
    id: str | None = None,
    session_id: str = Depends(require_session),
    services: AppServices = Depends(get_services),
):
    """A conversation owned by the caller, or the caller's conversation ids when no id is given."""
    if not id:
        conversations = await services.conversations.get_session_conversations(session_id)
        return ConversationListResponse(conversations=conversations)

    messages = await services.conversations.get_conversation_secure(id, session_id)
    if messages is None:
        raise HTTPException(status_code=404, detail="Conversation not found or access denied")
    return ConversationResponse(conversation=[Message(**m) for m in messages])

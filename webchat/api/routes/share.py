from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from webchat.api.deps import AppServices, enforce_rate_limit, get_services, require_session
from webchat.models.schemas import (
    Message,
    ShareRequest,
    ShareResponse,
    SharedConversationResponse,
    SharedMetadata,
)

router = APIRouter(prefix="/api", tags=["share"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/share", response_model=ShareResponse)
async def share_conversation(
    body: ShareRequest,
    session_id: str = Depends(require_session),
    services: AppServices = Depends(get_services),
):
    shared_id = await services.conversations.create_shared_conversation(body.conversation_id, session_id)
    if shared_id is None:
        raise HTTPException(status_code=404, detail="Conversation not found or access denied")
    logger.info(f"[Share] Shared conversation {body.conversation_id} as {shared_id}")
    return ShareResponse(shared_id=shared_id)


@router.get("/shared/{shared_id}", response_model=SharedConversationResponse)
async def get_shared_conversation(
    shared_id: str,
    services: AppServices = Depends(get_services),
):
    shared = await services.conversations.get_shared_conversation(shared_id)
    if shared is None:
        raise HTTPException(status_code=404, detail="Shared conversation not found")
    return SharedConversationResponse(
        messages=[Message(**m) for m in shared.messages],
        metadata=SharedMetadata(
            shared_by=shared.shared_by,
            shared_at=shared.shared_at,
            original_id=shared.original_id,
        ),
    )

from __future__ import annotations

import json
from typing import Any, AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from loguru import logger
from sse_starlette.sse import EventSourceResponse

from webchat.api.deps import (
    AppServices,
    enforce_rate_limit,
    get_services,
    rate_limit_headers,
    require_session,
    session_cookie,
    set_session_cookie,
)
from webchat.models.schemas import ChatRequest, ContinueRequest, ContinueResponse
from webchat.services import logger as log_service
from webchat.services import streaming
from webchat.services.conversation_store import RATE_LIMIT_WINDOW as CONVERSATION_RATE_WINDOW

router = APIRouter(prefix="/api", tags=["chat"], dependencies=[Depends(enforce_rate_limit)])

RATE_LIMIT_MESSAGE = "Daily conversation limit reached. Please try again tomorrow."
STREAM_FAILED_MESSAGE = "Chat stream failed unexpectedly."


async def chat_event_stream(
    services: AppServices,
    body: ChatRequest,
    session_id: str,
) -> AsyncGenerator[dict[str, Any], None]:
    """SSE payloads for one turn; always ends with a completion or error event."""
    log_service.log_event(
        event_type="chat_started",
        message="Chat turn started",
        conversation_id=body.conversation_id,
        history=len(body.messages),
    )
    try:
        async for event in services.orchestrator.run(
            body.message,
            body.messages,
            conversation_id=body.conversation_id,
            session_id=session_id,
        ):
            yield {"data": json.dumps(event.payload())}
            if event.terminal:
                return
    except Exception as e:
        logger.exception(f"[Chat] Unhandled error in chat stream: {e}")
    else:
        logger.error("[Chat] Chat stream ended without a terminal event")
    yield {"data": json.dumps(streaming.error(STREAM_FAILED_MESSAGE).payload())}


@router.post("/chat")
async def chat(
    body: ChatRequest,
    request: Request,
    session_id: str = Depends(require_session),
    services: AppServices = Depends(get_services),
):
    if not body.message.strip():
        raise HTTPException(status_code=400, detail="Bad request: message is required")

    owner = None
    if body.conversation_id:
        owner = await services.conversations.get_conversation_owner(body.conversation_id)
        if owner is not None and owner != session_id:
            raise HTTPException(status_code=403, detail="Conversation belongs to another session")

    # Any turn without an existing owned conversation creates one.
    if owner is None and not await services.conversations.check_conversation_rate_limit(session_id):
        raise HTTPException(
            status_code=429,
            detail=RATE_LIMIT_MESSAGE,
            headers={"Retry-After": str(CONVERSATION_RATE_WINDOW)},
        )

    return EventSourceResponse(
        chat_event_stream(services, body, session_id),
        headers={"Cache-Control": "no-cache", **rate_limit_headers(request)},
    )


@router.post("/continue", response_model=ContinueResponse)
async def continue_conversation(
    body: ContinueRequest,
    request: Request,
    response: Response,
    services: AppServices = Depends(get_services),
):
    """Persist a client-held transcript as a new conversation."""
    session_id = session_cookie(request)
    if session_id is None or await services.sessions.get_session(session_id) is None:
        session_id = await services.sessions.create_session()
        set_session_cookie(response, session_id, services.settings)

    if not await services.conversations.check_conversation_rate_limit(session_id):
        raise HTTPException(
            status_code=429,
            detail=RATE_LIMIT_MESSAGE,
            headers={"Retry-After": str(CONVERSATION_RATE_WINDOW)},
        )

    conversation_id = services.conversations.generate_conversation_id()
    messages = [m.model_dump() for m in body.messages]
    if not await services.conversations.save_conversation(conversation_id, messages, session_id):
        raise HTTPException(status_code=500, detail="Failed to save conversation")

    logger.info(f"[Chat] Continued conversation {conversation_id} with {len(messages)} messages")
    return ContinueResponse(conversation_id=conversation_id)

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from webchat.api.deps import AppServices, get_services, session_cookie, set_session_cookie
from webchat.models.schemas import SessionStatusResponse

router = APIRouter(prefix="/api/auth", tags=["session"])


@router.get("/session", response_model=SessionStatusResponse)
async def bootstrap_session(
    request: Request,
    response: Response,
    services: AppServices = Depends(get_services),
):
    """Issue the anonymous session cookie unless a live session already exists."""
    existing = session_cookie(request)
    if existing is not None and await services.sessions.get_session(existing) is not None:
        return SessionStatusResponse(status="existing session")

    session_id = await services.sessions.create_session()
    set_session_cookie(response, session_id, services.settings)
    return SessionStatusResponse(status="session created")

from __future__ import annotations

from dataclasses import dataclass

import redis.asyncio as redis
from fastapi import Depends, HTTPException, Request, Response

from webchat.agents.classifier import SearchClassifier
from webchat.agents.orchestrator import ChatOrchestrator, SearchOrchestrator
from webchat.config import Settings
from webchat.llm_client import CompletionClient, ModelSpec, build_completion_client
from webchat.services.conversation_store import ConversationStore
from webchat.services.rate_limit import RateLimiter
from webchat.services.sessions import SessionManager, is_valid_session_id
from webchat.tools.browser import build_renderer
from webchat.tools.content_cache import ContentCache
from webchat.tools.google_search import WebSearchClient
from webchat.tools.scraper import PageScraper

SESSION_COOKIE = "session"


@dataclass
class AppServices:
    """Process-wide collaborators, built once at startup and shared by reference."""

    settings: Settings
    redis: redis.Redis
    sessions: SessionManager
    conversations: ConversationStore
    rate_limiter: RateLimiter
    completion_client: CompletionClient
    orchestrator: ChatOrchestrator


def build_services(
    settings: Settings,
    client: redis.Redis,
    *,
    completion_client: CompletionClient | None = None,
) -> AppServices:
    completion_client = completion_client or build_completion_client(settings)
    renderer = build_renderer(settings)
    cache = ContentCache(
        client,
        ttl_seconds=settings.scrape_cache_ttl_seconds,
        max_bytes=settings.scrape_cache_max_bytes,
    )
    conversations = ConversationStore(
        client,
        conversation_ttl=settings.conversation_ttl_seconds,
        shared_ttl=settings.shared_ttl_seconds,
        daily_conversation_limit=settings.daily_conversation_limit,
        claim_unowned=settings.claim_unowned_conversations,
        label_secret=settings.rate_limit_secret,
    )
    classifier = SearchClassifier(
        completion_client.secondary,
        ModelSpec("groq", settings.classifier_model, max_tokens=256, supports_json_mode=True),
    )
    search = SearchOrchestrator(
        scraper=PageScraper(renderer, cache, max_chars=settings.scrape_max_chars),
        search_client=WebSearchClient(renderer),
        classifier=classifier,
        max_results=settings.search_max_results,
    )
    return AppServices(
        settings=settings,
        redis=client,
        sessions=SessionManager(client, ttl_seconds=settings.session_ttl_seconds),
        conversations=conversations,
        rate_limiter=RateLimiter(
            client,
            secret=settings.rate_limit_secret,
            window_seconds=settings.rate_limit_window_seconds,
            max_requests=settings.rate_limit_max_requests,
        ),
        completion_client=completion_client,
        orchestrator=ChatOrchestrator(
            search=search,
            completion_client=completion_client,
            conversations=conversations,
        ),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def session_cookie(request: Request) -> str | None:
    value = request.cookies.get(SESSION_COOKIE)
    return value if is_valid_session_id(value) else None


async def require_session(
    request: Request,
    services: AppServices = Depends(get_services),
) -> str:
    """Valid, live session id from the cookie, or 401."""
    session_id = session_cookie(request)
    if session_id is None or await services.sessions.get_session(session_id) is None:
        raise HTTPException(status_code=401, detail="Unauthorized: No session found")
    return session_id


async def enforce_rate_limit(
    request: Request,
    response: Response,
    services: AppServices = Depends(get_services),
) -> None:
    decision = await services.rate_limiter.check(session_cookie(request), request.url.path)
    if decision.limited:
        raise HTTPException(status_code=429, detail="Too many requests", headers=decision.headers)
    request.state.rate_limit_headers = decision.headers
    for name, value in decision.headers.items():
        response.headers[name] = value


def rate_limit_headers(request: Request) -> dict[str, str]:
    """Headers from this request's rate-limit check, for routes that build their own Response."""
    return dict(getattr(request.state, "rate_limit_headers", {}))


def set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        secure=not settings.is_development,
        samesite="strict",
    )

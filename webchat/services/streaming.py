from __future__ import annotations

from webchat.models.content import ScrapedContent, SearchResult
from webchat.models.events import ChatEvent, EventType, Status


def status(value: Status) -> ChatEvent:
    return ChatEvent(event=EventType.STATUS, content=value.value)


def search_result(result: SearchResult) -> ChatEvent:
    return ChatEvent(event=EventType.SEARCH_RESULT, content=result.to_dict())


def completion(
    reply: str,
    conversation_id: str | None,
    sources: list[ScrapedContent] | None = None,
) -> ChatEvent:
    """Terminal event carrying the answer and the pages it could cite."""
    cited = [
        {"url": s.url, "title": s.title or s.url}
        for s in (sources or [])
        if s.ok
    ]
    return ChatEvent(
        event=EventType.COMPLETION,
        content=reply,
        data={"conversationId": conversation_id, "sources": cited},
    )


def error(message: str) -> ChatEvent:
    return ChatEvent(event=EventType.ERROR, content=message)

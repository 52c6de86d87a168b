from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import AsyncGenerator

from loguru import logger

from webchat.agents.classifier import SearchClassifier
from webchat.agents.prompt_builder import build_prompt
from webchat.llm_client import CompletionClient
from webchat.models.content import ScrapedContent, SearchResult
from webchat.models.events import ChatEvent, Status
from webchat.models.schemas import Message
from webchat.services import logger as log_service
from webchat.services import streaming
from webchat.services.conversation_store import ConversationStore
from webchat.tools.google_search import WebSearchClient
from webchat.tools.scraper import PageScraper
from webchat.tools.web_utils import extract_urls, is_valid_url

TURN_FAILED_MESSAGE = "Sorry, an error occurred while generating a response."


@dataclass
class GatheredContext:
    """What the gather step found for one turn."""

    urls: list[str] = field(default_factory=list)
    searched: bool = False
    search_results: list[SearchResult] = field(default_factory=list)
    sources: list[ScrapedContent] = field(default_factory=list)


class SearchOrchestrator:
    """Turns a user message into scraped sources, streaming progress as it goes."""

    def __init__(
        self,
        *,
        scraper: PageScraper,
        search_client: WebSearchClient,
        classifier: SearchClassifier,
        max_results: int = 5,
    ):
        self.scraper = scraper
        self.search_client = search_client
        self.classifier = classifier
        self.max_results = max_results

    async def gather(self, message: str, context: GatheredContext) -> AsyncGenerator[ChatEvent, None]:
        """Fill `context` with sources for `message`, yielding status/searchResult events."""
        context.urls = extract_urls(message)

        if context.urls:
            logger.info(f"[Orchestrator] {len(context.urls)} URL(s) in message, scraping directly")
            yield streaming.status(Status.SCRAPING)
            context.sources = await self.scraper.scrape_many(context.urls)
            return

        if not await self.classifier.needs_web_search(message):
            logger.info("[Orchestrator] No web search needed")
            return

        context.searched = True
        yield streaming.status(Status.SEARCHING)
        try:
            context.search_results = await self.search_client.search(message, self.max_results)
        except Exception as e:
            log_service.log_event(
                event_type="search_failed",
                message="Web search failed, answering without sources",
                error=str(e),
            )
            context.search_results = []

        for result in context.search_results:
            yield streaming.search_result(result)

        yield streaming.status(Status.SCRAPING)
        links = [r.link for r in context.search_results]
        scrapable = [link for link in links if is_valid_url(link)]
        scraped = dict(zip(scrapable, await self.scraper.scrape_many(scrapable)))
        context.sources = [scraped.get(link) or ScrapedContent.failed(link) for link in links]


class ChatOrchestrator:
    """One chat turn: gather sources, ask the LLM, persist, emit a terminal event."""

    def __init__(
        self,
        *,
        search: SearchOrchestrator,
        completion_client: CompletionClient,
        conversations: ConversationStore | None = None,
    ):
        self.search = search
        self.completion_client = completion_client
        self.conversations = conversations

    async def run(
        self,
        message: str,
        history: list[Message],
        *,
        conversation_id: str | None = None,
        session_id: str | None = None,
    ) -> AsyncGenerator[ChatEvent, None]:
        started = time.monotonic()
        try:
            context = GatheredContext()
            async for event in self.search.gather(message, context):
                yield event

            prompt = build_prompt(message, history, context.sources)
            reply = await self.completion_client.complete(prompt.to_llm_messages())

            if self.conversations is not None and session_id:
                conversation_id = conversation_id or self.conversations.generate_conversation_id()
                transcript = [m.model_dump() for m in history]
                transcript.append({"role": "user", "content": message})
                transcript.append({"role": "ai", "content": reply})
                saved = await self.conversations.save_conversation(conversation_id, transcript, session_id)
                if not saved:
                    yield streaming.error("Failed to save conversation")
                    return

            log_service.log_event(
                event_type="turn_complete",
                message="Chat turn completed",
                conversation_id=conversation_id,
                searched=context.searched,
                sources=len(context.sources),
                runtime_ms=int((time.monotonic() - started) * 1000),
            )
            yield streaming.completion(reply, conversation_id, context.sources)
        except Exception as e:
            logger.exception(f"[Orchestrator] Chat turn failed: {e}")
            yield streaming.error(TURN_FAILED_MESSAGE)

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from webchat.models.content import ScrapedContent
from webchat.models.schemas import Message
from webchat.services.prompt_store import render_prompt

ROLE_MAP = {"user": "user", "ai": "assistant"}


@dataclass
class PromptBundle:
    system_prompt: str
    messages: list[dict[str, str]] = field(default_factory=list)

    def to_llm_messages(self) -> list[dict[str, str]]:
        return [{"role": "system", "content": self.system_prompt}, *self.messages]


def format_source(source: ScrapedContent) -> str:
    content = source.content if source.ok else f"(unavailable: {source.error})"
    return render_prompt(
        "chat.source_block",
        url=source.url,
        title=source.title,
        description=source.meta_description,
        content=content,
    )


def build_user_turn(question: str, sources: list[ScrapedContent]) -> str:
    if sources:
        blocks = "\n\n".join(format_source(s) for s in sources)
    else:
        blocks = render_prompt("chat.no_sources")
    return render_prompt("chat.user_turn", question=question, sources=blocks)


def build_prompt(
    message: str,
    history: Iterable[Message],
    sources: list[ScrapedContent],
) -> PromptBundle:
    """Assemble the system prompt and the message list for one chat turn."""
    messages = [
        {"role": ROLE_MAP[item.role], "content": item.content}
        for item in history
    ]
    messages.append({"role": "user", "content": build_user_turn(message, sources)})
    return PromptBundle(system_prompt=render_prompt("chat.system_prompt"), messages=messages)

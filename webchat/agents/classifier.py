from __future__ import annotations

import asyncio
import json
from typing import Any

from loguru import logger

from webchat.llm_client import MAX_RETRIES, ModelSpec, ProviderClient, Sleep, retry_delay
from webchat.services.prompt_store import render_prompt

TRAINING_CUTOFF_YEAR = 2023


class SearchClassifier:
    """Decides whether a question needs live web results."""

    def __init__(self, provider: ProviderClient, model: ModelSpec, *, sleep: Sleep = asyncio.sleep):
        self.provider = provider
        self.model = model
        self._sleep = sleep

    def _messages(self, question: str) -> list[dict[str, str]]:
        return [
            {
                "role": "system",
                "content": render_prompt("classifier.system_prompt", cutoff_year=TRAINING_CUTOFF_YEAR),
            },
            {"role": "user", "content": render_prompt("classifier.user_prompt", question=question)},
        ]

    async def needs_web_search(self, question: str) -> bool:
        """Classify `question`; answers False once every retry has failed."""
        for retry_count in range(MAX_RETRIES + 1):
            try:
                logger.info(f"[Classifier] Checking if question needs web search, retry: {retry_count}")
                raw = await self.provider.chat(
                    self.model,
                    self._messages(question),
                    json_mode=True,
                    caller="classifier",
                )
                parsed: Any = json.loads(raw)
                if not isinstance(parsed, dict) or not isinstance(parsed.get("requires_web_search"), bool):
                    raise ValueError(f"Unexpected classifier payload: {raw[:200]}")
                logger.debug(f"[Classifier] Classification result: {parsed}")
                return parsed["requires_web_search"]
            except Exception as e:
                logger.error(f"[Classifier] Error in needs_web_search: {e}")
                if retry_count < MAX_RETRIES:
                    await self._sleep(retry_delay(retry_count))

        logger.warning("[Classifier] Retries exhausted, answering without web search")
        return False

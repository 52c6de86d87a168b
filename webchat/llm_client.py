"""Two-tier LLM completion: one primary-provider attempt, then a model cascade."""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from loguru import logger

from webchat.config import Settings
from webchat.services import logger as log_service

MAX_RETRIES = 3
INITIAL_RETRY_DELAY = 0.5  # seconds; doubles on each retry of the same model

Sleep = Callable[[float], Awaitable[None]]


class CompletionError(Exception):
    pass


class EmptyResponseError(CompletionError):
    """The model answered, but with no content."""


class AllModelsExhaustedError(CompletionError):
    def __init__(self, message: str = "All models and retries exhausted"):
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class ModelSpec:
    provider: str
    model: str
    max_tokens: int = 4096
    supports_json_mode: bool = True


def retry_delay(retry_count: int) -> float:
    return INITIAL_RETRY_DELAY * (2**retry_count)


class ProviderClient:
    """Chat completions against one OpenAI-compatible provider."""

    def __init__(self, name: str, *, api_key: str, base_url: str, client: Any | None = None):
        self.name = name
        self.api_key = api_key
        self.base_url = base_url
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def chat(
        self,
        spec: ModelSpec,
        messages: list[dict[str, str]],
        *,
        json_mode: bool = False,
        caller: str = "completion",
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": spec.model,
            "messages": messages,
            "max_tokens": spec.max_tokens,
        }
        if json_mode and spec.supports_json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        t0 = time.monotonic()
        try:
            response = await self.client.chat.completions.create(**kwargs)
        except Exception as e:
            log_service.log_llm_call(
                model=spec.model,
                caller=caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            raise

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=spec.model,
            caller=caller,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )

        choices = getattr(response, "choices", None) or []
        text = choices[0].message.content if choices else None
        if not text:
            raise EmptyResponseError(f"Empty response from model {spec.model}")
        return text

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


class CompletionClient:
    """Primary provider once; on failure, each cascade model with retries and backoff."""

    def __init__(
        self,
        *,
        primary: ProviderClient,
        primary_model: ModelSpec,
        secondary: ProviderClient,
        cascade: list[ModelSpec],
        sleep: Sleep = asyncio.sleep,
    ):
        if not cascade:
            raise ValueError("Model cascade must contain at least one model")
        self.primary = primary
        self.primary_model = primary_model
        self.secondary = secondary
        self.cascade = list(cascade)
        self._sleep = sleep

    async def complete(self, messages: list[dict[str, str]]) -> str:
        logger.info(f"[LLM] Completion requested ({len(messages)} messages)")
        try:
            reply = await self.primary.chat(self.primary_model, messages)
            logger.info(f"[LLM] Answered by {self.primary.name}/{self.primary_model.model}")
            return reply
        except Exception as e:
            logger.warning(f"[LLM] {self.primary.name} failed, falling back to {self.secondary.name}: {e}")

        return await self.complete_with_cascade(messages)

    async def complete_with_cascade(self, messages: list[dict[str, str]]) -> str:
        for index, spec in enumerate(self.cascade):
            for retry_count in range(MAX_RETRIES + 1):
                try:
                    logger.info(f"[LLM] Attempting {spec.model}, retry: {retry_count}")
                    return await self.secondary.chat(spec, messages)
                except Exception as e:
                    logger.error(f"[LLM] Error with model {spec.model}: {e}")
                    if retry_count < MAX_RETRIES:
                        delay = retry_delay(retry_count)
                        logger.info(f"[LLM] Retrying {spec.model} after {int(delay * 1000)}ms")
                        await self._sleep(delay)

            if index < len(self.cascade) - 1:
                logger.warning(f"[LLM] Falling back to next model: {self.cascade[index + 1].model}")

        logger.error("[LLM] All models and retries exhausted")
        raise AllModelsExhaustedError()

    async def close(self) -> None:
        await self.primary.close()
        if self.secondary is not self.primary:
            await self.secondary.close()


def build_completion_client(settings: Settings) -> CompletionClient:
    primary = ProviderClient(
        "gemini",
        api_key=settings.gemini_api_key,
        base_url=settings.gemini_base_url,
    )
    secondary = ProviderClient(
        "groq",
        api_key=settings.groq_api_key,
        base_url=settings.groq_base_url,
    )
    return CompletionClient(
        primary=primary,
        primary_model=ModelSpec("gemini", settings.gemini_model, max_tokens=settings.llm_max_tokens),
        secondary=secondary,
        cascade=[
            ModelSpec("groq", model, max_tokens=settings.llm_max_tokens)
            for model in settings.groq_model_list
        ],
    )

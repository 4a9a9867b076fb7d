"""Completion clients used by the plan generator."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import openai

from app.core.config import Settings

logger = logging.getLogger(__name__)


class PlanCompletionClient(Protocol):
    """Anything that turns a system and user prompt into raw model text."""

    model: str

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


class EmptyCompletionError(RuntimeError):
    """Raised when the endpoint answers without any text content."""


@dataclass
class OpenAIPlanClient:
    """Chat-completions client with bounded output and a request timeout."""

    client: openai.OpenAI
    model: str
    max_tokens: int = 2000
    temperature: float = 0.7

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        completion = self.client.chat.completions.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        if not completion.choices:
            raise EmptyCompletionError("Completion returned no choices")
        content = completion.choices[0].message.content
        if not content or not content.strip():
            raise EmptyCompletionError("Completion returned empty content")
        return content


def build_plan_client(config: Settings) -> Optional[PlanCompletionClient]:
    """Construct the configured completion client, or None without an API key."""
    if not config.openai_api_key:
        logger.warning("OPENAI_API_KEY missing; plans will use the fallback generator.")
        return None

    raw_client = openai.OpenAI(
        api_key=config.openai_api_key,
        timeout=config.llm_timeout_seconds,
        max_retries=0,
    )
    logger.info("Plan generation model: %s", config.llm_model)
    return OpenAIPlanClient(
        client=raw_client,
        model=config.llm_model,
        max_tokens=config.llm_max_tokens,
        temperature=config.llm_temperature,
    )

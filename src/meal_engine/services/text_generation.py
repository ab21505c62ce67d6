"""Text-generation service wrapping an LLM client."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from meal_engine.domain.errors import (
    MealEngineError,
    ServiceTimeoutError,
    ServiceUnavailableError,
)

SYSTEM_PROMPT = (
    "You are an expert nutritionist specializing in anti-inflammatory meal planning."
)

_logger = logging.getLogger(__name__)


class TextGenerationClient(Protocol):
    """Interface for a text-generation model."""

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        temperature: float | None,
        store: bool,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: int,
    ) -> str:
        """Return the model's text reply."""


@dataclass
class TextGenerationService:
    """Sends prompts with the configured model and a per-call timeout."""

    client: TextGenerationClient
    model: str
    reasoning_effort: str | None = None
    temperature: float | None = None
    store: bool = False
    timeout_seconds: float = 30.0

    async def complete(self, user_prompt: str, *, max_output_tokens: int = 1000) -> str:
        """Return the reply text, raising a service error on failure."""
        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await self.client.complete(
                    model=self.model,
                    reasoning_effort=self.reasoning_effort,
                    temperature=self.temperature,
                    store=self.store,
                    system_prompt=SYSTEM_PROMPT,
                    user_prompt=user_prompt,
                    max_output_tokens=max_output_tokens,
                )
        except MealEngineError:
            raise
        except TimeoutError as exc:
            _logger.warning("Text generation timed out after %ss", self.timeout_seconds)
            raise ServiceTimeoutError(
                f"Text generation timed out after {self.timeout_seconds:g}s"
            ) from exc
        except Exception as exc:
            _logger.warning("Text generation failed: %s", exc)
            raise ServiceUnavailableError(f"Text generation failed: {exc}") from exc

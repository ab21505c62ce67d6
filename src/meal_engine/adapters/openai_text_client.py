"""OpenAI Responses API client for meal text generation."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from meal_engine.domain.errors import ParseFailureError
from meal_engine.services.text_generation import TextGenerationClient


@dataclass
class OpenAITextClient(TextGenerationClient):
    """Text-generation client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAITextClient":
        """Create an OpenAI text client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

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
        """Call OpenAI Responses API and return the output text."""
        request_payload: dict[str, object] = {
            "model": model,
            "instructions": system_prompt,
            "input": [{"role": "user", "content": user_prompt}],
            "max_output_tokens": max_output_tokens,
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}
        elif temperature is not None:
            request_payload["temperature"] = temperature

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text or not output_text.strip():
            raise ParseFailureError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying OpenAI HTTP session."""
        await self.client.close()

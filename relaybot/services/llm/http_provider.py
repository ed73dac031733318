from typing import Sequence

import httpx
from pydantic import ValidationError

from relaybot.logging_config import get_logger
from relaybot.schemas.completion import CompletionRequest, CompletionResponse
from relaybot.schemas.conversation import Turn
from relaybot.services.llm.base import CompletionError, CompletionProvider

logger = get_logger("llm.http")


class HttpCompletionProvider(CompletionProvider):
    """OpenAI-compatible /chat/completions endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        url: str,
        model: str,
        max_tokens: int = 300,
        temperature: float = 0.9,
        timeout_seconds: float = 60.0,
    ):
        self.client = client
        self.api_key = api_key
        self.url = url
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds

    def build_request(self, messages: Sequence[Turn]) -> CompletionRequest:
        return CompletionRequest(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=list(messages),
        )

    async def complete(self, messages: Sequence[Turn]) -> str:
        payload = self.build_request(messages).model_dump()
        logger.debug(f"Completion request: model={self.model}, messages_count={len(payload['messages'])}")

        try:
            response = await self.client.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise CompletionError(f"Completion request timed out after {self.timeout_seconds}s") from e
        except httpx.HTTPError as e:
            raise CompletionError(f"Completion request failed: {e}") from e

        logger.debug(f"Completion response status: {response.status_code}")

        if response.status_code != 200:
            raise CompletionError(f"Completion API error: {response.status_code} - {response.text[:200]}")

        try:
            parsed = CompletionResponse.model_validate(response.json())
            return parsed.text
        except (ValueError, ValidationError, IndexError) as e:
            raise CompletionError(f"Malformed completion response: {e}") from e

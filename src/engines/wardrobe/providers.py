"""
Third-party provider clients.

- BackgroundRemovalClient: remove.bg over httpx
- CompletionClient: OpenAI chat completions (text and vision)

Both are built once at startup and injected into the services; neither
retries. A failed call raises a ProviderError subclass.
"""

import time
from typing import Any, Dict, List, Optional

import httpx
from openai import AsyncOpenAI, OpenAIError

from src.core.exceptions import BackgroundRemovalError, CompletionError
from src.core.logging import get_logger
from src.core.metrics import record_provider_call

logger = get_logger(__name__)


class BackgroundRemovalClient:
    """Client for the remove.bg background removal API."""

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://api.remove.bg/v1.0/removebg",
        client: Optional[httpx.AsyncClient] = None
    ):
        self.api_key = api_key
        self.api_url = api_url
        self._client = client or httpx.AsyncClient()

    async def remove_background(self, image_url: str) -> bytes:
        """
        Strip the background of the image at ``image_url``.

        Returns:
            PNG bytes with a transparent background

        Raises:
            BackgroundRemovalError: on any non-success response or transport failure
        """
        start = time.perf_counter()
        # Multipart form, mirroring the provider's documented upload format
        form = {
            "image_url": (None, image_url),
            "size": (None, "auto"),
        }
        headers = {"X-Api-Key": self.api_key or ""}

        try:
            response = await self._client.post(self.api_url, files=form, headers=headers)
        except httpx.HTTPError as e:
            record_provider_call("removebg", "remove_background", "error", time.perf_counter() - start)
            raise BackgroundRemovalError(None, str(e)) from e

        duration = time.perf_counter() - start
        if not response.is_success:
            record_provider_call("removebg", "remove_background", "error", duration)
            raise BackgroundRemovalError(response.status_code, response.text)

        record_provider_call("removebg", "remove_background", "success", duration)
        logger.info("background_removed", output_size=len(response.content))
        return response.content

    async def aclose(self):
        await self._client.aclose()


class CompletionClient:
    """Client for chat and vision completions."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        max_tokens: int = 300,
        client: Optional[AsyncOpenAI] = None
    ):
        self.model = model
        self.max_tokens = max_tokens
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        temperature: float,
        operation: str = "chat"
    ) -> Optional[str]:
        """Run one completion and return the first choice's text (None if empty)."""
        start = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=temperature,
            )
        except OpenAIError as e:
            record_provider_call("openai", operation, "error", time.perf_counter() - start)
            raise CompletionError(str(e)) from e

        record_provider_call("openai", operation, "success", time.perf_counter() - start)
        if not response.choices:
            return None
        return response.choices[0].message.content

    async def describe_image(self, prompt: str, image_url: str, temperature: float = 0.0) -> str:
        """Vision completion over a single image reference."""
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }
        ]
        return await self.complete(messages, temperature=temperature, operation="vision") or ""

    async def aclose(self):
        await self._client.close()

"""
Sage Router - Anthropic Backend

Messages API (Claude Sonnet 4, Claude 3.x).
"""

import httpx

from .base import AdapterConfig, GenerationBackend
from ..core.errors import ProviderCallError, handle_provider_error
from ..core.models import ProviderIdentity


class AnthropicBackend(GenerationBackend):
    """
    Backend for the Anthropic messages endpoint.

    The system prompt travels in the top-level "system" field, not as a
    message.
    """

    provider = ProviderIdentity.ANTHROPIC
    DEFAULT_BASE_URL = "https://api.anthropic.com"
    API_VERSION = "2023-06-01"

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        self.base_url = config.base_url or self.DEFAULT_BASE_URL
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "x-api-key": config.api_key,
                "anthropic-version": self.API_VERSION,
                "Content-Type": "application/json",
            },
            timeout=config.timeout
        )

    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        request_id: str = "",
    ) -> str:
        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }

        try:
            response = await self.client.post("/v1/messages", json=payload)
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise handle_provider_error(self.provider.value, e, request_id)

        # Concatenate text blocks; tool_use blocks are not requested
        text = "".join(
            block.get("text", "")
            for block in data.get("content") or []
            if block.get("type") == "text"
        )
        if not text:
            raise ProviderCallError(
                self.provider.value,
                "No text content received from Anthropic",
                code="empty_response",
                request_id=request_id,
            )
        return text

    async def close(self):
        await self.client.aclose()

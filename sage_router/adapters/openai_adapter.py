"""
Sage Router - OpenAI Backend

Chat completions API (gpt-4o, gpt-4o-mini, ...).
"""

import httpx

from .base import AdapterConfig, GenerationBackend
from ..core.errors import ProviderCallError, handle_provider_error
from ..core.models import ProviderIdentity


class OpenAIBackend(GenerationBackend):
    """Backend for the OpenAI chat completions endpoint."""

    provider = ProviderIdentity.OPENAI
    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        self.base_url = config.base_url or self.DEFAULT_BASE_URL
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {config.api_key}",
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
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            response = await self.client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise handle_provider_error(self.provider.value, e, request_id)

        return self._extract_text(data, request_id)

    def _extract_text(self, data: dict, request_id: str) -> str:
        choices = data.get("choices") or []
        if not choices:
            raise ProviderCallError(
                self.provider.value,
                "OpenAI returned no choices",
                code="empty_response",
                request_id=request_id,
            )
        content = (choices[0].get("message") or {}).get("content")
        if not content:
            raise ProviderCallError(
                self.provider.value,
                "No content received from OpenAI",
                code="empty_response",
                request_id=request_id,
            )
        return content

    async def close(self):
        await self.client.aclose()

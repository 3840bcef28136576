"""
Sage Router - Gemini Backend

Google Generative Language API, generateContent.
"""

import httpx

from .base import AdapterConfig, GenerationBackend
from ..core.errors import ProviderCallError, handle_provider_error
from ..core.models import ProviderIdentity


class GeminiBackend(GenerationBackend):
    """Backend for Gemini models (gemini-1.5-pro, gemini-2.0-flash, ...)."""

    provider = ProviderIdentity.GEMINI
    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        self.base_url = config.base_url or self.DEFAULT_BASE_URL
        self.api_key = config.api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
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
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        url = f"/models/{model}:generateContent?key={self.api_key}"

        try:
            response = await self.client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise handle_provider_error(self.provider.value, e, request_id)

        candidates = data.get("candidates") or []
        if not candidates:
            # Blocked prompts come back with promptFeedback and no candidates
            reason = (data.get("promptFeedback") or {}).get("blockReason", "no candidates")
            raise ProviderCallError(
                self.provider.value,
                f"Gemini returned no candidates ({reason})",
                code="empty_response",
                request_id=request_id,
            )

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text:
            raise ProviderCallError(
                self.provider.value,
                "No text content received from Gemini",
                code="empty_response",
                request_id=request_id,
            )
        return text

    async def close(self):
        await self.client.aclose()

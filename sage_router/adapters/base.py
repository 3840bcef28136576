"""
Sage Router - Generation Backend Base

Abstract base class for generation backends.
Each provider (OpenAI, Anthropic, Gemini) implements this interface.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..core.errors import ProviderCallError, ProviderTimeoutError, handle_provider_error
from ..core.models import ProviderIdentity


@dataclass
class AdapterConfig:
    """Configuration for a generation backend."""
    api_key: str
    base_url: Optional[str] = None
    timeout: float = 60.0


class GenerationBackend(ABC):
    """
    Abstract base class for generation backends.

    A backend turns one (system prompt, user prompt) pair into text.
    It is responsible for:
    1. Building the provider-specific request body
    2. Making the API call to the provider
    3. Extracting the generated text
    4. Mapping provider failures to ProviderCallError
    """

    provider: ProviderIdentity

    def __init__(self, config: AdapterConfig):
        self.config = config

    @abstractmethod
    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        request_id: str = "",
    ) -> str:
        """
        Generate text for one prompt.

        Raises:
            ProviderCallError: the provider rejected or failed the call
        """
        pass

    async def close(self):
        """Release network resources."""
        return


async def call_with_timeout(
    backend: GenerationBackend,
    timeout_seconds: float,
    model: str,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_tokens: int,
    request_id: str = "",
) -> str:
    """
    Run one generate call bounded by timeout_seconds.

    Every failure comes out as a ProviderCallError naming the backend's
    provider; a timeout comes out as ProviderTimeoutError.
    """
    provider = backend.provider.value
    try:
        return await asyncio.wait_for(
            backend.generate(
                model=model,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=temperature,
                max_tokens=max_tokens,
                request_id=request_id,
            ),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        raise ProviderTimeoutError(provider, timeout_seconds, request_id)
    except ProviderCallError:
        raise
    except Exception as e:
        raise handle_provider_error(provider, e, request_id)

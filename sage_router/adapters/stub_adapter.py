"""
Sage Router - Stub Backend

Deterministic in-process backend used for local runs and tests.
No network calls, no provider keys required.
"""

import hashlib

from .base import AdapterConfig, GenerationBackend
from ..core.models import ProviderIdentity


class StubBackend(GenerationBackend):
    """Deterministic backend for tests/smoke checks."""

    def __init__(self, provider: ProviderIdentity, config: AdapterConfig = None):
        super().__init__(config or AdapterConfig(api_key="stub"))
        self.provider = provider
        self.calls = 0

    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        request_id: str = "",
    ) -> str:
        self.calls += 1
        digest = hashlib.sha256(user_prompt.encode("utf-8")).hexdigest()[:12]
        first_line = user_prompt.strip().splitlines()[0] if user_prompt.strip() else ""
        return f"stub[{self.provider.value}/{model}] {digest}: {first_line[:120]}"

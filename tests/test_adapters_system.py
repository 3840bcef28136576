"""
Sage Router - Backend and Error Mapping Tests

Backends are exercised against httpx.MockTransport; no network.
"""

import asyncio

import httpx
import pytest

from sage_router.adapters import build_backends, get_adapter
from sage_router.adapters.anthropic_adapter import AnthropicBackend
from sage_router.adapters.base import AdapterConfig, call_with_timeout
from sage_router.adapters.gemini_adapter import GeminiBackend
from sage_router.adapters.openai_adapter import OpenAIBackend
from sage_router.adapters.stub_adapter import StubBackend
from sage_router.config import RouterSettings
from sage_router.core.errors import (
    ProviderAuthError,
    ProviderCallError,
    ProviderRateLimitedError,
    ProviderTimeoutError,
    ProviderUpstreamError,
    handle_provider_error,
)
from sage_router.core.models import ProviderIdentity


def _mock(backend, handler):
    """Swap the backend's client for one served by handler."""
    backend.client = httpx.AsyncClient(
        base_url=backend.base_url,
        headers=backend.client.headers,
        transport=httpx.MockTransport(handler),
    )
    return backend


def _status_error(status, body=None, headers=None):
    request = httpx.Request("POST", "https://example.test/x")
    response = httpx.Response(status, json=body or {}, headers=headers, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


# ============================================================
# Provider backends
# ============================================================

class TestOpenAIBackend:

    @pytest.mark.asyncio
    async def test_generate_sends_system_and_user(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(200, json={"choices": [{"message": {"content": "Bold copy"}}]})

        backend = _mock(OpenAIBackend(AdapterConfig(api_key="k")), handler)
        text = await backend.generate("gpt-4o", "sys", "user text", temperature=0.9, max_tokens=100)

        assert text == "Bold copy"
        assert seen["path"].endswith("/chat/completions")
        assert b'"role":"system"' in seen["body"].replace(b" ", b"")
        await backend.close()

    @pytest.mark.asyncio
    async def test_empty_choices_is_call_error(self):
        backend = _mock(
            OpenAIBackend(AdapterConfig(api_key="k")),
            lambda request: httpx.Response(200, json={"choices": []}),
        )

        with pytest.raises(ProviderCallError) as exc_info:
            await backend.generate("gpt-4o", "sys", "hi")

        assert exc_info.value.error.code == "empty_response"
        await backend.close()

    @pytest.mark.asyncio
    async def test_rate_limit_maps(self):
        backend = _mock(
            OpenAIBackend(AdapterConfig(api_key="k")),
            lambda request: httpx.Response(429, headers={"retry-after": "7"}, json={}),
        )

        with pytest.raises(ProviderRateLimitedError) as exc_info:
            await backend.generate("gpt-4o", "sys", "hi")

        assert exc_info.value.error.retry_after == 7
        await backend.close()


class TestAnthropicBackend:

    @pytest.mark.asyncio
    async def test_joins_text_blocks(self):
        def handler(request):
            assert request.headers["anthropic-version"] == "2023-06-01"
            assert request.headers["x-api-key"] == "k"
            return httpx.Response(200, json={"content": [
                {"type": "text", "text": "Part one. "},
                {"type": "text", "text": "Part two."},
            ]})

        backend = _mock(AnthropicBackend(AdapterConfig(api_key="k")), handler)
        assert await backend.generate("claude-sonnet-4-20250514", "sys", "hi") == "Part one. Part two."
        await backend.close()

    @pytest.mark.asyncio
    async def test_auth_failure_maps(self):
        backend = _mock(
            AnthropicBackend(AdapterConfig(api_key="bad")),
            lambda request: httpx.Response(401, json={"error": {"message": "invalid x-api-key"}}),
        )

        with pytest.raises(ProviderAuthError) as exc_info:
            await backend.generate("claude-sonnet-4-20250514", "sys", "hi")

        assert "invalid x-api-key" in exc_info.value.error.message
        await backend.close()


class TestGeminiBackend:

    @pytest.mark.asyncio
    async def test_generate_content(self):
        def handler(request):
            assert request.url.path.endswith("/models/gemini-2.0-flash:generateContent")
            assert request.url.params["key"] == "k"
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "Fresh take"}]}}]
            })

        backend = _mock(GeminiBackend(AdapterConfig(api_key="k")), handler)
        assert await backend.generate("gemini-2.0-flash", "sys", "hi") == "Fresh take"
        await backend.close()

    @pytest.mark.asyncio
    async def test_blocked_prompt(self):
        backend = _mock(
            GeminiBackend(AdapterConfig(api_key="k")),
            lambda request: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}),
        )

        with pytest.raises(ProviderCallError, match="SAFETY"):
            await backend.generate("gemini-1.5-pro-002", "sys", "hi")
        await backend.close()


# ============================================================
# Timeout wrapper and factories
# ============================================================

class SlowBackend(StubBackend):
    async def generate(self, *args, **kwargs):
        await asyncio.sleep(0.5)
        return "late"


class TestCallWithTimeout:

    @pytest.mark.asyncio
    async def test_timeout_maps_to_provider_timeout(self):
        with pytest.raises(ProviderTimeoutError) as exc_info:
            await call_with_timeout(
                SlowBackend(ProviderIdentity.GEMINI), 0.05,
                model="m", system_prompt="s", user_prompt="u", temperature=0.7, max_tokens=10,
            )

        assert exc_info.value.provider == "gemini"
        assert exc_info.value.status_code == 504

    @pytest.mark.asyncio
    async def test_stub_is_deterministic(self):
        backend = StubBackend(ProviderIdentity.OPENAI)
        kwargs = dict(model="gpt-4o", system_prompt="s", user_prompt="Write a slogan", temperature=0.7, max_tokens=10)

        first = await call_with_timeout(backend, 1.0, **kwargs)
        second = await call_with_timeout(backend, 1.0, **kwargs)

        assert first == second
        assert first.startswith("stub[openai/gpt-4o]")
        assert backend.calls == 2


class TestFactories:

    def test_get_adapter(self):
        assert isinstance(get_adapter("OpenAI", AdapterConfig(api_key="k")), OpenAIBackend)
        with pytest.raises(ValueError):
            get_adapter("mistral", AdapterConfig(api_key="k"))

    def test_build_backends_only_keyed_providers(self):
        settings = RouterSettings(provider_keys={"openai": "k", "anthropic": None, "gemini": ""})
        backends = build_backends(settings)
        assert list(backends) == [ProviderIdentity.OPENAI]

    def test_build_backends_stub_mode(self):
        backends = build_backends(RouterSettings(use_stub_adapters=True))
        assert set(backends) == set(ProviderIdentity)
        assert all(isinstance(b, StubBackend) for b in backends.values())


# ============================================================
# Error mapping
# ============================================================

class TestHandleProviderError:

    def test_upstream_status(self):
        error = handle_provider_error(
            "openai",
            _status_error(500, {"error": {"message": "server exploded"}}, {"x-request-id": "up_1"}),
        )
        assert isinstance(error, ProviderUpstreamError)
        assert error.error.code == "upstream_500"
        assert error.error.message == "server exploded"
        assert error.error.provider_request_id == "up_1"

    def test_rate_limit_default_retry_after(self):
        error = handle_provider_error("gemini", _status_error(429))
        assert isinstance(error, ProviderRateLimitedError)
        assert error.error.retry_after == 60

    def test_forbidden_is_auth(self):
        assert isinstance(handle_provider_error("anthropic", _status_error(403)), ProviderAuthError)

    def test_httpx_timeout(self):
        error = handle_provider_error("openai", httpx.ReadTimeout("slow"))
        assert error.error.code == "connection_timeout"

    def test_call_error_passes_through(self):
        original = ProviderCallError("openai", "x")
        assert handle_provider_error("openai", original) is original

    def test_unknown_exception(self):
        error = handle_provider_error("openai", RuntimeError("weird"))
        assert error.error.code == "provider_call_failed"
        assert error.error.message == "weird"
        assert error.error.retryable is True

"""Unit tests for enrichment provider handling and parsing."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from recallbin.core.enrichment import (
    AIProviderError,
    EnrichmentError,
    EnrichmentService,
    fallback_output,
)
from recallbin.models.config import AppConfig


class _FakeResponse:
    def __init__(self, payload, status_code=200):
        self.status_code = status_code
        self._payload = payload
        self.text = ""

    def json(self):
        return self._payload


class _FakeAsyncClient:
    def __init__(self, calls, payload):
        self.calls = calls
        self.payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, endpoint, headers=None, json=None):
        self.calls.append({"endpoint": endpoint, "headers": headers, "json": json})
        return _FakeResponse(self.payload)


def _service(**overrides):
    data = dict(
        gemini_api_keys=["gemini-key"],
        openai_api_keys=["openai-key"],
        azure_openai_enabled=False,
        anthropic_enabled=False,
        ai_providers=["gemini", "openai"],
    )
    data.update(overrides)
    fetcher = AsyncMock()
    fetcher.extract_text = AsyncMock(return_value=None)
    return EnrichmentService(AppConfig(**data), content_fetcher=fetcher)


GOOD_JSON = (
    '{"title": "React Guide", "content_type": "documentation", "category": "programming",'
    ' "summary": "Intro.", "tags": ["react"], "confidence_level": "high"}'
)


class TestProviderCalls:
    @pytest.mark.asyncio
    async def test_gemini_request_shape(self, monkeypatch):
        service = _service()
        calls = []
        payload = {"candidates": [{"content": {"parts": [{"text": GOOD_JSON}]}}]}
        monkeypatch.setattr(
            "recallbin.core.enrichment.httpx.AsyncClient",
            lambda timeout: _FakeAsyncClient(calls, payload),
        )

        text = await service._generate_text("gemini", "prompt")

        assert text == GOOD_JSON
        assert calls[0]["headers"]["x-goog-api-key"] == "gemini-key"
        assert "gemini-flash-latest" in calls[0]["endpoint"]

    @pytest.mark.asyncio
    async def test_missing_key_is_configuration_error(self):
        service = _service(gemini_api_keys=[])
        with pytest.raises(AIProviderError) as exc_info:
            await service._generate_text("gemini", "prompt")
        assert exc_info.value.failure_type == "configuration"


class TestProviderChain:
    @pytest.mark.asyncio
    async def test_transient_failure_fails_over(self):
        service = _service()

        async def fake_generate(provider_id, prompt):
            if provider_id == "gemini":
                raise AIProviderError("gemini", "ratelimit", "slow down")
            return GOOD_JSON

        service._generate_text = fake_generate
        text, attempts = await service._generate("prompt")

        assert text == GOOD_JSON
        assert [(a.provider_id, a.succeeded) for a in attempts] == [
            ("gemini", False),
            ("openai", True),
        ]

    @pytest.mark.asyncio
    async def test_authentication_failure_stops_chain(self):
        service = _service()
        service._generate_text = AsyncMock(
            side_effect=AIProviderError("gemini", "authentication", "bad key")
        )

        with pytest.raises(EnrichmentError):
            await service._generate("prompt")
        assert service._generate_text.await_count == 1

    @pytest.mark.asyncio
    async def test_overall_timeout(self):
        service = _service(ai_timeout_seconds=1)

        async def hang(provider_id, prompt):
            await asyncio.sleep(5)

        service._generate_text = hang
        with pytest.raises(EnrichmentError) as exc_info:
            await service._generate("prompt")
        assert exc_info.value.attempts[-1].failure_type == "timeout"


class TestSummarize:
    @pytest.mark.asyncio
    async def test_summarize_parses_fenced_json(self):
        service = _service()
        service._generate = AsyncMock(return_value=(f"```json\n{GOOD_JSON}\n```", []))

        result = await service.summarize("https://react.dev", "React", "", "x" * 100, "web")

        assert result.used_fallback is False
        assert result.ai_output.title == "React Guide"
        service.content_fetcher.extract_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_thin_content_triggers_scrape(self):
        service = _service()
        service.content_fetcher.extract_text = AsyncMock(return_value="Scraped page body")
        service._generate = AsyncMock(return_value=(GOOD_JSON, []))

        await service.summarize("https://react.dev", "React", "", "short", "web")

        service.content_fetcher.extract_text.assert_awaited_once_with("https://react.dev")
        prompt = service._generate.call_args.args[0]
        assert "Scraped page body" in prompt

    @pytest.mark.asyncio
    async def test_no_provider_returns_fallback(self):
        service = _service(gemini_api_keys=[], openai_api_keys=[])

        result = await service.summarize("", "note", "", "some text " * 10, "note")

        assert result.used_fallback is True
        assert result.ai_output == fallback_output()

    @pytest.mark.asyncio
    async def test_malformed_json_returns_fallback(self):
        service = _service()
        service._generate = AsyncMock(return_value=("I cannot help with that", []))

        result = await service.summarize("https://a.b", "t", "", "x" * 100, "web")

        assert result.used_fallback is True
        assert result.ai_output.confidence_level == "low"

    @pytest.mark.asyncio
    async def test_network_error_in_provider_returns_fallback(self, monkeypatch):
        service = _service(ai_providers=["openai"])

        class _Broken:
            def __init__(self, timeout):
                pass

            async def __aenter__(self):
                return self

            async def __aexit__(self, *args):
                return False

            async def post(self, *args, **kwargs):
                raise httpx.ConnectError("refused")

        monkeypatch.setattr("recallbin.core.enrichment.httpx.AsyncClient", _Broken)

        result = await service.summarize("https://a.b", "t", "", "x" * 100, "web")
        assert result.used_fallback is True


class TestRankItems:
    @pytest.mark.asyncio
    async def test_rank_items_filters_indices(self):
        service = _service()
        service._generate = AsyncMock(
            return_value=('{"response": "Two hits", "relevantIndices": [1, 7, "0", 1]}', [])
        )

        response, indices = await service.rank_items("q", [{"title": "a"}, {"title": "b"}])

        assert response == "Two hits"
        assert indices == [1, 0]

    @pytest.mark.asyncio
    async def test_rank_items_non_json_raises(self):
        service = _service()
        service._generate = AsyncMock(return_value=("no json here", []))

        with pytest.raises(EnrichmentError):
            await service.rank_items("q", [{"title": "a"}])


class TestParsing:
    def test_parse_json_payload_with_wrapped_text(self):
        service = _service()
        text = "<think>analysis</think>\n" + GOOD_JSON + "\n</final>"
        assert service.parse_json_payload(text)["title"] == "React Guide"

    def test_provider_status(self):
        status = _service().get_provider_status()
        assert [s["provider_id"] for s in status] == ["gemini", "openai"]
        assert status[0]["key_count"] == 1

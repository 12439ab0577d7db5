import asyncio

import httpx
import pytest
from backend.reviewgen import openai_async
from backend.reviewgen.errors import ConfigurationError, UpstreamError, UpstreamTimeout
from backend.reviewgen.providers import (
    CompletionRequest,
    OpenAIChatProvider,
    _token_param,
)
from backend.reviewgen.settings import settings

REQUEST = CompletionRequest(
    system_instructions="system text",
    user_content="user text",
    max_output_tokens=300,
    creativity=0.8,
)


def _complete(provider, monkeypatch, response):
    captured = {}

    async def fake_post_json(path, payload, timeout=None):
        captured["path"] = path
        captured["payload"] = payload
        return response

    monkeypatch.setattr(openai_async, "post_json", fake_post_json)
    return asyncio.run(provider.complete(REQUEST)), captured


def test_token_param_by_model():
    assert _token_param("gpt-4o-mini") == "max_completion_tokens"
    assert _token_param("o3-mini") == "max_completion_tokens"
    assert _token_param("gpt-3.5-turbo") == "max_tokens"
    assert _token_param(None) == "max_tokens"


def test_payload_carries_style_parameters():
    payload = OpenAIChatProvider(model="gpt-3.5-turbo").build_payload(REQUEST)
    assert payload["temperature"] == 0.8
    assert payload["max_tokens"] == 300
    assert payload["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "user text"},
    ]


def test_complete_parses_text_and_usage(monkeypatch):
    response = {
        "choices": [{"message": {"content": "  おいしかった。 "}}],
        "usage": {"total_tokens": 57},
    }
    completion, captured = _complete(OpenAIChatProvider(model="gpt-4o-mini"), monkeypatch, response)
    assert captured["path"] == "/chat/completions"
    assert captured["payload"]["max_completion_tokens"] == 300
    assert completion.text == "  おいしかった。 "
    assert completion.total_tokens == 57


def test_missing_usage_is_none(monkeypatch):
    completion, _ = _complete(
        OpenAIChatProvider(), monkeypatch, {"choices": [{"message": {"content": None}}]}
    )
    assert completion.text == ""
    assert completion.total_tokens is None


@pytest.mark.parametrize(
    "response",
    [
        {"error": {"message": "rate limited"}},
        {"choices": []},
        {"choices": [{"finish_reason": "stop"}]},
        {"choices": [{"message": {"content": ["not", "text"]}}]},
    ],
)
def test_unusable_responses_raise(monkeypatch, response):
    with pytest.raises(UpstreamError):
        _complete(OpenAIChatProvider(), monkeypatch, response)


def test_provider_configured_from_settings(monkeypatch):
    provider = OpenAIChatProvider()
    assert provider.is_configured() is False
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")
    assert provider.is_configured() is True


class TestPostJson:
    def _post(self, monkeypatch, handler):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")

        async def run():
            client = httpx.AsyncClient(
                base_url="https://api.test/v1", transport=httpx.MockTransport(handler)
            )
            monkeypatch.setattr(openai_async, "_client", client)
            try:
                return await openai_async.post_json("/chat/completions", {"model": "m"})
            finally:
                await client.aclose()

        return asyncio.run(run())

    def test_success_sends_bearer_token(self, monkeypatch):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"ok": True})

        assert self._post(monkeypatch, handler) == {"ok": True}
        assert seen["auth"] == "Bearer sk-test"
        assert seen["url"] == "https://api.test/v1/chat/completions"

    def test_error_status_maps_to_upstream_error(self, monkeypatch):
        with pytest.raises(UpstreamError):
            self._post(monkeypatch, lambda request: httpx.Response(500, text="down"))

    def test_timeout_maps_to_upstream_timeout(self, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(UpstreamTimeout) as excinfo:
            self._post(monkeypatch, handler)
        assert excinfo.value.status_code == 504

    def test_invalid_json_maps_to_upstream_error(self, monkeypatch):
        with pytest.raises(UpstreamError):
            self._post(monkeypatch, lambda request: httpx.Response(200, text="<html>"))

    def test_missing_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            asyncio.run(openai_async.post_json("/chat/completions", {}))

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from . import openai_async
from .errors import UpstreamError
from .settings import settings


@dataclass(slots=True, frozen=True)
class CompletionRequest:
    system_instructions: str
    user_content: str
    max_output_tokens: int
    creativity: float


@dataclass(slots=True, frozen=True)
class Completion:
    text: str
    total_tokens: int | None = None


class TextCompletionProvider(Protocol):
    def is_configured(self) -> bool: ...

    async def complete(self, request: CompletionRequest) -> Completion: ...


_NEW_STYLE_MODEL_PREFIXES = (
    "gpt-4o",
    "gpt-4.1",
    "gpt-5",
    "o1",
    "o3",
    "o4",
    "o-",
)


def _token_param(model: str | None) -> str:
    name = (model or "").lower()
    for prefix in _NEW_STYLE_MODEL_PREFIXES:
        if name.startswith(prefix):
            return "max_completion_tokens"
    return "max_tokens"


def _usage_tokens(response: dict) -> int | None:
    usage = response.get("usage")
    if not isinstance(usage, dict):
        return None
    total = usage.get("total_tokens")
    if isinstance(total, bool) or not isinstance(total, int | float):
        return None
    return int(total)


class OpenAIChatProvider:
    """Chat-completions backend speaking the OpenAI wire format."""

    def __init__(self, model: str | None = None, timeout: float | None = None) -> None:
        self.model = model or settings.REVIEW_GPT_MODEL
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(settings.OPENAI_API_KEY)

    def build_payload(self, request: CompletionRequest) -> dict:
        payload = {
            "model": self.model,
            "temperature": request.creativity,
            "messages": [
                {"role": "system", "content": request.system_instructions},
                {"role": "user", "content": request.user_content},
            ],
        }
        payload[_token_param(self.model)] = request.max_output_tokens
        return payload

    async def complete(self, request: CompletionRequest) -> Completion:
        response = await openai_async.post_json(
            "/chat/completions",
            self.build_payload(request),
            timeout=self.timeout or settings.OPENAI_TIMEOUT_SECONDS,
        )
        if response.get("error"):
            raise UpstreamError(f"Provider reported an error: {str(response['error'])[:200]}")
        choices = response.get("choices")
        if not isinstance(choices, list) or not choices:
            raise UpstreamError("Provider response has no choices")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise UpstreamError("Provider response has no message")
        content = message.get("content")
        if content is not None and not isinstance(content, str):
            raise UpstreamError("Provider message content is not text")
        return Completion(text=content or "", total_tokens=_usage_tokens(response))

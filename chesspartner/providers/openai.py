"""
OpenAI provider, also used for OpenAI-compatible endpoints (OpenRouter, Groq, Kimi…)
by passing base_url and a provider_label.

max_completion_tokens is used for every model. Reasoning models (o1, o3,
o4-series) get a larger floor so hidden reasoning tokens don't eat the whole
budget and leave an empty reply.
"""

from __future__ import annotations

from openai import AsyncOpenAI

from chesspartner.providers.base import LLMProvider, Message

_REASONING_PREFIXES = ("o1", "o3", "o4")
_REASONING_MIN_TOKENS = 4096


class OpenAIProvider(LLMProvider):
    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        provider_label: str = "openai",
    ) -> None:
        self._model = model
        self._provider_label = provider_label
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    @property
    def label(self) -> str:
        return f"{self._provider_label}:{self._model}"

    @property
    def is_reasoning_model(self) -> bool:
        return self._model.startswith(_REASONING_PREFIXES)

    async def complete(
        self,
        messages: list[Message],
        *,
        max_tokens: int = 500,
    ) -> str:
        budget = max(max_tokens, _REASONING_MIN_TOKENS) if self.is_reasoning_model else max_tokens
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[m._asdict() for m in messages],  # type: ignore[misc]
                max_completion_tokens=budget,
            )
        except Exception as exc:
            raise self._failure(exc) from exc
        choice = response.choices[0] if response.choices else None
        return (choice.message.content or "").strip() if choice else ""

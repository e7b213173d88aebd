"""
Anthropic (Claude) provider.

The system prompt goes in the dedicated `system` parameter, not the turns.
"""

from __future__ import annotations

import anthropic

from chesspartner.providers.base import LLMProvider, Message, split_system


class AnthropicProvider(LLMProvider):
    def __init__(self, api_key: str, model: str) -> None:
        self._model = model
        self._client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    @property
    def label(self) -> str:
        return f"anthropic:{self._model}"

    async def complete(
        self,
        messages: list[Message],
        *,
        max_tokens: int = 500,
    ) -> str:
        system, turns = split_system(messages)
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                system=system,
                messages=[m._asdict() for m in turns],  # type: ignore[misc]
            )
        except Exception as exc:
            raise self._failure(exc) from exc
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        ).strip()

"""
Google Gemini provider via the google-genai SDK (native async client).

Gemini calls assistant turns "model" and takes the system prompt as
GenerateContentConfig.system_instruction.
"""

from __future__ import annotations

from google import genai
from google.genai import types

from chesspartner.providers.base import LLMProvider, Message, split_system


def _content(message: Message) -> types.Content:
    role = "model" if message.role == "assistant" else "user"
    return types.Content(role=role, parts=[types.Part(text=message.content)])


class GoogleProvider(LLMProvider):
    def __init__(self, api_key: str, model: str) -> None:
        self._model = model
        self._client = genai.Client(api_key=api_key)

    @property
    def label(self) -> str:
        return f"google:{self._model}"

    async def complete(
        self,
        messages: list[Message],
        *,
        max_tokens: int = 500,
    ) -> str:
        system, turns = split_system(messages)
        config = types.GenerateContentConfig(
            max_output_tokens=max_tokens,
            system_instruction=system or None,
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=[_content(m) for m in turns],
                config=config,
            )
        except Exception as exc:
            raise self._failure(exc) from exc
        return (response.text or "").strip()

"""
Completion-provider interface.

The session engine needs exactly one capability from a model backend: given
a persona system prompt and one user prompt, return text. Each backend wraps
its SDK's async client; SDK-side retries are switched off because the
recommendation pipeline makes one call per request and owns the deadline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import NamedTuple

logger = logging.getLogger(__name__)


class Message(NamedTuple):
    role: str      # "system" | "user" | "assistant"
    content: str


def split_system(messages: list[Message]) -> tuple[str, list[Message]]:
    """Separate the system prompt from the conversation turns."""
    system = "\n\n".join(m.content for m in messages if m.role == "system")
    return system, [m for m in messages if m.role != "system"]


class ProviderError(Exception):
    """Raised when a provider API call fails unrecoverably."""

    def __init__(self, provider: str, message: str, cause: Exception | None = None) -> None:
        self.provider = provider
        self.cause = cause
        super().__init__(f"[{provider}] {message}")


class LLMProvider(ABC):
    """A single-call text completion backend."""

    @property
    def label(self) -> str:
        """provider:model, used in log lines and error messages."""
        return self.__class__.__name__

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        *,
        max_tokens: int = 500,
    ) -> str:
        """
        Return the model's text reply, stripped. An empty string is a valid
        (unusable) reply; the caller decides what to do with it.

        Raises:
            ProviderError: the SDK call failed.
        """
        ...

    def _failure(self, exc: Exception) -> ProviderError:
        logger.error("complete() failed [%s]: %s", self.label, exc, exc_info=True)
        provider = self.label.split(":", 1)[0]
        return ProviderError(provider, str(exc) or exc.__class__.__name__, cause=exc)

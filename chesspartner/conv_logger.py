"""
Conversation transcripts: every prompt, raw completion and failed call.

One file per (persona, game), logs/<persona>_<game_id>.log, appended to for
the life of the game. A reply that failed to parse, or a call that timed
out, can be read back here exactly as the model saw and answered it.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from chesspartner.providers.base import Message

_SEP = "=" * 80
_THIN = "-" * 80


class ConversationLogger:
    def __init__(self, log_dir: Path, persona_name: str) -> None:
        log_dir.mkdir(parents=True, exist_ok=True)
        self._log_dir = log_dir
        self._persona_name = persona_name

    def log_request(self, *, game_id: str, kind: str, messages: list[Message]) -> None:
        header = f"{kind.upper()} · {self._persona_name} · game {game_id} · {_now()}"
        body = "\n".join(f"\n[{m.role.upper()}]\n{m.content}" for m in messages)
        self._append(game_id, f"\n{_SEP}\n  {header}\n{_SEP}\n{body}\n")

    def log_response(self, *, game_id: str, raw: str, elapsed: float | None = None) -> None:
        timing = f" · {elapsed:.1f}s" if elapsed is not None else ""
        self._append(game_id, f"\n{_THIN}\n[RESPONSE{timing}]\n{raw or '(empty)'}\n{_THIN}\n")

    def log_failure(self, *, game_id: str, error: str) -> None:
        self._append(game_id, f"\n{_THIN}\n[FAILED · {_now()}]\n{error}\n{_THIN}\n")

    def path_for(self, game_id: str) -> Path:
        return self._log_dir / f"{_safe(self._persona_name)}_{_safe(game_id)}.log"

    def _append(self, game_id: str, text: str) -> None:
        with self.path_for(game_id).open("a", encoding="utf-8") as f:
            f.write(text)


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _safe(name: str) -> str:
    return "".join(c if c.isalnum() or c in "_-" else "_" for c in name).strip("_") or "game"

"""
Session record stores.

A store maps game_id → record, where a record is a plain JSON-compatible
dict (see GameState.to_record). Stores know nothing about chess: replaying
and validating a record is the SessionManager's job.

Two implementations:
  InMemorySessionStore  — a dict; the default, lost on restart
  JsonFileSessionStore  — one <game_id>.json file per game under a directory
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterator, Protocol

from chesspartner.errors import StoreError

logger = logging.getLogger(__name__)

SessionRecord = dict[str, Any]


class SessionStore(Protocol):
    """Persistence layer for session records."""

    def get(self, game_id: str) -> SessionRecord | None:
        """Return the record for game_id, or None if there is none."""
        ...

    def put(self, game_id: str, record: SessionRecord) -> None:
        """Create or replace the record for game_id."""
        ...

    def delete(self, game_id: str) -> bool:
        """Remove a record. Returns False if it did not exist."""
        ...

    def ids(self) -> Iterator[str]:
        ...


class InMemorySessionStore:
    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}

    def get(self, game_id: str) -> SessionRecord | None:
        record = self._records.get(game_id)
        # Copies keep callers from mutating stored state in place
        return copy.deepcopy(record) if record is not None else None

    def put(self, game_id: str, record: SessionRecord) -> None:
        self._records[game_id] = copy.deepcopy(record)

    def delete(self, game_id: str) -> bool:
        return self._records.pop(game_id, None) is not None

    def ids(self) -> Iterator[str]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)


class JsonFileSessionStore:
    """One pretty-printed JSON file per game; writes go through a temp file."""

    def __init__(self, directory: Path) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        self._dir = directory

    @property
    def directory(self) -> Path:
        return self._dir

    def get(self, game_id: str) -> SessionRecord | None:
        path = self._path(game_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Cannot read session record {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"Session record {path} is not a JSON object")
        return data

    def put(self, game_id: str, record: SessionRecord) -> None:
        path = self._path(game_id)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(json.dumps(record, indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            raise StoreError(f"Cannot write session record {path}: {exc}") from exc
        logger.debug("Session record saved: %s", path)

    def delete(self, game_id: str) -> bool:
        path = self._path(game_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def ids(self) -> Iterator[str]:
        for path in sorted(self._dir.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                logger.warning("Skipping unreadable session record: %s", path)
                continue
            if isinstance(data, dict) and "game_id" in data:
                yield str(data["game_id"])

    def _path(self, game_id: str) -> Path:
        return self._dir / f"{_safe_filename(game_id)}.json"


def _safe_filename(game_id: str) -> str:
    """
    Map an opaque game id to a filename.

    Ids made only of safe characters are used as-is; anything else is escaped
    character by character so distinct ids never share a file.
    """
    out: list[str] = []
    for c in game_id:
        if c.isascii() and (c.isalnum() or c in "-_"):
            out.append(c)
        else:
            out.append(f"~{ord(c):x}~")
    return "".join(out) or "~empty~"


def create_store(kind: str, directory: Path | None = None) -> SessionStore:
    match kind:
        case "memory":
            return InMemorySessionStore()
        case "file":
            if directory is None:
                raise ValueError("A file session store needs a directory")
            return JsonFileSessionStore(directory)
        case _:
            raise ValueError(f"Unknown session store: '{kind}'. Supported: memory, file")

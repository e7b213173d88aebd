"""
The command surface as a closed tagged variant.

Every caller (CLI, REST, WebSocket, tests) speaks the same five commands.
Wire payloads are loosely typed dicts; parse_command() is the one place they
are turned into typed dataclasses, and the one place malformed payloads are
rejected with InvalidCommand.

Accepted payload keys (camelCase on the wire, snake_case also tolerated):
    type | command      "new" | "move" | "analyze" | "chat" | "hint"
    gameId | game_id    required for every command
    move                required for "move"
    question            required for "chat"
    position | fen      optional position override
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

from chesspartner.errors import InvalidCommand

CommandType = Literal["new", "move", "analyze", "chat", "hint"]
COMMAND_TYPES: tuple[str, ...] = ("new", "move", "analyze", "chat", "hint")


@dataclass(frozen=True)
class NewGame:
    game_id: str
    fen: str | None = None
    type: Literal["new"] = "new"


@dataclass(frozen=True)
class MakeMove:
    game_id: str
    move: str
    fen: str | None = None    # accepted for compatibility; the session position wins
    type: Literal["move"] = "move"


@dataclass(frozen=True)
class Analyze:
    game_id: str
    fen: str | None = None
    type: Literal["analyze"] = "analyze"


@dataclass(frozen=True)
class Chat:
    game_id: str
    question: str
    fen: str | None = None
    type: Literal["chat"] = "chat"


@dataclass(frozen=True)
class Hint:
    game_id: str
    fen: str | None = None
    type: Literal["hint"] = "hint"


Command = Union[NewGame, MakeMove, Analyze, Chat, Hint]


def parse_command(payload: Any) -> Command:
    """
    Build a typed command from a wire payload.

    Raises:
        InvalidCommand: payload is not an object, the type is unknown,
            or a required field is missing or empty.
    """
    if not isinstance(payload, dict):
        raise InvalidCommand("Command payload must be a JSON object")

    kind = payload.get("type", payload.get("command"))
    if kind not in COMMAND_TYPES:
        raise InvalidCommand(
            f"Unknown command type {kind!r}. Expected one of: {', '.join(COMMAND_TYPES)}"
        )

    game_id = _required_text(payload, "gameId", "game_id")
    fen = _optional_text(payload, "position", "fen")

    match kind:
        case "new":
            return NewGame(game_id=game_id, fen=fen)
        case "move":
            return MakeMove(game_id=game_id, move=_required_text(payload, "move"), fen=fen)
        case "analyze":
            return Analyze(game_id=game_id, fen=fen)
        case "chat":
            return Chat(game_id=game_id, question=_required_text(payload, "question"), fen=fen)
        case _:
            return Hint(game_id=game_id, fen=fen)


def _required_text(payload: dict, *keys: str) -> str:
    value = _optional_text(payload, *keys)
    if value is None:
        raise InvalidCommand(f"Missing required field '{keys[0]}'")
    return value


def _optional_text(payload: dict, *keys: str) -> str | None:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise InvalidCommand(f"Field '{key}' must be a string")
        text = str(value).strip()
        if text:
            return text
    return None

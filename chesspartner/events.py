"""
Typed event dataclasses — the shared language between the turn loop and any consumer.

The turn loop (game.py) yields these. The CLI, the WebSocket gateway, or a
test harness consumes them. All events are frozen (immutable) so they're safe
to pass across async boundaries and can be serialized with dataclasses.asdict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Color = Literal["white", "black"]
GameResult = Literal["1-0", "0-1", "1/2-1/2", "*"]
GameStatus = Literal["new", "ongoing", "checkmate", "stalemate", "draw", "ended"]
EndReason = Literal[
    "checkmate",
    "stalemate",
    "draw",
    "repetition_deadlock",
    "no_move_decided",
    "resigned",
    "interrupted",
]
RecommendationSource = Literal["structured", "text", "fallback"]

LIVE_STATUSES: frozenset[str] = frozenset({"new", "ongoing"})


@dataclass(frozen=True)
class GameStartEvent:
    game_id: str
    white_name: str
    black_name: str
    fen: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class TurnStartEvent:
    game_id: str
    color: Color
    player_name: str
    move_number: int
    fen: str
    legal_moves: list[str]
    move_record: list[str]


@dataclass(frozen=True)
class MoveRequestedEvent:
    color: Color
    player_name: str
    attempt_num: int


@dataclass(frozen=True)
class InvalidMoveEvent:
    color: Color
    attempted_move: str
    error: str
    attempt_num: int = 1


@dataclass(frozen=True)
class AnalysisEvent:
    """The automated side's commentary for the move it is about to play (or a requested analysis)."""
    player_name: str
    commentary: str
    recommended_move: str | None
    source: RecommendationSource
    fallback_reason: str | None = None


@dataclass(frozen=True)
class RepetitionAvoidedEvent:
    color: Color
    repeated_move: str
    alternative_move: str


@dataclass(frozen=True)
class MoveAppliedEvent:
    game_id: str
    color: Color
    player_name: str
    move_san: str
    fen_after: str
    move_number: int
    is_check: bool
    automated: bool


@dataclass(frozen=True)
class CheckEvent:
    color_in_check: Color
    checking_move_san: str


@dataclass(frozen=True)
class HintEvent:
    game_id: str
    hints: list[str]   # "Nf3: knight to f3"


@dataclass(frozen=True)
class ChatEvent:
    player_name: str
    question: str
    answer: str


@dataclass(frozen=True)
class GameOverEvent:
    game_id: str
    status: GameStatus
    reason: str
    result: GameResult
    winner_name: str | None
    pgn: str
    total_moves: int
    fen: str
    timestamp: datetime = field(default_factory=datetime.now)


# Union type for type-safe pattern matching in consumers
GameEvent = (
    GameStartEvent
    | TurnStartEvent
    | MoveRequestedEvent
    | InvalidMoveEvent
    | AnalysisEvent
    | RepetitionAvoidedEvent
    | MoveAppliedEvent
    | CheckEvent
    | HintEvent
    | ChatEvent
    | GameOverEvent
)

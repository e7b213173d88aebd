"""
Abstract Player interface and the TurnState snapshot passed to each player per turn.

TurnState contains everything a player needs to make a decision — whether
that's an LLM completion through the recommendation pipeline or a line typed
at the terminal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

from chesspartner.events import Color, RecommendationSource

PlayerAction = Literal["move", "analyze", "chat", "hint", "quit"]


@dataclass
class MoveResponse:
    """
    Returned by Player.get_move().

    Automated players always answer with action="move". Human players may
    instead ask for a hint, an analysis or a chat answer, or quit; the turn
    loop serves those requests and asks again.
    """
    action: PlayerAction = "move"
    move: str = ""          # SAN or UCI, validated by the session manager
    raw: str = ""           # unmodified text from the model / stdin
    commentary: str = ""
    question: str = ""      # for action="chat"
    source: RecommendationSource | None = None
    fallback_reason: str | None = None


@dataclass
class TurnState:
    """Snapshot of the game at the start of a player's turn."""

    game_id: str
    fen: str
    start_position: str
    legal_moves: list[str]
    move_record: list[str]
    color: Color
    move_number: int

    # Populated on retry attempts (attempt_num > 1)
    previous_invalid_move: str | None = None
    previous_error: str | None = None
    attempt_num: int = 1


class Player(ABC):
    """Abstract base class for all chess players."""

    automated: bool = False

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def get_move(self, state: TurnState) -> MoveResponse:
        """
        Given the current turn state, return a MoveResponse.

        Players may return illegal moves; the turn loop validates every move
        through the session manager and retries or re-prompts.
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"

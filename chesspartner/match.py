"""
Automated matches — two automated players, N games, a running tally.

Each game gets its own session id and goes through the same run_game() loop
as a human game, so the repetition and validity guards apply to both sides.
Colours alternate every game, first_white taking White in game 1.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncGenerator

from chesspartner.events import GameEvent, GameOverEvent
from chesspartner.game import TurnOrchestrator, run_game
from chesspartner.players.base import Player


@dataclass
class MatchTally:
    names: tuple[str, str]
    wins: dict[str, int] = field(default_factory=dict)
    draws: int = 0
    forced_stops: int = 0
    games_played: int = 0

    def __post_init__(self) -> None:
        for name in self.names:
            self.wins.setdefault(name, 0)

    def record(self, event: GameOverEvent) -> None:
        self.games_played += 1
        if event.winner_name is not None:
            self.wins[event.winner_name] = self.wins.get(event.winner_name, 0) + 1
        elif event.status == "ended":
            self.forced_stops += 1
        else:
            self.draws += 1

    def rows(self) -> dict[str, int]:
        rows = {f"{name} wins": count for name, count in self.wins.items()}
        rows["Draws"] = self.draws
        rows["Forced stops"] = self.forced_stops
        return rows


async def play_match(
    orchestrator: TurnOrchestrator,
    first_white: Player,
    first_black: Player,
    games: int,
    *,
    match_id: str,
    stop_event: asyncio.Event | None = None,
    pgn_dir: Path | None = None,
) -> AsyncGenerator[tuple[int, GameEvent], None]:
    """Yield (game number, event) for every event of every game; stops early on stop_event."""
    for game_no in range(1, games + 1):
        if stop_event and stop_event.is_set():
            return
        if game_no % 2 == 1:
            white, black = first_white, first_black
        else:
            white, black = first_black, first_white

        game_id = f"{match_id}-{game_no}"
        await orchestrator.sessions.new(game_id)
        async for event in run_game(orchestrator, game_id, white, black, stop_event, pgn_dir):
            yield game_no, event

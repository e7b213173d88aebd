"""
ChessPartner — automated match entry point.

Usage:
    python match_main.py

Wires together:
    config → persona selection → number of games →
    pipelines → session manager → match loop → CLI display + standings
"""

from __future__ import annotations

import asyncio
import signal
import sys
from datetime import datetime
from pathlib import Path

from rich.prompt import IntPrompt

from chesspartner.cli.display import console, display_event, display_standings
from chesspartner.cli.selector import select_match
from chesspartner.config import load_config
from chesspartner.events import GameOverEvent, GameStartEvent, TurnStartEvent
from chesspartner.game import TurnOrchestrator
from chesspartner.logs import configure_logging
from chesspartner.match import MatchTally, play_match
from chesspartner.pipeline import build_pipeline
from chesspartner.players import create_player
from chesspartner.session import SessionManager
from chesspartner.store import create_store


async def _main(stop_event: asyncio.Event) -> None:
    config_path = Path("config.yaml")
    try:
        config = load_config(config_path)
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    configure_logging(config.log_dir_path, console=False)

    white_persona, black_persona = select_match(config)
    if white_persona.name == black_persona.name:
        console.print("[red]Pick two different personas.[/]")
        sys.exit(1)
    games = IntPrompt.ask("[bold]Number of games[/]", default=3)

    try:
        white_pipeline = build_pipeline(config, white_persona)
        black_pipeline = build_pipeline(config, black_persona)
    except ValueError as exc:
        console.print(f"[red]Provider error:[/] {exc}")
        sys.exit(1)

    sessions = SessionManager(
        create_store(config.game.store, config.store_dir_path),
        white_pipeline,
        hint_count=config.game.hint_count,
    )
    orchestrator = TurnOrchestrator(
        sessions,
        repetition_window=config.game.repetition_window,
        repetition_limit=config.game.repetition_limit,
    )
    white = create_player("llm", white_persona.name, white_pipeline, white_persona)
    black = create_player("llm", black_persona.name, black_pipeline, black_persona)

    tally = MatchTally(names=(white.name, black.name))
    match_id = datetime.now().strftime("match_%Y%m%d_%H%M%S")
    pgn_dir = config.pgn_dir_path if config.game.save_pgn else None

    console.print(f"\n[dim]Running {games} game(s) between {white.name} and {black.name}…[/]\n")
    async for game_no, event in play_match(
        orchestrator, white, black, games,
        match_id=match_id, stop_event=stop_event, pgn_dir=pgn_dir,
    ):
        if isinstance(event, GameStartEvent):
            console.rule(f"[bold]Game {game_no} of {games}[/]")
        # Boards for every ply of an automated game are too noisy
        if not isinstance(event, TurnStartEvent):
            display_event(event)
        if isinstance(event, GameOverEvent):
            tally.record(event)
            display_standings(f"{white.name} vs {black.name}", tally.rows(), tally.games_played)


def main() -> None:
    async def _run() -> None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        original_sigint = signal.getsignal(signal.SIGINT)

        def _on_sigint(sig: int, frame: object) -> None:
            console.print("\n[yellow]Stopping the current game…[/]")
            loop.call_soon_threadsafe(stop_event.set)
            signal.signal(signal.SIGINT, original_sigint)

        signal.signal(signal.SIGINT, _on_sigint)
        await _main(stop_event)

    asyncio.run(_run())


if __name__ == "__main__":
    main()

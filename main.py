"""
ChessPartner — terminal entry point.

Wires together:  config → opponent selector → pipeline → session manager → turn loop → CLI display

You play White; type a move (e4, Nf3, e2e4) or hint / analyze / chat / quit.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from datetime import datetime
from pathlib import Path

from chesspartner.config import load_config
from chesspartner.game import TurnOrchestrator, run_game
from chesspartner.logs import configure_logging
from chesspartner.pipeline import build_pipeline
from chesspartner.players import create_player
from chesspartner.session import SessionManager
from chesspartner.store import create_store
from chesspartner.cli.display import display_event, console
from chesspartner.cli.selector import select_opponent


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

    # File only: console log lines would break up the board display
    log_file = configure_logging(config.log_dir_path, console=False)

    persona = select_opponent(config)
    try:
        pipeline = build_pipeline(config, persona)
    except ValueError as exc:
        console.print(f"[red]Provider error:[/] {exc}")
        sys.exit(1)

    sessions = SessionManager(
        create_store(config.game.store, config.store_dir_path),
        pipeline,
        hint_count=config.game.hint_count,
    )
    orchestrator = TurnOrchestrator(
        sessions,
        repetition_window=config.game.repetition_window,
        repetition_limit=config.game.repetition_limit,
    )

    human = create_player("human", "You")
    opponent = create_player("llm", persona.name, pipeline, persona)

    game_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    await sessions.new(game_id)
    console.print(f"[dim]Game {game_id} · logs in {log_file.parent}[/]\n")

    pgn_dir = config.pgn_dir_path if config.game.save_pgn else None
    async for event in run_game(orchestrator, game_id, human, opponent, stop_event=stop_event, pgn_dir=pgn_dir):
        display_event(event)


def main() -> None:
    async def _run() -> None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        original_sigint = signal.getsignal(signal.SIGINT)

        def _on_sigint(sig: int, frame: object) -> None:
            # Schedule the event set on the event loop thread (safe on Windows)
            loop.call_soon_threadsafe(stop_event.set)
            # Restore the original handler so a second Ctrl+C force-quits
            signal.signal(signal.SIGINT, original_sigint)

        signal.signal(signal.SIGINT, _on_sigint)
        await _main(stop_event)

    asyncio.run(_run())


if __name__ == "__main__":
    main()

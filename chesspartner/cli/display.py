"""
Rich-based CLI event consumer.

This is the ONLY place where terminal output happens.
It translates GameEvent objects into formatted Rich output; the turn loop
(game.py) knows nothing about terminals.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chesspartner.events import (
    GameEvent,
    GameStartEvent,
    TurnStartEvent,
    MoveRequestedEvent,
    InvalidMoveEvent,
    AnalysisEvent,
    RepetitionAvoidedEvent,
    MoveAppliedEvent,
    CheckEvent,
    HintEvent,
    ChatEvent,
    GameOverEvent,
)
from chesspartner.renderer import render_unicode

console = Console(legacy_windows=False)


def display_event(event: GameEvent) -> None:
    """Dispatch a GameEvent to the appropriate display function."""
    match event:
        case GameStartEvent():
            _game_start(event)
        case TurnStartEvent():
            _turn_start(event)
        case MoveRequestedEvent():
            if event.attempt_num > 1:
                console.print(f"  [dim]{event.player_name} is reconsidering…[/]")
            else:
                console.print(f"  [dim]{event.player_name} is thinking…[/]")
        case InvalidMoveEvent():
            _invalid_move(event)
        case AnalysisEvent():
            _analysis(event)
        case RepetitionAvoidedEvent():
            console.print(
                f"  [yellow]↻[/] {event.repeated_move} keeps repeating, "
                f"playing [bold]{event.alternative_move}[/] instead"
            )
        case MoveAppliedEvent():
            _move_applied(event)
        case CheckEvent():
            console.print(
                f"  [bold red]CHECK![/] "
                f"{event.color_in_check.upper()} is in check after [bold]{event.checking_move_san}[/]"
            )
        case HintEvent():
            _hint(event)
        case ChatEvent():
            console.print(
                Panel(event.answer, title=f"[bold]{event.player_name}[/]", border_style="cyan", expand=False)
            )
        case GameOverEvent():
            _game_over(event)


# --------------------------------------------------------------------------- #
# Display functions                                                            #
# --------------------------------------------------------------------------- #

def _game_start(event: GameStartEvent) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{event.white_name}[/] [dim](White)[/]  vs  "
            f"[bold white]{event.black_name}[/] [dim](Black)[/]\n"
            f"[dim]Game {event.game_id} · {event.timestamp.strftime('%Y-%m-%d %H:%M:%S')}[/]",
            title="[bold green] ChessPartner [/]",
            border_style="green",
            expand=False,
        )
    )


def _turn_start(event: TurnStartEvent) -> None:
    symbol = "♔" if event.color == "white" else "♚"
    color_style = "bold white" if event.color == "white" else "bold bright_black"

    console.print()
    console.print(
        f"[dim]Move {event.move_number}[/]  "
        f"[{color_style}]{symbol}  {event.player_name}[/] to move"
    )
    console.print(
        Panel(
            render_unicode(event.fen),
            subtitle=f"[dim]{event.fen}[/]",
            border_style="dim",
            padding=(0, 1),
            expand=False,
        )
    )

    if event.move_record:
        console.print(f"[dim]Moves:[/] {_numbered(event.move_record)}")


def _invalid_move(event: InvalidMoveEvent) -> None:
    shown = repr(event.attempted_move) if event.attempted_move else "(nothing)"
    console.print(f"  [red]✗[/] [yellow]{shown}[/] rejected: {event.error}")


def _analysis(event: AnalysisEvent) -> None:
    footer = f"Recommended: {event.recommended_move}" if event.recommended_move else "No move recommended"
    if event.source == "fallback":
        footer += f"  [dim](fallback: {event.fallback_reason})[/]"
    console.print(
        Panel(
            event.commentary or "[dim](no commentary)[/]",
            title=f"[bold]{event.player_name}[/]",
            subtitle=footer,
            border_style="cyan",
            expand=False,
        )
    )


def _move_applied(event: MoveAppliedEvent) -> None:
    check_tag = "  [bold red]+[/]" if event.is_check else ""
    who = f"[dim]{event.player_name}:[/] " if event.automated else ""
    console.print(f"  [green]✓[/] {who}[bold]{event.move_san}[/]{check_tag}")


def _hint(event: HintEvent) -> None:
    if not event.hints:
        console.print("  [dim]No legal moves.[/]")
        return
    console.print("  [bold]Some legal moves:[/]")
    for hint in event.hints:
        console.print(f"   - {hint}")


def _game_over(event: GameOverEvent) -> None:
    result_styles: dict[str, str] = {
        "1-0": "bold green",
        "0-1": "bold red",
        "1/2-1/2": "bold yellow",
        "*": "dim",
    }
    style = result_styles.get(event.result, "white")
    reason = event.reason.replace("_", " ").title()

    if event.reason == "interrupted":
        outcome_text = "[yellow]Game stopped by user[/]"
    elif event.reason in ("no_move_decided", "repetition_deadlock"):
        outcome_text = "[yellow]Game stopped: the opponent could not decide on a move[/]"
    elif event.winner_name:
        outcome_text = f"Winner: [bold]{event.winner_name}[/]"
    else:
        outcome_text = "[yellow]Draw[/]"

    console.print()
    console.print(
        Panel(
            f"[{style}]{event.result}[/]  —  {reason}\n"
            f"{outcome_text}\n"
            f"[dim]Total moves: {event.total_moves}[/]",
            title="[bold]Game Over[/]",
            border_style=style.replace("bold ", ""),
            expand=False,
        )
    )

    console.print()
    console.rule("[dim]PGN[/]")
    console.print(event.pgn, markup=False, highlight=False)
    console.rule()


def display_standings(title: str, tally: dict[str, int], games_played: int) -> None:
    """Running score table for automated matches."""
    table = Table(title=title, show_header=True, header_style="bold", border_style="dim")
    table.add_column("Outcome", min_width=24)
    table.add_column("Count", justify="right")
    for label, count in tally.items():
        table.add_row(label, str(count))
    table.caption = f"{games_played} game(s) played"
    console.print()
    console.print(table)


def _numbered(moves: list[str]) -> str:
    parts: list[str] = []
    for i, san in enumerate(moves):
        if i % 2 == 0:
            parts.append(f"{i // 2 + 1}.")
        parts.append(san)
    return " ".join(parts)

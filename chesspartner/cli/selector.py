"""
Interactive opponent selection at game start.

Displays a numbered table of the configured personas and prompts the user
to pick one. With a single persona configured the prompt is skipped.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.prompt import IntPrompt

from chesspartner.config import Config, PersonaConfig

console = Console(legacy_windows=False)


def select_opponent(config: Config, *, prompt_label: str = "Who do you want to play?") -> PersonaConfig:
    """Return the chosen persona; the configured default is pre-selected."""
    personas = list(config.personas.values())
    if not personas:
        raise ValueError("No personas available. Check the personas section of config.yaml.")
    if len(personas) == 1:
        return personas[0]

    _print_persona_table(personas)

    choices = [str(i) for i in range(1, len(personas) + 1)]
    default_idx = next((i for i, p in enumerate(personas, 1) if p.key == config.opponent), 1)
    idx = IntPrompt.ask(
        f"\n[bold]{prompt_label}[/]",
        choices=choices,
        default=default_idx,
        show_choices=False,
    )
    persona = personas[idx - 1]
    console.print(f"\n  Opponent: [bold]{persona.name}[/] [dim]({persona.style})[/]\n")
    return persona


def select_match(config: Config) -> tuple[PersonaConfig, PersonaConfig]:
    """Pick White and Black personas for an automated match."""
    white = select_opponent(config, prompt_label="♔  Who plays White?")
    black = select_opponent(config, prompt_label="♚  Who plays Black?")
    return white, black


def _print_persona_table(personas: list[PersonaConfig]) -> None:
    table = Table(
        title="Opponents",
        show_header=True,
        header_style="bold",
        border_style="dim",
        show_lines=False,
    )
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Name", min_width=20)
    table.add_column("Style", min_width=10)
    table.add_column("Provider", style="dim", min_width=12)
    table.add_column("Model ID", style="dim")

    for i, persona in enumerate(personas, 1):
        table.add_row(str(i), persona.name, persona.style, persona.provider, persona.model)

    console.print()
    console.print(table)

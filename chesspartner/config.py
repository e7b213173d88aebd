"""
Configuration loading from config.yaml.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml

PromptShape = Literal["structured", "analysis"]
StoreKind = Literal["memory", "file"]

_PROMPT_SHAPES = ("structured", "analysis")
_STORE_KINDS = ("memory", "file")


@dataclass
class GameConfig:
    hint_count: int = 5
    repetition_window: int = 6    # most recent plies inspected by the anti-repetition guard
    repetition_limit: int = 2     # occurrences within the window that count as repeating
    store: StoreKind = "memory"
    store_dir: str = "./sessions"
    save_pgn: bool = True
    pgn_dir: str = "./games"
    log_dir: str = "./logs"


@dataclass
class PersonaConfig:
    key: str
    name: str
    provider: str
    model: str
    style: str = "classical"
    preferences: str = "piece activity, center control, pawn structure"
    repertoire: str = ""
    prompt_shape: PromptShape = "structured"
    move_timeout: float = 60.0    # seconds before a completion is abandoned
    max_output_tokens: int = 500


@dataclass
class ProviderConfig:
    api_key: str = ""
    base_url: str | None = None


@dataclass
class Config:
    game: GameConfig
    personas: dict[str, PersonaConfig]
    providers: dict[str, ProviderConfig]
    opponent: str = ""

    @property
    def pgn_dir_path(self) -> Path:
        return Path(self.game.pgn_dir)

    @property
    def store_dir_path(self) -> Path:
        return Path(self.game.store_dir)

    @property
    def log_dir_path(self) -> Path:
        return Path(self.game.log_dir)

    def persona(self, key: str | None = None) -> PersonaConfig:
        """Look up a persona by key; the configured opponent when key is None."""
        key = key or self.opponent
        try:
            return self.personas[key]
        except KeyError:
            raise ValueError(
                f"Unknown persona '{key}'. Configured: {', '.join(self.personas) or '(none)'}"
            ) from None


def load_config(path: str | Path = "config.yaml") -> Config:
    """
    Load and validate config.yaml.

    Raises:
        FileNotFoundError: config.yaml is missing.
        ValueError: required fields are absent or invalid.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and fill in your API keys."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        game_raw = raw.get("game") or {}
        game_cfg = GameConfig(
            hint_count=int(game_raw.get("hint_count", 5)),
            repetition_window=int(game_raw.get("repetition_window", 6)),
            repetition_limit=int(game_raw.get("repetition_limit", 2)),
            store=game_raw.get("store", "memory"),
            store_dir=str(game_raw.get("store_dir", "./sessions")),
            save_pgn=bool(game_raw.get("save_pgn", True)),
            pgn_dir=str(game_raw.get("pgn_dir", "./games")),
            log_dir=str(game_raw.get("log_dir", "./logs")),
        )

        personas: dict[str, PersonaConfig] = {}
        for key, p in (raw.get("personas") or {}).items():
            p = p or {}
            personas[key] = PersonaConfig(
                key=key,
                name=str(p.get("name", key)),
                provider=str(p["provider"]),
                model=str(p["model"]),
                style=str(p.get("style", "classical")),
                preferences=str(p.get("preferences", "")),
                repertoire=str(p.get("repertoire", "")),
                prompt_shape=p.get("prompt_shape", "structured"),
                move_timeout=float(p.get("move_timeout", 60)),
                max_output_tokens=int(p.get("max_output_tokens", 500)),
            )

        providers: dict[str, ProviderConfig] = {}
        for provider_name, prov_raw in (raw.get("providers") or {}).items():
            prov_raw = prov_raw or {}
            providers[provider_name] = ProviderConfig(
                api_key=_resolve_api_key(provider_name, prov_raw.get("api_key")),
                base_url=prov_raw.get("base_url"),
            )

        opponent = str(raw.get("opponent") or next(iter(personas), ""))
        config = Config(
            game=game_cfg,
            personas=personas,
            providers=providers,
            opponent=opponent,
        )
        _validate(config)
        return config

    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def _resolve_api_key(provider_name: str, value: object) -> str:
    """Use the configured key, else <PROVIDER>_API_KEY from the environment."""
    if value:
        return str(value)
    return os.environ.get(f"{provider_name.upper()}_API_KEY", "")


def _validate(config: Config) -> None:
    game = config.game
    if game.store not in _STORE_KINDS:
        raise ValueError(f"game.store must be one of {_STORE_KINDS}, got '{game.store}'")
    if game.hint_count < 1:
        raise ValueError("game.hint_count must be >= 1")
    if game.repetition_window < 1 or game.repetition_limit < 1:
        raise ValueError("game.repetition_window and game.repetition_limit must be >= 1")
    if not config.personas:
        raise ValueError("At least one persona must be defined under 'personas'")
    if config.opponent not in config.personas:
        raise ValueError(f"opponent '{config.opponent}' is not one of the defined personas")
    for persona in config.personas.values():
        if persona.prompt_shape not in _PROMPT_SHAPES:
            raise ValueError(
                f"personas.{persona.key}.prompt_shape must be one of {_PROMPT_SHAPES}, "
                f"got '{persona.prompt_shape}'"
            )
        if persona.move_timeout <= 0:
            raise ValueError(f"personas.{persona.key}.move_timeout must be > 0")

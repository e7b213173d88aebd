"""
Player factory.

create_player() is the single entry point for instantiating any Player.

To add a new player type:
  1. Create chesspartner/players/<name>.py implementing Player
  2. Add a case here
"""

from __future__ import annotations

from chesspartner.config import PersonaConfig
from chesspartner.players.base import Player, TurnState, MoveResponse
from chesspartner.players.llm import LLMOpponent
from chesspartner.players.human import HumanPlayer
from chesspartner.pipeline import RecommendationPipeline

__all__ = [
    "Player",
    "TurnState",
    "MoveResponse",
    "LLMOpponent",
    "HumanPlayer",
    "create_player",
]


def create_player(
    kind: str,
    display_name: str,
    pipeline: RecommendationPipeline | None = None,
    persona: PersonaConfig | None = None,
) -> Player:
    """
    Instantiate the correct Player.

    "human" needs nothing else; "llm" needs a pipeline (and takes its prompt
    shape from the persona when one is given).
    """
    match kind:
        case "human":
            return HumanPlayer(name=display_name)
        case "llm":
            if pipeline is None:
                raise ValueError("An LLM opponent requires a recommendation pipeline")
            return LLMOpponent(
                name=display_name,
                pipeline=pipeline,
                prompt_shape=persona.prompt_shape if persona else "structured",
            )
        case _:
            raise ValueError(f"Unknown player kind: '{kind}'. Supported: human, llm")

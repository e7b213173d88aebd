"""
LLMOpponent — the automated player, backed by a RecommendationPipeline.

The pipeline already guarantees a legal move (or None when there is none),
so this class only adapts between the turn loop's TurnState and the
pipeline's inputs. On a retry the rejected move is excluded and the
rejection reason is passed to the model as a question to address.
"""

from __future__ import annotations

from chesspartner.board import ChessBoard
from chesspartner.config import PromptShape
from chesspartner.pipeline import RecommendationPipeline
from chesspartner.players.base import Player, TurnState, MoveResponse


class LLMOpponent(Player):
    automated = True

    def __init__(
        self,
        name: str,
        pipeline: RecommendationPipeline,
        prompt_shape: PromptShape = "structured",
    ) -> None:
        super().__init__(name)
        self._pipeline = pipeline
        self._prompt_shape = prompt_shape

    @property
    def pipeline(self) -> RecommendationPipeline:
        return self._pipeline

    async def get_move(self, state: TurnState) -> MoveResponse:
        # Replaying from the start keeps the move history in the prompt context
        board = ChessBoard.replay(state.start_position, state.move_record)

        question: str | None = None
        exclude: list[str] = []
        if state.previous_invalid_move:
            exclude.append(state.previous_invalid_move)
            question = (
                f"Your previous move '{state.previous_invalid_move}' was rejected "
                f"({state.previous_error}). Choose a different move."
            )

        rec = await self._pipeline.recommend(
            state.fen,
            state.legal_moves,
            self._pipeline.context_for(board, question),
            shape=self._prompt_shape,
            game_id=state.game_id,
            exclude=exclude,
        )
        return MoveResponse(
            action="move",
            move=rec.move or "",
            raw=rec.raw,
            commentary=rec.commentary,
            source=rec.source,
            fallback_reason=rec.fallback_reason,
        )

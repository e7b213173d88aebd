"""
Contextual signals embedded in analysis prompts.

These are descriptive hints for the completion service (material count, game
phase, available captures). Nothing here ranks or chooses moves.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import chess

from chesspartner.board import ChessBoard

_PIECE_VALUES = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 0,
}


@dataclass(frozen=True)
class StyleHints:
    """How the opponent persona likes to play; rendered verbatim into prompts."""
    style: str = "classical"
    preferences: str = "piece activity, center control, pawn structure"
    repertoire: str = ""


@dataclass(frozen=True)
class AnalysisContext:
    phase: str
    material_balance: int
    move_history: list[str]
    captures: list[str]
    developed_pieces: int
    in_check: bool
    question: str | None = None
    style: StyleHints = field(default_factory=StyleHints)


def material_balance(board: chess.Board) -> int:
    """White material minus black material (P=1, N=B=3, R=5, Q=9)."""
    total = 0
    for piece in board.piece_map().values():
        value = _PIECE_VALUES[piece.piece_type]
        total += value if piece.color == chess.WHITE else -value
    return total


def game_phase(ply_count: int) -> str:
    if ply_count < 10:
        return "opening"
    if ply_count < 30:
        return "middlegame"
    return "endgame"


def developed_pieces(board: chess.Board) -> int:
    """Minor and major pieces (both colours) no longer on their home rank."""
    developed = 0
    for square, piece in board.piece_map().items():
        if piece.piece_type in (chess.PAWN, chess.KING):
            continue
        home_rank = 0 if piece.color == chess.WHITE else 7
        if chess.square_rank(square) != home_rank:
            developed += 1
    return developed


def capture_moves(board: chess.Board) -> list[str]:
    return [board.san(m) for m in board.legal_moves if board.is_capture(m)]


def build_context(
    board: ChessBoard,
    *,
    question: str | None = None,
    style: StyleHints | None = None,
) -> AnalysisContext:
    raw = board.board_copy()
    history = board.move_history_san()
    # ply() derives from the FEN move counters, so positions loaded mid-game
    # without a history still get the right phase.
    return AnalysisContext(
        phase=game_phase(raw.ply()),
        material_balance=material_balance(raw),
        move_history=history,
        captures=capture_moves(raw),
        developed_pieces=developed_pieces(raw),
        in_check=raw.is_check(),
        question=question,
        style=style or StyleHints(),
    )

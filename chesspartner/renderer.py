"""
Board rendering from a FEN.

ASCII and unicode text via python-chess for the terminal; SVG via
chess.svg for the web endpoint. All functions take a FEN string so callers
never need a live board.
"""

from __future__ import annotations

import chess
import chess.svg

from chesspartner.events import Color


def render_ascii(fen: str) -> str:
    """Standard ASCII board via python-chess (uppercase = White)."""
    return str(chess.Board(fen))


def render_unicode(fen: str, orientation: Color = "white") -> str:
    """Unicode piece glyphs, seen from `orientation`'s side."""
    board = chess.Board(fen)
    return board.unicode(
        invert_color=True,
        borders=False,
        empty_square="·",
        orientation=chess.WHITE if orientation == "white" else chess.BLACK,
    )


def render_svg(fen: str, last_move_uci: str | None = None, size: int = 400) -> str:
    """SVG string of the board, with an optional last-move highlight arrow."""
    board = chess.Board(fen)
    arrows: list[chess.svg.Arrow] = []
    if last_move_uci:
        last_move = chess.Move.from_uci(last_move_uci)
        arrows = [chess.svg.Arrow(last_move.from_square, last_move.to_square, color="#cc0000bb")]
    return chess.svg.board(board=board, arrows=arrows, size=size)

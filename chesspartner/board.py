"""
Thin facade over python-chess Board and PGN machinery — the Board Oracle.

Everything the session engine needs from chess rules goes through here:
legal moves, move parsing, move application and terminal status.
python-chess internals don't leak into the rest of the codebase.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Sequence

import chess
import chess.pgn

from chesspartner.events import Color, GameResult

TerminalStatus = Literal["checkmate", "stalemate", "draw"]
MoveErrorKind = Literal["", "illegal", "ambiguous", "format"]


class ChessBoard:
    """Facade over chess.Board + chess.pgn.Game."""

    def __init__(self, fen: str | None = None) -> None:
        self._board = chess.Board(fen) if fen else chess.Board()
        self._starting_fen = self._board.fen()
        self._game = chess.pgn.Game()
        if fen:
            self._game.setup(self._board)
        self._node: chess.pgn.GameNode = self._game
        self._game.headers["Date"] = datetime.now().strftime("%Y.%m.%d")
        self._game.headers["Event"] = "ChessPartner"

    @classmethod
    def replay(cls, starting_fen: str, moves_san: Sequence[str]) -> ChessBoard:
        """
        Rebuild a board by replaying SAN moves from a starting position.

        Replaying (rather than loading the final FEN) keeps the move stack, so
        repetition draws are still detected after a reload.

        Raises:
            ValueError: the FEN is invalid or a move does not replay.
        """
        board = cls(starting_fen)
        for san in moves_san:
            move, error = board.parse_move(san)
            if move is None:
                raise ValueError(f"Recorded move '{san}' does not replay ({error})")
            board.push_move(move)
        return board

    # ------------------------------------------------------------------ #
    # State queries                                                        #
    # ------------------------------------------------------------------ #

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def starting_fen(self) -> str:
        return self._starting_fen

    @property
    def turn(self) -> Color:
        return "white" if self._board.turn == chess.WHITE else "black"

    @property
    def fullmove_number(self) -> int:
        return self._board.fullmove_number

    @property
    def is_check(self) -> bool:
        return self._board.is_check()

    def legal_moves_san(self) -> list[str]:
        return [self._board.san(m) for m in self._board.legal_moves]

    def legal_moves_uci(self) -> list[str]:
        return [m.uci() for m in self._board.legal_moves]

    def move_history_san(self) -> list[str]:
        """All moves played so far in SAN notation (replays from the start)."""
        board_copy = chess.Board(self._starting_fen)
        san_moves: list[str] = []
        for move in self._board.move_stack:
            san_moves.append(board_copy.san(move))
            board_copy.push(move)
        return san_moves

    def last_move_uci(self) -> str | None:
        return self._board.peek().uci() if self._board.move_stack else None

    def board_copy(self) -> chess.Board:
        """A detached python-chess board, for read-only inspection."""
        return self._board.copy(stack=False)

    def describe_moves(self, limit: int | None = None) -> list[tuple[str, str, str]]:
        """Legal moves as (san, piece name, destination square) triples."""
        described: list[tuple[str, str, str]] = []
        for move in self._board.legal_moves:
            piece = self._board.piece_at(move.from_square)
            piece_name = chess.piece_name(piece.piece_type) if piece else "piece"
            described.append(
                (self._board.san(move), piece_name, chess.square_name(move.to_square))
            )
            if limit is not None and len(described) >= limit:
                break
        return described

    # ------------------------------------------------------------------ #
    # Move parsing and application                                         #
    # ------------------------------------------------------------------ #

    def parse_move(self, move_str: str) -> tuple[chess.Move | None, MoveErrorKind]:
        """
        Parse and validate a move string, returning (move, error_kind).

        Accepts UCI (e2e4, a7a8q) first, then SAN (e4, Nf3, cxd4, O-O, 0-0).

        error_kind values:
          ""          — success; move is legal
          "illegal"   — valid notation but not legal in this position
          "ambiguous" — valid SAN but needs disambiguation
          "format"    — could not be parsed as UCI or SAN at all
        """
        s = move_str.strip()
        if not s:
            return None, "format"

        # UCI: from_uci() validates syntax only; legality is a separate check.
        try:
            move = chess.Move.from_uci(s)
            if move in self._board.legal_moves:
                return move, ""
            return None, "illegal"
        except (ValueError, chess.InvalidMoveError):
            pass

        # SAN: parse_san() is board-aware and raises specific subclasses,
        # but hands back Move.null() for "--" and "Z0" without a legality check.
        try:
            move = self._board.parse_san(s)
            if not move or move not in self._board.legal_moves:
                return None, "illegal"
            return move, ""
        except chess.AmbiguousMoveError:
            return None, "ambiguous"
        except chess.IllegalMoveError:
            return None, "illegal"
        except (ValueError, chess.InvalidMoveError):
            pass

        return None, "format"

    def normalize_san(self, move_str: str) -> str | None:
        """Canonical SAN for any legal spelling of a move, or None."""
        move, _ = self.parse_move(move_str)
        if move is None:
            return None
        return self._board.san(move)

    def push_move(self, move: chess.Move) -> str:
        """Apply a validated legal move. Returns its SAN string."""
        san = self._board.san(move)
        self._board.push(move)
        self._node = self._node.add_variation(move)
        return san

    # ------------------------------------------------------------------ #
    # Terminal status                                                      #
    # ------------------------------------------------------------------ #

    def terminal_status(self) -> TerminalStatus | None:
        """
        Terminal status with priority checkmate > stalemate > draw.

        Claimable draws (threefold repetition, fifty-move) count as terminal,
        since no external actor exists to claim them.
        """
        if self._board.is_checkmate():
            return "checkmate"
        if self._board.is_stalemate():
            return "stalemate"
        if self._board.is_game_over(claim_draw=True):
            return "draw"
        return None

    def draw_reason(self) -> str:
        outcome = self._board.outcome(claim_draw=True)
        if outcome is None:
            return "draw"
        match outcome.termination:
            case chess.Termination.THREEFOLD_REPETITION | chess.Termination.FIVEFOLD_REPETITION:
                return "repetition"
            case chess.Termination.FIFTY_MOVES | chess.Termination.SEVENTYFIVE_MOVES:
                return "fifty_move"
            case chess.Termination.INSUFFICIENT_MATERIAL:
                return "insufficient_material"
            case _:
                return "draw"

    def result(self) -> GameResult:
        outcome = self._board.outcome(claim_draw=True)
        if outcome is None:
            return "*"
        return outcome.result()  # type: ignore[return-value]

    def winner_color(self) -> Color | None:
        outcome = self._board.outcome(claim_draw=True)
        if outcome is None or outcome.winner is None:
            return None
        return "white" if outcome.winner == chess.WHITE else "black"

    # ------------------------------------------------------------------ #
    # PGN                                                                 #
    # ------------------------------------------------------------------ #

    def set_players(self, white_name: str, black_name: str) -> None:
        self._game.headers["White"] = white_name
        self._game.headers["Black"] = black_name

    def set_result(self, result: str) -> None:
        self._game.headers["Result"] = result

    def to_pgn(self) -> str:
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
        return self._game.accept(exporter)

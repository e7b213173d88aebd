"""
Game Session Manager — the single owner of authoritative game state.

Every state change for a game goes through a SessionManager:

    new      → fresh record (replaces any existing one for the id)
    move     → validate against the legal-move set, apply, recompute status
    end      → forced stop (liveness guards in the turn loop)
    analyze / chat / hint → read-only, never touch the record

Records live in a SessionStore as plain dicts. Each operation loads the
record, replays its move record onto a ChessBoard (so repetition draws keep
working across reloads), and writes the record back after a successful move.

Concurrency: one asyncio.Lock per game_id. session() exposes the lock to
the turn loop so a completion call and the move it produces happen inside
one critical section. Independent games never contend.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Union

from chesspartner.board import ChessBoard
from chesspartner.commands import Analyze, Chat, Command, Hint, MakeMove, NewGame
from chesspartner.errors import (
    AnalysisUnavailable,
    GameFinished,
    IllegalMove,
    InvalidCommand,
    SessionNotFound,
    StoreError,
)
from chesspartner.events import Color, EndReason, GameStatus, LIVE_STATUSES, RecommendationSource
from chesspartner.pipeline import RecommendationPipeline
from chesspartner.store import SessionRecord, SessionStore

logger = logging.getLogger(__name__)

_STATUSES: tuple[str, ...] = ("new", "ongoing", "checkmate", "stalemate", "draw", "ended")


# --------------------------------------------------------------------------- #
# Snapshots and results                                                        #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of one game. legal_moves is derived from position."""

    game_id: str
    position: str
    start_position: str
    move_record: tuple[str, ...]
    status: GameStatus
    legal_moves: tuple[str, ...]
    in_check: bool
    turn: Color
    end_reason: EndReason | None = None

    @property
    def is_over(self) -> bool:
        return self.status not in LIVE_STATUSES

    def to_record(self) -> SessionRecord:
        """The persisted form. legal_moves, turn and in_check are derived, so not stored."""
        return {
            "game_id": self.game_id,
            "start_position": self.start_position,
            "position": self.position,
            "move_record": list(self.move_record),
            "status": self.status,
            "end_reason": self.end_reason,
        }

    @classmethod
    def from_board(
        cls,
        game_id: str,
        board: ChessBoard,
        status: GameStatus,
        end_reason: EndReason | None = None,
    ) -> GameState:
        live = status in LIVE_STATUSES
        return cls(
            game_id=game_id,
            position=board.fen,
            start_position=board.starting_fen,
            move_record=tuple(board.move_history_san()),
            status=status,
            # A terminal game accepts no moves, whatever the position allows
            legal_moves=tuple(board.legal_moves_san()) if live else (),
            in_check=board.is_check,
            turn=board.turn,
            end_reason=end_reason,
        )


@dataclass(frozen=True)
class MoveHint:
    san: str
    piece: str
    square: str

    @property
    def label(self) -> str:
        return f"{self.san}: {self.piece.upper()} to {self.square}"


@dataclass(frozen=True)
class AnalysisResult:
    game_id: str
    fen: str
    commentary: str
    recommended_move: str | None
    source: RecommendationSource
    fallback_reason: str | None = None


@dataclass(frozen=True)
class ChatResult:
    game_id: str
    fen: str
    question: str
    answer: str


@dataclass(frozen=True)
class HintResult:
    game_id: str
    fen: str
    hints: tuple[MoveHint, ...]


CommandResult = Union[GameState, AnalysisResult, ChatResult, HintResult]


# --------------------------------------------------------------------------- #
# Session handle                                                               #
# --------------------------------------------------------------------------- #

class SessionHandle:
    """
    A loaded game with its lock held. Only valid inside manager.session().

    The board is the live replayed board for this game; callers may read it
    but must mutate state only through move() and end().
    """

    def __init__(
        self,
        manager: SessionManager,
        game_id: str,
        board: ChessBoard,
        status: GameStatus,
        end_reason: EndReason | None,
    ) -> None:
        self._manager = manager
        self._game_id = game_id
        self._board = board
        self._status: GameStatus = status
        self._end_reason: EndReason | None = end_reason

    @property
    def game_id(self) -> str:
        return self._game_id

    @property
    def board(self) -> ChessBoard:
        return self._board

    @property
    def state(self) -> GameState:
        return GameState.from_board(self._game_id, self._board, self._status, self._end_reason)

    def move(self, move_text: str) -> GameState:
        """
        Validate and apply one move (SAN or UCI spelling).

        Raises:
            GameFinished: the game is already in a terminal status.
            IllegalMove: the move is malformed or not legal here; nothing changes.
        """
        if self._status not in LIVE_STATUSES:
            raise GameFinished(move_text, self._status)

        move, error = self._board.parse_move(move_text)
        if move is None:
            raise IllegalMove(move_text, error or "illegal")

        san = self._board.push_move(move)
        terminal = self._board.terminal_status()
        if terminal is not None:
            self._status = terminal
            self._end_reason = terminal
        else:
            self._status = "ongoing"

        state = self.state
        self._manager._save(state)
        logger.debug("Move applied [game=%s]: %s → %s", self._game_id, san, state.status)
        return state

    def end(self, reason: EndReason) -> GameState:
        """Force a live game into the 'ended' status. Terminal games are left as they are."""
        if self._status in LIVE_STATUSES:
            self._status = "ended"
            self._end_reason = reason
            self._manager._save(self.state)
            logger.info("Game ended by force [game=%s reason=%s]", self._game_id, reason)
        return self.state


# --------------------------------------------------------------------------- #
# Manager                                                                      #
# --------------------------------------------------------------------------- #

class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        pipeline: RecommendationPipeline | None = None,
        *,
        hint_count: int = 5,
    ) -> None:
        self._store = store
        self._pipeline = pipeline
        self._hint_count = hint_count
        # A lock lives only while some coroutine holds or waits on it
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def pipeline(self) -> RecommendationPipeline | None:
        return self._pipeline

    # ------------------------------------------------------------------ #
    # Command dispatch                                                     #
    # ------------------------------------------------------------------ #

    async def execute(self, command: Command) -> CommandResult:
        match command:
            case NewGame(game_id=game_id, fen=fen):
                return await self.new(game_id, fen)
            case MakeMove(game_id=game_id, move=move):
                return await self.move(game_id, move)
            case Analyze(game_id=game_id, fen=fen):
                return await self.analyze(game_id, fen)
            case Chat(game_id=game_id, question=question, fen=fen):
                return await self.chat(game_id, question, fen)
            case Hint(game_id=game_id, fen=fen):
                return await self.hint(game_id, fen)
            case _:
                raise InvalidCommand(f"Unsupported command: {command!r}")

    # ------------------------------------------------------------------ #
    # State-changing commands                                              #
    # ------------------------------------------------------------------ #

    async def new(self, game_id: str, fen: str | None = None) -> GameState:
        """Start (or restart) a game. Replaces any existing record for game_id."""
        board = _board_from_fen(fen)
        terminal = board.terminal_status()
        status: GameStatus = terminal or "ongoing"
        state = GameState.from_board(game_id, board, status, terminal)

        async with self._lock_for(game_id):
            self._save(state)
        logger.info("New game [game=%s]", game_id)
        return state

    async def move(self, game_id: str, move_text: str) -> GameState:
        async with self.session(game_id) as handle:
            return handle.move(move_text)

    async def end(self, game_id: str, reason: EndReason) -> GameState:
        async with self.session(game_id) as handle:
            return handle.end(reason)

    async def delete(self, game_id: str) -> bool:
        if game_id not in self._locks and self._store.get(game_id) is None:
            return False
        async with self._lock_for(game_id):
            return self._store.delete(game_id)

    # ------------------------------------------------------------------ #
    # Read-only commands                                                   #
    # ------------------------------------------------------------------ #

    async def get(self, game_id: str) -> GameState:
        async with self.session(game_id) as handle:
            return handle.state

    async def analyze(self, game_id: str, fen: str | None = None) -> AnalysisResult:
        pipeline = self._require_pipeline()
        async with self._position(game_id, fen) as board:
            legal = board.legal_moves_san()
            rec = await pipeline.recommend(
                board.fen,
                legal,
                pipeline.context_for(board),
                shape="analysis",
                game_id=game_id,
            )
        return AnalysisResult(
            game_id=game_id,
            fen=board.fen,
            commentary=rec.commentary,
            recommended_move=rec.move,
            source=rec.source,
            fallback_reason=rec.fallback_reason,
        )

    async def chat(self, game_id: str, question: str, fen: str | None = None) -> ChatResult:
        pipeline = self._require_pipeline()
        async with self._position(game_id, fen) as board:
            answer = await pipeline.chat(
                board.fen,
                question,
                pipeline.context_for(board, question),
                game_id=game_id,
            )
        return ChatResult(game_id=game_id, fen=board.fen, question=question, answer=answer)

    async def hint(self, game_id: str, fen: str | None = None) -> HintResult:
        async with self._position(game_id, fen) as board:
            hints = tuple(
                MoveHint(san=san, piece=piece, square=square)
                for san, piece, square in board.describe_moves(self._hint_count)
            )
        return HintResult(game_id=game_id, fen=board.fen, hints=hints)

    # ------------------------------------------------------------------ #
    # Locking                                                              #
    # ------------------------------------------------------------------ #

    @asynccontextmanager
    async def session(self, game_id: str) -> AsyncIterator[SessionHandle]:
        """
        Hold the game's lock and yield a handle on its loaded state.

        Raises:
            SessionNotFound: no record exists. No lock or record is created.
        """
        if game_id not in self._locks and self._store.get(game_id) is None:
            raise SessionNotFound(game_id)
        async with self._lock_for(game_id):
            yield self._load(game_id)

    @asynccontextmanager
    async def _position(self, game_id: str, fen: str | None) -> AsyncIterator[ChessBoard]:
        """The board a read-only command works on: the given FEN, else the session's."""
        if fen is not None:
            yield _board_from_fen(fen)
            return
        async with self.session(game_id) as handle:
            yield handle.board

    def _lock_for(self, game_id: str) -> asyncio.Lock:
        lock = self._locks.get(game_id)
        if lock is None:
            lock = self._locks[game_id] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------ #
    # Persistence                                                          #
    # ------------------------------------------------------------------ #

    def _load(self, game_id: str) -> SessionHandle:
        record = self._store.get(game_id)
        if record is None:
            raise SessionNotFound(game_id)
        board, status, end_reason = _restore(game_id, record)
        return SessionHandle(self, game_id, board, status, end_reason)

    def _save(self, state: GameState) -> None:
        self._store.put(state.game_id, state.to_record())

    def _require_pipeline(self) -> RecommendationPipeline:
        if self._pipeline is None:
            raise AnalysisUnavailable("No analysis pipeline is configured")
        return self._pipeline


def _board_from_fen(fen: str | None) -> ChessBoard:
    try:
        return ChessBoard(fen)
    except ValueError as exc:
        raise InvalidCommand(f"Invalid position '{fen}': {exc}") from exc


def _restore(game_id: str, record: SessionRecord) -> tuple[ChessBoard, GameStatus, EndReason | None]:
    """
    Rebuild a board from a persisted record and check it is consistent.

    Raises:
        StoreError: fields are missing, the moves don't replay, or the replayed
            position differs from the stored one.
    """
    try:
        start = str(record["start_position"])
        position = str(record["position"])
        moves = [str(m) for m in record["move_record"]]
        status = record["status"]
    except (KeyError, TypeError) as exc:
        raise StoreError(f"Session record for '{game_id}' is incomplete: {exc}") from exc

    if status not in _STATUSES:
        raise StoreError(f"Session record for '{game_id}' has unknown status '{status}'")

    try:
        board = ChessBoard.replay(start, moves)
    except ValueError as exc:
        raise StoreError(f"Session record for '{game_id}' does not replay: {exc}") from exc

    if board.fen != position:
        raise StoreError(
            f"Session record for '{game_id}' is inconsistent: "
            f"replay gives {board.fen}, record says {position}"
        )
    return board, status, record.get("end_reason")

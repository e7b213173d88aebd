"""
Turn orchestration — alternates the human and the automated opponent.

This module is UI-agnostic. It yields typed GameEvent objects and never prints,
and has no Rich/CLI dependencies. All state changes go through the
SessionManager; this module only decides whose turn it is and what to ask.

Consumers:
  CLI     → chesspartner/cli/display.py consumes run_game()
  Web     → chesspartner/web/app.py consumes TurnOrchestrator.respond()
  Matches → match_main.py runs run_game() with two automated players
  Tests   → async for event in run_game(...): assert ...

Automated turns run with the game's lock held, from the completion call to
the applied move. Guards on the automated side:
  - anti-repetition: a move already played `repetition_limit` times in the
    last `repetition_window` plies is swapped for the first other legal move;
    if no other move exists the game is force-ended (repetition_deadlock)
  - validity: a rejected move is retried once; a second rejection ends the
    game (no_move_decided)
Human moves that fail validation never change state: run_game re-prompts and
respond() raises IllegalMove to the caller.

Generators that hold a game's lock must be consumed to the end (or closed
with contextlib.aclosing) so the lock is released promptly.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import AsyncGenerator, Sequence

from chesspartner.errors import IllegalMove, NoMoveDecided, RepetitionDeadlock
from chesspartner.events import (
    AnalysisEvent,
    ChatEvent,
    CheckEvent,
    Color,
    GameEvent,
    GameOverEvent,
    GameResult,
    GameStartEvent,
    HintEvent,
    InvalidMoveEvent,
    MoveAppliedEvent,
    MoveRequestedEvent,
    RepetitionAvoidedEvent,
    TurnStartEvent,
)
from chesspartner.players.base import Player, TurnState
from chesspartner.providers.base import ProviderError
from chesspartner.session import GameState, SessionHandle, SessionManager

logger = logging.getLogger(__name__)


def is_repetitive(move: str, move_record: Sequence[str], *, window: int = 6, limit: int = 2) -> bool:
    """True if `move` occurs at least `limit` times in the last `window` recorded moves."""
    recent = list(move_record)[-window:]
    return recent.count(move) >= limit


def guard_repetition(
    game_id: str,
    proposed: str,
    move_record: Sequence[str],
    legal_moves: Sequence[str],
    *,
    window: int = 6,
    limit: int = 2,
) -> str:
    """
    Return the move to play instead of `proposed`: itself if not repetitive,
    otherwise the first legal move that differs from it.

    Raises:
        RepetitionDeadlock: the move is repetitive and there is no alternative.
    """
    if not is_repetitive(proposed, move_record, window=window, limit=limit):
        return proposed
    alternative = next((m for m in legal_moves if m != proposed), None)
    if alternative is None:
        raise RepetitionDeadlock(game_id, proposed)
    return alternative


class TurnOrchestrator:
    def __init__(
        self,
        sessions: SessionManager,
        *,
        repetition_window: int = 6,
        repetition_limit: int = 2,
        max_attempts: int = 2,
    ) -> None:
        self._sessions = sessions
        self._window = repetition_window
        self._limit = repetition_limit
        self._max_attempts = max_attempts

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    # ------------------------------------------------------------------ #
    # One exchange: human move + automated reply                          #
    # ------------------------------------------------------------------ #

    async def respond(
        self,
        game_id: str,
        move_text: str,
        opponent: Player,
        human_name: str = "Human",
    ) -> AsyncGenerator[GameEvent, None]:
        """
        Apply a human move, then let the opponent answer, under one lock.

        Raises before yielding anything if the human move is rejected
        (SessionNotFound, IllegalMove, GameFinished); the game is unchanged.
        """
        async with self._sessions.session(game_id) as handle:
            human_color = handle.board.turn
            names = _names(human_color, human_name, opponent.name)
            move_number = handle.board.fullmove_number

            state = handle.move(move_text)
            yield _applied(state, human_color, human_name, move_number, automated=False)

            if not state.is_over:
                if state.in_check:
                    yield CheckEvent(color_in_check=state.turn, checking_move_san=state.move_record[-1])
                async for event in self.automated_turn(handle, opponent, names):
                    yield event

            if handle.state.is_over:
                yield _game_over(handle, names)

    # ------------------------------------------------------------------ #
    # Automated turn                                                       #
    # ------------------------------------------------------------------ #

    async def automated_turn(
        self,
        handle: SessionHandle,
        player: Player,
        names: dict[Color, str],
    ) -> AsyncGenerator[GameEvent, None]:
        """
        Play one automated move on a locked session.

        NoMoveDecided and RepetitionDeadlock are turned into a forced end of
        the game here; the caller sees the 'ended' status on the handle.
        """
        try:
            async for event in self._attempt_moves(handle, player, names):
                yield event
        except (NoMoveDecided, RepetitionDeadlock) as exc:
            logger.warning("Automated turn failed [game=%s]: %s", handle.game_id, exc)
            handle.end(exc.kind)  # type: ignore[arg-type]

    async def _attempt_moves(
        self,
        handle: SessionHandle,
        player: Player,
        names: dict[Color, str],
    ) -> AsyncGenerator[GameEvent, None]:
        state = handle.state
        color = state.turn
        move_number = handle.board.fullmove_number
        previous_invalid: str | None = None
        previous_error: str | None = None

        for attempt in range(1, self._max_attempts + 1):
            yield MoveRequestedEvent(color=color, player_name=player.name, attempt_num=attempt)

            turn = _turn_state(state, handle.board.fullmove_number, attempt, previous_invalid, previous_error)
            try:
                response = await player.get_move(turn)
            except ProviderError as exc:
                previous_invalid, previous_error = "", f"API error: {exc}"
                yield InvalidMoveEvent(color=color, attempted_move="", error=previous_error, attempt_num=attempt)
                continue

            if response.commentary:
                yield AnalysisEvent(
                    player_name=player.name,
                    commentary=response.commentary,
                    recommended_move=response.move or None,
                    source=response.source or "text",
                    fallback_reason=response.fallback_reason,
                )

            proposed = response.move.strip()
            if not proposed:
                previous_invalid, previous_error = "", "No move was proposed."
                yield InvalidMoveEvent(color=color, attempted_move="", error=previous_error, attempt_num=attempt)
                continue

            # Compare in canonical SAN so "Nf3", "g1f3" and "Nf3+" count as one move
            canonical = handle.board.normalize_san(proposed) or proposed
            chosen = guard_repetition(
                handle.game_id,
                canonical,
                state.move_record,
                state.legal_moves,
                window=self._window,
                limit=self._limit,
            )
            if chosen != canonical:
                yield RepetitionAvoidedEvent(color=color, repeated_move=canonical, alternative_move=chosen)

            try:
                new_state = handle.move(chosen)
            except IllegalMove as exc:
                previous_invalid, previous_error = chosen, str(exc)
                yield InvalidMoveEvent(color=color, attempted_move=chosen, error=str(exc), attempt_num=attempt)
                continue

            yield _applied(new_state, color, names[color], move_number, automated=True)
            if new_state.in_check and not new_state.is_over:
                yield CheckEvent(color_in_check=new_state.turn, checking_move_san=new_state.move_record[-1])
            return

        raise NoMoveDecided(handle.game_id, previous_error or "")


# --------------------------------------------------------------------------- #
# Whole game                                                                   #
# --------------------------------------------------------------------------- #

async def run_game(
    orchestrator: TurnOrchestrator,
    game_id: str,
    white_player: Player,
    black_player: Player,
    stop_event: asyncio.Event | None = None,
    pgn_dir: Path | None = None,
) -> AsyncGenerator[GameEvent, None]:
    """
    Run a game to completion, yielding events for every significant action.

    The session must already exist (SessionManager.new). The generator
    completes when the game reaches a terminal status, when a human quits,
    or when stop_event is set. The PGN is written to pgn_dir when given.
    """
    sessions = orchestrator.sessions
    names: dict[Color, str] = {"white": white_player.name, "black": black_player.name}

    state = await sessions.get(game_id)
    yield GameStartEvent(
        game_id=game_id,
        white_name=white_player.name,
        black_name=black_player.name,
        fen=state.position,
    )

    while not state.is_over:
        if stop_event and stop_event.is_set():
            state = await sessions.end(game_id, "interrupted")
            break

        player = white_player if state.turn == "white" else black_player
        yield TurnStartEvent(
            game_id=game_id,
            color=state.turn,
            player_name=player.name,
            move_number=_move_number(state),
            fen=state.position,
            legal_moves=list(state.legal_moves),
            move_record=list(state.move_record),
        )

        if player.automated:
            async with sessions.session(game_id) as handle:
                async for event in orchestrator.automated_turn(handle, player, names):
                    yield event
                state = handle.state
        else:
            async for event in _human_turn(sessions, state, player):
                yield event
            state = await sessions.get(game_id)

    async with sessions.session(game_id) as handle:
        over = _game_over(handle, names)
    yield over

    if pgn_dir is not None:
        await _save_pgn(over.pgn, pgn_dir, game_id)


async def _human_turn(
    sessions: SessionManager,
    state: GameState,
    player: Player,
) -> AsyncGenerator[GameEvent, None]:
    """Serve the human's requests until a move is applied or they quit."""
    game_id = state.game_id
    move_number = _move_number(state)
    attempt = 0
    while True:
        attempt += 1
        turn = _turn_state(state, move_number, attempt, None, None)
        response = await player.get_move(turn)

        match response.action:
            case "quit":
                await sessions.end(game_id, "resigned")
                return
            case "hint":
                result = await sessions.hint(game_id)
                yield HintEvent(game_id=game_id, hints=[h.label for h in result.hints])
            case "analyze":
                analysis = await sessions.analyze(game_id)
                yield AnalysisEvent(
                    player_name=_opponent_name(sessions),
                    commentary=analysis.commentary,
                    recommended_move=analysis.recommended_move,
                    source=analysis.source,
                    fallback_reason=analysis.fallback_reason,
                )
            case "chat":
                reply = await sessions.chat(game_id, response.question)
                yield ChatEvent(
                    player_name=_opponent_name(sessions),
                    question=response.question,
                    answer=reply.answer,
                )
            case _:
                try:
                    new_state = await sessions.move(game_id, response.move)
                except IllegalMove as exc:
                    yield InvalidMoveEvent(
                        color=state.turn,
                        attempted_move=response.move,
                        error=str(exc),
                        attempt_num=attempt,
                    )
                    continue
                yield _applied(new_state, state.turn, player.name, move_number, automated=False)
                if new_state.in_check and not new_state.is_over:
                    yield CheckEvent(color_in_check=new_state.turn, checking_move_san=new_state.move_record[-1])
                return


# --------------------------------------------------------------------------- #
# Helpers                                                                      #
# --------------------------------------------------------------------------- #

def _turn_state(
    state: GameState,
    move_number: int,
    attempt: int,
    previous_invalid: str | None,
    previous_error: str | None,
) -> TurnState:
    return TurnState(
        game_id=state.game_id,
        fen=state.position,
        start_position=state.start_position,
        legal_moves=list(state.legal_moves),
        move_record=list(state.move_record),
        color=state.turn,
        move_number=move_number,
        previous_invalid_move=previous_invalid,
        previous_error=previous_error,
        attempt_num=attempt,
    )


def _move_number(state: GameState) -> int:
    # FEN field 6 is the fullmove number
    return int(state.position.split()[5])


def _names(human_color: Color, human_name: str, opponent_name: str) -> dict[Color, str]:
    other: Color = "black" if human_color == "white" else "white"
    return {human_color: human_name, other: opponent_name}


def _opponent_name(sessions: SessionManager) -> str:
    pipeline = sessions.pipeline
    return pipeline.persona_name if pipeline else "Opponent"


def _applied(
    state: GameState,
    color: Color,
    player_name: str,
    move_number: int,
    *,
    automated: bool,
) -> MoveAppliedEvent:
    return MoveAppliedEvent(
        game_id=state.game_id,
        color=color,
        player_name=player_name,
        move_san=state.move_record[-1],
        fen_after=state.position,
        move_number=move_number,
        is_check=state.in_check,
        automated=automated,
    )


def _game_over(handle: SessionHandle, names: dict[Color, str]) -> GameOverEvent:
    state = handle.state
    board = handle.board

    result: GameResult = "*"
    winner_name: str | None = None
    reason: str = state.end_reason or state.status
    match state.status:
        case "checkmate" | "stalemate":
            result = board.result()
        case "draw":
            result = board.result()
            reason = board.draw_reason()
        case _:
            if state.end_reason == "resigned":
                # The side to move resigned on its own turn
                result = "0-1" if state.turn == "white" else "1-0"

    if result == "1-0":
        winner_name = names["white"]
    elif result == "0-1":
        winner_name = names["black"]

    board.set_players(names["white"], names["black"])
    board.set_result(result)
    return GameOverEvent(
        game_id=state.game_id,
        status=state.status,
        reason=reason,
        result=result,
        winner_name=winner_name,
        pgn=board.to_pgn(),
        total_moves=len(state.move_record),
        fen=state.position,
    )


async def _save_pgn(pgn: str, pgn_dir: Path, game_id: str) -> Path:
    """Write PGN to a timestamped file, creating the directory if needed."""
    pgn_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    safe_id = "".join(c if c.isalnum() or c in "_-" else "_" for c in game_id)
    pgn_path = pgn_dir / f"game_{safe_id}_{timestamp}.pgn"
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(
        None, lambda: pgn_path.write_text(pgn, encoding="utf-8")
    )
    logger.info("PGN saved: %s", pgn_path)
    return pgn_path

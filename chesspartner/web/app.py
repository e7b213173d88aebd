"""
FastAPI application — the duplex notification gateway.

Exposes:
  WS   /ws/game                    Command channel: one JSON event out per JSON event in
  POST /api/commands               Execute one command (same payloads as the socket)
  GET  /api/games/{game_id}        Current game state
  GET  /api/games/{game_id}/board.svg
  GET  /api/config                 Public game settings for a client UI

Inbound events:
    {"type": "new",     "gameId": ..., "position"?: FEN}
    {"type": "move",    "gameId": ..., "move": "e4"}
    {"type": "analyze", "gameId": ..., "position"?: FEN}
    {"type": "chat",    "gameId": ..., "question": ..., "position"?: FEN}
    {"type": "hint",    "gameId": ..., "position"?: FEN}
Any inbound event may carry "requestId"; it is echoed on the reply.

Outbound events:
    state      reply to "new"
    move       the human move was applied and the opponent answered
    message    analysis, chat or hint text
    game_over  the game reached a terminal status during a "move"
    error      anything went wrong; the socket stays open

Start with:  uvicorn chesspartner.web.app:build_app --factory
"""

from __future__ import annotations

import json
import logging
from contextlib import aclosing
from datetime import date, datetime
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response

from chesspartner.commands import Analyze, Chat, Hint, MakeMove, NewGame, parse_command
from chesspartner.config import Config, load_config
from chesspartner.errors import ChessPartnerError, SessionNotFound
from chesspartner.events import (
    AnalysisEvent,
    GameOverEvent,
    MoveAppliedEvent,
    RepetitionAvoidedEvent,
)
from chesspartner.game import TurnOrchestrator
from chesspartner.logs import configure_logging
from chesspartner.pipeline import build_pipeline
from chesspartner.players import Player, create_player
from chesspartner.renderer import render_svg
from chesspartner.session import GameState, SessionManager
from chesspartner.store import create_store

logger = logging.getLogger(__name__)

# HTTP status for each error kind on the REST surface
_ERROR_STATUS: dict[str, int] = {
    "invalid_command": 400,
    "session_not_found": 404,
    "illegal_move": 409,
    "game_finished": 409,
    "analysis_unavailable": 503,
    "store_error": 500,
}


def _to_json(data: dict) -> str:
    """json.dumps with datetime → ISO-string support."""
    def _default(obj: object) -> str:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return json.dumps(data, default=_default)


def state_payload(state: GameState) -> dict[str, Any]:
    return {
        "gameId": state.game_id,
        "position": state.position,
        "startPosition": state.start_position,
        "moveRecord": list(state.move_record),
        "status": state.status,
        "legalMoves": list(state.legal_moves),
        "inCheck": state.in_check,
        "turn": state.turn,
        "endReason": state.end_reason,
    }


# --------------------------------------------------------------------------- #
# Gateway                                                                      #
# --------------------------------------------------------------------------- #

class Gateway:
    """
    Translates inbound payloads into session calls and results into one
    outbound event. Transport-agnostic: the socket and REST handlers share it.
    """

    def __init__(
        self,
        orchestrator: TurnOrchestrator,
        opponent: Player,
        human_name: str = "Human",
    ) -> None:
        self._orchestrator = orchestrator
        self._sessions: SessionManager = orchestrator.sessions
        self._opponent = opponent
        self._human_name = human_name

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    async def handle(self, payload: Any) -> dict[str, Any]:
        """Never raises: every failure becomes an 'error' event."""
        request_id = payload.get("requestId") if isinstance(payload, dict) else None
        game_id = payload.get("gameId") if isinstance(payload, dict) else None
        try:
            event = await self._dispatch(payload)
        except ChessPartnerError as exc:
            logger.info("Command rejected [game=%s]: %s", game_id, exc)
            event = {"type": "error", "gameId": game_id, "error": exc.kind, "message": str(exc)}
        except Exception as exc:
            logger.exception("Command failed [game=%s]", game_id)
            event = {"type": "error", "gameId": game_id, "error": "internal", "message": str(exc)}
        if request_id is not None:
            event["requestId"] = request_id
        return event

    async def _dispatch(self, payload: Any) -> dict[str, Any]:
        command = parse_command(payload)
        match command:
            case NewGame(game_id=game_id, fen=fen):
                state = await self._sessions.new(game_id, fen)
                return {"type": "state", "gameId": game_id, "state": state_payload(state)}
            case MakeMove(game_id=game_id, move=move):
                return await self._move(game_id, move)
            case Analyze(game_id=game_id, fen=fen):
                result = await self._sessions.analyze(game_id, fen)
                return {
                    "type": "message",
                    "gameId": game_id,
                    "kind": "analysis",
                    "text": result.commentary,
                    "recommendedMove": result.recommended_move,
                    "source": result.source,
                }
            case Chat(game_id=game_id, question=question, fen=fen):
                reply = await self._sessions.chat(game_id, question, fen)
                return {"type": "message", "gameId": game_id, "kind": "chat", "text": reply.answer}
            case Hint(game_id=game_id, fen=fen):
                hints = await self._sessions.hint(game_id, fen)
                labels = [h.label for h in hints.hints]
                return {
                    "type": "message",
                    "gameId": game_id,
                    "kind": "hint",
                    "text": "\n".join(f"- {label}" for label in labels),
                    "hints": labels,
                }
            case _:
                raise ChessPartnerError(f"Unsupported command: {command!r}")

    async def _move(self, game_id: str, move: str) -> dict[str, Any]:
        applied: list[MoveAppliedEvent] = []
        commentary = ""
        repetition: RepetitionAvoidedEvent | None = None
        game_over: GameOverEvent | None = None

        async with aclosing(
            self._orchestrator.respond(game_id, move, self._opponent, self._human_name)
        ) as events:
            async for event in events:
                match event:
                    case MoveAppliedEvent():
                        applied.append(event)
                    case AnalysisEvent():
                        commentary = event.commentary
                    case RepetitionAvoidedEvent():
                        repetition = event
                    case GameOverEvent():
                        game_over = event

        state = await self._sessions.get(game_id)
        human = next((e for e in applied if not e.automated), None)
        reply = next((e for e in applied if e.automated), None)
        body: dict[str, Any] = {
            "gameId": game_id,
            "playerMove": human.move_san if human else None,
            "move": reply.move_san if reply else None,
            "commentary": commentary,
            "state": state_payload(state),
        }
        if repetition is not None:
            body["repetitionAvoided"] = repetition.repeated_move

        if game_over is not None:
            return {
                "type": "game_over",
                **body,
                "status": game_over.status,
                "reason": game_over.reason,
                "result": game_over.result,
                "winner": game_over.winner_name,
                "pgn": game_over.pgn,
            }
        return {"type": "move", **body}


# --------------------------------------------------------------------------- #
# Application                                                                  #
# --------------------------------------------------------------------------- #

def create_app(
    orchestrator: TurnOrchestrator,
    opponent: Player,
    config: Config | None = None,
) -> FastAPI:
    gateway = Gateway(orchestrator, opponent)
    app = FastAPI(title="ChessPartner")
    app.state.gateway = gateway

    # ------------------------------------------------------------------ #
    # REST                                                                 #
    # ------------------------------------------------------------------ #

    @app.get("/api/config")
    def get_config():
        game = config.game if config else None
        return {
            "opponent": {"name": opponent.name},
            "hintCount": game.hint_count if game else 5,
            "repetitionWindow": game.repetition_window if game else 6,
            "repetitionLimit": game.repetition_limit if game else 2,
        }

    @app.post("/api/commands")
    async def post_command(payload: dict):
        event = await gateway.handle(payload)
        if event["type"] == "error":
            return JSONResponse(status_code=_ERROR_STATUS.get(event["error"], 500), content=event)
        return event

    @app.get("/api/games/{game_id}")
    async def get_game(game_id: str):
        try:
            state = await gateway.sessions.get(game_id)
        except SessionNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return state_payload(state)

    @app.get("/api/games/{game_id}/board.svg")
    async def get_board_svg(game_id: str) -> Response:
        try:
            async with gateway.sessions.session(game_id) as handle:
                svg = render_svg(handle.board.fen, handle.board.last_move_uci())
        except SessionNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return Response(content=svg, media_type="image/svg+xml")

    # ------------------------------------------------------------------ #
    # WebSocket                                                            #
    # ------------------------------------------------------------------ #

    @app.websocket("/ws/game")
    async def game_ws(ws: WebSocket) -> None:
        await ws.accept()
        try:
            while True:
                text = await ws.receive_text()
                try:
                    payload = json.loads(text)
                except json.JSONDecodeError as exc:
                    event = {"type": "error", "gameId": None, "error": "invalid_command",
                             "message": f"Malformed JSON: {exc}"}
                else:
                    event = await gateway.handle(payload)
                await ws.send_text(_to_json(event))
        except WebSocketDisconnect:
            logger.debug("WebSocket client disconnected")

    return app


def build_app(config_path: str = "config.yaml") -> FastAPI:
    """Application factory used by web_main.py: config.yaml → wired app."""
    config = load_config(config_path)
    log_file = configure_logging(config.log_dir_path)
    logger.info("Logging to %s", log_file)

    persona = config.persona()
    pipeline = build_pipeline(config, persona)
    sessions = SessionManager(
        create_store(config.game.store, config.store_dir_path),
        pipeline,
        hint_count=config.game.hint_count,
    )
    orchestrator = TurnOrchestrator(
        sessions,
        repetition_window=config.game.repetition_window,
        repetition_limit=config.game.repetition_limit,
    )
    opponent = create_player("llm", persona.name, pipeline, persona)
    logger.info("Opponent: %s (%s:%s)", persona.name, persona.provider, persona.model)
    return create_app(orchestrator, opponent, config)

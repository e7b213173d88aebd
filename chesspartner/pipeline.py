"""
Move Recommendation Pipeline — position in, validated move out.

    prompt → completion (once, under a deadline) → parse → validate → fallback

Prompt shapes:
  - "structured": the model must answer with a bare JSON object
    {"analysis": ..., "recommendedMove": ...}. Cheapest to parse.
  - "analysis": free-form commentary in ## Analysis / ## Move sections,
    better for human-facing analysis requests.

Parsing runs in stages, most reliable first:
  1. JSON object anywhere in the reply (code fences and double-encoded
     strings are tolerated), reading the recommendedMove / move field.
  2. A "## Move" markdown section.
  3. A lossy regex scan of the free text for SAN/UCI-looking tokens. This
     stage guesses: prose like "the e4 square" yields "e4". It is only ever
     trusted through the legality gate below.

Whatever the reply, recommend() never returns a move outside the supplied
legal moves. Completion failures, timeouts, empty or unusable replies all
resolve to the default move policy; nothing is raised to the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Iterable, Sequence

from chesspartner.board import ChessBoard
from chesspartner.context import AnalysisContext, StyleHints, build_context
from chesspartner.conv_logger import ConversationLogger
from chesspartner.errors import AnalysisUnavailable
from chesspartner.events import RecommendationSource
from chesspartner.config import Config, PersonaConfig, PromptShape
from chesspartner.providers import create_provider
from chesspartner.providers.base import LLMProvider, Message, ProviderError

logger = logging.getLogger(__name__)

# Canonical development moves tried, in order, when the reply is unusable.
DEFAULT_MOVES: tuple[str, ...] = (
    "e4", "d4", "Nf3", "c4",
    "e5", "d5", "Nf6", "c5",
    "Nc3", "Nc6", "Bc4", "Bb5", "Bc5", "Bb4",
    "O-O",
)

# --------------------------------------------------------------------------- #
# Prompt templates                                                             #
# --------------------------------------------------------------------------- #

_SYSTEM = """\
You are {name}, a chess player with a {style} style.
You favour {preferences}.{repertoire}
Stay in character. Be concise and concrete."""

_POSITION = """\
Position (FEN): {fen}
Side to move: {color}
Move history ({move_count} half-moves): {history}
Game phase: {phase}
Material balance (white minus black): {material:+d}
Developed pieces: {developed}
Captures available: {captures}{check_line}"""

_STRUCTURED_USER = """\
Analyze this chess position and choose your move.

{position}

Legal moves ({legal_count}): {legal_moves}
{question_block}
Respond with ONLY a JSON object, no other text:
{{"analysis": "brief position analysis", "recommendedMove": "one move from the legal moves list"}}

Rules:
- recommendedMove MUST be one of the legal moves listed above, written exactly as listed
- No markdown, no code fences"""

_ANALYSIS_USER = """\
Analyze this chess position.

{position}

Legal moves ({legal_count}): {legal_moves}
{question_block}
Respond in this exact format — two sections, nothing else:

## Analysis
Threats, tactics and plans for both sides. Be concise.

## Move
The move you recommend, in SAN, taken from the legal moves list"""

_CHAT_USER = """\
Current chess position:
{position}

Question: {question}

Answer in character, considering:
1. The current position
2. Concrete tactical and strategic considerations
3. Your experience and chess principles"""

# Regexes used to find a move token in noisy model output. Castling first,
# then UCI (unambiguous: source+dest squares), then SAN.
_MOVE_TOKEN_RE = re.compile(
    r"(?<![A-Za-z0-9])("
    r"O-O-O|O-O|0-0-0|0-0"
    r"|[a-h][1-8][a-h][1-8][qrbnQRBN]?"
    r"|[KQRBN]?[a-h]?[1-8]?x?[a-h][1-8](?:=?[QRBN])?"
    r")[+#]?(?![A-Za-z0-9])"
)
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_SECTION_RE = re.compile(r"(?m)^#{1,3}[ \t]*([^\n]*)\n?")


@dataclass(frozen=True)
class Recommendation:
    commentary: str
    move: str | None
    source: RecommendationSource
    fallback_reason: str | None = None
    raw: str = ""

    @property
    def used_fallback(self) -> bool:
        return self.source == "fallback"


class RecommendationPipeline:
    """Turns a position into commentary plus a legal move via an LLMProvider."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        persona_name: str = "Opponent",
        style: StyleHints | None = None,
        timeout: float = 60.0,
        max_tokens: int = 500,
        conv_logger: ConversationLogger | None = None,
    ) -> None:
        self._provider = provider
        self._persona_name = persona_name
        self._style = style or StyleHints()
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._conv_logger = conv_logger

    @property
    def persona_name(self) -> str:
        return self._persona_name

    def context_for(self, board: ChessBoard, question: str | None = None) -> AnalysisContext:
        return build_context(board, question=question, style=self._style)

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    async def recommend(
        self,
        fen: str,
        legal_moves: Sequence[str],
        context: AnalysisContext,
        *,
        shape: PromptShape = "structured",
        game_id: str = "adhoc",
        exclude: Iterable[str] = (),
    ) -> Recommendation:
        """
        Recommend a move for the side to move in `fen`.

        `legal_moves` are SAN strings; the returned move, if any, is one of
        them. Moves in `exclude` are skipped by the fallback policy (used when
        the caller is retrying after rejecting a suggestion).
        """
        legal = list(legal_moves)
        excluded = set(exclude)
        board = ChessBoard(fen)
        messages = self._build_messages(board, legal, context, shape)

        try:
            raw = await self._complete(messages, game_id=game_id, kind=f"analyze/{shape}")
        except AnalysisUnavailable as exc:
            logger.warning("Analysis unavailable [persona=%s game=%s]: %s",
                           self._persona_name, game_id, exc)
            return _fallback(
                legal,
                excluded,
                reason=str(exc),
                commentary=f"{self._persona_name} could not analyze the position ({exc}).",
            )

        commentary, field_move, scan_text = _interpret(raw)

        if field_move is not None:
            candidates = [field_move, *scan_move_tokens(field_move)]
            source: RecommendationSource = "structured"
        else:
            candidates = scan_move_tokens(scan_text)
            source = "text"

        move = _first_legal(board, candidates, legal, excluded)
        if move is None:
            reason = (
                f"suggested move '{field_move}' is not legal here"
                if field_move is not None
                else "no legal move found in the reply"
            )
            logger.info("Falling back to default move [persona=%s game=%s]: %s",
                        self._persona_name, game_id, reason)
            return _fallback(legal, excluded, reason=reason, commentary=commentary, raw=raw)

        return Recommendation(commentary=commentary, move=move, source=source, raw=raw)

    async def chat(
        self,
        fen: str,
        question: str,
        context: AnalysisContext,
        *,
        game_id: str = "adhoc",
    ) -> str:
        """Free-text answer to a question about the position. Never raises."""
        board = ChessBoard(fen)
        messages = [
            self._system_message(),
            Message(
                role="user",
                content=_CHAT_USER.format(
                    position=_format_position(board, context),
                    question=question.strip() or "What do you think about the current position?",
                ),
            ),
        ]
        try:
            return await self._complete(messages, game_id=game_id, kind="chat")
        except AnalysisUnavailable as exc:
            logger.warning("Chat unavailable [persona=%s game=%s]: %s",
                           self._persona_name, game_id, exc)
            return f"{self._persona_name} has nothing to say right now ({exc})."

    # ------------------------------------------------------------------ #
    # Completion                                                           #
    # ------------------------------------------------------------------ #

    async def _complete(self, messages: list[Message], *, game_id: str, kind: str) -> str:
        if self._conv_logger:
            self._conv_logger.log_request(game_id=game_id, kind=kind, messages=messages)

        started = time.monotonic()
        try:
            async with asyncio.timeout(self._timeout):
                raw = await self._provider.complete(messages, max_tokens=self._max_tokens)
        except TimeoutError as exc:
            raise self._unavailable(game_id, f"no response within {self._timeout:g}s") from exc
        except ProviderError as exc:
            raise self._unavailable(game_id, str(exc)) from exc
        except Exception as exc:
            logger.exception("Unexpected completion failure [provider=%s]", self._provider.label)
            raise self._unavailable(game_id, f"completion failed: {exc}") from exc

        if self._conv_logger:
            self._conv_logger.log_response(game_id=game_id, raw=raw, elapsed=time.monotonic() - started)

        if not raw or not raw.strip():
            raise AnalysisUnavailable("empty completion")
        return raw

    def _unavailable(self, game_id: str, detail: str) -> AnalysisUnavailable:
        if self._conv_logger:
            self._conv_logger.log_failure(game_id=game_id, error=detail)
        return AnalysisUnavailable(detail)

    # ------------------------------------------------------------------ #
    # Prompt construction                                                  #
    # ------------------------------------------------------------------ #

    def _system_message(self) -> Message:
        repertoire = f"\nOpening repertoire: {self._style.repertoire}." if self._style.repertoire else ""
        return Message(
            role="system",
            content=_SYSTEM.format(
                name=self._persona_name,
                style=self._style.style,
                preferences=self._style.preferences or "sound, principled play",
                repertoire=repertoire,
            ),
        )

    def _build_messages(
        self,
        board: ChessBoard,
        legal: list[str],
        context: AnalysisContext,
        shape: PromptShape,
    ) -> list[Message]:
        question_block = f"\nQuestion to address: {context.question}\n" if context.question else ""
        template = _STRUCTURED_USER if shape == "structured" else _ANALYSIS_USER
        user_text = template.format(
            position=_format_position(board, context),
            legal_count=len(legal),
            legal_moves=", ".join(legal) if legal else "(none)",
            question_block=question_block,
        )
        return [self._system_message(), Message(role="user", content=user_text)]


# --------------------------------------------------------------------------- #
# Response parsing                                                             #
# --------------------------------------------------------------------------- #

def _format_position(board: ChessBoard, context: AnalysisContext) -> str:
    return _POSITION.format(
        fen=board.fen,
        color=board.turn,
        move_count=len(context.move_history),
        history=" ".join(context.move_history) if context.move_history else "(game just started)",
        phase=context.phase,
        material=context.material_balance,
        developed=context.developed_pieces,
        captures=", ".join(context.captures) if context.captures else "none",
        check_line="\nThe side to move is in CHECK." if context.in_check else "",
    )


def _interpret(raw: str) -> tuple[str, str | None, str]:
    """
    Split a reply into (commentary, move field, text to scan).

    The move field is None when no structured field was found; the caller
    then falls back to scanning the text.
    """
    data = parse_json_reply(raw)
    if data is not None:
        commentary = str(data.get("analysis") or data.get("commentary") or "").strip()
        field = data.get("recommendedMove") or data.get("move") or data.get("recommended_move")
        field_move = str(field).strip() if field else None
        return commentary, field_move, commentary

    analysis, move_section = _parse_sections(raw)
    if move_section:
        return analysis or raw.strip(), move_section, analysis
    return analysis or raw.strip(), None, raw


def parse_json_reply(raw: str) -> dict | None:
    """Find a JSON object in a reply, tolerating fences, prose and double encoding."""
    candidates = [m.group(1) for m in _FENCE_RE.finditer(raw)]
    candidates.append(raw)
    for text in candidates:
        text = text.strip()
        start, end = text.find("{"), text.rfind("}")
        attempts = [text]
        if start != -1 and end > start:
            attempts.append(text[start:end + 1])
        for attempt in attempts:
            data = _loads(attempt)
            # A JSON string whose content is itself JSON
            if isinstance(data, str):
                data = _loads(data.strip())
            if isinstance(data, dict):
                return data
    return None


def _loads(text: str) -> object:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def _parse_sections(raw: str) -> tuple[str, str]:
    """Return (analysis, move) section bodies from a markdown-sectioned reply."""
    analysis = ""
    move_text = ""
    headers = list(_SECTION_RE.finditer(raw))
    for i, match in enumerate(headers):
        header = match.group(1).strip().lower()
        end = headers[i + 1].start() if i + 1 < len(headers) else len(raw)
        content = raw[match.end():end].strip()
        if any(kw in header for kw in ("analysis", "reasoning", "thinking", "assessment")):
            analysis = content
        elif "move" in header:
            move_text = content
    return analysis, move_text


def scan_move_tokens(text: str) -> list[str]:
    """Every SAN/UCI-looking token in text, in order of appearance (lossy)."""
    return [m.group(0) for m in _MOVE_TOKEN_RE.finditer(text)]


def _first_legal(
    board: ChessBoard,
    candidates: Iterable[str],
    legal: list[str],
    excluded: set[str],
) -> str | None:
    legal_set = set(legal)
    for candidate in candidates:
        san = board.normalize_san(candidate)
        if san is not None and san in legal_set and san not in excluded:
            return san
    return None


# --------------------------------------------------------------------------- #
# Default move policy                                                          #
# --------------------------------------------------------------------------- #

def default_move(legal_moves: Sequence[str], exclude: Iterable[str] = ()) -> str | None:
    """
    Deterministic fallback: the first canonical development move that is legal,
    else the first legal move, else None when there are no legal moves.
    """
    excluded = set(exclude)
    available = [m for m in legal_moves if m not in excluded]
    available_set = set(available)
    for move in DEFAULT_MOVES:
        if move in available_set:
            return move
    return available[0] if available else None


def _fallback(
    legal: list[str],
    excluded: set[str],
    *,
    reason: str,
    commentary: str,
    raw: str = "",
) -> Recommendation:
    move = default_move(legal, excluded)
    note = f"Falling back to {move}." if move else "No legal move is available."
    return Recommendation(
        commentary=f"{commentary} {note}".strip() if commentary else note,
        move=move,
        source="fallback",
        fallback_reason=reason,
        raw=raw,
    )


def build_pipeline(
    config: Config,
    persona: PersonaConfig,
    *,
    log_conversations: bool = True,
) -> RecommendationPipeline:
    """Wire a persona from config.yaml to its provider."""
    provider = create_provider(persona.provider, persona.model, config.providers)
    conv_logger = ConversationLogger(config.log_dir_path, persona.name) if log_conversations else None
    return RecommendationPipeline(
        provider,
        persona_name=persona.name,
        style=StyleHints(
            style=persona.style,
            preferences=persona.preferences,
            repertoire=persona.repertoire,
        ),
        timeout=persona.move_timeout,
        max_tokens=persona.max_output_tokens,
        conv_logger=conv_logger,
    )

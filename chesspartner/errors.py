"""
Error taxonomy for the game-session engine.

Recovery happens at well-defined boundaries:
  InvalidCommand, SessionNotFound, IllegalMove  → command boundary (CLI re-prompt,
                                                   gateway "error" event)
  AnalysisUnavailable                           → absorbed inside the pipeline
  NoMoveDecided, RepetitionDeadlock             → turn loop, converted into a
                                                   game-over outcome
"""

from __future__ import annotations


class ChessPartnerError(Exception):
    """Base class for every error raised by the session engine."""

    kind = "error"


class InvalidCommand(ChessPartnerError):
    """A command payload has an unknown type or is missing required fields."""

    kind = "invalid_command"


class SessionNotFound(ChessPartnerError):
    kind = "session_not_found"

    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"No game with id '{game_id}'")


class IllegalMove(ChessPartnerError):
    """The move is malformed or not in the legal-move set of the current position."""

    kind = "illegal_move"

    def __init__(self, move: str, reason: str = "illegal") -> None:
        self.move = move
        self.reason = reason
        super().__init__(f"'{move}' is not a legal move here ({reason})")


class GameFinished(IllegalMove):
    kind = "game_finished"

    def __init__(self, move: str, status: str) -> None:
        self.status = status
        super().__init__(move, reason=f"game is already over: {status}")


class AnalysisUnavailable(ChessPartnerError):
    """The completion call failed or produced nothing usable."""

    kind = "analysis_unavailable"


class NoMoveDecided(ChessPartnerError):
    kind = "no_move_decided"

    def __init__(self, game_id: str, detail: str = "") -> None:
        self.game_id = game_id
        message = f"Could not determine a move for game '{game_id}'"
        super().__init__(f"{message}: {detail}" if detail else message)


class RepetitionDeadlock(ChessPartnerError):
    kind = "repetition_deadlock"

    def __init__(self, game_id: str, move: str) -> None:
        self.game_id = game_id
        self.move = move
        super().__init__(
            f"'{move}' keeps repeating in game '{game_id}' and no alternative move exists"
        )


class StoreError(ChessPartnerError):
    """A persisted session record is corrupt or cannot be replayed."""

    kind = "store_error"

"""
HumanPlayer — reads moves and requests from stdin.

Uses run_in_executor so that the blocking input() call doesn't stall
the asyncio event loop.

Besides a move (SAN or UCI) the player can type:
    hint      list a few legal moves
    analyze   ask the opponent for its analysis of the position
    chat      ask the opponent a question (prompted for on the next line)
    quit      resign the game
"""

from __future__ import annotations

import asyncio

from chesspartner.players.base import Player, TurnState, MoveResponse

_DEFAULT_QUESTION = "What do you think about the current position?"


class HumanPlayer(Player):
    async def get_move(self, state: TurnState) -> MoveResponse:
        legal_preview = ", ".join(state.legal_moves[:10])
        if len(state.legal_moves) > 10:
            legal_preview += f" … ({len(state.legal_moves)} total)"

        prompt = (
            f"\n[{state.color.upper()}] Your move (e.g. e4, Nf3, e2e4) "
            f"or hint / analyze / chat / quit\n[legal: {legal_preview}]: "
        )
        raw = (await _read_line(prompt)).strip()
        return await self._interpret(raw)

    async def _interpret(self, raw: str) -> MoveResponse:
        match raw.lower():
            case "quit" | "exit" | "resign":
                return MoveResponse(action="quit", raw=raw)
            case "hint":
                return MoveResponse(action="hint", raw=raw)
            case "analyze" | "analyse":
                return MoveResponse(action="analyze", raw=raw)
            case "chat":
                question = (await _read_line("Ask your opponent about the position: ")).strip()
                return MoveResponse(action="chat", raw=raw, question=question or _DEFAULT_QUESTION)
            case _:
                return MoveResponse(action="move", raw=raw, move=raw)


async def _read_line(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, input, prompt)

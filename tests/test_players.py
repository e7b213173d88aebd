import unittest
from unittest.mock import AsyncMock, patch

import chesspartner.players.human as human_module
from chesspartner.board import ChessBoard
from chesspartner.config import PersonaConfig
from chesspartner.pipeline import RecommendationPipeline
from chesspartner.players import HumanPlayer, LLMOpponent, create_player
from chesspartner.players.base import TurnState
from chesspartner.providers.base import LLMProvider, Message


class _FakeProvider(LLMProvider):
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.last_messages: list[Message] | None = None

    async def complete(self, messages: list[Message], *, max_tokens: int = 500) -> str:
        self.last_messages = messages
        return self.reply


def _state(**overrides) -> TurnState:
    start = ChessBoard().fen
    base = dict(
        game_id="g1",
        fen=start,
        start_position=start,
        legal_moves=ChessBoard().legal_moves_san(),
        move_record=[],
        color="white",
        move_number=1,
    )
    base.update(overrides)
    return TurnState(**base)


class LLMOpponentTests(unittest.IsolatedAsyncioTestCase):
    async def test_returns_validated_move_and_commentary(self) -> None:
        provider = _FakeProvider('{"analysis": "Classical.", "recommendedMove": "d2d4"}')
        player = LLMOpponent("Tester", RecommendationPipeline(provider, persona_name="Tester"))

        response = await player.get_move(_state())

        self.assertEqual(response.action, "move")
        self.assertEqual(response.move, "d4")
        self.assertEqual(response.commentary, "Classical.")
        self.assertEqual(response.source, "structured")

    async def test_retry_excludes_rejected_move_and_explains_why(self) -> None:
        provider = _FakeProvider('{"recommendedMove": "e4"}')
        player = LLMOpponent("Tester", RecommendationPipeline(provider, persona_name="Tester"))

        response = await player.get_move(
            _state(previous_invalid_move="e4", previous_error="repeated", attempt_num=2)
        )

        self.assertNotEqual(response.move, "e4")
        self.assertEqual(response.source, "fallback")
        assert provider.last_messages is not None
        self.assertIn("previous move 'e4' was rejected", provider.last_messages[-1].content)

    async def test_analysis_prompt_shape(self) -> None:
        provider = _FakeProvider("## Analysis\nSharp.\n\n## Move\nc4")
        player = LLMOpponent("Tester", RecommendationPipeline(provider), prompt_shape="analysis")
        response = await player.get_move(_state())
        self.assertEqual(response.move, "c4")
        assert provider.last_messages is not None
        self.assertIn("## Move", provider.last_messages[-1].content)


class HumanPlayerTests(unittest.IsolatedAsyncioTestCase):
    async def _answer(self, *lines: str):
        with patch.object(human_module, "_read_line", AsyncMock(side_effect=list(lines))):
            return await HumanPlayer("You").get_move(_state())

    async def test_move_text_is_passed_through(self) -> None:
        response = await self._answer("  Nf3 ")
        self.assertEqual(response.action, "move")
        self.assertEqual(response.move, "Nf3")

    async def test_commands(self) -> None:
        self.assertEqual((await self._answer("HINT")).action, "hint")
        self.assertEqual((await self._answer("analyse")).action, "analyze")
        self.assertEqual((await self._answer("resign")).action, "quit")

    async def test_chat_asks_for_a_question(self) -> None:
        response = await self._answer("chat", "Is my king safe?")
        self.assertEqual(response.action, "chat")
        self.assertEqual(response.question, "Is my king safe?")
        empty = await self._answer("chat", "")
        self.assertIn("current position", empty.question)


class CreatePlayerTests(unittest.TestCase):
    def test_kinds(self) -> None:
        pipeline = RecommendationPipeline(_FakeProvider(""))
        persona = PersonaConfig(key="k", name="K", provider="openai", model="m", prompt_shape="analysis")
        self.assertIsInstance(create_player("human", "You"), HumanPlayer)
        opponent = create_player("llm", "K", pipeline, persona)
        self.assertIsInstance(opponent, LLMOpponent)
        self.assertTrue(opponent.automated)
        with self.assertRaises(ValueError):
            create_player("llm", "K")
        with self.assertRaises(ValueError):
            create_player("engine", "Stockfish")


if __name__ == "__main__":
    unittest.main()

import unittest

from chesspartner.commands import Analyze, Chat, Hint, MakeMove, NewGame, parse_command
from chesspartner.errors import InvalidCommand


class ParseCommandTests(unittest.TestCase):
    def test_each_command_type_parses(self) -> None:
        self.assertEqual(parse_command({"type": "new", "gameId": "g1"}), NewGame(game_id="g1"))
        self.assertEqual(
            parse_command({"type": "move", "gameId": "g1", "move": "e4"}),
            MakeMove(game_id="g1", move="e4"),
        )
        self.assertEqual(parse_command({"type": "analyze", "gameId": "g1"}), Analyze(game_id="g1"))
        self.assertEqual(
            parse_command({"type": "chat", "gameId": "g1", "question": "Why?"}),
            Chat(game_id="g1", question="Why?"),
        )
        self.assertEqual(parse_command({"type": "hint", "gameId": "g1"}), Hint(game_id="g1"))

    def test_command_key_and_snake_case_aliases(self) -> None:
        cmd = parse_command({"command": "hint", "game_id": "g2", "fen": "8/8/8/8/8/8/8/8 w - - 0 1"})
        self.assertIsInstance(cmd, Hint)
        self.assertEqual(cmd.game_id, "g2")
        self.assertEqual(cmd.fen, "8/8/8/8/8/8/8/8 w - - 0 1")

    def test_position_maps_to_fen(self) -> None:
        cmd = parse_command({"type": "analyze", "gameId": "g1", "position": " some-fen "})
        self.assertEqual(cmd.fen, "some-fen")

    def test_unknown_type_is_rejected(self) -> None:
        with self.assertRaises(InvalidCommand):
            parse_command({"type": "resign", "gameId": "g1"})
        with self.assertRaises(InvalidCommand):
            parse_command({"gameId": "g1"})

    def test_missing_required_fields_are_rejected(self) -> None:
        with self.assertRaises(InvalidCommand):
            parse_command({"type": "new"})
        with self.assertRaises(InvalidCommand):
            parse_command({"type": "move", "gameId": "g1"})
        with self.assertRaises(InvalidCommand):
            parse_command({"type": "move", "gameId": "g1", "move": "   "})
        with self.assertRaises(InvalidCommand):
            parse_command({"type": "chat", "gameId": "g1"})

    def test_non_string_fields_are_rejected(self) -> None:
        with self.assertRaises(InvalidCommand):
            parse_command({"type": "move", "gameId": "g1", "move": ["e4"]})
        with self.assertRaises(InvalidCommand):
            parse_command({"type": "new", "gameId": True})

    def test_non_object_payload_is_rejected(self) -> None:
        for payload in (None, "new", ["new"], 42):
            with self.subTest(payload=payload):
                with self.assertRaises(InvalidCommand):
                    parse_command(payload)


if __name__ == "__main__":
    unittest.main()

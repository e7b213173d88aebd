import unittest

from chesspartner.board import ChessBoard

# 1. f3 e5 2. g4 Qh4#
_FOOLS_MATE = ["f3", "e5", "g4", "Qh4#"]
_STALEMATE_FEN = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
_BARE_KINGS_FEN = "8/8/4k3/8/8/4K3/8/8 w - - 0 1"


class ChessBoardTests(unittest.TestCase):
    def test_start_position_has_twenty_legal_moves(self) -> None:
        board = ChessBoard()
        self.assertEqual(len(board.legal_moves_san()), 20)
        self.assertEqual(board.turn, "white")
        self.assertIsNone(board.terminal_status())

    def test_parse_move_accepts_uci_and_san(self) -> None:
        board = ChessBoard()
        uci, uci_err = board.parse_move("e2e4")
        san, san_err = board.parse_move("e4")
        self.assertEqual(uci_err, "")
        self.assertEqual(san_err, "")
        self.assertEqual(uci, san)

    def test_parse_move_error_kinds(self) -> None:
        board = ChessBoard()
        self.assertEqual(board.parse_move("e2e5"), (None, "illegal"))
        self.assertEqual(board.parse_move("Ke2"), (None, "illegal"))
        self.assertEqual(board.parse_move("hello")[1], "format")
        self.assertEqual(board.parse_move("   ")[1], "format")

    def test_null_move_spellings_are_illegal(self) -> None:
        board = ChessBoard()
        for spelling in ("--", "Z0", "0000", "@@@@"):
            with self.subTest(move=spelling):
                self.assertEqual(board.parse_move(spelling), (None, "illegal"))
                self.assertIsNone(board.normalize_san(spelling))

    def test_parse_move_reports_ambiguous_san(self) -> None:
        # Knights on c3 and g1 can both reach e2
        board = ChessBoard("4k3/8/8/8/8/2N5/8/4K1N1 w - - 0 1")
        self.assertEqual(board.parse_move("Ne2"), (None, "ambiguous"))
        self.assertIsNotNone(board.parse_move("Nce2")[0])

    def test_normalize_san_canonicalises_spellings(self) -> None:
        board = ChessBoard()
        self.assertEqual(board.normalize_san("g1f3"), "Nf3")
        self.assertEqual(board.normalize_san("Nf3"), "Nf3")
        self.assertIsNone(board.normalize_san("Nf6"))

    def test_normalize_san_accepts_zero_castling_and_check_suffix(self) -> None:
        board = ChessBoard("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
        self.assertEqual(board.normalize_san("0-0"), "O-O")
        self.assertEqual(board.normalize_san("O-O-O"), "O-O-O")

    def test_checkmate_status_and_result(self) -> None:
        board = ChessBoard.replay(ChessBoard().fen, _FOOLS_MATE)
        self.assertEqual(board.terminal_status(), "checkmate")
        self.assertEqual(board.result(), "0-1")
        self.assertEqual(board.winner_color(), "black")
        self.assertTrue(board.is_check)

    def test_stalemate_status(self) -> None:
        board = ChessBoard(_STALEMATE_FEN)
        self.assertEqual(board.terminal_status(), "stalemate")
        self.assertEqual(board.result(), "1/2-1/2")

    def test_insufficient_material_is_a_draw(self) -> None:
        board = ChessBoard(_BARE_KINGS_FEN)
        self.assertEqual(board.terminal_status(), "draw")
        self.assertEqual(board.draw_reason(), "insufficient_material")

    def test_threefold_repetition_is_a_draw(self) -> None:
        shuffle = ["Nf3", "Nf6", "Ng1", "Ng8"] * 2
        board = ChessBoard.replay(ChessBoard().fen, shuffle)
        self.assertEqual(board.terminal_status(), "draw")
        self.assertEqual(board.draw_reason(), "repetition")

    def test_replay_rejects_bad_history(self) -> None:
        with self.assertRaises(ValueError):
            ChessBoard.replay(ChessBoard().fen, ["e4", "e4"])

    def test_history_and_last_move(self) -> None:
        board = ChessBoard()
        self.assertIsNone(board.last_move_uci())
        move, _ = board.parse_move("e4")
        self.assertEqual(board.push_move(move), "e4")
        self.assertEqual(board.move_history_san(), ["e4"])
        self.assertEqual(board.last_move_uci(), "e2e4")

    def test_describe_moves_limits_and_labels(self) -> None:
        board = ChessBoard()
        described = board.describe_moves(limit=5)
        self.assertEqual(len(described), 5)
        for san, piece, square in described:
            self.assertIn(piece, ("pawn", "knight"))
            self.assertTrue(san.endswith(square))

    def test_pgn_contains_players_and_moves(self) -> None:
        board = ChessBoard.replay(ChessBoard().fen, _FOOLS_MATE)
        board.set_players("Alice", "Bob")
        board.set_result(board.result())
        pgn = board.to_pgn()
        self.assertIn('[White "Alice"]', pgn)
        self.assertIn('[Black "Bob"]', pgn)
        self.assertIn("Qh4#", pgn)
        self.assertIn("0-1", pgn)


if __name__ == "__main__":
    unittest.main()

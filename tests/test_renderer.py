import unittest

import chess

from chesspartner.renderer import render_ascii, render_svg, render_unicode

_AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


class RendererTests(unittest.TestCase):
    def test_ascii_has_eight_ranks(self) -> None:
        lines = render_ascii(chess.STARTING_FEN).splitlines()
        self.assertEqual(len(lines), 8)
        self.assertEqual(lines[0].split(), list("rnbqkbnr"))

    def test_unicode_orientation(self) -> None:
        white = render_unicode(_AFTER_E4, "white").splitlines()
        black = render_unicode(_AFTER_E4, "black").splitlines()
        self.assertEqual(len(white), 8)
        self.assertNotEqual(white, black)
        self.assertIn("·", white[3])

    def test_svg_with_last_move(self) -> None:
        plain = render_svg(_AFTER_E4)
        marked = render_svg(_AFTER_E4, "e2e4", size=240)
        self.assertTrue(plain.startswith("<svg"))
        self.assertIn('width="240"', marked)
        self.assertNotEqual(plain, marked)


if __name__ == "__main__":
    unittest.main()

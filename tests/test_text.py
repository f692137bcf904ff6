from __future__ import annotations

import unittest
from pathlib import Path
from unittest import mock

import support  # noqa: F401

from canvasgraph.text import TextMeasurer, default_measurer, heuristic_width, locate_font


class HeuristicWidthTests(unittest.TestCase):
    def test_character_classes(self) -> None:
        self.assertAlmostEqual(heuristic_width("", 10), 0)
        self.assertAlmostEqual(heuristic_width("il", 10), 6)
        self.assertAlmostEqual(heuristic_width("mW", 10), 18)
        self.assertAlmostEqual(heuristic_width("a b", 10), 15.3)


class TextMeasurerTests(unittest.TestCase):
    def test_missing_font_path_still_measures(self) -> None:
        measurer = TextMeasurer(font_path="/nonexistent/font.ttf")
        short = measurer.measure("ab", 13)
        longer = measurer.measure("ab ab ab", 13)
        self.assertGreater(short, 0)
        self.assertGreater(longer, short)

    def test_metrics_are_positive(self) -> None:
        ascent, descent, line_height = TextMeasurer().metrics(12)
        self.assertGreater(ascent, 0)
        self.assertGreaterEqual(descent, 0)
        self.assertAlmostEqual(line_height, ascent + descent)

    def test_fonts_are_cached_per_pixel_size(self) -> None:
        measurer = TextMeasurer()
        self.assertIs(measurer.font(12.2), measurer.font(12))

    def test_candidates_put_explicit_font_first_and_bundled_font_last(self) -> None:
        with mock.patch("canvasgraph.text.locate_font", return_value=None):
            measurer = TextMeasurer(family="Inter", font_path="/fonts/Inter.ttf")
            self.assertEqual(measurer.candidates(), ["/fonts/Inter.ttf", "DejaVuSans.ttf"])

    def test_default_measurer_is_shared(self) -> None:
        self.assertIs(default_measurer(), default_measurer())


class LocateFontTests(unittest.TestCase):
    def setUp(self) -> None:
        locate_font.cache_clear()
        self.addCleanup(locate_font.cache_clear)

    def test_exact_name_beats_prefix_and_substring(self) -> None:
        files = [Path("/f/SomeArialThing.ttf"), Path("/f/ArialNarrow.ttf"), Path("/f/Arial-MT.ttf")]
        with mock.patch("canvasgraph.text._font_files", return_value=iter(files)):
            self.assertEqual(locate_font("Arial"), str(Path("/f/Arial-MT.ttf")))

    def test_unknown_family(self) -> None:
        with mock.patch("canvasgraph.text._font_files", return_value=iter([Path("/f/DejaVuSans.ttf")])):
            self.assertIsNone(locate_font("Comic Sans"))
        self.assertIsNone(locate_font("---"))


if __name__ == "__main__":
    unittest.main()

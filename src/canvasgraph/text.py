"""Pixel measurement of label text with Pillow fonts."""
from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from PIL import ImageFont

logger = logging.getLogger(__name__)

DEFAULT_FONT_FAMILY = "sans-serif"
SANS_SERIF_FALLBACKS = ("Helvetica", "Arial", "Liberation Sans", "DejaVu Sans")
BUNDLED_FONT = "DejaVuSans.ttf"

FONT_DIRS = (
    Path("/System/Library/Fonts"),
    Path("/Library/Fonts"),
    Path("~/Library/Fonts").expanduser(),
    Path("/usr/share/fonts"),
    Path("/usr/local/share/fonts"),
    Path("C:/Windows/Fonts"),
)


def _squash(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", name.lower())


def _font_files() -> Iterator[Path]:
    for directory in FONT_DIRS:
        if not directory.is_dir():
            continue
        try:
            yield from directory.rglob("*.tt[fc]")
        except OSError:
            logger.debug("cannot scan font directory %s", directory)


def _match_score(family: str, path: Path) -> Optional[int]:
    """0 for an exact file name (PostScript ``MT`` suffixes allowed), 1 for a prefix, 2 for a substring."""
    stem = _squash(path.stem)
    if stem in (family, family + "mt", family + "psmt"):
        return 0
    if stem.startswith(family):
        return 1
    if family in stem:
        return 2
    return None


class TextMeasurer:
    """Measures label widths at pixel sizes for one font family or font file."""

    def __init__(self, family: Optional[str] = None, font_path: Optional[str] = None) -> None:
        self.family = family or DEFAULT_FONT_FAMILY
        self.font_path = str(Path(font_path).expanduser()) if font_path else None
        self._fonts: Dict[int, Optional[ImageFont.FreeTypeFont]] = {}
        self._candidates: Optional[List[str]] = None

    def candidates(self) -> List[str]:
        """Font files to try, most specific first; resolved once per measurer."""
        if self._candidates is None:
            families = SANS_SERIF_FALLBACKS if self.family.lower() == DEFAULT_FONT_FAMILY else (self.family,)
            found = [self.font_path] if self.font_path else []
            found.extend(path for path in map(locate_font, families) if path)
            found.append(BUNDLED_FONT)
            self._candidates = found
        return self._candidates

    def font(self, size: float) -> Optional[ImageFont.FreeTypeFont]:
        key_size = max(1, int(round(size)))
        if key_size not in self._fonts:
            self._fonts[key_size] = self._load(key_size)
        return self._fonts[key_size]

    def _load(self, size: int) -> Optional[ImageFont.FreeTypeFont]:
        for candidate in self.candidates():
            try:
                # .ttc collections always use their first face
                return ImageFont.truetype(candidate, size, index=0)
            except OSError:
                continue
        try:
            return ImageFont.load_default(size=size)
        except OSError:
            logger.debug("no scalable font for %s at %spx; using width heuristic", self.family, size)
            return None

    def measure(self, text: str, size: float) -> float:
        font = self.font(size)
        if font is None:
            return heuristic_width(text, size)
        return float(font.getlength(text))

    def metrics(self, size: float) -> Tuple[float, float, float]:
        """Return ``(ascent, descent, line_height)`` in pixels."""
        font = self.font(size)
        if font is None or not hasattr(font, "getmetrics"):
            return 0.8 * size, 0.2 * size, size
        ascent, descent = font.getmetrics()
        return float(ascent), float(descent), float(ascent + descent)


@lru_cache(maxsize=None)
def locate_font(family: str) -> Optional[str]:
    """Best-matching installed font file for a family name, or ``None``."""
    wanted = _squash(family)
    if not wanted:
        return None
    scored = []
    for path in _font_files():
        score = _match_score(wanted, path)
        if score is not None:
            scored.append((score, str(path)))
    return min(scored)[1] if scored else None


def heuristic_width(text: str, font_size: float) -> float:
    width = 0.0
    for ch in text:
        if ch.isspace():
            width += font_size * 0.33
        elif ch in "il":
            width += font_size * 0.3
        elif ch in "mwMW@#":
            width += font_size * 0.9
        else:
            width += font_size * 0.6
    return width


_DEFAULT_MEASURER: Optional[TextMeasurer] = None


def default_measurer() -> TextMeasurer:
    global _DEFAULT_MEASURER
    if _DEFAULT_MEASURER is None:
        _DEFAULT_MEASURER = TextMeasurer()
    return _DEFAULT_MEASURER


__all__ = ["DEFAULT_FONT_FAMILY", "TextMeasurer", "default_measurer", "heuristic_width", "locate_font"]

"""Static-site build integration.

:class:`CanvasTransformer` is handed every source file's text. Anything that is
not a canvas passes through untouched; a canvas becomes the static fallback
HTML, or the error block when it fails validation. Parse warnings go to the
build log, never into the page.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .model import ParseResult, load_json, parse_canvas
from .renderer import render_canvas_error, render_canvas_html

logger = logging.getLogger(__name__)

D3_CDN_URL = "https://d3js.org/d3.v7.min.js"


@dataclass(frozen=True)
class BuildContext:
    base_url: str = ""
    slug: Optional[str] = None


@dataclass(frozen=True)
class ExternalResource:
    src: str
    load_time: str = "afterDOMReady"
    content_type: str = "external"


def looks_like_canvas(src: str) -> bool:
    """True for a JSON object whose ``nodes`` and ``edges`` are arrays."""
    trimmed = src.strip()
    if not trimmed.startswith("{"):
        return False
    try:
        raw = load_json(trimmed)
    except (ValueError, RecursionError):
        return False
    return (
        isinstance(raw, dict)
        and isinstance(raw.get("nodes"), list)
        and isinstance(raw.get("edges"), list)
    )


class CanvasTransformer:
    name = "CanvasTransformer"

    def render_canvas(self, ctx: Optional[BuildContext], src: str) -> Tuple[str, ParseResult]:
        """Parse and render canvas text, logging warnings and errors for ``ctx.slug``."""
        ctx = ctx or BuildContext()
        source = ctx.slug or "<canvas>"
        result = parse_canvas(src.strip())
        if not result.ok:
            logger.error("%s: %s", source, result.error)
            return render_canvas_error(result.error), result
        for warning in result.warnings:
            logger.warning("%s: %s", source, warning.message)
        return render_canvas_html(result.document, ctx.base_url), result

    def text_transform(self, ctx: Optional[BuildContext], src: str) -> str:
        if not looks_like_canvas(src):
            return src
        html, _result = self.render_canvas(ctx, src)
        return html

    def external_resources(self) -> Dict[str, List[ExternalResource]]:
        return {"js": [ExternalResource(src=D3_CDN_URL)]}


__all__ = [
    "BuildContext",
    "CanvasTransformer",
    "D3_CDN_URL",
    "ExternalResource",
    "looks_like_canvas",
]

"""Public API for canvasgraph."""
from .model import (
    CanvasDocument,
    CanvasEdge,
    CanvasGraphError,
    CanvasNode,
    ParseFailure,
    ParseSuccess,
    ParseWarning,
    parse_canvas,
    serialize_canvas,
)
from .page import PageDocument, init_canvas_graph, mount
from .renderer import render_canvas_error, render_canvas_html
from .scene import build_scene
from .transformer import BuildContext, CanvasTransformer

__all__ = [
    "BuildContext",
    "CanvasDocument",
    "CanvasEdge",
    "CanvasGraphError",
    "CanvasNode",
    "CanvasTransformer",
    "PageDocument",
    "ParseFailure",
    "ParseSuccess",
    "ParseWarning",
    "build_scene",
    "init_canvas_graph",
    "mount",
    "parse_canvas",
    "render_canvas_error",
    "render_canvas_html",
    "serialize_canvas",
]

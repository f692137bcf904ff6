"""Static HTML fallback for a validated canvas.

The fragment lays nodes out with absolute positioning so the page reads
correctly without script, lists edges as connector elements carrying their
endpoint ids, and embeds the canonical JSON of the document for the interactive
renderer.
"""
from __future__ import annotations

from typing import Callable, Dict

from .model import (
    CanvasDocument,
    CanvasEdge,
    CanvasNode,
    resolve_file_url,
    serialize_canvas,
)

CANVAS_CONTAINER_ID = "canvas-graph"
CANVAS_DATA_ID = "canvas-data"
ERROR_CLASS = "canvas-error"
MALFORMED_DATA_MESSAGE = "This canvas file could not be rendered. The data is malformed."

_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#039;"),
)

# JSON string escapes that keep a payload from terminating its <script> element.
_JSON_SCRIPT_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
)


def escape_html(value: str) -> str:
    for char, entity in _HTML_ESCAPES:
        value = value.replace(char, entity)
    return value


def embed_json(payload: str) -> str:
    """Make serialized JSON safe as raw <script> text; it still decodes to the same value."""
    for char, escape in _JSON_SCRIPT_ESCAPES:
        payload = payload.replace(char, escape)
    return payload


def css_number(value: float) -> str:
    """Shortest exact form of a coordinate; integral floats print without ``.0``."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def _open_node(node: CanvasNode, kind: str) -> str:
    return (
        f'<div class="canvas-node canvas-node-{kind}" data-node-id="{escape_html(node.id)}" '
        f'style="position:absolute;left:{css_number(node.x)}px;top:{css_number(node.y)}px;'
        f'width:{css_number(node.width)}px;height:{css_number(node.height)}px;">'
    )


def _render_text_node(node: CanvasNode, base_url: str) -> str:
    content = escape_html(node.text) if node.text else ""
    return f'{_open_node(node, "text")}<div class="canvas-node-content">{content}</div></div>'


def _render_file_node(node: CanvasNode, base_url: str) -> str:
    file_path = node.file or ""
    href = resolve_file_url(base_url, file_path)
    return (
        f'{_open_node(node, "file")}'
        f'<a href="{escape_html(href)}">{escape_html(file_path)}</a></div>'
    )


def _render_group_node(node: CanvasNode, base_url: str) -> str:
    label = escape_html(node.label) if node.label else ""
    return (
        f'{_open_node(node, "group")}'
        f'<div class="canvas-group-label">{label}</div>'
        '<div class="canvas-group-container"></div></div>'
    )


def _render_link_node(node: CanvasNode, base_url: str) -> str:
    url = escape_html(node.url or "")
    return f'{_open_node(node, "link")}<a href="{url}">{url}</a></div>'


_NODE_RENDERERS: Dict[str, Callable[[CanvasNode, str], str]] = {
    "text": _render_text_node,
    "file": _render_file_node,
    "group": _render_group_node,
    "link": _render_link_node,
}


def render_node(node: CanvasNode, base_url: str) -> str:
    renderer = _NODE_RENDERERS.get(node.type, _render_text_node)
    return renderer(node, base_url)


def render_edge(edge: CanvasEdge) -> str:
    label_attr = f' data-edge-label="{escape_html(edge.label)}"' if edge.label else ""
    return (
        '<line class="canvas-edge" '
        f'data-edge-id="{escape_html(edge.id)}" '
        f'data-from-node="{escape_html(edge.from_node)}" '
        f'data-to-node="{escape_html(edge.to_node)}"'
        f"{label_attr} />"
    )


def render_canvas_error(message: str) -> str:
    return (
        f'<div class="{ERROR_CLASS}">'
        f'<p class="canvas-error-message">{escape_html(str(message))}</p>'
        "</div>"
    )


def render_canvas_html(document: CanvasDocument, base_url: str) -> str:
    """Render the static fallback fragment plus the embedded JSON payload."""
    if not isinstance(document, CanvasDocument):
        return render_canvas_error(MALFORMED_DATA_MESSAGE)
    nodes_html = "\n".join(render_node(node, base_url) for node in document.nodes)
    if document.edges:
        edges_html = "\n".join(render_edge(edge) for edge in document.edges)
        svg_section = f'<svg class="canvas-edges">\n{edges_html}\n</svg>'
    else:
        svg_section = '<svg class="canvas-edges"></svg>'

    payload = embed_json(serialize_canvas(document))
    return (
        f'<div id="{CANVAS_CONTAINER_ID}" class="canvas-container">\n'
        f'<div class="canvas-nodes">\n{nodes_html}\n</div>\n'
        f"{svg_section}\n"
        "</div>\n"
        f'<script type="application/json" id="{CANVAS_DATA_ID}">{payload}</script>'
    )


__all__ = [
    "CANVAS_CONTAINER_ID",
    "CANVAS_DATA_ID",
    "ERROR_CLASS",
    "css_number",
    "embed_json",
    "escape_html",
    "render_canvas_error",
    "render_canvas_html",
    "render_edge",
    "render_node",
]

"""Layout of a canvas into back-to-front draw commands.

A :class:`Scene` holds three passes: group backdrops, edges, then regular
nodes. Each pass is an immutable list of rectangle, line, polygon and text
commands in canvas coordinates; :mod:`canvasgraph.svg` turns them into an SVG
tree. Geometry never touches a rendering library, and text is measured through
an injected measurer with ``measure(text, size)`` and ``metrics(size)``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from .model import CanvasDocument, CanvasEdge, CanvasNode, resolve_file_url
from .text import default_measurer

Point = Tuple[float, float]
Box = Tuple[float, float, float, float]

VIEW_PADDING = 50.0
EMPTY_BOUNDS: Box = (0.0, 0.0, 800.0, 600.0)
SCALE_EXTENT = (0.1, 5.0)

NODE_COLORS = {
    "text": {"fill": "#2a2a3e", "stroke": "#8888aa", "text": "#ccccdd"},
    "file": {"fill": "#1a2a4e", "stroke": "#4a8af4", "text": "#8ab4f8"},
    "link": {"fill": "#1a3e2a", "stroke": "#4caf50", "text": "#81c784"},
    "group": {"fill": "rgba(42, 42, 62, 0.3)", "stroke": "#8888aa", "text": "#ccccdd"},
}
EDGE_COLOR_DEFAULT = "#8888aa"
EDGE_LABEL_COLOR = "#ccccdd"
EDGE_LABEL_BACKGROUND = "#1a1a2e"

STROKE_WIDTH = 2.0
HOVER_STROKE_WIDTH = 3.0
CORNER_RADIUS = 6.0
GROUP_DASH = "8,4"
GROUP_LABEL_OFFSET = (10.0, 20.0)
GROUP_LABEL_SIZE = 14.0

ARROW_SIZE = 8.0
EDGE_LABEL_SIZE = 12.0
EDGE_LABEL_LIFT = 6.0
EDGE_LABEL_MARGIN = (4.0, 2.0)
EDGE_LABEL_RADIUS = 3.0

NODE_LABEL_SIZE = 13.0
NODE_LABEL_INSET = 16.0
LINE_HEIGHT_EM = 1.2


@dataclass(frozen=True)
class RectCommand:
    x: float
    y: float
    width: float
    height: float
    fill: str
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    radius: float = 0.0
    dash: Optional[str] = None
    node_id: Optional[str] = None


@dataclass(frozen=True)
class LineCommand:
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    stroke_width: float
    edge_id: str
    from_node: str
    to_node: str


@dataclass(frozen=True)
class PolygonCommand:
    points: Tuple[Point, ...]
    fill: str


@dataclass(frozen=True)
class TextCommand:
    x: float
    y: float
    lines: Tuple[str, ...]
    font_size: float
    fill: str
    anchor: Optional[str] = None
    baseline: Optional[str] = None
    weight: Optional[str] = None
    line_height: float = LINE_HEIGHT_EM
    css_class: Optional[str] = None

    @property
    def first_line_offset(self) -> float:
        """Offset of the first line in em that centres the block on ``y``."""
        return -((len(self.lines) - 1) * self.line_height) / 2.0


DrawCommand = Union[RectCommand, LineCommand, PolygonCommand, TextCommand]


@dataclass(frozen=True)
class NodeLink:
    href: str
    new_context: bool


@dataclass(frozen=True)
class NodeItem:
    node_id: str
    node_type: str
    css_class: str
    commands: Tuple[DrawCommand, ...]
    link: Optional[NodeLink] = None


@dataclass(frozen=True)
class Scene:
    view_box: Box
    groups: Tuple[NodeItem, ...]
    edges: Tuple[DrawCommand, ...]
    nodes: Tuple[NodeItem, ...]
    scale_extent: Tuple[float, float] = SCALE_EXTENT


def bounding_box(nodes: Sequence[CanvasNode]) -> Box:
    """``(min_x, min_y, max_x, max_y)`` over node rectangles, or the default box."""
    if not nodes:
        return EMPTY_BOUNDS
    return (
        min(node.x for node in nodes),
        min(node.y for node in nodes),
        max(node.x + node.width for node in nodes),
        max(node.y + node.height for node in nodes),
    )


def view_box(nodes: Sequence[CanvasNode], padding: float = VIEW_PADDING) -> Box:
    """``(x, y, width, height)`` of the padded bounding box."""
    min_x, min_y, max_x, max_y = (float(value) for value in bounding_box(nodes))
    return (
        min_x - padding,
        min_y - padding,
        max_x - min_x + padding * 2,
        max_y - min_y + padding * 2,
    )


def anchor_point(node: CanvasNode, side: Optional[str]) -> Point:
    cx, cy = node.center
    if side == "top":
        return (cx, float(node.y))
    if side == "bottom":
        return (cx, float(node.y + node.height))
    if side == "left":
        return (float(node.x), cy)
    if side == "right":
        return (float(node.x + node.width), cy)
    return (cx, cy)


def arrowhead_points(p_from: Point, p_to: Point, size: float = ARROW_SIZE) -> Optional[Tuple[Point, Point, Point]]:
    """Triangle with its tip on ``p_to``; ``None`` for a zero-length edge."""
    dx = p_to[0] - p_from[0]
    dy = p_to[1] - p_from[1]
    length = math.hypot(dx, dy)
    if length == 0:
        return None
    ux, uy = dx / length, dy / length
    px, py = -uy, ux
    half = size / 2.0
    tip = (p_to[0], p_to[1])
    base_1 = (p_to[0] - ux * size + px * half, p_to[1] - uy * size + py * half)
    base_2 = (p_to[0] - ux * size - px * half, p_to[1] - uy * size - py * half)
    return tip, base_1, base_2


def node_label(node: CanvasNode) -> str:
    if node.type == "text":
        return node.text or ""
    if node.type == "file":
        if not node.file:
            return ""
        stripped = node.file[:-3] if node.file.endswith(".md") else node.file
        return stripped.split("/")[-1] or node.file
    if node.type == "link":
        return node.url or ""
    if node.type == "group":
        return node.label or ""
    return ""


def wrap_label(text: str, max_width: float, measurer, font_size: float = NODE_LABEL_SIZE) -> List[str]:
    """Greedy word wrap measured after every appended word.

    A word that pushes a line past ``max_width`` moves to a new line, unless it
    is the only word on the line; a single long word is never split.
    """
    words = text.split()
    if not words:
        return []
    lines: List[List[str]] = [[]]
    for word in words:
        line = lines[-1]
        line.append(word)
        if len(line) > 1 and measurer.measure(" ".join(line), font_size) > max_width:
            line.pop()
            lines.append([word])
    return [" ".join(line) for line in lines]


def _node_colors(node_type: str) -> dict:
    return NODE_COLORS.get(node_type, NODE_COLORS["text"])


def _group_item(node: CanvasNode) -> NodeItem:
    colors = NODE_COLORS["group"]
    commands: List[DrawCommand] = [
        RectCommand(
            x=node.x,
            y=node.y,
            width=node.width,
            height=node.height,
            fill=node.color or colors["fill"],
            stroke=colors["stroke"],
            stroke_width=STROKE_WIDTH,
            radius=CORNER_RADIUS,
            dash=GROUP_DASH,
            node_id=node.id,
        )
    ]
    if node.label:
        commands.append(
            TextCommand(
                x=node.x + GROUP_LABEL_OFFSET[0],
                y=node.y + GROUP_LABEL_OFFSET[1],
                lines=(node.label,),
                font_size=GROUP_LABEL_SIZE,
                fill=colors["text"],
                weight="bold",
            )
        )
    return NodeItem(node.id, node.type, "canvas-node-group-g", tuple(commands))


def _edge_label_commands(label: str, p_from: Point, p_to: Point, measurer) -> List[DrawCommand]:
    mid_x = (p_from[0] + p_to[0]) / 2.0
    mid_y = (p_from[1] + p_to[1]) / 2.0
    baseline = mid_y - EDGE_LABEL_LIFT
    width = measurer.measure(label, EDGE_LABEL_SIZE)
    ascent, descent, _ = measurer.metrics(EDGE_LABEL_SIZE)
    margin_x, margin_y = EDGE_LABEL_MARGIN
    backing = RectCommand(
        x=mid_x - width / 2.0 - margin_x,
        y=baseline - ascent - margin_y,
        width=width + margin_x * 2,
        height=ascent + descent + margin_y * 2,
        fill=EDGE_LABEL_BACKGROUND,
        radius=EDGE_LABEL_RADIUS,
    )
    text = TextCommand(
        x=mid_x,
        y=baseline,
        lines=(label,),
        font_size=EDGE_LABEL_SIZE,
        fill=EDGE_LABEL_COLOR,
        anchor="middle",
        css_class="canvas-edge-label",
    )
    return [backing, text]


def _edge_commands(edge: CanvasEdge, source: CanvasNode, target: CanvasNode, measurer) -> List[DrawCommand]:
    p_from = anchor_point(source, edge.from_side)
    p_to = anchor_point(target, edge.to_side)
    color = edge.color or EDGE_COLOR_DEFAULT
    commands: List[DrawCommand] = [
        LineCommand(
            x1=p_from[0],
            y1=p_from[1],
            x2=p_to[0],
            y2=p_to[1],
            stroke=color,
            stroke_width=STROKE_WIDTH,
            edge_id=edge.id,
            from_node=edge.from_node,
            to_node=edge.to_node,
        )
    ]
    arrow = arrowhead_points(p_from, p_to)
    if arrow is not None:
        commands.append(PolygonCommand(points=arrow, fill=color))
    if edge.label:
        commands.extend(_edge_label_commands(edge.label, p_from, p_to, measurer))
    return commands


def _node_link(node: CanvasNode, base_url: str) -> Optional[NodeLink]:
    if node.type == "file" and node.file:
        return NodeLink(resolve_file_url(base_url, node.file), new_context=False)
    if node.type == "link" and node.url:
        return NodeLink(node.url, new_context=True)
    return None


def _node_item(node: CanvasNode, base_url: str, measurer) -> NodeItem:
    colors = _node_colors(node.type)
    commands: List[DrawCommand] = [
        RectCommand(
            x=node.x,
            y=node.y,
            width=node.width,
            height=node.height,
            fill=node.color or colors["fill"],
            stroke=colors["stroke"],
            stroke_width=STROKE_WIDTH,
            radius=CORNER_RADIUS,
            node_id=node.id,
        )
    ]
    label = node_label(node)
    lines = wrap_label(label, node.width - NODE_LABEL_INSET, measurer) if label else []
    if lines:
        cx, cy = node.center
        commands.append(
            TextCommand(
                x=cx,
                y=cy,
                lines=tuple(lines),
                font_size=NODE_LABEL_SIZE,
                fill=colors["text"],
                anchor="middle",
                baseline="central",
            )
        )
    return NodeItem(
        node.id,
        node.type,
        f"canvas-node-g canvas-node-{node.type}-g",
        tuple(commands),
        link=_node_link(node, base_url),
    )


def build_scene(document: CanvasDocument, base_url: str, measurer=None) -> Scene:
    """Lay out a document: group backdrops, then edges, then regular nodes."""
    measurer = measurer or default_measurer()
    index = document.node_index()

    groups = tuple(_group_item(node) for node in document.nodes if node.type == "group")

    edges: List[DrawCommand] = []
    for edge in document.edges:
        source = index.get(edge.from_node)
        target = index.get(edge.to_node)
        if source is None or target is None:
            continue
        edges.extend(_edge_commands(edge, source, target, measurer))

    nodes = tuple(
        _node_item(node, base_url, measurer) for node in document.nodes if node.type != "group"
    )
    return Scene(view_box(document.nodes), groups, tuple(edges), nodes)


__all__ = [
    "DrawCommand",
    "LineCommand",
    "NodeItem",
    "NodeLink",
    "PolygonCommand",
    "RectCommand",
    "Scene",
    "TextCommand",
    "anchor_point",
    "arrowhead_points",
    "bounding_box",
    "build_scene",
    "node_label",
    "view_box",
    "wrap_label",
]

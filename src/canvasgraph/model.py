"""Canvas document model, validator and canonical serializer.

A canvas is an untyped JSON object with ``nodes`` and ``edges`` arrays.
:func:`parse_canvas` turns raw text into a frozen :class:`CanvasDocument` or a
:class:`ParseFailure`; it never raises. Structural problems abort the parse at
the first offending element, while edges pointing at unknown nodes are dropped
with a :class:`ParseWarning` so one broken reference does not lose the diagram.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple, Union

NODE_TYPES = ("text", "file", "link", "group")
SIDES = ("top", "right", "bottom", "left")

_NODE_REQUIRED_STRINGS = ("id", "type")
_NODE_REQUIRED_NUMBERS = ("x", "y", "width", "height")
_NODE_OPTIONAL_STRINGS = ("text", "file", "url", "label", "color")
_EDGE_REQUIRED_STRINGS = (("id", "id"), ("fromNode", "from_node"), ("toNode", "to_node"))
_EDGE_SIDE_FIELDS = (("fromSide", "from_side"), ("toSide", "to_side"))
_EDGE_OPTIONAL_STRINGS = ("label", "color")

MALFORMED_JSON_MESSAGE = "Malformed JSON: unable to parse canvas file"

Number = Union[int, float]


class CanvasGraphError(ValueError):
    """Caller mistake at a library seam, with a stable code for CLI mapping."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class CanvasNode:
    id: str
    type: str
    x: Number
    y: Number
    width: Number
    height: Number
    text: Optional[str] = None
    file: Optional[str] = None
    url: Optional[str] = None
    label: Optional[str] = None
    color: Optional[str] = None

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)


@dataclass(frozen=True)
class CanvasEdge:
    id: str
    from_node: str
    to_node: str
    from_side: Optional[str] = None
    to_side: Optional[str] = None
    label: Optional[str] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class CanvasDocument:
    nodes: Tuple[CanvasNode, ...] = ()
    edges: Tuple[CanvasEdge, ...] = ()

    def node_index(self) -> Dict[str, CanvasNode]:
        """Map node ids to nodes; the first node with a repeated id wins."""
        index: Dict[str, CanvasNode] = {}
        for node in self.nodes:
            index.setdefault(node.id, node)
        return index


@dataclass(frozen=True)
class ParseWarning:
    message: str
    edge_id: Optional[str] = None
    node_id: Optional[str] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ParseSuccess:
    document: CanvasDocument
    warnings: Tuple[ParseWarning, ...] = ()
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class ParseFailure:
    error: str
    kind: str = "schema"
    ok: bool = field(default=False, init=False)

    @property
    def warnings(self) -> Tuple[ParseWarning, ...]:
        return ()


ParseResult = Union[ParseSuccess, ParseFailure]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def load_json(raw: Union[str, bytes]) -> Any:
    """Strict ``json.loads``: ``NaN`` and ``Infinity`` are syntax errors."""
    return json.loads(raw, parse_constant=_reject_constant)


def _is_record(value: Any) -> bool:
    return isinstance(value, dict)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # "1e400" decodes to inf, which cannot be serialized back to JSON.
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _node_from_raw(raw: Any, index: int) -> Tuple[Optional[CanvasNode], Optional[str]]:
    if not _is_record(raw):
        return None, f"Node at index {index} is not an object"

    for name in _NODE_REQUIRED_STRINGS:
        if not isinstance(raw.get(name), str):
            return None, f'Node at index {index} is missing required string field "{name}"'
    for name in _NODE_REQUIRED_NUMBERS:
        if not _is_number(raw.get(name)):
            return None, f'Node at index {index} is missing required number field "{name}"'
    for origin, extent in (("x", "width"), ("y", "height")):
        if not _is_number(raw[origin] + raw[extent]):
            return None, (
                f'Node at index {index} has out-of-range field "{extent}": '
                f"{origin} + {extent} is not a finite number"
            )

    node_type = raw["type"]
    if node_type not in NODE_TYPES:
        return None, (
            f'Node at index {index} has invalid type "{node_type}". '
            f"Must be one of: {', '.join(NODE_TYPES)}"
        )

    optional = {
        name: raw[name] for name in _NODE_OPTIONAL_STRINGS if isinstance(raw.get(name), str)
    }
    node = CanvasNode(
        id=raw["id"],
        type=node_type,
        x=raw["x"],
        y=raw["y"],
        width=raw["width"],
        height=raw["height"],
        **optional,
    )
    return node, None


def _edge_from_raw(raw: Any, index: int) -> Tuple[Optional[CanvasEdge], Optional[str]]:
    if not _is_record(raw):
        return None, f"Edge at index {index} is not an object"

    values: Dict[str, Any] = {}
    for json_name, attr in _EDGE_REQUIRED_STRINGS:
        value = raw.get(json_name)
        if not isinstance(value, str):
            return None, f'Edge at index {index} is missing required string field "{json_name}"'
        values[attr] = value

    # Unknown side hints are dropped, not reported.
    for json_name, attr in _EDGE_SIDE_FIELDS:
        side = raw.get(json_name)
        if isinstance(side, str) and side in SIDES:
            values[attr] = side

    for name in _EDGE_OPTIONAL_STRINGS:
        if isinstance(raw.get(name), str):
            values[name] = raw[name]
    return CanvasEdge(**values), None


def parse_canvas(raw: Union[str, bytes]) -> ParseResult:
    """Validate raw canvas text. Returns a result value for every input."""
    if not isinstance(raw, (str, bytes, bytearray)):
        return ParseFailure(MALFORMED_JSON_MESSAGE, kind="syntax")
    try:
        parsed = load_json(raw)
    except (ValueError, RecursionError):
        return ParseFailure(MALFORMED_JSON_MESSAGE, kind="syntax")

    if not _is_record(parsed):
        return ParseFailure("Invalid canvas schema: expected an object with nodes and edges")
    raw_nodes = parsed.get("nodes")
    if not isinstance(raw_nodes, list):
        return ParseFailure('Invalid canvas schema: "nodes" must be an array')
    raw_edges = parsed.get("edges")
    if not isinstance(raw_edges, list):
        return ParseFailure('Invalid canvas schema: "edges" must be an array')

    nodes: List[CanvasNode] = []
    for index, raw_node in enumerate(raw_nodes):
        node, error = _node_from_raw(raw_node, index)
        if error is not None:
            return ParseFailure(error)
        nodes.append(node)

    candidates: List[CanvasEdge] = []
    for index, raw_edge in enumerate(raw_edges):
        edge, error = _edge_from_raw(raw_edge, index)
        if error is not None:
            return ParseFailure(error)
        candidates.append(edge)

    warnings: List[ParseWarning] = []
    node_ids: Set[str] = set()
    for index, node in enumerate(nodes):
        if node.id in node_ids:
            warnings.append(
                ParseWarning(
                    f'Node "{node.id}" at index {index} repeats an earlier node id; '
                    "edges resolve to the first occurrence",
                    node_id=node.id,
                )
            )
        node_ids.add(node.id)

    edges: List[CanvasEdge] = []
    for edge in candidates:
        if edge.from_node not in node_ids:
            warnings.append(
                ParseWarning(
                    f'Edge "{edge.id}" references non-existent fromNode "{edge.from_node}" - skipped',
                    edge_id=edge.id,
                    node_id=edge.from_node,
                )
            )
            continue
        if edge.to_node not in node_ids:
            warnings.append(
                ParseWarning(
                    f'Edge "{edge.id}" references non-existent toNode "{edge.to_node}" - skipped',
                    edge_id=edge.id,
                    node_id=edge.to_node,
                )
            )
            continue
        edges.append(edge)

    return ParseSuccess(CanvasDocument(tuple(nodes), tuple(edges)), tuple(warnings))


def _node_to_dict(node: CanvasNode) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": node.id,
        "type": node.type,
        "x": node.x,
        "y": node.y,
        "width": node.width,
        "height": node.height,
    }
    for name in _NODE_OPTIONAL_STRINGS:
        value = getattr(node, name)
        if value is not None:
            data[name] = value
    return data


def _edge_to_dict(edge: CanvasEdge) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for json_name, attr in _EDGE_REQUIRED_STRINGS + _EDGE_SIDE_FIELDS:
        value = getattr(edge, attr)
        if value is not None:
            data[json_name] = value
    for name in _EDGE_OPTIONAL_STRINGS:
        value = getattr(edge, name)
        if value is not None:
            data[name] = value
    return data


def canvas_to_dict(document: CanvasDocument) -> Dict[str, List[Dict[str, Any]]]:
    if not isinstance(document, CanvasDocument):
        raise CanvasGraphError(
            "E_NOT_A_DOCUMENT", f"expected a CanvasDocument, got {type(document).__name__}"
        )
    return {
        "nodes": [_node_to_dict(node) for node in document.nodes],
        "edges": [_edge_to_dict(edge) for edge in document.edges],
    }


def serialize_canvas(document: CanvasDocument) -> str:
    """Compact, deterministic JSON for a validated document."""
    return json.dumps(canvas_to_dict(document), ensure_ascii=False, separators=(",", ":"))


def format_number(value: float) -> str:
    if not math.isfinite(value):
        return str(value)
    if math.isclose(value, round(value)):
        return str(int(round(value)))
    return f"{value:.3f}".rstrip("0").rstrip(".")


def resolve_file_url(base_url: str, file_path: str) -> str:
    """Site URL for a vault path: no trailing slash on the base, no ``.md`` suffix."""
    normalized = base_url[:-1] if base_url.endswith("/") else base_url
    stripped = file_path[:-3] if file_path.endswith(".md") else file_path
    return f"{normalized}/{stripped}"


__all__ = [
    "CanvasDocument",
    "CanvasEdge",
    "CanvasGraphError",
    "CanvasNode",
    "NODE_TYPES",
    "ParseFailure",
    "ParseResult",
    "ParseSuccess",
    "ParseWarning",
    "SIDES",
    "canvas_to_dict",
    "format_number",
    "load_json",
    "parse_canvas",
    "resolve_file_url",
    "serialize_canvas",
]

"""ElementTree backend for :class:`~canvasgraph.scene.Scene` draw commands."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from copy import deepcopy
from dataclasses import dataclass, field
from typing import List, Tuple

from .model import format_number as _fmt
from .scene import (
    DrawCommand,
    LineCommand,
    NodeItem,
    PolygonCommand,
    RectCommand,
    Scene,
    TextCommand,
)

SVG_NS = "http://www.w3.org/2000/svg"


@dataclass
class RenderedScene:
    root: ET.Element
    zoom_layer: ET.Element
    node_elements: List[Tuple[NodeItem, ET.Element]] = field(default_factory=list)

    @property
    def linked_elements(self) -> List[Tuple[NodeItem, ET.Element]]:
        return [(item, element) for item, element in self.node_elements if item.link is not None]


def _rect(parent: ET.Element, cmd: RectCommand) -> ET.Element:
    attrs = {
        "x": _fmt(cmd.x),
        "y": _fmt(cmd.y),
        "width": _fmt(cmd.width),
        "height": _fmt(cmd.height),
        "fill": cmd.fill,
    }
    if cmd.stroke is not None:
        attrs["stroke"] = cmd.stroke
    if cmd.stroke_width is not None:
        attrs["stroke-width"] = _fmt(cmd.stroke_width)
    if cmd.dash:
        attrs["stroke-dasharray"] = cmd.dash
    if cmd.radius:
        attrs["rx"] = _fmt(cmd.radius)
        attrs["ry"] = _fmt(cmd.radius)
    if cmd.node_id is not None:
        attrs["data-node-id"] = cmd.node_id
    return ET.SubElement(parent, "rect", attrs)


def _line(parent: ET.Element, cmd: LineCommand) -> ET.Element:
    return ET.SubElement(
        parent,
        "line",
        {
            "x1": _fmt(cmd.x1),
            "y1": _fmt(cmd.y1),
            "x2": _fmt(cmd.x2),
            "y2": _fmt(cmd.y2),
            "stroke": cmd.stroke,
            "stroke-width": _fmt(cmd.stroke_width),
            "data-edge-id": cmd.edge_id,
            "data-from-node": cmd.from_node,
            "data-to-node": cmd.to_node,
        },
    )


def _polygon(parent: ET.Element, cmd: PolygonCommand) -> ET.Element:
    points = " ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in cmd.points)
    return ET.SubElement(parent, "polygon", {"points": points, "fill": cmd.fill})


def _text(parent: ET.Element, cmd: TextCommand) -> ET.Element:
    attrs = {
        "x": _fmt(cmd.x),
        "y": _fmt(cmd.y),
        "fill": cmd.fill,
        "font-size": f"{_fmt(cmd.font_size)}px",
    }
    if cmd.anchor:
        attrs["text-anchor"] = cmd.anchor
    if cmd.baseline:
        attrs["dominant-baseline"] = cmd.baseline
    if cmd.weight:
        attrs["font-weight"] = cmd.weight
    if cmd.css_class:
        attrs["class"] = cmd.css_class
    text = ET.SubElement(parent, "text", attrs)
    if len(cmd.lines) == 1:
        text.text = cmd.lines[0]
        return text
    for index, line in enumerate(cmd.lines):
        dy = cmd.first_line_offset if index == 0 else cmd.line_height
        tspan = ET.SubElement(text, "tspan", {"x": _fmt(cmd.x), "dy": f"{_fmt(dy)}em"})
        tspan.text = line
    return text


_EMITTERS = {
    RectCommand: _rect,
    LineCommand: _line,
    PolygonCommand: _polygon,
    TextCommand: _text,
}


def emit(parent: ET.Element, command: DrawCommand) -> ET.Element:
    return _EMITTERS[type(command)](parent, command)


class SvgBackend:
    """Builds an unnamespaced SVG subtree suitable for inlining in HTML."""

    def render(self, scene: Scene) -> RenderedScene:
        vx, vy, vw, vh = scene.view_box
        root = ET.Element(
            "svg",
            {
                "width": "100%",
                "height": "100%",
                "viewBox": f"{_fmt(vx)} {_fmt(vy)} {_fmt(vw)} {_fmt(vh)}",
                "class": "canvas-graph-svg",
            },
        )
        zoom_layer = ET.SubElement(root, "g", {"class": "canvas-zoom-group"})
        rendered = RenderedScene(root, zoom_layer)

        for item in scene.groups:
            rendered.node_elements.append((item, self._item(zoom_layer, item)))

        edges_layer = ET.SubElement(zoom_layer, "g", {"class": "canvas-edges-group"})
        for command in scene.edges:
            emit(edges_layer, command)

        nodes_layer = ET.SubElement(zoom_layer, "g", {"class": "canvas-nodes-group"})
        for item in scene.nodes:
            rendered.node_elements.append((item, self._item(nodes_layer, item)))
        return rendered

    @staticmethod
    def _item(parent: ET.Element, item: NodeItem) -> ET.Element:
        group = ET.SubElement(parent, "g", {"class": item.css_class})
        if item.link is not None:
            group.set("cursor", "pointer")
        for command in item.commands:
            emit(group, command)
        return group


def to_svg_text(root: ET.Element) -> str:
    """Serialize a rendered SVG root as a standalone document."""
    standalone = deepcopy(root)
    standalone.set("xmlns", SVG_NS)
    ET.indent(standalone, space="  ")
    return ET.tostring(standalone, encoding="unicode")


__all__ = ["RenderedScene", "SVG_NS", "SvgBackend", "emit", "to_svg_text"]

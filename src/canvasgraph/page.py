"""Presentation context for the interactive canvas.

:class:`PageDocument` is a small live document: an element tree built from
HTML, per-element event listeners with bubbling, and a navigation log. The
interactive renderer mounts into it exactly as it would into a browser page:
it recovers the embedded payload, replaces the static fallback with an SVG
scene, and wires pan/zoom and node clicks. Every failure on that path is a
silent no-op, since the static fallback has already been served.
"""
from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Callable, Dict, List, Optional, Tuple

from .model import CanvasDocument, format_number as _fmt, parse_canvas
from .renderer import CANVAS_CONTAINER_ID, CANVAS_DATA_ID
from .scene import HOVER_STROKE_WIDTH, SCALE_EXTENT, STROKE_WIDTH, NodeLink, build_scene
from .svg import SvgBackend

logger = logging.getLogger(__name__)

VOID_ELEMENTS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "param", "source", "track", "wbr",
    }
)
WHEEL_DELTA_FACTOR = 0.002


@dataclass(frozen=True)
class PointerEvent:
    type: str
    x: float = 0.0
    y: float = 0.0
    dx: float = 0.0
    dy: float = 0.0
    delta_y: float = 0.0


@dataclass(frozen=True)
class Navigation:
    url: str
    target: str = "_self"


Listener = Callable[[PointerEvent], None]


class _TreeBuilder(HTMLParser):
    def __init__(self, root: ET.Element) -> None:
        super().__init__(convert_charrefs=True)
        self._stack: List[ET.Element] = [root]

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        element = ET.SubElement(self._stack[-1], tag, {k: v if v is not None else "" for k, v in attrs})
        if tag not in VOID_ELEMENTS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        ET.SubElement(self._stack[-1], tag, {k: v if v is not None else "" for k, v in attrs})

    def handle_endtag(self, tag: str) -> None:
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return

    def handle_data(self, data: str) -> None:
        parent = self._stack[-1]
        if len(parent):
            parent[-1].tail = (parent[-1].tail or "") + data
        else:
            parent.text = (parent.text or "") + data


class PageDocument:
    """Element tree plus listeners and navigation state for one page."""

    def __init__(self, root: Optional[ET.Element] = None, *, origin: str = "") -> None:
        self.root = root if root is not None else ET.Element("document")
        self.origin = origin
        self.location = origin
        self.navigations: List[Navigation] = []
        self._listeners: Dict[ET.Element, Dict[str, List[Listener]]] = {}

    @classmethod
    def from_html(cls, markup: str, *, origin: str = "") -> "PageDocument":
        root = ET.Element("document")
        builder = _TreeBuilder(root)
        builder.feed(markup)
        builder.close()
        return cls(root, origin=origin)

    def get_element_by_id(self, element_id: str) -> Optional[ET.Element]:
        for element in self.root.iter():
            if element.get("id") == element_id:
                return element
        return None

    def query_meta(self, name: str) -> Optional[str]:
        for element in self.root.iter("meta"):
            if element.get("name") == name:
                return element.get("content")
        return None

    @staticmethod
    def text_content(element: ET.Element) -> str:
        return "".join(element.itertext())

    @staticmethod
    def clear_children(element: ET.Element) -> None:
        for child in list(element):
            element.remove(child)
        element.text = None

    def add_event_listener(self, element: ET.Element, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(element, {}).setdefault(event_type, []).append(listener)

    def dispatch(self, element: ET.Element, event: PointerEvent) -> None:
        """Run listeners for ``event.type`` on ``element`` and then its ancestors."""
        parents = {child: parent for parent in self.root.iter() for child in parent}
        current: Optional[ET.Element] = element
        while current is not None:
            for listener in list(self._listeners.get(current, {}).get(event.type, [])):
                listener(event)
            current = parents.get(current)

    def navigate(self, url: str) -> None:
        self.location = url
        self.navigations.append(Navigation(url))

    def open_window(self, url: str, target: str = "_blank") -> None:
        self.navigations.append(Navigation(url, target))

    def to_html(self) -> str:
        parts = [self.root.text or ""]
        parts.extend(ET.tostring(child, encoding="unicode", method="html") for child in self.root)
        return "".join(parts)


@dataclass(frozen=True)
class ZoomTransform:
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def __str__(self) -> str:
        return f"translate({_fmt(self.x)},{_fmt(self.y)}) scale({_fmt(self.k)})"

    def translate_by(self, dx: float, dy: float) -> "ZoomTransform":
        return ZoomTransform(self.k, self.x + dx, self.y + dy)

    def scale_about(self, k: float, point: Tuple[float, float]) -> "ZoomTransform":
        """Rescale to ``k`` keeping ``point`` (layer coordinates) fixed on screen."""
        px, py = point
        ratio = k / self.k
        return ZoomTransform(k, px - (px - self.x) * ratio, py - (py - self.y) * ratio)


@dataclass
class ZoomBehavior:
    """Continuous pan/zoom state for one mounted scene."""

    on_zoom: Callable[[ZoomTransform], None]
    scale_extent: Tuple[float, float] = SCALE_EXTENT
    transform: ZoomTransform = field(default_factory=ZoomTransform)

    def clamp(self, k: float) -> float:
        low, high = self.scale_extent
        return max(low, min(high, k))

    def set_transform(self, transform: ZoomTransform) -> None:
        k = self.clamp(transform.k)
        if k != transform.k:
            transform = ZoomTransform(k, transform.x, transform.y)
        self.transform = transform
        self.on_zoom(transform)

    def wheel(self, event: PointerEvent) -> None:
        k = self.clamp(self.transform.k * 2 ** (-event.delta_y * WHEEL_DELTA_FACTOR))
        if k == self.transform.k:
            return
        self.set_transform(self.transform.scale_about(k, (event.x, event.y)))

    def drag(self, event: PointerEvent) -> None:
        if event.dx == 0 and event.dy == 0:
            return
        self.set_transform(self.transform.translate_by(event.dx, event.dy))

    def attach(self, page: PageDocument, element: ET.Element) -> None:
        page.add_event_listener(element, "wheel", self.wheel)
        page.add_event_listener(element, "drag", self.drag)


def _set_stroke_width(element: ET.Element, width: float) -> None:
    rect = element.find("rect")
    if rect is not None:
        rect.set("stroke-width", _fmt(width))


def _wire_link(page: PageDocument, element: ET.Element, link: NodeLink) -> None:
    if link.new_context:
        page.add_event_listener(element, "click", lambda _event: page.open_window(link.href, "_blank"))
    else:
        page.add_event_listener(element, "click", lambda _event: page.navigate(link.href))
    page.add_event_listener(element, "mouseenter", lambda _event: _set_stroke_width(element, HOVER_STROKE_WIDTH))
    page.add_event_listener(element, "mouseleave", lambda _event: _set_stroke_width(element, STROKE_WIDTH))


def mount(
    container_id: str,
    document: CanvasDocument,
    base_url: str,
    page: PageDocument,
    *,
    measurer=None,
    backend: Optional[SvgBackend] = None,
) -> None:
    """Replace the container's fallback content with the interactive scene."""
    container = page.get_element_by_id(container_id)
    if container is None:
        logger.debug("canvas container %r not found; nothing to mount", container_id)
        return
    if not isinstance(document, CanvasDocument):
        logger.debug("canvas payload is not a document; nothing to mount")
        return

    scene = build_scene(document, base_url, measurer)
    if not all(math.isfinite(value) for value in scene.view_box):
        logger.debug("canvas extent %r exceeds the numeric range; nothing to mount", scene.view_box)
        return
    rendered = (backend or SvgBackend()).render(scene)
    page.clear_children(container)
    container.append(rendered.root)

    zoom = ZoomBehavior(
        on_zoom=lambda transform: rendered.zoom_layer.set("transform", str(transform)),
        scale_extent=scene.scale_extent,
    )
    zoom.attach(page, rendered.root)
    zoom.set_transform(ZoomTransform())

    for item, element in rendered.linked_elements:
        _wire_link(page, element, item.link)


def init_canvas_graph(page: PageDocument, *, default_base_url: Optional[str] = None, measurer=None) -> None:
    """Recover the embedded payload and mount it into the canvas container."""
    data_element = page.get_element_by_id(CANVAS_DATA_ID)
    if data_element is None:
        logger.debug("no embedded canvas payload on page")
        return
    result = parse_canvas(page.text_content(data_element))
    if not result.ok:
        logger.debug("embedded canvas payload rejected: %s", result.error)
        return
    base_url = page.query_meta("base-url") or (
        default_base_url if default_base_url is not None else page.origin
    )
    mount(CANVAS_CONTAINER_ID, result.document, base_url, page, measurer=measurer)


__all__ = [
    "Navigation",
    "PageDocument",
    "PointerEvent",
    "ZoomBehavior",
    "ZoomTransform",
    "init_canvas_graph",
    "mount",
]

from __future__ import annotations

import unittest

from support import FixedWidthMeasurer, canvas_json, edge, node

from canvasgraph.model import CanvasDocument, CanvasEdge, CanvasNode, parse_canvas
from canvasgraph.page import (
    Navigation,
    PageDocument,
    PointerEvent,
    ZoomTransform,
    init_canvas_graph,
    mount,
)
from canvasgraph.renderer import render_canvas_html

ORIGIN = "https://site.example"
DOCUMENT = CanvasDocument(
    (
        CanvasNode("t", "text", 0, 0, 200, 100, text="Hello"),
        CanvasNode("f", "file", 300, 0, 200, 100, file="Characters/Gandalf.md"),
        CanvasNode("l", "link", 0, 200, 200, 100, url="https://obsidian.md"),
        CanvasNode("g", "group", -20, -20, 600, 400, label="Party"),
    ),
    (CanvasEdge("e1", "t", "f", label="meets"),),
)


def _page(head: str = "", document: CanvasDocument = DOCUMENT, base_url: str = "") -> PageDocument:
    fragment = render_canvas_html(document, base_url)
    return PageDocument.from_html(f"<html><head>{head}</head><body>{fragment}</body></html>", origin=ORIGIN)


def _by_class(page: PageDocument, css_class: str):
    return [element for element in page.root.iter() if css_class in (element.get("class") or "").split()]


def _mounted(head: str = "", **kwargs) -> PageDocument:
    page = _page(head)
    init_canvas_graph(page, measurer=FixedWidthMeasurer(), **kwargs)
    return page


class PageDocumentTests(unittest.TestCase):
    def test_text_and_tails(self) -> None:
        page = PageDocument.from_html('<p id="p">Hello <b>world</b>!</p>')
        paragraph = page.get_element_by_id("p")
        self.assertEqual(paragraph.text, "Hello ")
        self.assertEqual(paragraph[0].tail, "!")
        self.assertEqual(page.text_content(paragraph), "Hello world!")

    def test_void_elements_do_not_nest(self) -> None:
        page = PageDocument.from_html('<div id="d">a<br>b<img src="x.png">c</div>')
        div = page.get_element_by_id("d")
        self.assertEqual([child.tag for child in div], ["br", "img"])
        self.assertEqual(page.text_content(div), "abc")

    def test_script_text_is_raw(self) -> None:
        page = PageDocument.from_html('<script id="s">if (a < b && c) {}</script>')
        self.assertEqual(page.text_content(page.get_element_by_id("s")), "if (a < b && c) {}")

    def test_query_meta(self) -> None:
        page = PageDocument.from_html('<head><meta name="base-url" content="/wiki"><meta charset="utf-8"></head>')
        self.assertEqual(page.query_meta("base-url"), "/wiki")
        self.assertIsNone(page.query_meta("missing"))

    def test_dispatch_bubbles_to_ancestors(self) -> None:
        page = PageDocument.from_html('<div id="outer"><span id="inner">x</span></div>')
        seen = []
        page.add_event_listener(page.get_element_by_id("outer"), "click", lambda event: seen.append("outer"))
        page.add_event_listener(page.get_element_by_id("inner"), "click", lambda event: seen.append("inner"))
        page.dispatch(page.get_element_by_id("inner"), PointerEvent("click"))
        self.assertEqual(seen, ["inner", "outer"])

    def test_navigation_log(self) -> None:
        page = PageDocument(origin=ORIGIN)
        page.open_window("https://obsidian.md")
        self.assertEqual(page.location, ORIGIN)
        page.navigate("/wiki/A")
        self.assertEqual(page.location, "/wiki/A")
        self.assertEqual(
            page.navigations,
            [Navigation("https://obsidian.md", "_blank"), Navigation("/wiki/A", "_self")],
        )


class MountTests(unittest.TestCase):
    def test_replaces_fallback_with_scene(self) -> None:
        page = _mounted()
        container = page.get_element_by_id("canvas-graph")
        self.assertEqual([child.tag for child in container], ["svg"])
        self.assertEqual(container[0].get("class"), "canvas-graph-svg")
        self.assertEqual(_by_class(page, "canvas-nodes"), [])
        self.assertIsNotNone(page.get_element_by_id("canvas-data"))
        zoom_layer = _by_class(page, "canvas-zoom-group")[0]
        self.assertEqual(zoom_layer.get("transform"), "translate(0,0) scale(1)")
        self.assertIn("<svg", page.to_html())

    def test_scene_matches_payload(self) -> None:
        page = _mounted()
        node_ids = [rect.get("data-node-id") for rect in page.root.iter("rect") if rect.get("data-node-id")]
        self.assertEqual(sorted(node_ids), ["f", "g", "l", "t"])
        lines = [line for line in page.root.iter("line")]
        self.assertEqual([line.get("data-edge-id") for line in lines], ["e1"])

    def test_missing_payload_is_a_no_op(self) -> None:
        page = PageDocument.from_html('<div id="canvas-graph"><p>fallback</p></div>')
        before = page.to_html()
        init_canvas_graph(page, measurer=FixedWidthMeasurer())
        self.assertEqual(page.to_html(), before)

    def test_malformed_payload_keeps_fallback(self) -> None:
        for payload in ("{bad", '{"nodes":[{"id":1}],"edges":[]}', "[]"):
            with self.subTest(payload=payload):
                page = PageDocument.from_html(
                    '<div id="canvas-graph"><p>fallback</p></div>'
                    f'<script type="application/json" id="canvas-data">{payload}</script>'
                )
                init_canvas_graph(page, measurer=FixedWidthMeasurer())
                self.assertEqual(page.text_content(page.get_element_by_id("canvas-graph")), "fallback")

    def test_missing_container_is_a_no_op(self) -> None:
        page = PageDocument.from_html("<div id='other'></div>")
        mount("canvas-graph", DOCUMENT, "", page, measurer=FixedWidthMeasurer())
        self.assertEqual(len(page.get_element_by_id("other")), 0)

    def test_non_document_is_a_no_op(self) -> None:
        page = PageDocument.from_html('<div id="canvas-graph">fallback</div>')
        mount("canvas-graph", {"nodes": [], "edges": []}, "", page, measurer=FixedWidthMeasurer())
        self.assertEqual(page.text_content(page.get_element_by_id("canvas-graph")), "fallback")

    def test_extent_beyond_numeric_range_keeps_fallback(self) -> None:
        raw = canvas_json([node("west", x=-1e308, width=10), node("east", x=1e308, width=10)])
        result = parse_canvas(raw)
        self.assertTrue(result.ok)
        page = _page(document=result.document)
        with self.assertLogs("canvasgraph.page", level="DEBUG"):
            init_canvas_graph(page, measurer=FixedWidthMeasurer())
        container = page.get_element_by_id("canvas-graph")
        self.assertEqual(len(_by_class(page, "canvas-nodes")), 1)
        self.assertIsNone(container.find("svg[@class='canvas-graph-svg']"))

    def test_overflowing_edge_midpoint_still_mounts(self) -> None:
        raw = canvas_json(
            [node("a", x=1.5e308, width=10, height=10), node("b", x=1.5e308, y=200, width=10, height=10)],
            [edge("e", "a", "b", label="far")],
        )
        result = parse_canvas(raw)
        self.assertTrue(result.ok)
        page = _page(document=result.document)
        init_canvas_graph(page, measurer=FixedWidthMeasurer())
        svg = page.get_element_by_id("canvas-graph")[0]
        self.assertEqual(svg.get("class"), "canvas-graph-svg")
        label = _by_class(page, "canvas-edge-label")[0]
        self.assertEqual(label.get("x"), "inf")

    def test_empty_canvas_mounts_default_view(self) -> None:
        page = _page(document=CanvasDocument())
        init_canvas_graph(page, measurer=FixedWidthMeasurer())
        svg = page.get_element_by_id("canvas-graph")[0]
        self.assertEqual(svg.get("viewBox"), "-50 -50 900 700")


class InteractionTests(unittest.TestCase):
    def _node_group(self, page: PageDocument, node_type: str):
        return _by_class(page, f"canvas-node-{node_type}-g")[0]

    def _transform(self, page: PageDocument) -> str:
        return _by_class(page, "canvas-zoom-group")[0].get("transform")

    def test_file_click_navigates_in_place(self) -> None:
        page = _mounted('<meta name="base-url" content="https://docs.example/">')
        rect = self._node_group(page, "file").find("rect")
        page.dispatch(rect, PointerEvent("click"))
        self.assertEqual(page.navigations, [Navigation("https://docs.example/Characters/Gandalf", "_self")])
        self.assertEqual(page.location, "https://docs.example/Characters/Gandalf")

    def test_base_url_falls_back_to_default_then_origin(self) -> None:
        cases = [({"default_base_url": "/wiki"}, "/wiki/Characters/Gandalf"), ({}, f"{ORIGIN}/Characters/Gandalf")]
        for kwargs, expected in cases:
            with self.subTest(kwargs=kwargs):
                page = _mounted(**kwargs)
                page.dispatch(self._node_group(page, "file"), PointerEvent("click"))
                self.assertEqual(page.location, expected)

    def test_link_click_opens_new_context(self) -> None:
        page = _mounted()
        page.dispatch(self._node_group(page, "link"), PointerEvent("click"))
        self.assertEqual(page.navigations, [Navigation("https://obsidian.md", "_blank")])
        self.assertEqual(page.location, ORIGIN)

    def test_text_and_group_nodes_are_inert(self) -> None:
        page = _mounted()
        for css_class in ("canvas-node-text-g", "canvas-node-group-g"):
            element = _by_class(page, css_class)[0]
            self.assertIsNone(element.get("cursor"))
            page.dispatch(element, PointerEvent("click"))
        self.assertEqual(page.navigations, [])

    def test_hover_thickens_border(self) -> None:
        page = _mounted()
        group = self._node_group(page, "link")
        rect = group.find("rect")
        self.assertEqual(group.get("cursor"), "pointer")
        self.assertEqual(rect.get("stroke-width"), "2")
        page.dispatch(group, PointerEvent("mouseenter"))
        self.assertEqual(rect.get("stroke-width"), "3")
        page.dispatch(group, PointerEvent("mouseleave"))
        self.assertEqual(rect.get("stroke-width"), "2")

    def test_wheel_zooms_about_pointer(self) -> None:
        page = _mounted()
        svg = page.get_element_by_id("canvas-graph")[0]
        page.dispatch(svg, PointerEvent("wheel", x=100, y=50, delta_y=-500))
        self.assertEqual(self._transform(page), "translate(-100,-50) scale(2)")

    def test_wheel_over_a_node_bubbles_to_zoom(self) -> None:
        page = _mounted()
        page.dispatch(self._node_group(page, "text").find("rect"), PointerEvent("wheel", delta_y=500))
        self.assertEqual(self._transform(page), "translate(0,0) scale(0.5)")

    def test_zoom_is_clamped(self) -> None:
        page = _mounted()
        svg = page.get_element_by_id("canvas-graph")[0]
        page.dispatch(svg, PointerEvent("wheel", delta_y=-5000))
        self.assertTrue(self._transform(page).endswith("scale(5)"))
        page.dispatch(svg, PointerEvent("wheel", delta_y=-5000))
        self.assertTrue(self._transform(page).endswith("scale(5)"))
        page.dispatch(svg, PointerEvent("wheel", delta_y=50000))
        self.assertTrue(self._transform(page).endswith("scale(0.1)"))

    def test_drag_pans(self) -> None:
        page = _mounted()
        svg = page.get_element_by_id("canvas-graph")[0]
        page.dispatch(svg, PointerEvent("drag", dx=10, dy=-5))
        page.dispatch(svg, PointerEvent("drag", dx=5, dy=0))
        self.assertEqual(self._transform(page), "translate(15,-5) scale(1)")


class ZoomTransformTests(unittest.TestCase):
    def test_scale_about_keeps_point_fixed(self) -> None:
        start = ZoomTransform(1.5, 20, -10)
        point = (120.0, 80.0)
        before = ((point[0] - start.x) / start.k, (point[1] - start.y) / start.k)
        after_transform = start.scale_about(3.0, point)
        after = ((point[0] - after_transform.x) / 3.0, (point[1] - after_transform.y) / 3.0)
        self.assertAlmostEqual(before[0], after[0])
        self.assertAlmostEqual(before[1], after[1])

    def test_string_form(self) -> None:
        self.assertEqual(str(ZoomTransform(0.25, 1.5, -2)), "translate(1.5,-2) scale(0.25)")


if __name__ == "__main__":
    unittest.main()

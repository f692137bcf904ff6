from __future__ import annotations

import unittest

from support import canvas_json, edge, node

from canvasgraph.transformer import (
    D3_CDN_URL,
    BuildContext,
    CanvasTransformer,
    ExternalResource,
    looks_like_canvas,
)

BASE_URL = "https://example.github.io/wiki"


class LooksLikeCanvasTests(unittest.TestCase):
    def test_detection(self) -> None:
        cases = [
            ('{"nodes":[],"edges":[]}', True),
            ('  \n{"nodes":[{"id":1}],"edges":[]}  ', True),
            ("# Heading\n\nSome markdown", False),
            ('{"nodes":[]}', False),
            ('{"nodes":{},"edges":[]}', False),
            ('[{"nodes":[],"edges":[]}]', False),
            ("{not json", False),
            ("", False),
        ]
        for src, expected in cases:
            with self.subTest(src=src):
                self.assertIs(looks_like_canvas(src), expected)


class CanvasTransformerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.transformer = CanvasTransformer()
        self.ctx = BuildContext(base_url=BASE_URL, slug="maps/party")

    def test_name(self) -> None:
        self.assertEqual(self.transformer.name, "CanvasTransformer")

    def test_non_canvas_text_passes_through(self) -> None:
        for src in ("# Title\n\nBody text.", '{"title": "front matter"}', "[1, 2, 3]"):
            with self.subTest(src=src):
                self.assertEqual(self.transformer.text_transform(self.ctx, src), src)

    def test_canvas_becomes_fallback_html(self) -> None:
        src = canvas_json([node("n1", "file", file="Characters/Gandalf.md")])
        html = self.transformer.text_transform(self.ctx, src)
        self.assertIn('id="canvas-graph"', html)
        self.assertIn('href="https://example.github.io/wiki/Characters/Gandalf"', html)
        self.assertIn('id="canvas-data"', html)

    def test_missing_context_uses_empty_base_url(self) -> None:
        src = canvas_json([node("n1", "file", file="A.md")])
        html = self.transformer.text_transform(None, src)
        self.assertIn('href="/A"', html)

    def test_invalid_canvas_becomes_error_block(self) -> None:
        src = canvas_json([node("n1", "diagram")])
        with self.assertLogs("canvasgraph.transformer", level="ERROR") as logs:
            html = self.transformer.text_transform(self.ctx, src)
        self.assertIn('class="canvas-error"', html)
        self.assertIn("invalid type &quot;diagram&quot;", html)
        self.assertNotIn("canvas-data", html)
        self.assertIn("maps/party", logs.output[0])

    def test_warnings_go_to_the_log_not_the_page(self) -> None:
        src = canvas_json([node("a")], [edge("e1", "a", "ghost")])
        with self.assertLogs("canvasgraph.transformer", level="WARNING") as logs:
            html, result = self.transformer.render_canvas(self.ctx, src)
        self.assertTrue(result.ok)
        self.assertEqual(len(logs.records), 1)
        self.assertIn('"ghost"', logs.output[0])
        self.assertIn("maps/party", logs.output[0])
        self.assertNotIn("ghost", html)
        self.assertNotIn("canvas-error", html)

    def test_external_resources(self) -> None:
        resources = self.transformer.external_resources()
        self.assertEqual(resources, {"js": [ExternalResource(src=D3_CDN_URL)]})
        self.assertEqual(resources["js"][0].load_time, "afterDOMReady")
        self.assertEqual(resources["js"][0].content_type, "external")


if __name__ == "__main__":
    unittest.main()

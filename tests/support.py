"""Shared fixtures for the canvasgraph tests."""
from __future__ import annotations

import json
import random
import string
import sys
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
if str(PROJECT_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT / "src"))


class FixedWidthMeasurer:
    """Every character is half the font size wide; line metrics are 0.8/0.2 of the size."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, float]] = []

    def measure(self, text: str, size: float) -> float:
        self.calls.append((text, size))
        return len(text) * size * 0.5

    def metrics(self, size: float) -> tuple[float, float, float]:
        return 0.8 * size, 0.2 * size, size


def node(node_id: str, node_type: str = "text", x=0, y=0, width=200, height=100, **extra) -> dict:
    data = {"id": node_id, "type": node_type, "x": x, "y": y, "width": width, "height": height}
    data.update(extra)
    return data


def edge(edge_id: str, from_node: str, to_node: str, **extra) -> dict:
    data = {"id": edge_id, "fromNode": from_node, "toNode": to_node}
    data.update(extra)
    return data


def canvas_json(nodes=(), edges=()) -> str:
    return json.dumps({"nodes": list(nodes), "edges": list(edges)})


_ALPHABET = string.ascii_letters + string.digits + " <>&\"'/._-é"


def _random_text(rng: random.Random, max_len: int = 12) -> str:
    return "".join(rng.choice(_ALPHABET) for _ in range(rng.randint(0, max_len)))


def random_canvas(rng: random.Random) -> dict:
    """A schema-valid raw canvas; some edges may dangle."""
    nodes = []
    for index in range(rng.randint(0, 8)):
        raw = node(
            f"n{index}-{_random_text(rng, 4)}",
            rng.choice(["text", "file", "link", "group"]),
            x=rng.choice([rng.randint(-500, 500), round(rng.uniform(-500, 500), 2)]),
            y=rng.randint(-500, 500),
            width=rng.randint(1, 400),
            height=round(rng.uniform(1, 300), 1),
        )
        for name in ("text", "file", "url", "label", "color"):
            if rng.random() < 0.4:
                raw[name] = _random_text(rng)
        nodes.append(raw)

    ids = [raw["id"] for raw in nodes] + ["ghost"]
    edges = []
    for index in range(rng.randint(0, 8)):
        raw = edge(f"e{index}", rng.choice(ids), rng.choice(ids))
        if rng.random() < 0.5:
            raw["fromSide"] = rng.choice(["top", "right", "bottom", "left", "middle"])
        if rng.random() < 0.5:
            raw["toSide"] = rng.choice(["top", "right", "bottom", "left"])
        if rng.random() < 0.3:
            raw["label"] = _random_text(rng)
        if rng.random() < 0.2:
            raw["color"] = "#" + "".join(rng.choice("0123456789abcdef") for _ in range(6))
        edges.append(raw)
    return {"nodes": nodes, "edges": edges}

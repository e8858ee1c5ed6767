from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import io
import unittest

import numpy as np
from PIL import Image

from paintchain_core.core.pipeline import RenderPipeline
from paintchain_core.core.plugins import PluginRegistry
from paintchain_core.render.canvas import Canvas
from paintchain_plugins.count import CountPlugin, count_plugin


class _TextRecordingCanvas(Canvas):
    def __init__(self, width: int, height: int, sink: list[str]) -> None:
        super().__init__(width, height)
        self._sink = sink

    def draw_text(self, text: str) -> None:
        self._sink.append(text)
        super().draw_text(text)


def _decode(data: bytes) -> np.ndarray:
    with Image.open(io.BytesIO(data)) as image:
        return np.asarray(image.convert("RGBA"))


class CountPluginTests(unittest.TestCase):
    def test_factory_logs_initialization(self) -> None:
        with self.assertLogs("paintchain_plugins.count", level="INFO") as logs:
            plugin = count_plugin()
        self.assertIsInstance(plugin, CountPlugin)
        self.assertEqual(plugin.count, 0)
        self.assertIn("initializing count-plugin", logs.output[0])

    def test_sequential_renders_draw_increasing_counter(self) -> None:
        drawn: list[str] = []
        registry = PluginRegistry()
        plugin = registry.register(CountPlugin())
        pipeline = RenderPipeline(registry, canvas_factory=lambda w, h: _TextRecordingCanvas(w, h, drawn))

        for _ in range(3):
            pipeline.render()

        self.assertEqual(drawn, ["Hello World", "1", "Hello World", "2", "Hello World", "3"])
        self.assertEqual(plugin.count, 3)

    def test_paint_sets_size_and_position(self) -> None:
        canvas = Canvas.create(240, 80)
        canvas.set_color(0.0, 0.0, 1.0)
        CountPlugin().paint(canvas)
        self.assertEqual(canvas.font_size, 24.0)
        self.assertEqual(canvas.position[1], 20.0)
        self.assertGreater(canvas.position[0], 200.0)
        pixels = canvas.pixels()
        ys, xs = np.nonzero(pixels[:, :, 3])
        self.assertGreaterEqual(int(xs.min()), 198)
        self.assertLessEqual(int(ys.max()), 24)

    def test_counter_is_drawn_top_right_of_base_drawing(self) -> None:
        base_only = _decode(RenderPipeline(PluginRegistry()).render())
        registry = PluginRegistry()
        registry.register(CountPlugin())
        with_counter = _decode(RenderPipeline(registry).render())

        changed = np.any(base_only != with_counter, axis=2)
        ys, xs = np.nonzero(changed)
        self.assertGreater(len(xs), 0)
        self.assertGreaterEqual(int(xs.min()), 198)
        visible = with_counter[:, :, 3] > 0
        self.assertTrue(np.all(with_counter[visible][:, :3] == np.array([0, 0, 255], dtype=np.uint8)))

    def test_concurrent_paints_never_lose_or_repeat_counts(self) -> None:
        drawn: list[str] = []
        plugin = CountPlugin()

        def paint_once(_: int) -> None:
            plugin.paint(_TextRecordingCanvas(240, 80, drawn))

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(paint_once, range(64)))

        self.assertEqual(plugin.count, 64)
        self.assertEqual(sorted(int(v) for v in drawn), list(range(1, 65)))


if __name__ == "__main__":
    unittest.main()

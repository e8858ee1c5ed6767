from __future__ import annotations

import unittest
from unittest import mock

import numpy as np

from paintchain_core.errors import AllocationError
from paintchain_core.render.canvas import FORMAT_ARGB32, Canvas
from paintchain_core.render.draw_text import text_advance


class CanvasTests(unittest.TestCase):
    def test_create_allocates_transparent_buffer(self) -> None:
        canvas = Canvas.create(240, 80)
        pixels = canvas.pixels()
        self.assertEqual(pixels.shape, (80, 240, 4))
        self.assertEqual(pixels.dtype, np.uint8)
        self.assertFalse(np.any(pixels))
        self.assertEqual(canvas.pixel_format, FORMAT_ARGB32)
        self.assertEqual((canvas.width, canvas.height), (240, 80))

    def test_create_rejects_non_positive_dimensions(self) -> None:
        with self.assertRaises(ValueError):
            Canvas.create(0, 10)
        with self.assertRaises(ValueError):
            Canvas.create(10, -1)

    def test_memory_error_surfaces_as_allocation_error(self) -> None:
        with mock.patch("paintchain_core.render.canvas.np.zeros", side_effect=MemoryError):
            with self.assertRaises(AllocationError):
                Canvas.create(240, 80)

    def test_draw_text_uses_current_color_and_advances_point(self) -> None:
        canvas = Canvas.create(240, 80)
        canvas.set_font("serif", "normal", "bold")
        canvas.set_font_size(32.0)
        canvas.set_color(0.0, 0.0, 1.0)
        canvas.move_to(10.0, 50.0)
        canvas.draw_text("Hello")

        pixels = canvas.pixels()
        visible = pixels[:, :, 3] > 0
        self.assertTrue(np.any(visible))
        self.assertTrue(np.all(pixels[visible][:, :3] == np.array([0, 0, 255], dtype=np.uint8)))
        expected = 10.0 + text_advance("Hello", font_family="serif", font_size_px=32.0, bold=True)
        self.assertAlmostEqual(canvas.position[0], expected)
        self.assertEqual(canvas.position[1], 50.0)

    def test_draw_empty_text_is_noop(self) -> None:
        canvas = Canvas.create(20, 20)
        canvas.move_to(5.0, 5.0)
        canvas.draw_text("")
        self.assertFalse(np.any(canvas.pixels()))
        self.assertEqual(canvas.position, (5.0, 5.0))

    def test_text_outside_canvas_is_clipped(self) -> None:
        canvas = Canvas.create(20, 20)
        canvas.move_to(500.0, 500.0)
        canvas.draw_text("clipped")
        self.assertFalse(np.any(canvas.pixels()))

    def test_set_color_clamps_channels(self) -> None:
        canvas = Canvas.create(4, 4)
        canvas.set_color(-1.0, 0.5, 7.0)
        self.assertEqual(canvas.color, (0.0, 0.5, 1.0))

    def test_set_font_size_rejects_non_positive(self) -> None:
        canvas = Canvas.create(4, 4)
        with self.assertRaises(ValueError):
            canvas.set_font_size(0)

    def test_fill_rect_paints_clipped_region(self) -> None:
        canvas = Canvas.create(4, 3)
        canvas.set_color(1.0, 0.0, 0.0)
        canvas.fill_rect(2, 1, 10, 10)
        pixels = canvas.pixels()
        self.assertTrue(np.all(pixels[1:, 2:] == np.array([255, 0, 0, 255], dtype=np.uint8)))
        self.assertFalse(np.any(pixels[0]))
        self.assertFalse(np.any(pixels[:, :2]))

    def test_pixels_returns_copy(self) -> None:
        canvas = Canvas.create(2, 2)
        pixels = canvas.pixels()
        pixels[:] = 255
        self.assertFalse(np.any(canvas.pixels()))

    def test_encode_returns_png(self) -> None:
        canvas = Canvas.create(8, 8)
        self.assertTrue(canvas.encode().startswith(b"\x89PNG\r\n\x1a\n"))

    def test_disposed_canvas_rejects_use(self) -> None:
        canvas = Canvas.create(8, 8)
        canvas.dispose()
        self.assertTrue(canvas.disposed)
        with self.assertRaises(RuntimeError):
            canvas.draw_text("x")
        with self.assertRaises(RuntimeError):
            canvas.encode()
        canvas.dispose()


if __name__ == "__main__":
    unittest.main()

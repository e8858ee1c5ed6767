from __future__ import annotations

from typing import Literal

import numpy as np

from paintchain_core.errors import AllocationError
from paintchain_core.render.draw_text import DEFAULT_FONT_FAMILY, DEFAULT_FONT_SIZE_PX, draw_text
from paintchain_core.render.encode import EncodeMode, encode_png


FORMAT_ARGB32 = "ARGB32"

FontSlant = Literal["normal", "italic", "oblique"]
FontWeight = Literal["normal", "bold"]


class Canvas:
    """Single-owner RGBA255 raster with cairo-style drawing state.

    The buffer is a ``(height, width, 4)`` uint8 array in RGBA channel order with
    straight alpha; 32 bits per pixel as in cairo's ARGB32 format.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be > 0")
        self.width = width
        self.height = height
        self.pixel_format = FORMAT_ARGB32
        try:
            self._buffer: np.ndarray | None = np.zeros((height, width, 4), dtype=np.uint8)
        except MemoryError as exc:
            raise AllocationError(f"could not allocate {width}x{height} canvas") from exc
        self.font_family = DEFAULT_FONT_FAMILY
        self.font_slant: FontSlant = "normal"
        self.font_weight: FontWeight = "normal"
        self.font_size = DEFAULT_FONT_SIZE_PX
        self.color: tuple[float, float, float] = (0.0, 0.0, 0.0)
        self.position: tuple[float, float] = (0.0, 0.0)

    @classmethod
    def create(cls, width: int, height: int) -> "Canvas":
        return cls(width, height)

    @property
    def disposed(self) -> bool:
        return self._buffer is None

    def set_font(self, family: str, slant: FontSlant = "normal", weight: FontWeight = "normal") -> None:
        self._live()
        self.font_family = family
        self.font_slant = slant
        self.font_weight = weight

    def set_font_size(self, size: float) -> None:
        self._live()
        if size <= 0:
            raise ValueError("font size must be > 0")
        self.font_size = float(size)

    def set_color(self, r: float, g: float, b: float) -> None:
        """Channels are in 0..1 and clamped."""
        self._live()
        self.color = (_clamp_unit(r), _clamp_unit(g), _clamp_unit(b))

    def move_to(self, x: float, y: float) -> None:
        self._live()
        self.position = (float(x), float(y))

    def draw_text(self, text: str) -> None:
        buf = self._live()
        x, y = self.position
        advance = draw_text(
            buf,
            x,
            y,
            text,
            self._rgba(),
            font_family=self.font_family,
            font_size_px=self.font_size,
            bold=self.font_weight == "bold",
            italic=self.font_slant != "normal",
        )
        self.position = (x + advance, y)

    def fill_rect(self, x: int, y: int, w: int, h: int) -> None:
        buf = self._live()
        if w <= 0 or h <= 0:
            return
        x0 = max(0, x)
        y0 = max(0, y)
        x1 = min(self.width, x + w)
        y1 = min(self.height, y + h)
        if x1 <= x0 or y1 <= y0:
            return
        buf[y0:y1, x0:x1] = self._rgba()

    def pixels(self) -> np.ndarray:
        """Safe read copy of the buffer."""
        return self._live().copy()

    def encode(self, mode: EncodeMode = "memory") -> bytes:
        return encode_png(self._live(), mode=mode)

    def dispose(self) -> None:
        self._buffer = None

    def _live(self) -> np.ndarray:
        if self._buffer is None:
            raise RuntimeError("canvas is disposed")
        return self._buffer

    def _rgba(self) -> tuple[int, int, int, int]:
        r, g, b = self.color
        return (int(round(r * 255)), int(round(g * 255)), int(round(b * 255)), 255)


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))

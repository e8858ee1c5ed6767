from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
from typing import Callable

from paintchain_core.core.plugins import PluginRegistry, plugin_name
from paintchain_core.errors import AllocationError, EncodingError, PaintError
from paintchain_core.render.canvas import Canvas
from paintchain_core.render.encode import EncodeMode


LOGGER = logging.getLogger(__name__)

CANVAS_WIDTH = 240
CANVAS_HEIGHT = 80
BASE_TEXT = "Hello World"

CanvasFactory = Callable[[int, int], Canvas]


@dataclass(frozen=True)
class RenderStats:
    rendered: int
    allocation_failures: int
    paint_failures: int
    encoding_failures: int


class RenderPipeline:
    """Base drawing, then every registered plugin in order, then PNG encode.

    The first failure aborts the render. The canvas is disposed exactly once on
    every path.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        *,
        width: int = CANVAS_WIDTH,
        height: int = CANVAS_HEIGHT,
        canvas_factory: CanvasFactory = Canvas.create,
        encode_mode: EncodeMode = "memory",
    ) -> None:
        self._registry = registry
        self._width = width
        self._height = height
        self._canvas_factory = canvas_factory
        self._encode_mode = encode_mode
        self._stats_lock = threading.Lock()
        self._counts = {"rendered": 0, "allocation": 0, "paint": 0, "encoding": 0}

    @property
    def registry(self) -> PluginRegistry:
        return self._registry

    def render(self) -> bytes:
        try:
            canvas = self._canvas_factory(self._width, self._height)
        except AllocationError:
            LOGGER.warning("render aborted: canvas allocation failed")
            self._count("allocation")
            raise
        LOGGER.debug("render stage=created")
        try:
            draw_base(canvas)
            LOGGER.debug("render stage=base_drawn")
            self._run_plugins(canvas)
            try:
                data = canvas.encode(self._encode_mode)
            except EncodingError:
                LOGGER.warning("render aborted: encode failed")
                self._count("encoding")
                raise
            LOGGER.debug("render stage=encoded bytes=%d", len(data))
        finally:
            canvas.dispose()
            LOGGER.debug("render stage=disposed")
        self._count("rendered")
        return data

    def stats(self) -> RenderStats:
        with self._stats_lock:
            return RenderStats(
                rendered=self._counts["rendered"],
                allocation_failures=self._counts["allocation"],
                paint_failures=self._counts["paint"],
                encoding_failures=self._counts["encoding"],
            )

    def _run_plugins(self, canvas: Canvas) -> None:
        for index, plugin in enumerate(self._registry.list(), start=1):
            name = plugin_name(plugin)
            try:
                plugin.paint(canvas)
            except PaintError as exc:
                if exc.plugin is None:
                    exc.plugin = name
                if exc.index is None:
                    exc.index = index
                self._abort_paint(exc)
                raise
            except Exception as exc:  # noqa: BLE001
                err = PaintError(f"plugin {name} failed: {exc}", plugin=name, index=index)
                self._abort_paint(err)
                raise err from exc
            LOGGER.debug("render stage=plugin index=%d name=%s", index, name)

    def _abort_paint(self, exc: PaintError) -> None:
        LOGGER.warning("render aborted at plugin %d (%s): %s", exc.index, exc.plugin, exc)
        self._count("paint")

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._counts[key] += 1


def draw_base(canvas: Canvas) -> None:
    canvas.set_font("serif", "normal", "bold")
    canvas.set_font_size(32.0)
    canvas.set_color(0.0, 0.0, 1.0)
    canvas.move_to(10.0, 50.0)
    canvas.draw_text(BASE_TEXT)

from __future__ import annotations

import logging
import threading

from paintchain_core.render.canvas import Canvas


LOGGER = logging.getLogger(__name__)


class CountPlugin:
    """Draws how many times it has painted since process start."""

    name = "count"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def paint(self, canvas: Canvas) -> None:
        with self._lock:
            self._count += 1
            value = self._count
        canvas.set_font_size(24.0)
        canvas.move_to(200.0, 20.0)
        canvas.draw_text(str(value))


def count_plugin() -> CountPlugin:
    LOGGER.info("initializing count-plugin")
    return CountPlugin()

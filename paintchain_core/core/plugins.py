from __future__ import annotations

import logging
from typing import Protocol

from paintchain_core.render.canvas import Canvas


LOGGER = logging.getLogger(__name__)


class DrawingPlugin(Protocol):
    """Paints onto a live canvas; raises PaintError when it cannot complete."""

    def paint(self, canvas: Canvas) -> None:
        ...


def plugin_name(plugin: DrawingPlugin) -> str:
    name = getattr(plugin, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(plugin).__name__


class PluginRegistry:
    """Ordered plugin chain, populated once at startup and frozen before serving."""

    def __init__(self) -> None:
        self._plugins: list[DrawingPlugin] = []
        self._frozen = False

    def register(self, plugin: DrawingPlugin) -> DrawingPlugin:
        if self._frozen:
            raise RuntimeError("plugin registry is frozen")
        if not callable(getattr(plugin, "paint", None)):
            raise TypeError(f"{type(plugin).__name__} does not implement paint(canvas)")
        self._plugins.append(plugin)
        LOGGER.info("registered plugin %s at position %d", plugin_name(plugin), len(self._plugins))
        return plugin

    def list(self) -> tuple[DrawingPlugin, ...]:
        return tuple(self._plugins)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._plugins)

from __future__ import annotations


class RenderError(RuntimeError):
    """Base class for failures that abort a single render."""


class AllocationError(RenderError):
    pass


class PaintError(RenderError):
    def __init__(self, message: str, *, plugin: str | None = None, index: int | None = None) -> None:
        super().__init__(message)
        self.plugin = plugin
        self.index = index


class EncodingError(RenderError):
    pass

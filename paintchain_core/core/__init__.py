from .audit import JsonlAuditSink
from .pipeline import BASE_TEXT, CANVAS_HEIGHT, CANVAS_WIDTH, RenderPipeline, RenderStats, draw_base
from .plugins import DrawingPlugin, PluginRegistry, plugin_name

__all__ = [
    "BASE_TEXT",
    "CANVAS_HEIGHT",
    "CANVAS_WIDTH",
    "DrawingPlugin",
    "JsonlAuditSink",
    "PluginRegistry",
    "RenderPipeline",
    "RenderStats",
    "draw_base",
    "plugin_name",
]

from .count import CountPlugin, count_plugin

__all__ = ["CountPlugin", "count_plugin"]

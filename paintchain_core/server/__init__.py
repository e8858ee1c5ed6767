from .http_server import RenderApp, RenderServer, ServerConfig

__all__ = ["RenderApp", "RenderServer", "ServerConfig"]

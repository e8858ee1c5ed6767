from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import threading
import time
from typing import Any, Awaitable, Callable, Optional

import uvicorn

from paintchain_core.core.pipeline import RenderPipeline
from paintchain_core.errors import AllocationError, EncodingError, PaintError
from paintchain_core.render.encode import EncodeMode


LOGGER = logging.getLogger(__name__)

AuditLogger = Callable[[dict[str, Any]], None]
Scope = dict[str, Any]
Receive = Callable[[], Awaitable[dict[str, Any]]]
Send = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8080
    encode_mode: EncodeMode = "memory"

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 65535:
            raise ValueError("port must be in 0..65535")


class RenderApp:
    """ASGI app: every GET path renders a fresh image on a worker thread."""

    def __init__(self, pipeline: RenderPipeline, audit_logger: AuditLogger | None = None) -> None:
        self.pipeline = pipeline
        self.audit_logger = audit_logger or (lambda entry: None)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return
        path = scope.get("path", "/")
        if scope.get("method", "GET") != "GET":
            await _respond(send, 405, b"method not allowed\n", "text/plain; charset=utf-8", [(b"allow", b"GET")])
            return

        started_ns = time.perf_counter_ns()
        try:
            body = await asyncio.to_thread(self.pipeline.render)
        except AllocationError as exc:
            LOGGER.error("GET %s: canvas allocation failed: %s", path, exc)
            await self._fail(send, path, 503, "allocation", exc, started_ns)
            return
        except PaintError as exc:
            LOGGER.error("GET %s: plugin %s failed: %s", path, exc.plugin, exc)
            await self._fail(send, path, 500, "paint", exc, started_ns)
            return
        except EncodingError as exc:
            LOGGER.error("GET %s: png encode failed: %s", path, exc)
            await self._fail(send, path, 500, "encoding", exc, started_ns)
            return
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("GET %s: render failed unexpectedly", path)
            await self._fail(send, path, 500, "internal", exc, started_ns)
            return
        self._audit(path, 200, "ok", started_ns)
        await _respond(send, 200, body, "image/png")

    async def _fail(self, send: Send, path: str, status: int, outcome: str, exc: Exception, started_ns: int) -> None:
        self._audit(path, status, outcome, started_ns, error=str(exc))
        await _respond(send, status, f"render failed: {outcome}\n".encode("utf-8"), "text/plain; charset=utf-8")

    def _audit(self, path: str, status: int, outcome: str, started_ns: int, error: str | None = None) -> None:
        entry: dict[str, Any] = {
            "ts_ns": time.time_ns(),
            "path": path,
            "status": status,
            "outcome": outcome,
            "elapsed_ms": round((time.perf_counter_ns() - started_ns) / 1e6, 3),
        }
        if error is not None:
            entry["error"] = error
        self.audit_logger(entry)


async def _respond(
    send: Send,
    status: int,
    body: bytes,
    content_type: str,
    extra_headers: list[tuple[bytes, bytes]] | None = None,
) -> None:
    headers = [
        (b"content-type", content_type.encode("latin-1")),
        (b"content-length", str(len(body)).encode("latin-1")),
    ]
    headers.extend(extra_headers or [])
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body})


class RenderServer:
    """Serves rendered PNGs with uvicorn, on a background thread or the caller's."""

    def __init__(
        self,
        pipeline: RenderPipeline,
        host: str = "127.0.0.1",
        port: int = 8080,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._host = host
        self._port = port
        self._app = RenderApp(pipeline, audit_logger)
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def app(self) -> RenderApp:
        return self._app

    @property
    def address(self) -> tuple[str, int]:
        server = self._server
        if server is None or not server.started or not getattr(server, "servers", None):
            return (self._host, self._port)
        host, port = server.servers[0].sockets[0].getsockname()[:2]
        return (str(host), int(port))

    def start(self, timeout: float = 5.0) -> None:
        if self._thread and self._thread.is_alive():
            return
        server = self._build()
        self._thread = threading.Thread(target=server.run, name="paintchain-http", daemon=True)
        self._thread.start()
        deadline = time.monotonic() + timeout
        while not server.started:
            if not self._thread.is_alive() or time.monotonic() > deadline:
                self.stop()
                raise RuntimeError(f"server did not start on {self._host}:{self._port}")
            time.sleep(0.01)
        self._log_listening()

    def serve_forever(self) -> None:
        server = self._build()
        try:
            server.run()
        finally:
            self._server = None

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.should_exit = True
        if self._thread:
            self._thread.join(timeout=5.0)
            self._thread = None
        self._server = None

    def _build(self) -> uvicorn.Server:
        if self._server is not None:
            raise RuntimeError("server is already running")
        # Plugins are fixed before the listener accepts connections.
        self._pipeline.registry.freeze()
        config = uvicorn.Config(
            self._app,
            host=self._host,
            port=self._port,
            lifespan="off",
            log_config=None,
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        return self._server

    def _log_listening(self) -> None:
        host, port = self.address
        LOGGER.info("listening on http://%s:%d with %d plugin(s)", host, port, len(self._pipeline.registry))

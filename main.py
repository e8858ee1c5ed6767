from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from paintchain_core.core import JsonlAuditSink, PluginRegistry, RenderPipeline
from paintchain_core.errors import RenderError
from paintchain_core.render.encode import ENCODE_MODES
from paintchain_core.server import RenderServer, ServerConfig
from paintchain_plugins import count_plugin


LOGGER = logging.getLogger("paintchain")


def build_registry(with_count_plugin: bool) -> PluginRegistry:
    """Startup registration, in a fixed order."""
    registry = PluginRegistry()
    if with_count_plugin:
        registry.register(count_plugin())
    return registry


def main() -> None:
    parser = argparse.ArgumentParser(prog="paintchain")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Serve rendered PNGs over HTTP.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--encode-mode", choices=ENCODE_MODES, default="memory")
    serve.add_argument("--with-count-plugin", action="store_true", help="Register the request-counting plugin.")
    serve.add_argument("--audit-jsonl", type=Path, default=None)

    render = sub.add_parser("render", help="Render once (or --repeat times) and write the last PNG to a file.")
    render.add_argument("--out", type=Path, required=True)
    render.add_argument("--encode-mode", choices=ENCODE_MODES, default="memory")
    render.add_argument("--with-count-plugin", action="store_true")
    render.add_argument("--repeat", type=int, default=1)

    report = sub.add_parser("audit-report", help="Print a summary of a JSONL request audit log.")
    report.add_argument("--audit-jsonl", type=Path, required=True)
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        config = ServerConfig(host=args.host, port=args.port, encode_mode=args.encode_mode)
        pipeline = RenderPipeline(build_registry(args.with_count_plugin), encode_mode=config.encode_mode)
        audit_sink = JsonlAuditSink(args.audit_jsonl) if args.audit_jsonl is not None else None
        server = RenderServer(
            pipeline,
            host=config.host,
            port=config.port,
            audit_logger=audit_sink.log if audit_sink is not None else None,
        )
        server.serve_forever()
        return

    if args.command == "render":
        if args.repeat <= 0:
            raise ValueError("repeat must be > 0")
        pipeline = RenderPipeline(build_registry(args.with_count_plugin), encode_mode=args.encode_mode)
        pipeline.registry.freeze()
        data = b""
        for _ in range(args.repeat):
            try:
                data = pipeline.render()
            except RenderError as exc:
                LOGGER.error("render failed: %s", exc)
                raise SystemExit(1) from exc
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_bytes(data)
        print(f"wrote {args.out} ({len(data)} bytes)")
        return

    if args.command == "audit-report":
        print(json.dumps(JsonlAuditSink(args.audit_jsonl).summarize(), indent=2, sort_keys=True))
        return

    raise RuntimeError(f"unsupported command: {args.command}")


if __name__ == "__main__":
    main()

from __future__ import annotations

import json
from pathlib import Path
import threading
from typing import Any

import numpy as np


class JsonlAuditSink:
    """Appends one JSON row per served request."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log(self, entry: dict[str, Any]) -> None:
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry, separators=(",", ":"), sort_keys=True))
                f.write("\n")

    def summarize(self) -> dict[str, Any]:
        """Request counts per outcome and status, plus render latency of successful requests."""
        outcome_counts: dict[str, int] = {}
        status_counts: dict[str, int] = {}
        ok_elapsed: list[float] = []
        total = 0
        if self.path.exists():
            with self._lock:
                lines = self.path.read_text(encoding="utf-8").splitlines()
        else:
            lines = []
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                continue
            total += 1
            outcome = str(row.get("outcome", ""))
            status = str(row.get("status", ""))
            outcome_counts[outcome] = outcome_counts.get(outcome, 0) + 1
            status_counts[status] = status_counts.get(status, 0) + 1
            elapsed = row.get("elapsed_ms")
            if outcome == "ok" and isinstance(elapsed, (int, float)):
                ok_elapsed.append(float(elapsed))
        return {
            "total": total,
            "failure_rate": round(1.0 - outcome_counts.get("ok", 0) / total, 4) if total else 0.0,
            "by_outcome": outcome_counts,
            "by_status": status_counts,
            "ok_elapsed_ms": _latency_summary(ok_elapsed),
        }


def _latency_summary(samples: list[float]) -> dict[str, Any] | None:
    if not samples:
        return None
    values = np.asarray(samples, dtype=np.float64)
    p50, p95 = np.percentile(values, [50, 95])
    return {
        "count": int(values.size),
        "p50": round(float(p50), 3),
        "p95": round(float(p95), 3),
        "max": round(float(values.max()), 3),
    }

from __future__ import annotations

import os
import sys
import threading
import time
from typing import Dict, List, Optional, Tuple


_TRUE_STRINGS = {"1", "true", "yes", "on"}
_ENABLE_ENV_KEY = "SWATCHGEN_PROFILE"


def _env_enabled() -> bool:
    return os.getenv(_ENABLE_ENV_KEY, "").strip().lower() in _TRUE_STRINGS


_ENABLED: bool = _env_enabled()
_ENTRIES: list[dict[str, object]] = []
_LOCK = threading.Lock()


def is_enabled() -> bool:
    """Return whether render timing is collected."""

    return _ENABLED


def set_enabled(value: bool) -> None:
    """Enable/disable profiling globally and synchronize the env var."""

    global _ENABLED
    _ENABLED = bool(value)
    if _ENABLED:
        os.environ[_ENABLE_ENV_KEY] = "1"
    else:
        os.environ.pop(_ENABLE_ENV_KEY, None)
    with _LOCK:
        _ENTRIES.clear()


def log(component: str, operation: str, duration_ms: float, context: Optional[str] = None) -> None:
    """Record one timing entry and print it if profiling is enabled."""

    if not _ENABLED:
        return
    entry = {
        "timestamp": time.time(),
        "component": component,
        "operation": operation,
        "duration_ms": float(duration_ms),
        "context": context or "",
        "thread_id": threading.get_ident(),
    }
    with _LOCK:
        _ENTRIES.append(entry)
    suffix = f" {context}" if context else ""
    print(f"[PROFILE] {component} {operation} {duration_ms:.0f}ms{suffix}", file=sys.stderr, flush=True)


def entries() -> List[dict[str, object]]:
    with _LOCK:
        return list(_ENTRIES)


def summarize() -> Dict[Tuple[str, str], Dict[str, float]]:
    """Aggregate count/total/avg/max milliseconds per (component, operation)."""

    aggregates: Dict[Tuple[str, str], Dict[str, float]] = {}
    for entry in entries():
        key = (str(entry["component"]), str(entry["operation"]))
        agg = aggregates.setdefault(key, {"count": 0.0, "total_ms": 0.0, "max_ms": 0.0})
        dur = float(entry["duration_ms"])  # type: ignore[arg-type]
        agg["count"] += 1
        agg["total_ms"] += dur
        if dur > agg["max_ms"]:
            agg["max_ms"] = dur
    for agg in aggregates.values():
        agg["avg_ms"] = agg["total_ms"] / agg["count"]
    return aggregates


def print_summary() -> None:
    if not _ENABLED:
        return
    rows = sorted(summarize().items(), key=lambda item: item[1]["total_ms"], reverse=True)
    for (comp, op), stats in rows:
        print(
            f"[PROFILE] {comp} {op}: n={int(stats['count'])} total={stats['total_ms']:.0f}ms "
            f"avg={stats['avg_ms']:.0f}ms max={stats['max_ms']:.0f}ms",
            file=sys.stderr,
            flush=True,
        )

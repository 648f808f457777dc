from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger("storage_api")

if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
logger.setLevel(logging.INFO)

_lock = threading.Lock()
_counters: dict[str, int] = defaultdict(int)
_timings_ms: dict[str, list[float]] = defaultdict(list)
MAX_TIMINGS = 2000


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str))


def increment(name: str, value: int = 1) -> None:
    with _lock:
        _counters[name] += value


def observe_ms(name: str, value: float) -> None:
    with _lock:
        _timings_ms[name].append(float(value))
        if len(_timings_ms[name]) > MAX_TIMINGS:
            _timings_ms[name] = _timings_ms[name][-MAX_TIMINGS:]


@contextmanager
def timed(name: str):
    t0 = time.perf_counter()
    try:
        yield
    finally:
        observe_ms(name, (time.perf_counter() - t0) * 1000.0)


def snapshot() -> dict[str, Any]:
    with _lock:
        out = {"counters": dict(_counters), "timings_ms": {}}
        for name, values in _timings_ms.items():
            if not values:
                out["timings_ms"][name] = {"count": 0, "p95": 0.0}
                continue
            ordered = sorted(values)
            idx = max(0, int(0.95 * len(ordered)) - 1)
            out["timings_ms"][name] = {"count": len(values), "p95": ordered[idx]}
        return out


def reset() -> None:
    with _lock:
        _counters.clear()
        _timings_ms.clear()

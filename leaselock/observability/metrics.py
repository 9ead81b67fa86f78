"""In-process lease metrics. Counters and latency summaries labelled by backend."""

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

LOCK_ACQUIRE_SUCCESS = "lock_acquire_success"
LOCK_ACQUIRE_FAILURE = "lock_acquire_failure"
LOCK_ACQUIRE_LATENCY_MS = "lock_acquire_latency_ms"
LOCK_RELEASE = "lock_release"
LOCK_RELEASE_REJECTED = "lock_release_rejected"
LOCK_FORCE_RELEASE = "lock_force_release"
LOCK_EXTEND_SUCCESS = "lock_extend_success"
LOCK_EXTEND_FAILURE = "lock_extend_failure"
LOCK_EXPIRED_RECLAIMED = "lock_expired_reclaimed"

_Key = Tuple[str, Optional[str]]


def _series(name: str, category: Optional[str]) -> str:
    return name if category is None else f'{name}{{backend="{category}"}}'


@dataclass
class _LatencySummary:
    count: int = 0
    total: float = 0.0
    minimum: float = float("inf")
    maximum: float = 0.0

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.minimum = min(self.minimum, value)
        self.maximum = max(self.maximum, value)

    def to_dict(self) -> Dict[str, float]:
        return {"count": self.count, "sum": self.total, "min": self.minimum, "max": self.maximum}


class MetricsCollector:
    """
    Thread-safe registry shared by lock managers. `category` is the backend name; series
    without one are process-wide. Export renders Prometheus-like series names.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Counter = Counter()
        self._latencies: Dict[_Key, _LatencySummary] = {}

    def increment(self, name: str, value: float = 1, *, category: Optional[str] = None) -> None:
        with self._lock:
            self._counters[(name, category)] += value

    def observe_latency(self, name: str, latency_ms: float, *, category: Optional[str] = None) -> None:
        with self._lock:
            self._latencies.setdefault((name, category), _LatencySummary()).add(latency_ms)

    def get_counter(self, name: str, *, category: Optional[str] = None) -> float:
        with self._lock:
            return self._counters[(name, category)]

    def export_metrics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": {_series(n, c): v for (n, c), v in sorted(self._counters.items(), key=str)},
                "latency_ms": {
                    _series(n, c): s.to_dict()
                    for (n, c), s in sorted(self._latencies.items(), key=lambda kv: str(kv[0]))
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._latencies.clear()

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from threading import Lock
from typing import Literal

QueryOutcome = Literal["ok", "unsuccessful", "error"]


@dataclass
class QueryStats:
    request_count: int = 0
    # answered, but no route / raster flagged unsuccessful
    unsuccessful_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0


class MetricsStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._created_at = datetime.now(UTC).isoformat()
        self._queries: dict[str, QueryStats] = {}

    def record(self, query: str, *, duration_ms: float, outcome: QueryOutcome = "ok") -> None:
        name = query.strip() or "unknown"
        d_ms = max(float(duration_ms), 0.0)

        with self._lock:
            stats = self._queries.setdefault(name, QueryStats())
            stats.request_count += 1
            if outcome == "unsuccessful":
                stats.unsuccessful_count += 1
            elif outcome == "error":
                stats.error_count += 1
            stats.total_duration_ms += d_ms
            stats.max_duration_ms = max(stats.max_duration_ms, d_ms)

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            queries: dict[str, dict[str, float | int]] = {}
            for name in sorted(self._queries):
                stats = self._queries[name]
                queries[name] = {
                    "request_count": stats.request_count,
                    "unsuccessful_count": stats.unsuccessful_count,
                    "error_count": stats.error_count,
                    "avg_duration_ms": round(
                        stats.total_duration_ms / stats.request_count if stats.request_count else 0.0,
                        3,
                    ),
                    "max_duration_ms": round(stats.max_duration_ms, 3),
                }
            return {
                "created_at": self._created_at,
                "total_requests": sum(s.request_count for s in self._queries.values()),
                "total_errors": sum(s.error_count for s in self._queries.values()),
                "queries": queries,
            }

    def reset(self) -> None:
        with self._lock:
            self._created_at = datetime.now(UTC).isoformat()
            self._queries.clear()


METRICS = MetricsStore()


def record_query(query: str, *, duration_ms: float, outcome: QueryOutcome = "ok") -> None:
    METRICS.record(query, duration_ms=duration_ms, outcome=outcome)


def metrics_snapshot() -> dict[str, object]:
    return METRICS.snapshot()


def reset_metrics() -> None:
    METRICS.reset()

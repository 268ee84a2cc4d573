from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from threading import Lock

from .route_planner import RoutePlan
from .settings import settings


@dataclass
class CacheCounters:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0


class RouteCacheStore:
    """Thread-safe LRU of route plans keyed by graph and snapped endpoints.

    ``RoutePlan`` is frozen, so the same instance is handed to every reader.
    Entries older than ``ttl_s`` count as misses and are dropped on lookup.
    """

    def __init__(self, *, ttl_s: int, max_entries: int) -> None:
        self._ttl_s = max(1, int(ttl_s))
        self._max_entries = max(1, int(max_entries))
        self._lock = Lock()
        self._plans: OrderedDict[str, tuple[float, RoutePlan]] = OrderedDict()
        self._counters = CacheCounters()

    def get(self, key: str) -> RoutePlan | None:
        now = time.monotonic()
        with self._lock:
            item = self._plans.get(key)
            if item is not None and now - item[0] > self._ttl_s:
                del self._plans[key]
                self._counters.expirations += 1
                item = None
            if item is None:
                self._counters.misses += 1
                return None
            self._plans.move_to_end(key)
            self._counters.hits += 1
            return item[1]

    def set(self, key: str, plan: RoutePlan) -> None:
        with self._lock:
            self._plans.pop(key, None)
            self._plans[key] = (time.monotonic(), plan)
            while len(self._plans) > self._max_entries:
                self._plans.popitem(last=False)
                self._counters.evictions += 1

    def clear(self) -> int:
        with self._lock:
            cleared = len(self._plans)
            self._plans.clear()
            return cleared

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._plans),
                "ttl_s": self._ttl_s,
                "max_entries": self._max_entries,
                **asdict(self._counters),
            }


ROUTE_CACHE = RouteCacheStore(
    ttl_s=settings.route_cache_ttl_s,
    max_entries=settings.route_cache_max_entries,
)


def route_cache_key(
    graph_id: str,
    start_lon: float,
    start_lat: float,
    end_lon: float,
    end_lat: float,
) -> str:
    # 6 dp is ~0.1 m; closer requests share an entry
    return f"{graph_id}|{start_lon:.6f},{start_lat:.6f}|{end_lon:.6f},{end_lat:.6f}"


def get_cached_route(key: str) -> RoutePlan | None:
    return ROUTE_CACHE.get(key)


def set_cached_route(key: str, plan: RoutePlan) -> None:
    ROUTE_CACHE.set(key, plan)


def clear_route_cache() -> int:
    return ROUTE_CACHE.clear()


def route_cache_stats() -> dict[str, int]:
    return ROUTE_CACHE.snapshot()

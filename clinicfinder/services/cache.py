"""Thread-safe LRU + TTL cache for raw clinic search results."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass

from clinicfinder.models import Clinic
from clinicfinder.services.metrics import MetricsCollector, metrics as default_metrics


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: tuple[Clinic, ...]
    stored_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.stored_at < ttl


class ClinicSearchCache:
    """Caches normalized, pre-distance, pre-filter result sets.

    Entries older than ``ttl`` seconds are treated as absent and evicted
    on access; ``maxsize`` bounds memory with least-recently-used eviction.
    """

    def __init__(
        self,
        maxsize: int = 512,
        ttl: float = 600,
        collector: MetricsCollector | None = None,
    ):
        self._maxsize = maxsize
        self._ttl = ttl
        self._data: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._metrics = collector or default_metrics

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> list[Clinic] | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                self._metrics.inc_cache_miss()
                return None
            if not entry.is_fresh(time.monotonic(), self._ttl):
                del self._data[key]
                self._metrics.inc_cache_miss()
                return None
            self._data.move_to_end(key)
            self._metrics.inc_cache_hit()
            return list(entry.payload)

    def put(self, key: str, payload: list[Clinic]) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
            elif len(self._data) >= self._maxsize:
                self._data.popitem(last=False)
            self._data[key] = CacheEntry(
                key=key, payload=tuple(payload), stored_at=time.monotonic()
            )

    def purge_expired(self) -> int:
        """Drop every stale entry; returns how many were removed."""
        with self._lock:
            now = time.monotonic()
            stale = [k for k, e in self._data.items() if not e.is_fresh(now, self._ttl)]
            for k in stale:
                del self._data[k]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data.keys())

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._data)


def make_cache_key(
    lat: float,
    lng: float,
    radius_m: int,
    specialization: str | None = None,
) -> str:
    """Quantize coordinates to 4 decimal places (~11m) and append radius + filter."""
    return f"{round(lat, 4)}_{round(lng, 4)}_{radius_m}_{specialization or 'all'}"

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from geo_assign.domain.entities.geography import GeoPoint


def pair_key(a: GeoPoint, b: GeoPoint) -> str:
    """Order-independent key for an unordered point pair, 6 decimals per coordinate."""
    ka = (round(a.latitude, 6), round(a.longitude, 6))
    kb = (round(b.latitude, 6), round(b.longitude, 6))
    lo, hi = (ka, kb) if ka <= kb else (kb, ka)
    return f"{lo[0]:.6f},{lo[1]:.6f}|{hi[0]:.6f},{hi[1]:.6f}"


@dataclass(frozen=True)
class DistanceCacheEntry:
    distance_km: float
    timestamp: float  # clock() at insertion

    def is_expired(self, now: float, timeout_s: float) -> bool:
        return now - self.timestamp > timeout_s


class DistanceCache:
    """
    Unbounded pair -> distance map. Entries expire `timeout_s` after insertion;
    expired entries are dropped when read. Safe to share between threads.
    """

    def __init__(self, timeout_s: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.timeout_s = timeout_s
        self._clock = clock
        self._entries: dict[str, DistanceCacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, a: GeoPoint, b: GeoPoint) -> float | None:
        key = pair_key(a, b)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock(), self.timeout_s):
                del self._entries[key]
                return None
            return entry.distance_km

    def put(self, a: GeoPoint, b: GeoPoint, distance_km: float) -> None:
        with self._lock:
            self._entries[pair_key(a, b)] = DistanceCacheEntry(distance_km, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

# geo_assign/services/distance_oracle.py
import logging
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from geo_assign.app.hooks import NoopHooks, RunHooks
from geo_assign.app.protocols import DistanceOracle, DistanceStrategy, ProgressHook
from geo_assign.domain.entities.geography import GeoPoint, haversine_km
from geo_assign.domain.errors import DistanceUnavailable
from geo_assign.domain.mechanics.mechanics_strategies import HaversineStrategy
from geo_assign.services.distance_cache import DistanceCache, pair_key

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistanceResolution:
    distance_km: float
    source: str  # "cache" or the name of the tier that answered


class TieredDistanceOracle(DistanceOracle):
    """
    Resolves point-pair distances through an ordered list of strategies,
    ending with Haversine, and caches what the cacheable tiers return.
    Never raises for a distance query.
    """

    def __init__(
        self,
        strategies: Sequence[DistanceStrategy],
        *,
        cache: DistanceCache | None = None,
        batch_size: int = 25,
        progress_every: int = 10,
        throttle_s: float = 0.0,
        workers: int = 1,
        hooks: RunHooks | None = None,
    ):
        tiers = list(strategies)
        if not tiers or not isinstance(tiers[-1], HaversineStrategy):
            tiers.append(HaversineStrategy())
        self.strategies = tiers
        self.cache = cache if cache is not None else DistanceCache()
        self.batch_size = batch_size
        self.progress_every = max(1, progress_every)
        self.throttle_s = throttle_s
        self.workers = max(1, workers)
        self.hooks = hooks or NoopHooks()
        self._progress: ProgressHook | None = None
        self._progress_lock = threading.Lock()

    # ------------------ single pair ---------------------

    def distance_km(self, a: GeoPoint, b: GeoPoint) -> float:
        return self.resolve(a, b).distance_km

    def resolve(self, a: GeoPoint, b: GeoPoint) -> DistanceResolution:
        straight = haversine_km(a, b)
        cached = self.cache.get(a, b)
        if cached is not None:
            return DistanceResolution(cached, "cache")

        for tier in self.strategies:
            if not tier.applies(a, b, straight):
                continue
            try:
                d = tier.distance_km(a, b)
            except DistanceUnavailable as exc:
                self._fell_back(tier, a, b, exc)
                continue
            except Exception as exc:
                log.exception("distance_tier_crashed", extra={"extra": {"tier": tier.name}})
                self._fell_back(tier, a, b, exc)
                continue
            if tier.cacheable:
                self.cache.put(a, b, d)
            return DistanceResolution(d, tier.name)

        # only reachable if the terminal tier was replaced by something that can fail
        return DistanceResolution(straight, "haversine")

    def _fell_back(self, tier: DistanceStrategy, a: GeoPoint, b: GeoPoint, exc: BaseException):
        self.hooks.fallback(tier=tier.name, error=str(exc), pair=pair_key(a, b))

    # ------------------ matrix -------------------------

    def distance_matrix(self, rows: Sequence[GeoPoint], cols: Sequence[GeoPoint]) -> np.ndarray:
        """Distances [row][col] in km; progress is reported every `progress_every` pairs."""
        n, m = len(rows), len(cols)
        out = np.zeros((n, m), dtype=float)
        total = n * m
        if total == 0:
            return out

        log.info("distance_matrix_start", extra={"extra": {"pairs": total, "workers": self.workers}})
        counter = {"done": 0}

        def work(i: int, j: int):
            out[i, j] = self.distance_km(rows[i], cols[j])
            with self._progress_lock:
                counter["done"] += 1
                done = counter["done"]
                if done % self.progress_every == 0:
                    pct = (done * 100) // total
                    self._notify(done, total, f"Processed {done}/{total} distances ({pct}%)")
            if self.throttle_s > 0 and done % self.batch_size == 0:
                time.sleep(self.throttle_s)

        pairs = [(i, j) for i in range(n) for j in range(m)]
        if self.workers == 1:
            for i, j in pairs:
                work(i, j)
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                for fut in [pool.submit(work, i, j) for i, j in pairs]:
                    fut.result()

        log.info("distance_matrix_done", extra={"extra": {"pairs": total, "cache_size": len(self.cache)}})
        return out

    # ------------------ hooks & accessors ---------------

    def set_progress_callback(self, callback: ProgressHook | None) -> None:
        self._progress = callback

    def _notify(self, completed: int, total: int, message: str) -> None:
        self.hooks.progress(completed, total, message, source="oracle")
        if self._progress is None:
            return
        try:
            self._progress(completed, total, message)
        except Exception:
            log.exception("progress_callback_failed")

    def clear_cache(self) -> None:
        self.cache.clear()

    def stats(self) -> dict[str, int]:
        return {
            "cache_size": len(self.cache),
            "cache_timeout_ms": int(self.cache.timeout_s * 1000),
            "batch_size": self.batch_size,
        }

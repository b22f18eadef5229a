# geo_assign/policy/assign.py
import logging
import threading
import time
from collections.abc import Sequence
from enum import Enum

import numpy as np

from geo_assign.app.hooks import NoopHooks, RunHooks
from geo_assign.app.protocols import DistanceOracle, ProgressHook
from geo_assign.domain.entities.assignment import (
    AssignmentRecord,
    AssignmentStatistics,
    FacilityCapacityTable,
)
from geo_assign.domain.entities.geography import GeoPoint, haversine_matrix

log = logging.getLogger(__name__)


class DistanceMode(Enum):
    ROAD = "road"  # via the distance oracle
    STRAIGHT = "straight"  # Haversine only


class PriorityAssignmentEngine:
    """
    Greedy, capacity-limited assignment of individuals to facilities.

    Individuals are served in category priority order (stable within a
    category); each takes the nearest facility that still has capacity,
    ties going to the lowest facility index. Individuals left over once
    every facility is full stay unassigned.
    """

    def __init__(
        self,
        oracle: DistanceOracle | None = None,
        *,
        capacity_per_facility: int = 50,
        distance_mode: DistanceMode = DistanceMode.ROAD,
        progress_every: int = 10,
        hooks: RunHooks | None = None,
    ):
        self.oracle = oracle
        self.capacity_per_facility = capacity_per_facility
        self.distance_mode = DistanceMode(distance_mode)
        self.progress_every = max(1, progress_every)
        self.hooks = hooks or NoopHooks()
        self._progress: ProgressHook | None = None
        self._lock = threading.Lock()
        # state of the most recently completed run
        self.capacity = FacilityCapacityTable()
        self.statistics = AssignmentStatistics()
        self.assignments: dict[int, int] = {}

    # ------------------------------------------------------------------

    def assign(
        self,
        individuals: Sequence[GeoPoint],
        facilities: Sequence[GeoPoint],
        capacity_per_facility: int | None = None,
        distance_mode: DistanceMode | str | None = None,
    ) -> tuple[list[AssignmentRecord], AssignmentStatistics]:
        capacity = self.capacity_per_facility if capacity_per_facility is None else capacity_per_facility
        mode = self.distance_mode if distance_mode is None else DistanceMode(distance_mode)
        t0 = time.perf_counter()

        table = FacilityCapacityTable(len(facilities), capacity)
        self.hooks.run_start(
            individuals=len(individuals), facilities=len(facilities), capacity=capacity, mode=mode.value
        )

        if not individuals or not facilities:
            log.warning(
                "assignment_empty_input",
                extra={"extra": {"individuals": len(individuals), "facilities": len(facilities)}},
            )
            records: list[AssignmentRecord] = []
        else:
            n = len(individuals)
            self._notify(0, n, "Calculating distance matrix")
            matrix = self.distance_matrix(individuals, facilities, mode)
            self._notify(0, n, "Distance matrix ready")
            order = self.priority_order(individuals)
            records = self._greedy(order, individuals, facilities, matrix, table)

        stats = AssignmentStatistics.from_records(records)
        with self._lock:
            self.capacity = table
            self.statistics = stats
            self.assignments = {r.individual_index: r.facility_index for r in records}

        self.hooks.run_end(
            assigned=len(records),
            unassigned=len(individuals) - len(records),
            wall_ms=(time.perf_counter() - t0) * 1000,
        )
        return records, stats

    # ------------------------------------------------------------------

    def distance_matrix(
        self, individuals: Sequence[GeoPoint], facilities: Sequence[GeoPoint], mode: DistanceMode
    ) -> np.ndarray:
        if mode is DistanceMode.ROAD:
            if self.oracle is not None:
                return np.asarray(self.oracle.distance_matrix(individuals, facilities), dtype=float)
            log.warning("road_mode_without_oracle", extra={"extra": {"fallback": "haversine"}})
        return haversine_matrix(individuals, facilities)

    @staticmethod
    def priority_order(individuals: Sequence[GeoPoint]) -> list[int]:
        """Input indices sorted by category rank; `sorted` is stable."""
        return sorted(range(len(individuals)), key=lambda i: individuals[i].category.rank)

    def _greedy(
        self,
        order: list[int],
        individuals: Sequence[GeoPoint],
        facilities: Sequence[GeoPoint],
        matrix: np.ndarray,
        table: FacilityCapacityTable,
    ) -> list[AssignmentRecord]:
        records: list[AssignmentRecord] = []
        remaining = np.array([table.remaining(j) for j in range(len(facilities))], dtype=int)
        total = len(order)

        for done, i in enumerate(order, start=1):
            open_idx = np.flatnonzero(remaining > 0)
            if open_idx.size:
                # argmin returns the first minimum, i.e. the lowest open facility index
                j = int(open_idx[np.argmin(matrix[i, open_idx])])
                table.consume(j)
                remaining[j] -= 1
                rec = AssignmentRecord(
                    individual_index=i,
                    facility_index=j,
                    individual=individuals[i],
                    facility=facilities[j],
                    distance_km=float(matrix[i, j]),
                    category=individuals[i].category,
                )
                records.append(rec)
                self.hooks.assigned(rec)
            if done % self.progress_every == 0 or done == total:
                self._notify(done, total, f"Assigned {len(records)}/{done} individuals")

        return records

    # ------------------------------------------------------------------

    def set_progress_callback(self, callback: ProgressHook | None) -> None:
        self._progress = callback

    def _notify(self, completed: int, total: int, message: str) -> None:
        self.hooks.progress(completed, total, message, source="engine")
        if self._progress is None:
            return
        try:
            self._progress(completed, total, message)
        except Exception:
            log.exception("progress_callback_failed")

    def remaining_capacity(self) -> dict[int, int]:
        return self.capacity.snapshot()

    def clear_assignments(self) -> None:
        with self._lock:
            self.capacity = FacilityCapacityTable()
            self.statistics = AssignmentStatistics()
            self.assignments = {}

    def complexity_info(self) -> dict[str, str]:
        road = self.distance_mode is DistanceMode.ROAD and self.oracle is not None
        return {
            "time_complexity": "O(N * M * R) + O(N log N)" if road else "O(N * M + N log N)",
            "space_complexity": "O(N * M)",
            "description": (
                "Priority-based greedy assignment with road distance optimization"
                if road
                else "Priority-based greedy assignment with straight-line distance optimization"
            ),
        }

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from geo_assign.domain.entities.geography import PRIORITY_ORDER, Category, GeoPoint


@dataclass(frozen=True)
class AssignmentRecord:
    individual_index: int  # index in the caller's input list
    facility_index: int
    individual: GeoPoint
    facility: GeoPoint
    distance_km: float
    category: Category


@dataclass
class AssignmentStatistics:
    total_assigned: int = 0
    by_category: dict[Category, int] = field(
        default_factory=lambda: {c: 0 for c in PRIORITY_ORDER}
    )
    average_km: float = 0.0
    min_km: float = math.inf  # stays inf when nothing was assigned
    max_km: float = 0.0
    facility_load: dict[int, int] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[AssignmentRecord]) -> "AssignmentStatistics":
        stats = cls()
        total = 0.0
        for r in records:
            stats.total_assigned += 1
            stats.by_category[r.category] = stats.by_category.get(r.category, 0) + 1
            stats.facility_load[r.facility_index] = stats.facility_load.get(r.facility_index, 0) + 1
            total += r.distance_km
            stats.min_km = min(stats.min_km, r.distance_km)
            stats.max_km = max(stats.max_km, r.distance_km)
        if stats.total_assigned:
            stats.average_km = total / stats.total_assigned
        return stats

    @property
    def priority_a_assigned(self) -> int:
        return self.by_category.get(Category.PRIORITY_A, 0)

    @property
    def priority_b_assigned(self) -> int:
        return self.by_category.get(Category.PRIORITY_B, 0)

    @property
    def priority_c_assigned(self) -> int:
        return self.by_category.get(Category.PRIORITY_C, 0)

    def as_dict(self) -> dict:
        return {
            "total_assigned": self.total_assigned,
            "by_category": {c.value: n for c, n in self.by_category.items()},
            "average_km": self.average_km,
            "min_km": None if math.isinf(self.min_km) else self.min_km,
            "max_km": self.max_km,
            "facility_load": {str(j): n for j, n in sorted(self.facility_load.items())},
        }


class FacilityCapacityTable:
    """Remaining capacity per facility index for one assignment run."""

    def __init__(self, n_facilities: int = 0, capacity: int = 0):
        self.capacity = capacity
        self._remaining: dict[int, int] = {}
        self.reset(n_facilities, capacity)

    def reset(self, n_facilities: int, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self._remaining = {j: capacity for j in range(n_facilities)}

    def remaining(self, j: int) -> int:
        return self._remaining[j]

    def has_capacity(self, j: int) -> bool:
        return self._remaining.get(j, 0) > 0

    def available(self) -> list[int]:
        return [j for j, left in self._remaining.items() if left > 0]

    def consume(self, j: int) -> None:
        if not self.has_capacity(j):
            raise ValueError(f"facility {j} has no remaining capacity")
        self._remaining[j] -= 1

    def assigned_count(self, j: int) -> int:
        return self.capacity - self._remaining[j]

    def snapshot(self) -> dict[int, int]:
        return dict(self._remaining)

    def __len__(self) -> int:
        return len(self._remaining)

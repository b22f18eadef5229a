import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np

EARTH_RADIUS_KM = 6371.0


class PointKind(Enum):
    INDIVIDUAL = "individual"
    FACILITY = "facility"

    @classmethod
    def _missing_(cls, value):
        aliases = {"person": cls.INDIVIDUAL, "test_center": cls.FACILITY, "center": cls.FACILITY}
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


class Category(Enum):
    """Closed set of assignment categories; `rank` is the priority order (lower first)."""

    PRIORITY_A = "priority_a"
    PRIORITY_B = "priority_b"
    PRIORITY_C = "priority_c"
    FACILITY = "facility"

    @classmethod
    def _missing_(cls, value):
        # labels used by the upstream point generator
        aliases = {
            "pwd": cls.PRIORITY_A,
            "female": cls.PRIORITY_B,
            "male": cls.PRIORITY_C,
            "center": cls.FACILITY,
            "test_center": cls.FACILITY,
        }
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None

    @property
    def rank(self) -> int:
        return _CATEGORY_RANK[self]


_CATEGORY_RANK = {
    Category.PRIORITY_A: 1,
    Category.PRIORITY_B: 2,
    Category.PRIORITY_C: 3,
    Category.FACILITY: 4,
}

PRIORITY_ORDER: tuple[Category, ...] = (
    Category.PRIORITY_A,
    Category.PRIORITY_B,
    Category.PRIORITY_C,
)


@dataclass(frozen=True)
class GeoPoint:
    latitude: float  # decimal degrees
    longitude: float
    kind: PointKind = PointKind.INDIVIDUAL
    category: Category = Category.PRIORITY_C

    def __post_init__(self):
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))
        if not isinstance(self.kind, PointKind):
            object.__setattr__(self, "kind", PointKind(self.kind))
        if not isinstance(self.category, Category):
            object.__setattr__(self, "category", Category(self.category))

    @classmethod
    def facility(cls, latitude: float, longitude: float) -> "GeoPoint":
        return cls(latitude, longitude, PointKind.FACILITY, Category.FACILITY)

    @classmethod
    def from_record(cls, rec: Mapping) -> "GeoPoint":
        """
        Build a point from a `{latitude, longitude, category}` record.
        `lat`/`lng` are accepted as shorthands; a facility category implies
        a facility kind unless `kind` says otherwise.
        """
        lat = rec["latitude"] if "latitude" in rec else rec["lat"]
        lng = rec["longitude"] if "longitude" in rec else rec["lng"]
        category = Category(rec.get("category", Category.PRIORITY_C.value))
        default_kind = PointKind.FACILITY if category is Category.FACILITY else PointKind.INDIVIDUAL
        kind = PointKind(rec["kind"]) if "kind" in rec else default_kind
        return cls(lat, lng, kind, category)

    @property
    def is_individual(self) -> bool:
        return self.kind is PointKind.INDIVIDUAL

    @property
    def is_facility(self) -> bool:
        return self.kind is PointKind.FACILITY

    def is_valid(self) -> bool:
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0

    def distance_to(self, other: "GeoPoint") -> float:
        return haversine_km(self, other)

    def __str__(self) -> str:
        return f"({self.latitude:.6f}, {self.longitude:.6f})"


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in kilometers."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlng = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    h = min(1.0, max(0.0, h))  # rounding can push antipodal pairs past 1
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def haversine_matrix(rows: Sequence[GeoPoint], cols: Sequence[GeoPoint]) -> np.ndarray:
    """Vectorized Haversine; shape (len(rows), len(cols))."""
    if not rows or not cols:
        return np.zeros((len(rows), len(cols)), dtype=float)
    lat1 = np.radians(np.array([p.latitude for p in rows], dtype=float))[:, None]
    lng1 = np.radians(np.array([p.longitude for p in rows], dtype=float))[:, None]
    lat2 = np.radians(np.array([p.latitude for p in cols], dtype=float))[None, :]
    lng2 = np.radians(np.array([p.longitude for p in cols], dtype=float))[None, :]
    h = np.sin((lat2 - lat1) / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lng2 - lng1) / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import numpy as np

from geo_assign.domain.entities.geography import GeoPoint


# ------------- Distances --------------------
@runtime_checkable
class DistanceStrategy(Protocol):
    """
    One tier of the distance oracle.
      • `applies` decides whether the tier is tried for a pair at all.
      • `distance_km` returns kilometers or raises DistanceUnavailable.
      • `cacheable` results are stored by the oracle.
    """

    name: str
    cacheable: bool

    def applies(self, a: GeoPoint, b: GeoPoint, straight_km: float) -> bool: ...
    def distance_km(self, a: GeoPoint, b: GeoPoint) -> float: ...


@runtime_checkable
class RoutingClient(Protocol):
    """Road distance from an external routing service, in km. Raises RoutingError."""

    def distance_km(self, a: GeoPoint, b: GeoPoint) -> float: ...


@runtime_checkable
class ProgressHook(Protocol):
    def __call__(self, completed: int, total: int, message: str) -> None: ...


@runtime_checkable
class DistanceOracle(Protocol):
    def distance_km(self, a: GeoPoint, b: GeoPoint) -> float: ...
    def distance_matrix(self, rows: Sequence[GeoPoint], cols: Sequence[GeoPoint]) -> np.ndarray: ...
    def stats(self) -> dict[str, int]: ...

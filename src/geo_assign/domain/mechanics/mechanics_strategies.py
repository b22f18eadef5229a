from geo_assign.app.protocols import DistanceStrategy, RoutingClient
from geo_assign.domain.entities.geography import GeoPoint, haversine_km
from geo_assign.domain.errors import NoLatticePath
from geo_assign.domain.mechanics.mechanics_grid_search import GridSearchEngine


class GridSearchStrategy(DistanceStrategy):
    name = "grid"
    cacheable = True

    def __init__(self, engine: GridSearchEngine, max_radius_km: float = 100.0):
        self.engine, self.max_radius_km = engine, max_radius_km

    def applies(self, a, b, straight_km):
        return straight_km <= self.max_radius_km

    def distance_km(self, a: GeoPoint, b: GeoPoint) -> float:
        d = self.engine.find_distance_km(a, b)
        if d is None:
            raise NoLatticePath(f"no lattice path between {a} and {b}")
        return d


class RoutingStrategy(DistanceStrategy):
    name = "osrm"
    cacheable = True

    def __init__(self, client: RoutingClient):
        self.client = client

    def applies(self, a, b, straight_km):
        return True

    def distance_km(self, a, b):
        return self.client.distance_km(a, b)


class HaversineStrategy(DistanceStrategy):
    """Terminal tier: never fails, not cached."""

    name = "haversine"
    cacheable = False

    def applies(self, a, b, straight_km):
        return True

    def distance_km(self, a, b):
        return haversine_km(a, b)

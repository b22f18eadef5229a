import heapq
import logging
import math

from geo_assign.domain.entities.geography import GeoPoint
from geo_assign.domain.entities.lattice import BoundedGrid, GridPath, LatticeCell, SearchNode

log = logging.getLogger(__name__)

KM_PER_DEGREE = 111.0


class GridSearchEngine:
    """
    A*-style search over a uniform lat/lng lattice around two endpoints.

    Approximate by construction: no road topology, obstacles are carried by
    BoundedGrid but never populated. Distances are in km.
    """

    def __init__(
        self,
        *,
        cell_deg: float = 0.001,  # ~100 m
        margin_deg: float = 0.005,  # ~500 m
        km_per_deg: float = KM_PER_DEGREE,
        diagonal_factor: float = 1.414,
        max_expansions: int | None = None,
    ):
        self.cell_deg, self.margin_deg, self.km_per_deg = cell_deg, margin_deg, km_per_deg
        self.diagonal_factor = diagonal_factor
        self.max_expansions = max_expansions
        self._scale = cell_deg * km_per_deg

    # -------------- public ------------------------

    def build_grid(self, start: GeoPoint, goal: GeoPoint) -> BoundedGrid:
        return BoundedGrid.around(start, goal, cell_deg=self.cell_deg, margin_deg=self.margin_deg)

    def search(self, start: GeoPoint, goal: GeoPoint) -> GridPath:
        return self.search_grid(self.build_grid(start, goal))

    def find_distance_km(self, start: GeoPoint, goal: GeoPoint) -> float | None:
        """Lattice path length in km, or None when the search finds no path."""
        path = self.search(start, goal)
        if not path.found:
            return None
        return self.path_length_km(path)

    def search_grid(self, grid: BoundedGrid) -> GridPath:
        start, goal = grid.start, grid.goal
        if not (grid.is_passable(start) and grid.is_passable(goal)):
            return GridPath()

        best: dict[LatticeCell, float] = {start: 0.0}
        came_from: dict[LatticeCell, LatticeCell] = {}
        seq = 0
        open_set = [SearchNode(self.heuristic(start, goal), seq, start, 0.0)]
        expansions = 0

        while open_set:
            node = heapq.heappop(open_set)
            cur = node.cell
            if cur == goal:
                return GridPath(self._reconstruct(came_from, cur))
            if node.cost_so_far > best[cur]:
                continue  # stale entry, a cheaper one was already expanded

            expansions += 1
            if self.max_expansions is not None and expansions > self.max_expansions:
                log.debug(
                    "grid_search_budget_exhausted",
                    extra={"extra": {"expansions": expansions, "width": grid.width, "height": grid.height}},
                )
                break

            for nb in grid.neighbors(cur):
                tentative = node.cost_so_far + self.step_cost(cur, nb)
                if nb not in best or tentative < best[nb]:
                    best[nb] = tentative
                    came_from[nb] = cur
                    seq += 1
                    heapq.heappush(
                        open_set, SearchNode(tentative + self.heuristic(nb, goal), seq, nb, tentative)
                    )

        return GridPath()

    # -------------- costs -------------------------

    def step_cost(self, a: LatticeCell, b: LatticeCell) -> float:
        dx, dy = b.x - a.x, b.y - a.y
        if abs(dx) == 1 and abs(dy) == 1:
            return self.diagonal_factor * self._scale
        return math.hypot(dx, dy) * self._scale

    def heuristic(self, a: LatticeCell, b: LatticeCell) -> float:
        return math.hypot(a.x - b.x, a.y - b.y) * self._scale

    def path_length_km(self, path: GridPath) -> float:
        cells = path.cells
        return sum(
            (math.hypot(b.x - a.x, b.y - a.y) * self._scale for a, b in zip(cells, cells[1:])),
            0.0,
        )

    @staticmethod
    def _reconstruct(came_from: dict[LatticeCell, LatticeCell], cur: LatticeCell):
        out = [cur]
        while cur in came_from:
            cur = came_from[cur]
            out.append(cur)
        out.reverse()
        return tuple(out)

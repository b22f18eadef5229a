import math
from dataclasses import dataclass, field

from geo_assign.domain.entities.geography import GeoPoint

# 4 orthogonal + 4 diagonal, fixed order so expansion is deterministic
NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = (
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
)


@dataclass(frozen=True, order=True)
class LatticeCell:
    x: int
    y: int


@dataclass(order=True)
class SearchNode:
    estimated_total: float
    seq: int  # insertion order, breaks ties between equal estimates
    cell: LatticeCell = field(compare=False)
    cost_so_far: float = field(compare=False)


@dataclass(frozen=True)
class BoundedGrid:
    """
    Uniform lattice over a lat/lng box. x runs along longitude, y along latitude,
    both starting at the south-west corner.
    """

    west: float
    south: float
    east: float
    north: float
    cell_deg: float
    width: int
    height: int
    start: LatticeCell
    goal: LatticeCell
    obstacles: frozenset[LatticeCell] = frozenset()

    @classmethod
    def around(
        cls, a: GeoPoint, b: GeoPoint, *, cell_deg: float, margin_deg: float
    ) -> "BoundedGrid":
        west = min(a.longitude, b.longitude) - margin_deg
        east = max(a.longitude, b.longitude) + margin_deg
        south = min(a.latitude, b.latitude) - margin_deg
        north = max(a.latitude, b.latitude) + margin_deg
        width = int(math.ceil((east - west) / cell_deg))
        height = int(math.ceil((north - south) / cell_deg))
        return cls(
            west=west,
            south=south,
            east=east,
            north=north,
            cell_deg=cell_deg,
            width=width,
            height=height,
            start=_cell_of(a, west, south, cell_deg),
            goal=_cell_of(b, west, south, cell_deg),
        )

    def to_cell(self, p: GeoPoint) -> LatticeCell:
        return _cell_of(p, self.west, self.south, self.cell_deg)

    def to_point(self, cell: LatticeCell) -> GeoPoint:
        """South-west corner of `cell`."""
        return GeoPoint(self.south + cell.y * self.cell_deg, self.west + cell.x * self.cell_deg)

    def contains(self, cell: LatticeCell) -> bool:
        return 0 <= cell.x < self.width and 0 <= cell.y < self.height

    def is_passable(self, cell: LatticeCell) -> bool:
        return self.contains(cell) and cell not in self.obstacles

    def neighbors(self, cell: LatticeCell) -> list[LatticeCell]:
        out = []
        for dx, dy in NEIGHBOR_OFFSETS:
            n = LatticeCell(cell.x + dx, cell.y + dy)
            if self.is_passable(n):
                out.append(n)
        return out


def _cell_of(p: GeoPoint, west: float, south: float, cell_deg: float) -> LatticeCell:
    return LatticeCell(int((p.longitude - west) / cell_deg), int((p.latitude - south) / cell_deg))


@dataclass(frozen=True)
class GridPath:
    cells: tuple[LatticeCell, ...] = ()

    @property
    def found(self) -> bool:
        return len(self.cells) > 0

    def __len__(self) -> int:
        return len(self.cells)

"""
Uniform spatial hash used to enforce separation between streamline samples.
"""

import logging
import math
from typing import Iterable, List, Optional, Tuple

Vector = Tuple[float, float]
CellCoords = Tuple[int, int]

logger = logging.getLogger(__name__)


class GridStorage:
    """
    Cartesian grid of cells over the generation domain, each cell holding
    the samples that fall into it. Cell size equals `dsep`.

    Samples are not cloned and separation is not enforced on insert.
    """

    def __init__(self, world_dimensions: Vector, origin: Vector, dsep: float):
        if dsep <= 0:
            raise ValueError(f"dsep must be positive, got {dsep}")
        self.world_dimensions = (float(world_dimensions[0]), float(world_dimensions[1]))
        self.origin = (float(origin[0]), float(origin[1]))
        self.dsep = float(dsep)
        self.dsep_sq = self.dsep * self.dsep

        self.grid_dimensions = (
            int(math.ceil(self.world_dimensions[0] / self.dsep)),
            int(math.ceil(self.world_dimensions[1] / self.dsep)),
        )
        self.grid: List[List[List[Vector]]] = [
            [[] for _ in range(self.grid_dimensions[1])]
            for _ in range(self.grid_dimensions[0])
        ]
        logger.debug(
            "GridStorage %dx%d cells (dsep=%.2f)",
            self.grid_dimensions[0], self.grid_dimensions[1], self.dsep
        )

    def add_all(self, other: "GridStorage"):
        """Add every sample from another grid to this one."""
        for sample in other.samples():
            self.add_sample(sample)

    def add_polyline(self, line: Iterable[Vector]):
        for v in line:
            self.add_sample(v)

    def add_sample(self, v: Vector, coords: Optional[CellCoords] = None):
        if coords is None:
            coords = self.get_sample_coords(v)
        self.grid[coords[0]][coords[1]].append(v)

    def samples(self) -> Iterable[Vector]:
        for column in self.grid:
            for cell in column:
                yield from cell

    def __len__(self) -> int:
        return sum(len(cell) for column in self.grid for cell in column)

    def is_valid_sample(self, v: Vector, d_sq: Optional[float] = None) -> bool:
        """
        Test whether v is at least sqrt(d_sq) away from every stored sample.

        Called at every integration step, so the 3x3 neighbourhood is scanned
        inline rather than through `get_nearby_points`.
        """
        if d_sq is None:
            d_sq = self.dsep_sq
        cx, cy = self.get_sample_coords(v)
        width, height = self.grid_dimensions

        for x in range(cx - 1, cx + 2):
            if x < 0 or x >= width:
                continue
            column = self.grid[x]
            for y in range(cy - 1, cy + 2):
                if y < 0 or y >= height:
                    continue
                if not self.vector_far_from_vectors(v, column[y], d_sq):
                    return False

        return True

    @staticmethod
    def vector_far_from_vectors(v: Vector, vectors: List[Vector], d_sq: float) -> bool:
        vx, vy = v
        for sample in vectors:
            if sample != v:
                dx = sample[0] - vx
                dy = sample[1] - vy
                if dx * dx + dy * dy < d_sq:
                    return False
        return True

    def get_nearby_points(self, v: Vector, distance: float) -> List[Vector]:
        """
        Return samples in the cells around v, including v itself if stored.

        The cell block is square, so results approximate a circle of radius
        `distance` and callers filter further when exactness matters.
        """
        radius = int(math.ceil(distance / self.dsep - 0.5))
        cx, cy = self.get_sample_coords(v)
        width, height = self.grid_dimensions

        out = []
        for x in range(cx - radius, cx + radius + 1):
            if x < 0 or x >= width:
                continue
            for y in range(cy - radius, cy + radius + 1):
                if y < 0 or y >= height:
                    continue
                out.extend(self.grid[x][y])
        return out

    def world_to_grid(self, v: Vector) -> Vector:
        return (v[0] - self.origin[0], v[1] - self.origin[1])

    def get_sample_coords(self, world_v: Vector) -> CellCoords:
        """Cell of a world point. Points outside the domain map to cell (0, 0)."""
        x, y = self.world_to_grid(world_v)
        if (x < 0 or y < 0
                or x >= self.world_dimensions[0] or y >= self.world_dimensions[1]):
            return (0, 0)
        return (
            min(int(math.floor(x / self.dsep)), self.grid_dimensions[0] - 1),
            min(int(math.floor(y / self.dsep)), self.grid_dimensions[1] - 1),
        )

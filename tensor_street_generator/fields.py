"""
Basis fields and the aggregate tensor field they make up.
"""

import enum
import math
from typing import Iterable, List, Optional, Sequence, Tuple

import noise
import numpy as np
from shapely.geometry import Point, Polygon
from shapely.prepared import prep

from .config import BasisFieldSpec, NoiseParams
from .tensor import Tensor

Vector = Tuple[float, float]

# Base frequency of the coherent noise; noise size scales it further
NOISE_FREQUENCY = 0.01


class FieldType(enum.Enum):
    GRID = "grid"
    RADIAL = "radial"


class BasisField:
    """
    Grid or radial contributor to the tensor field.

    The kind is a tag rather than a subclass: weighting is shared and only the
    raw tensor depends on the kind. `size`, `decay` and `theta` may be reassigned
    while tuning a layout interactively.
    """

    def __init__(
        self,
        kind: FieldType,
        centre: Vector,
        size: float,
        decay: float,
        theta: float = 0.0
    ):
        self.kind = FieldType(kind)
        self.centre = (float(centre[0]), float(centre[1]))
        self.size = float(size)
        self.decay = float(decay)
        self.theta = float(theta)

    @classmethod
    def grid(cls, centre: Vector, size: float, decay: float, theta: float) -> "BasisField":
        return cls(FieldType.GRID, centre, size, decay, theta)

    @classmethod
    def radial(cls, centre: Vector, size: float, decay: float) -> "BasisField":
        return cls(FieldType.RADIAL, centre, size, decay)

    @classmethod
    def from_spec(cls, spec: BasisFieldSpec) -> "BasisField":
        return cls(FieldType(spec.kind), spec.centre, spec.size, spec.decay, spec.theta)

    def get_tensor(self, point: Vector) -> Tensor:
        """Unweighted tensor of this field at point."""
        if self.kind is FieldType.GRID:
            return Tensor(1.0, (math.cos(2 * self.theta), math.sin(2 * self.theta)))

        dx = point[0] - self.centre[0]
        dy = point[1] - self.centre[1]
        return Tensor(1.0, (dy * dy - dx * dx, -2 * dx * dy))

    def get_weighted_tensor(self, point: Vector, smooth: bool) -> Tensor:
        return self.get_tensor(point).scale(self.get_tensor_weight(point, smooth))

    def get_tensor_weight(self, point: Vector, smooth: bool) -> float:
        """Interpolates between (0 and 1)^decay."""
        norm_distance = math.hypot(
            point[0] - self.centre[0], point[1] - self.centre[1]
        ) / self.size
        if smooth:
            if norm_distance == 0:
                return math.inf if self.decay > 0 else 1.0
            return norm_distance ** -self.decay
        # x ** 0 would weight the whole plane with 1 beyond 'size'
        if self.decay == 0 and norm_distance >= 1:
            return 0.0
        return max(0.0, (1 - norm_distance)) ** self.decay

    def __repr__(self) -> str:
        return (f"BasisField({self.kind.value}, centre={self.centre}, size={self.size}, "
                f"decay={self.decay}, theta={self.theta})")


class TensorField:
    """
    Combines basis fields, optionally rotating the result by coherent noise.

    Sampling is a pure function of the configuration: the noise is seeded once
    at construction through a coordinate offset drawn from `rng`.
    """

    def __init__(
        self,
        noise_params: Optional[NoiseParams] = None,
        smooth: bool = False,
        rng: Optional[np.random.Generator] = None,
        land: Optional[Sequence[Vector]] = None
    ):
        self.noise_params = noise_params if noise_params is not None else NoiseParams()
        self.smooth = smooth
        self.basis_fields: List[BasisField] = []

        if rng is None:
            rng = np.random.default_rng(0)
        self._noise_offset = tuple(float(v) for v in rng.uniform(0, 256, size=2))

        self.land: Optional[Polygon] = None
        self._prepared_land = None
        if land is not None:
            self.set_land(land)

    @classmethod
    def from_specs(
        cls,
        specs: Iterable[BasisFieldSpec],
        noise_params: Optional[NoiseParams] = None,
        smooth: bool = False,
        rng: Optional[np.random.Generator] = None,
        land: Optional[Sequence[Vector]] = None
    ) -> "TensorField":
        field = cls(noise_params, smooth=smooth, rng=rng, land=land)
        for spec in specs:
            field.add_field(BasisField.from_spec(spec))
        return field

    def enable_global_noise(self, angle: float, size: float):
        self.noise_params = NoiseParams(enabled=True, size=size, angle_degrees=angle)

    def disable_global_noise(self):
        self.noise_params = NoiseParams(
            enabled=False,
            size=self.noise_params.size,
            angle_degrees=self.noise_params.angle_degrees
        )

    def add_grid(self, centre: Vector, size: float, decay: float, theta: float) -> BasisField:
        return self.add_field(BasisField.grid(centre, size, decay, theta))

    def add_radial(self, centre: Vector, size: float, decay: float) -> BasisField:
        return self.add_field(BasisField.radial(centre, size, decay))

    def add_field(self, basis_field: BasisField) -> BasisField:
        self.basis_fields.append(basis_field)
        return basis_field

    def set_land(self, polygon: Sequence[Vector]):
        self.land = Polygon(polygon)
        self._prepared_land = prep(self.land)

    def on_land(self, point: Vector) -> bool:
        if self._prepared_land is None:
            return True
        return self._prepared_land.contains(Point(point[0], point[1]))

    def sample_point(self, point: Vector) -> Tensor:
        # Default field is a grid
        if not self.basis_fields:
            return Tensor(1.0, (0.0, 0.0))

        tensor_acc = Tensor.zero()
        for basis_field in self.basis_fields:
            tensor_acc.add(basis_field.get_weighted_tensor(point, self.smooth), self.smooth)

        if self.noise_params.enabled:
            tensor_acc.rotate(self.get_rotational_noise(
                point, self.noise_params.size, self.noise_params.angle_degrees
            ))

        return tensor_acc

    def get_rotational_noise(self, point: Vector, noise_size: float, noise_angle: float) -> float:
        """Noise angle is in degrees, the result in radians."""
        value = noise.snoise2(
            point[0] / noise_size * NOISE_FREQUENCY + self._noise_offset[0],
            point[1] / noise_size * NOISE_FREQUENCY + self._noise_offset[1]
        )
        return value * noise_angle * math.pi / 180

    def cross_locations(
        self,
        origin: Vector,
        dimensions: Vector,
        diameter: float = 20.0
    ) -> List[Vector]:
        """Regular grid of sample points covering the domain, for field display."""
        n_hor = math.ceil(dimensions[0] / diameter) + 1
        n_ver = math.ceil(dimensions[1] / diameter) + 1
        origin_x = diameter * math.floor(origin[0] / diameter)
        origin_y = diameter * math.floor(origin[1] / diameter)

        return [
            (origin_x + x * diameter, origin_y + y * diameter)
            for x in range(n_hor + 1)
            for y in range(n_ver + 1)
        ]

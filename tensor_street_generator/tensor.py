"""
Orientation tensor: a 2x2 symmetric traceless matrix stored as magnitude plus
two components, with the orientation kept as a doubled angle so that a line
field's 180 degree ambiguity disappears.
"""

import math
from typing import Sequence, Tuple

Vector = Tuple[float, float]

ZERO_VECTOR: Vector = (0.0, 0.0)


class Tensor:
    """
    Mutable orientation tensor.

    `r` is the magnitude and `matrix` holds the two independent components
    [cos 2θ, sin 2θ] (scaled). `add`, `scale` and `rotate` modify the tensor
    in place; `scale` returns self so calls can be chained.
    """

    # Angle between the major and minor direction
    angle_between_roads = math.pi / 2

    def __init__(self, r: float, matrix: Sequence[float]):
        self.r = float(r)
        self.matrix = [float(matrix[0]), float(matrix[1])]
        self._theta = self._calculate_theta()
        self._stale = False

    @classmethod
    def zero(cls) -> "Tensor":
        return cls(0.0, (0.0, 0.0))

    @classmethod
    def from_angle(cls, angle: float) -> "Tensor":
        return cls(1.0, (math.cos(angle * 4), math.sin(angle * 4)))

    @classmethod
    def from_vector(cls, vector: Vector) -> "Tensor":
        t1 = vector[0] ** 2 - vector[1] ** 2
        t2 = 2 * vector[0] * vector[1]
        t3 = t1 ** 2 - t2 ** 2
        t4 = 2 * t1 * t2
        return cls(1.0, (t3, t4))

    @property
    def theta(self) -> float:
        """Orientation in radians (half the doubled angle)."""
        if self._stale:
            self._theta = self._calculate_theta()
            self._stale = False
        return self._theta

    def add(self, tensor: "Tensor", smooth: bool) -> "Tensor":
        for i in range(2):
            self.matrix[i] = self.matrix[i] * self.r + tensor.matrix[i] * tensor.r

        if smooth:
            self.r = math.hypot(self.matrix[0], self.matrix[1])
            if self.r != 0:
                self.matrix[0] /= self.r
                self.matrix[1] /= self.r
        else:
            self.r = 2.0

        self._stale = True
        return self

    def scale(self, s: float) -> "Tensor":
        self.r *= s
        self._stale = True
        return self

    def rotate(self, theta: float) -> "Tensor":
        """Rotate by theta radians, keeping the orientation in [0, pi)."""
        if theta == 0:
            return self

        new_theta = (self.theta + theta) % math.pi

        self.matrix[0] = math.cos(2 * new_theta) * self.r
        self.matrix[1] = math.sin(2 * new_theta) * self.r
        self._theta = new_theta
        self._stale = False
        return self

    def get_major(self) -> Vector:
        # Degenerate case
        if self.r == 0:
            return ZERO_VECTOR
        theta = self.theta
        return (math.cos(theta), math.sin(theta))

    def get_minor(self) -> Vector:
        if self.r == 0:
            return ZERO_VECTOR
        angle = self.theta + self.angle_between_roads
        return (math.cos(angle), math.sin(angle))

    def _calculate_theta(self) -> float:
        if self.r == 0:
            return 0.0
        return math.atan2(self.matrix[1] / self.r, self.matrix[0] / self.r) / 2

    def __repr__(self) -> str:
        return f"Tensor(r={self.r:.4f}, matrix=({self.matrix[0]:.4f}, {self.matrix[1]:.4f}))"

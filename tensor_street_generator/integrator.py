"""
Field integrators turning a tensor field sample into a bounded step.
"""

from typing import Tuple

from .config import StreamlineParams
from .fields import TensorField

Vector = Tuple[float, float]


class FieldIntegrator:
    """Base integrator. Subclasses implement `integrate`."""

    def __init__(self, field: TensorField, params: StreamlineParams):
        self.field = field
        self.params = params

    def integrate(self, point: Vector, major: bool) -> Vector:
        raise NotImplementedError

    def sample_field_vector(self, point: Vector, major: bool) -> Vector:
        tensor = self.field.sample_point(point)
        if major:
            return tensor.get_major()
        return tensor.get_minor()

    def on_land(self, point: Vector) -> bool:
        return self.field.on_land(point)


class EulerIntegrator(FieldIntegrator):

    def integrate(self, point: Vector, major: bool) -> Vector:
        v = self.sample_field_vector(point, major)
        dstep = self.params.dstep
        return (v[0] * dstep, v[1] * dstep)


class RK4Integrator(FieldIntegrator):
    """
    Fourth-order step with a single diagonal midpoint sample.

    k2 and k3 are both taken at point + (dstep/2, dstep/2) and k4 at
    point + (dstep, dstep), i.e. offset along the diagonal rather than along
    the local direction. Traced shapes depend on this, so keep it as is.
    No sign correction is applied; callers keep the direction consistent.
    """

    def integrate(self, point: Vector, major: bool) -> Vector:
        dstep = self.params.dstep
        half = dstep / 2
        k1 = self.sample_field_vector(point, major)
        k23 = self.sample_field_vector((point[0] + half, point[1] + half), major)
        k4 = self.sample_field_vector((point[0] + dstep, point[1] + dstep), major)

        factor = dstep / 6
        return (
            (k1[0] + 4 * k23[0] + k4[0]) * factor,
            (k1[1] + 4 * k23[1] + k4[1]) * factor,
        )


def create_integrator(name: str, field: TensorField, params: StreamlineParams) -> FieldIntegrator:
    if name == "rk4":
        return RK4Integrator(field, params)
    if name == "euler":
        return EulerIntegrator(field, params)
    raise ValueError(f"Unknown integrator: {name}")

import math

import numpy as np
import pytest

from tensor_street_generator.config import BasisFieldSpec, NoiseParams
from tensor_street_generator.fields import BasisField, FieldType, TensorField


class TestBasisField:

    def test_grid_tensor_is_constant(self):
        field = BasisField.grid((0, 0), 100, 0, math.pi / 4)
        for point in [(0, 0), (30, -12), (1e4, 5)]:
            tensor = field.get_tensor(point)
            assert tensor.matrix == pytest.approx([0.0, 1.0], abs=1e-12)

    def test_radial_major_direction_is_tangent(self):
        field = BasisField.radial((0, 0), 100, 0)
        major = field.get_tensor((10, 0)).get_major()
        assert abs(major[0]) == pytest.approx(0.0, abs=1e-12)
        assert abs(major[1]) == pytest.approx(1.0)

        major = field.get_tensor((0, 10)).get_major()
        assert abs(major[0]) == pytest.approx(1.0)

    def test_sharp_weight_without_decay_is_a_disc(self):
        field = BasisField.grid((0, 0), 10, 0, 0)
        assert field.get_tensor_weight((5, 0), smooth=False) == 1.0
        assert field.get_tensor_weight((10, 0), smooth=False) == 0.0
        assert field.get_tensor_weight((50, 0), smooth=False) == 0.0

    def test_sharp_weight_decays(self):
        field = BasisField.grid((0, 0), 10, 2, 0)
        assert field.get_tensor_weight((5, 0), smooth=False) == pytest.approx(0.25)
        assert field.get_tensor_weight((0, 0), smooth=False) == pytest.approx(1.0)
        assert field.get_tensor_weight((20, 0), smooth=False) == 0.0

    def test_smooth_weight(self):
        field = BasisField.radial((0, 0), 10, 1)
        assert field.get_tensor_weight((20, 0), smooth=True) == pytest.approx(0.5)
        no_decay = BasisField.radial((0, 0), 10, 0)
        assert no_decay.get_tensor_weight((500, 0), smooth=True) == pytest.approx(1.0)

    def test_weighted_tensor_scales_magnitude(self):
        field = BasisField.grid((0, 0), 10, 2, 0)
        assert field.get_weighted_tensor((5, 0), smooth=False).r == pytest.approx(0.25)

    def test_from_spec(self):
        field = BasisField.from_spec(BasisFieldSpec("radial", (1, 2), 30, 1.5))
        assert field.kind is FieldType.RADIAL
        assert field.centre == (1.0, 2.0)
        assert field.size == 30.0
        assert field.decay == 1.5

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            BasisFieldSpec("spiral", (0, 0), 10, 0)

    def test_parameters_can_be_tuned(self):
        field = BasisField.grid((0, 0), 10, 0, 0)
        field.size = 100
        assert field.get_tensor_weight((50, 0), smooth=False) == 1.0


class TestTensorField:

    def test_empty_field_is_default_grid(self):
        tensor = TensorField().sample_point((123, 456))
        assert tensor.r == 1.0
        assert tensor.get_major() == pytest.approx((1.0, 0.0))

    def test_single_grid_field_direction(self, straight_field):
        for point in [(0, 0), (200, 200), (399, 17)]:
            tensor = straight_field.sample_point(point)
            assert tensor.get_major() == pytest.approx((1.0, 0.0))
            assert tensor.get_minor() == pytest.approx((0.0, 1.0), abs=1e-12)

    def test_sampling_is_pure(self):
        noise_params = NoiseParams(enabled=True, size=2, angle_degrees=45)
        field_a = TensorField(noise_params, rng=np.random.default_rng(5))
        field_b = TensorField(noise_params, rng=np.random.default_rng(5))
        for field in (field_a, field_b):
            field.add_grid((100, 100), 300, 1, 0.3)
            field.add_radial((250, 50), 200, 2)

        points = [(10.5, 20.25), (100, 100), (260, 40), (400, 400)]
        first = [field_a.sample_point(p).theta for p in points]
        again = [field_a.sample_point(p).theta for p in points]
        other = [field_b.sample_point(p).theta for p in points]
        assert first == again
        assert first == other

    def test_noise_rotates_within_angle(self):
        plain = TensorField(NoiseParams(enabled=False))
        noisy = TensorField(NoiseParams(enabled=True, size=2, angle_degrees=10),
                            rng=np.random.default_rng(3))
        for field in (plain, noisy):
            field.add_grid((0, 0), 1e5, 0, 0.5)

        for point in [(0, 0), (37, 81), (500, 500)]:
            difference = noisy.sample_point(point).theta - plain.sample_point(point).theta
            assert abs(difference) <= math.radians(10) * 1.05

    def test_disable_global_noise(self):
        field = TensorField(rng=np.random.default_rng(0))
        field.enable_global_noise(45, 2)
        assert field.noise_params.enabled
        field.disable_global_noise()
        assert not field.noise_params.enabled
        assert field.noise_params.angle_degrees == 45

    def test_from_specs(self):
        specs = [
            BasisFieldSpec("grid", (0, 0), 10, 0, 0.5),
            BasisFieldSpec("radial", (5, 5), 20, 1),
        ]
        field = TensorField.from_specs(specs)
        assert [f.kind for f in field.basis_fields] == [FieldType.GRID, FieldType.RADIAL]

    def test_land_polygon(self):
        field = TensorField(land=[(0, 0), (100, 0), (100, 100), (0, 100)])
        assert field.on_land((50, 50))
        assert not field.on_land((150, 50))
        assert TensorField().on_land((1e6, -1e6))

    def test_cross_locations_cover_domain(self):
        points = TensorField().cross_locations((0, 0), (100, 100), 20)
        assert len(points) == 49
        assert points[0] == (0, 0)
        assert (120, 120) in points

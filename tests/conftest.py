import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

from tensor_street_generator.config import NoiseParams, StreamlineParams
from tensor_street_generator.fields import TensorField
from tensor_street_generator.integrator import RK4Integrator
from tensor_street_generator.streamlines import StreamlineGenerator


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def small_params():
    return StreamlineParams(
        dsep=20.0,
        dtest=10.0,
        dstep=1.0,
        d_circle_join=5.0,
        d_lookahead=40.0,
        path_iterations=2000,
        seed_tries=100,
    )


@pytest.fixture
def straight_field():
    """Uniform horizontal field over a 400 x 400 domain."""
    field = TensorField(NoiseParams(enabled=False))
    field.add_grid((200.0, 200.0), 10000.0, 0.0, 0.0)
    return field


@pytest.fixture
def radial_field():
    field = TensorField(NoiseParams(enabled=False))
    field.add_radial((200.0, 200.0), 1000.0, 0.0)
    return field


@pytest.fixture
def make_generator(small_params):
    def _make(field, params=None, dimensions=(400.0, 400.0), seed=0, **kwargs):
        params = params or small_params
        return StreamlineGenerator(
            RK4Integrator(field, params),
            (0.0, 0.0),
            dimensions,
            params,
            rng=np.random.default_rng(seed),
            **kwargs
        )
    return _make

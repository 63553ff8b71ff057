import math

import pytest

from tensor_street_generator.config import (
    BasisFieldSpec,
    GeneratorConfig,
    NoiseParams,
    StreamlineParams,
)
from tensor_street_generator.generator import StreetNetworkGenerator
from tensor_street_generator.graph import Graph
from tensor_street_generator.integrator import EulerIntegrator
from tensor_street_generator.validation import NetworkValidator


@pytest.fixture
def small_config():
    return GeneratorConfig(
        seed=11,
        world_width=300,
        world_height=300,
        random_field_count=4,
        main_roads=StreamlineParams(
            dsep=50, dtest=20, dstep=1, d_lookahead=80,
            path_iterations=800, seed_tries=40
        ),
    )


def test_generate_returns_graph_and_streamlines(small_config):
    graph, streamlines, metadata = StreetNetworkGenerator(small_config).generate()

    assert isinstance(graph, Graph)
    assert streamlines
    assert graph.road_count == len(streamlines)
    assert metadata["main_streamlines"] == len(streamlines)
    assert metadata["minor_streamlines"] == 0
    assert metadata["vertices"] == len(graph.vertices)
    assert metadata["edges"] == len(graph.edges)
    assert metadata["seed"] == 11
    assert set(metadata["timings"]) == {"tensor_field", "main_roads", "graph"}


def test_generation_is_reproducible(small_config):
    first_graph, first_lines, _ = StreetNetworkGenerator(small_config).generate()
    second_graph, second_lines, _ = StreetNetworkGenerator(small_config).generate()

    assert first_lines == second_lines
    assert [v.point for v in first_graph.vertices] == [v.point for v in second_graph.vertices]
    assert [(e.start, e.end, e.road_index) for e in first_graph.edges] == \
        [(e.start, e.end, e.road_index) for e in second_graph.edges]


def test_seed_argument_overrides_config(small_config):
    generator = StreetNetworkGenerator(small_config, seed=3)
    generator.build_tensor_field()
    assert generator.seed == 3
    assert generator.metadata()["seed"] == 3


def test_random_field_layout(small_config):
    generator = StreetNetworkGenerator(small_config)
    generator.build_tensor_field()

    specs = generator.field_specs
    assert len(specs) == 4
    assert specs[0].centre[1] == 0
    assert specs[-1].centre[1] == pytest.approx(299)
    for spec in specs:
        assert 0 <= spec.centre[0] <= 299
        assert 30 <= spec.size <= 75
        assert spec.decay == 0
        if spec.kind == "grid":
            assert 0 <= spec.theta <= math.pi / 2

    assert 30 <= generator.noise_params.angle_degrees <= 60
    assert len(generator.tensor_field.basis_fields) == 4


def test_explicit_fields_are_used(small_config):
    small_config.fields = [BasisFieldSpec("grid", (150, 150), 1000, 0, 0)]
    small_config.noise = NoiseParams(enabled=False)
    generator = StreetNetworkGenerator(small_config)
    field = generator.build_tensor_field()

    assert generator.field_specs == small_config.fields
    assert not generator.noise_params.enabled
    assert field.sample_point((10, 10)).get_major() == pytest.approx((1.0, 0.0))


def test_fixed_noise_angle(small_config):
    small_config.randomize_noise_angle = False
    small_config.noise = NoiseParams(enabled=True, size=3, angle_degrees=12)
    generator = StreetNetworkGenerator(small_config)
    generator.build_tensor_field()
    assert generator.noise_params.angle_degrees == 12


def test_minor_roads_see_main_roads(small_config):
    small_config.minor_roads = StreamlineParams(
        dsep=25, dtest=10, dstep=1, d_lookahead=40,
        path_iterations=800, seed_tries=20
    )
    generator = StreetNetworkGenerator(small_config)
    graph, streamlines, metadata = generator.generate()

    main_grid = generator.main_roads.major_grid
    assert len(generator.minor_roads.major_grid) >= len(main_grid)
    assert len(streamlines) == metadata["main_streamlines"] + metadata["minor_streamlines"]
    assert streamlines[:metadata["main_streamlines"]] == generator.main_roads.all_streamlines_simple
    assert "minor_roads" in metadata["timings"]
    assert generator.minor_roads.integrator.params is small_config.minor_roads


def test_iter_generation_yields_every_streamline(small_config):
    generator = StreetNetworkGenerator(small_config)
    yielded = list(generator.iter_generation())

    assert all(name == "main" for name, _ in yielded)
    assert len(yielded) == len(generator.main_roads.all_streamlines)
    assert generator.graph is not None


def test_land_polygon_limits_roads(small_config):
    small_config.land_polygon = [(0, 0), (150, 0), (150, 300), (0, 300)]
    generator = StreetNetworkGenerator(small_config)
    generator.generate()

    assert generator.main_roads.all_streamlines
    for streamline in generator.main_roads.all_streamlines:
        # Tracing and joining stop a few steps past the coast
        assert max(p[0] for p in streamline) < 160


def test_each_pass_has_its_own_integrator(small_config):
    small_config.integrator = "euler"
    generator = StreetNetworkGenerator(small_config)
    next(generator.iter_generation())

    integrator = generator.main_roads.integrator
    assert isinstance(integrator, EulerIntegrator)
    assert integrator.params is small_config.main_roads
    assert integrator.field is generator.tensor_field


@pytest.mark.parametrize("seed", range(6))
def test_generated_graph_is_planar(seed):
    config = GeneratorConfig(
        seed=seed,
        world_width=400,
        world_height=400,
        random_field_count=5,
        main_roads=StreamlineParams(dsep=40),
    )
    graph, _, _ = StreetNetworkGenerator(config).generate()

    assert graph.edges
    # A road may cross itself; only crossings between roads count
    crossings = [
        (i, j) for i, j in NetworkValidator.find_crossings(graph)
        if graph.edges[i].road_index != graph.edges[j].road_index
    ]
    assert crossings == []

import logging

import matplotlib.pyplot as plt
import pytest

from tensor_street_generator.config import GeneratorConfig, StreamlineParams
from tensor_street_generator.examples import generate_network
from tensor_street_generator.graph import Graph
from tensor_street_generator.metrics import MorphologyMetrics
from tensor_street_generator.visualization import (
    plot_generation_overview,
    plot_graph,
    plot_orientation_histogram,
    plot_streamlines,
    plot_tensor_field,
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def test_plot_tensor_field(radial_field):
    ax = plot_tensor_field(radial_field, (0, 0), (400, 400), diameter=50)
    assert len(ax.collections) == 2


def test_plot_streamlines_and_graph():
    streamlines = [[(0, 0), (10, 0)], [(5, -5), (5, 5)]]
    graph = Graph.from_streamlines(streamlines, merge_distance=1)

    ax = plot_streamlines(streamlines, (0, 0), (20, 20), show_endpoints=True)
    assert len(ax.lines) == 2

    ax = plot_graph(graph, (0, 0), (20, 20), show_vertex_degrees=True)
    assert len(ax.lines) == 4


def test_plot_orientation_histogram():
    ax = plot_orientation_histogram([0, 90, 180], [3, 1])
    assert len(ax.patches) == 4


def test_generation_overview(straight_field):
    streamlines = [[(0, 10), (400, 10)], [(10, 0), (10, 400)]]
    graph = Graph.from_streamlines(streamlines)
    morph = MorphologyMetrics.compute_all(graph, (400, 400), streamlines)

    fig = plot_generation_overview(straight_field, streamlines, graph, morph, (0, 0), (400, 400))
    assert len(fig.axes) == 4


def test_command_line(tmp_path):
    config = GeneratorConfig(
        world_width=200,
        world_height=200,
        random_field_count=3,
        main_roads=StreamlineParams(dsep=50, dtest=20, d_lookahead=60,
                                    path_iterations=500, seed_tries=20),
    )
    config_path = tmp_path / "config.json"
    config.to_json(str(config_path))

    package_logger = logging.getLogger("tensor_street_generator")
    try:
        status = generate_network.main([
            "--config", str(config_path),
            "--output", str(tmp_path / "out"),
            "--seed", "4",
        ])
    finally:
        package_logger.handlers.clear()
        package_logger.setLevel(logging.NOTSET)

    assert status == 0
    assert (tmp_path / "out" / "generated_report.md").exists()
    assert (tmp_path / "out" / "generated_overview.png").exists()

import math

import numpy as np
import pytest
from shapely.geometry import LineString

from tensor_street_generator.utils import (
    SegmentIndex,
    angle_between,
    calculate_bearing,
    compute_entropy,
    compute_orientation_histogram,
    polyline_bounds,
    segment_intersection,
    simplify,
    snap_to_vertex,
)


def _random_walk(rng, n):
    steps = rng.normal(size=(n, 2))
    points = np.cumsum(steps, axis=0)
    return [(float(x), float(y)) for x, y in points]


@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize("tolerance", [0.1, 0.5, 2.0])
def test_simplify_is_idempotent(seed, tolerance):
    line = _random_walk(np.random.default_rng(seed), 200)
    once = simplify(line, tolerance)
    assert simplify(once, tolerance) == once


def test_simplify_keeps_endpoints_and_drops_collinear_points():
    line = [(float(i), 0.0) for i in range(20)]
    assert simplify(line, 0.5) == [(0.0, 0.0), (19.0, 0.0)]


def test_simplify_keeps_corners():
    line = [(0.0, 0.0), (5.0, 0.1), (10.0, 0.0), (10.0, 10.0)]
    assert simplify(line, 0.5) == [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)]


def test_simplify_short_lines_unchanged():
    assert simplify([(1.0, 2.0)], 1) == [(1.0, 2.0)]
    assert simplify([(1.0, 2.0), (3.0, 4.0)], 1) == [(1.0, 2.0), (3.0, 4.0)]


def test_segment_intersection_crossing():
    assert segment_intersection((0, 0), (10, 0), (5, -5), (5, 5)) == pytest.approx((5.0, 0.0))


def test_segment_intersection_includes_endpoints():
    assert segment_intersection((0, 0), (10, 0), (10, 0), (10, 5)) == pytest.approx((10.0, 0.0))


def test_segment_intersection_misses():
    assert segment_intersection((0, 0), (10, 0), (5, 1), (5, 5)) is None
    assert segment_intersection((0, 0), (10, 0), (0, 1), (10, 1)) is None


def test_collinear_overlap_is_not_an_intersection():
    assert segment_intersection((0, 0), (10, 0), (5, 0), (15, 0)) is None


def test_snap_to_vertex():
    candidates = [(0, 0), (100, 100), (103, 100)]
    assert snap_to_vertex((104, 101), candidates, 10) == 2
    assert snap_to_vertex((101, 100), candidates, 10) == 1
    assert snap_to_vertex((50, 50), candidates, 10) is None
    assert snap_to_vertex((5, 5), [], 10) is None


def test_snap_tolerance_is_exclusive():
    assert snap_to_vertex((110, 100), [(100, 100)], 10) is None


def test_polyline_bounds():
    assert polyline_bounds([(0.5, 1.5), (3.2, -2.7)]) == ((0, -3), (4, 2))


def test_bearing_and_angles():
    assert calculate_bearing((0, 0), (0, 1)) == pytest.approx(90.0)
    assert calculate_bearing((0, 0), (-1, 0)) == pytest.approx(0.0)
    assert calculate_bearing((0, 0), (-1, -1)) == pytest.approx(45.0)
    assert angle_between((1, 0), (0, 1)) == pytest.approx(math.pi / 2)
    assert angle_between((1, 0), (-1, 0)) == pytest.approx(math.pi)


def test_orientation_entropy():
    horizontal = [((0, 0), (1, 0)), ((0, 5), (3, 5))]
    _, counts = compute_orientation_histogram(horizontal, 18)
    assert counts[0] == 2
    assert compute_entropy(counts) == 0.0

    mixed = horizontal + [((0, 0), (0, 1)), ((2, 0), (2, 7))]
    _, counts = compute_orientation_histogram(mixed, 18)
    assert compute_entropy(counts) == pytest.approx(1.0)

    edges, counts = compute_orientation_histogram([], 18)
    assert len(edges) == 19
    assert compute_entropy(counts) == 0.0


def test_segment_index_crossings():
    index = SegmentIndex()
    index.add_segment((0, 0), (10, 0), 0, 1)
    index.add_segment((5, -5), (5, 5), 2, 3)
    index.add_segment((0, 0), (0, 10), 0, 4)

    line = LineString([(2, -2), (2, 2)])
    assert index.find_crossings(line) == [0]
    assert index.find_crossings(line, ignore_nodes={0}) == []
    assert index.find_crossings(LineString([(20, 20), (30, 30)])) == []

import numpy as np
import pytest

from tensor_street_generator.grid_storage import GridStorage


def _brute_force_valid(point, samples, d_sq):
    for sample in samples:
        if sample == point:
            continue
        dx = sample[0] - point[0]
        dy = sample[1] - point[1]
        if dx * dx + dy * dy < d_sq:
            return False
    return True


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_is_valid_sample_matches_brute_force(seed):
    rng = np.random.default_rng(seed)
    grid = GridStorage((200, 150), (-50, 25), 12.0)

    samples = [
        (float(x) - 50, float(y) + 25)
        for x, y in zip(rng.uniform(0, 200, 60), rng.uniform(0, 150, 60))
    ]
    grid.add_polyline(samples)

    queries = [
        (float(x) - 50, float(y) + 25)
        for x, y in zip(rng.uniform(0, 200, 300), rng.uniform(0, 150, 300))
    ]
    for query in queries + samples[:10]:
        expected = _brute_force_valid(query, samples, 144.0)
        assert grid.is_valid_sample(query) == expected


def test_custom_distance():
    grid = GridStorage((100, 100), (0, 0), 20)
    grid.add_sample((50, 50))
    assert not grid.is_valid_sample((55, 50), 30)
    assert grid.is_valid_sample((55, 50), 25)


def test_point_itself_does_not_invalidate():
    grid = GridStorage((100, 100), (0, 0), 10)
    grid.add_sample((5.0, 5.0))
    assert grid.is_valid_sample((5.0, 5.0))


def test_out_of_bounds_samples_land_in_first_cell():
    grid = GridStorage((100, 100), (0, 0), 10)
    grid.add_sample((-50, -50))
    grid.add_sample((100, 3))
    assert grid.grid[0][0] == [(-50, -50), (100, 3)]


def test_sample_coords():
    grid = GridStorage((100, 100), (10, 20), 10)
    assert grid.get_sample_coords((10, 20)) == (0, 0)
    assert grid.get_sample_coords((35.5, 99.9)) == (2, 7)
    assert grid.get_sample_coords((109.999, 119.999)) == (9, 9)


def test_get_nearby_points_radius():
    grid = GridStorage((100, 100), (0, 0), 10)
    grid.add_sample((55, 55))
    grid.add_sample((75, 55))

    assert grid.get_nearby_points((55, 55), 10) == [(55, 55)]
    assert sorted(grid.get_nearby_points((55, 55), 20)) == [(55, 55), (75, 55)]


def test_add_all_merges_samples():
    coarse = GridStorage((100, 100), (0, 0), 30)
    coarse.add_polyline([(1, 1), (50, 50), (99, 2)])
    fine = GridStorage((100, 100), (0, 0), 10)
    fine.add_sample((20, 20))

    fine.add_all(coarse)
    assert len(fine) == 4
    assert not fine.is_valid_sample((50, 52))


def test_non_positive_dsep_rejected():
    with pytest.raises(ValueError):
        GridStorage((100, 100), (0, 0), 0)

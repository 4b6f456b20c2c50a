import numpy as np
import pytest

from hpcdrills.jacobi import (
    JacobiConfig,
    Subdomain,
    exchange_halos,
    jacobi,
    row_bounds,
)


def _build(config: JacobiConfig, nprocs: int, global_f: np.ndarray) -> list[Subdomain]:
    subdomains = []
    for rank in range(nprocs):
        first, last = row_bounds(rank, nprocs, config.rows)
        subdomains.append(
            Subdomain(
                rank,
                nprocs,
                first,
                last,
                np.zeros((last - first + 1, config.cols)),
                global_f[first:last + 1].copy(),
            )
        )
    return subdomains


def _assemble(subdomains: list[Subdomain], rows: int) -> np.ndarray:
    grid = np.full((rows, subdomains[0].cols), np.nan)
    for sd in subdomains:
        grid[sd.row_first:sd.row_last + 1] = sd.u
    return grid


@pytest.fixture
def global_f():
    return np.random.default_rng(7).random((12, 10))


def test_row_bounds_single_process_covers_grid():
    assert row_bounds(0, 1, 2000) == (0, 1999)


@pytest.mark.parametrize("nprocs", [1, 2, 3, 5])
def test_row_bounds_strips_overlap_by_two_rows(nprocs):
    bounds = [row_bounds(r, nprocs, 50) for r in range(nprocs)]
    assert bounds[0][0] == 0
    assert bounds[-1][1] == 49
    for (_, left_last), (right_first, _) in zip(bounds, bounds[1:]):
        assert right_first == left_last - 1


@pytest.mark.parametrize("rank,nprocs,rows", [(3, 3, 10), (-1, 2, 10), (0, 0, 10), (0, 1, 2)])
def test_row_bounds_rejects_bad_input(rank, nprocs, rows):
    with pytest.raises(ValueError):
        row_bounds(rank, nprocs, rows)


def test_config_spacing_and_validation():
    config = JacobiConfig(rows=5, cols=3)
    assert config.dx == pytest.approx(1.0)
    assert config.dy == pytest.approx(0.5)
    with pytest.raises(ValueError):
        JacobiConfig(rows=2)


def test_subdomain_rejects_wrong_shape():
    with pytest.raises(ValueError):
        Subdomain(0, 1, 0, 4, np.zeros((3, 4)), np.zeros((3, 4)))


def test_exchange_fills_halo_rows_with_neighbour_values():
    config = JacobiConfig(rows=12, cols=4)
    subdomains = _build(config, 3, np.zeros((12, 4)))
    for sd in subdomains:
        sd.u[:] = np.arange(sd.row_first, sd.row_last + 1)[:, None] * 1.0
        sd.u[0] = -1.0
        sd.u[-1] = -1.0
    exchange_halos(subdomains)
    for index, sd in enumerate(subdomains):
        expected = np.arange(sd.row_first, sd.row_last + 1) * 1.0
        if index == 0:
            expected[0] = -1.0
        if index == len(subdomains) - 1:
            expected[-1] = -1.0
        np.testing.assert_array_equal(sd.uold[:, 0], expected)


def test_exchange_requires_rank_order():
    config = JacobiConfig(rows=12, cols=4)
    subdomains = _build(config, 2, np.zeros((12, 4)))
    with pytest.raises(ValueError):
        exchange_halos(list(reversed(subdomains)))


@pytest.mark.parametrize("nprocs", [2, 3, 4])
def test_decomposition_does_not_change_result(global_f, nprocs):
    config = JacobiConfig(rows=12, cols=10, tolerance=1e-14, iter_max=20)
    single = _build(config, 1, global_f)
    split = _build(config, nprocs, global_f)
    iters_single, res_single = jacobi(single, config)
    iters_split, res_split = jacobi(split, config)
    assert iters_single == iters_split == 20
    assert res_split == pytest.approx(res_single, rel=1e-12)
    np.testing.assert_allclose(
        _assemble(split, 12), _assemble(single, 12), rtol=1e-12, atol=1e-15
    )


def test_boundary_stays_zero(global_f):
    config = JacobiConfig(rows=12, cols=10, iter_max=8)
    subdomains = _build(config, 3, global_f)
    jacobi(subdomains, config)
    grid = _assemble(subdomains, 12)
    assert not np.isnan(grid).any()
    assert np.all(grid[0] == 0.0) and np.all(grid[-1] == 0.0)
    assert np.all(grid[:, 0] == 0.0) and np.all(grid[:, -1] == 0.0)
    assert np.any(grid[1:-1, 1:-1] != 0.0)


def test_residual_shrinks_with_more_iterations(global_f):
    few = JacobiConfig(rows=12, cols=10, tolerance=1e-14, iter_max=1)
    many = JacobiConfig(rows=12, cols=10, tolerance=1e-14, iter_max=30)
    _, res_few = jacobi(_build(few, 2, global_f), few)
    _, res_many = jacobi(_build(many, 2, global_f), many)
    assert res_many < res_few


def test_loose_tolerance_stops_after_one_iteration(global_f):
    config = JacobiConfig(rows=12, cols=10, tolerance=1e6, iter_max=50)
    iterations, residual = jacobi(_build(config, 2, global_f), config)
    assert iterations == 1
    assert residual <= config.tolerance


def test_zero_iterations_leaves_grid_untouched(global_f):
    config = JacobiConfig(rows=12, cols=10, tolerance=1e-10, iter_max=0)
    subdomains = _build(config, 2, global_f)
    iterations, residual = jacobi(subdomains, config)
    assert iterations == 0
    assert residual == pytest.approx(10.0 * config.tolerance)
    assert all(np.all(sd.u == 0.0) for sd in subdomains)


def test_column_count_must_match_config(global_f):
    config = JacobiConfig(rows=12, cols=10)
    subdomains = _build(config, 2, global_f)
    with pytest.raises(ValueError):
        jacobi(subdomains, JacobiConfig(rows=12, cols=11))
import numpy as np
import pytest

from hpcdrills.poisson2d import (
    PoissonResult,
    main,
    make_rhs,
    row_chunks,
    solve_parallel,
    solve_serial,
)


def test_rhs_boundary_is_zero_and_interior_positive():
    rhs = make_rhs(9, 11)
    assert rhs.shape == (9, 11)
    assert np.all(rhs[0, :] == 0.0) and np.all(rhs[-1, :] == 0.0)
    assert np.all(rhs[:, 0] == 0.0) and np.all(rhs[:, -1] == 0.0)
    assert np.all(rhs[1:-1, 1:-1] > 0.0)


def test_rhs_peaks_at_origin():
    rhs = make_rhs(9, 9)
    assert rhs[4, 4] == pytest.approx(1.0)
    assert rhs.max() == rhs[4, 4]


def test_rhs_is_symmetric():
    rhs = make_rhs(13, 13)
    assert np.allclose(rhs, rhs.T)
    assert np.allclose(rhs, rhs[::-1, :])


def test_rhs_rejects_tiny_grid():
    with pytest.raises(ValueError):
        make_rhs(2, 10)


def test_single_thread_chunk_is_whole_interior():
    assert row_chunks(10, 1) == [(1, 9)]


@pytest.mark.parametrize("ny,threads", [(10, 3), (17, 4), (8, 8), (5, 7)])
def test_chunks_cover_interior_without_overlap(ny, threads):
    chunks = row_chunks(ny, threads)
    assert len(chunks) == threads
    rows = [r for start, end in chunks for r in range(start, end)]
    assert sorted(rows) == list(range(1, ny - 1))
    assert len(rows) == len(set(rows))


def test_chunks_reject_zero_threads():
    with pytest.raises(ValueError):
        row_chunks(10, 0)


def test_serial_stops_at_iteration_limit():
    result = solve_serial(make_rhs(12, 12), iter_max=7, tol=0.0)
    assert isinstance(result, PoissonResult)
    assert result.iterations == 7
    assert result.history[0][0] == 0


def test_serial_stops_once_tolerance_met():
    result = solve_serial(make_rhs(12, 12), iter_max=50, tol=10.0)
    assert result.iterations == 1


def test_first_step_is_quarter_of_rhs():
    rhs = make_rhs(10, 10)
    result = solve_serial(rhs, iter_max=1, tol=0.0)
    assert np.allclose(result.solution[1:-1, 1:-1], -0.25 * rhs[1:-1, 1:-1])
    assert result.error == pytest.approx(np.max(0.25 * rhs))


def test_solution_has_periodic_halos():
    a = solve_serial(make_rhs(10, 14), iter_max=5, tol=0.0).solution
    assert np.array_equal(a[0, 1:-1], a[-2, 1:-1])
    assert np.array_equal(a[-1, 1:-1], a[1, 1:-1])
    assert np.array_equal(a[1:-1, 0], a[1:-1, -2])
    assert np.array_equal(a[1:-1, -1], a[1:-1, 1])


def test_history_reported_every_hundred_iterations():
    result = solve_serial(make_rhs(6, 6), iter_max=250, tol=0.0)
    assert [it for it, _ in result.history] == [0, 100, 200]


def test_error_decreases_over_iterations():
    result = solve_serial(make_rhs(8, 8), iter_max=201, tol=0.0)
    errors = [e for _, e in result.history]
    assert errors == sorted(errors, reverse=True)


@pytest.mark.parametrize("threads", [1, 2, 3, 5])
def test_parallel_matches_serial(threads):
    rhs = make_rhs(16, 12)
    serial = solve_serial(rhs, iter_max=30, tol=1e-8)
    parallel = solve_parallel(rhs, iter_max=30, tol=1e-8, num_threads=threads)
    assert parallel.iterations == serial.iterations
    assert np.allclose(parallel.solution, serial.solution)
    assert parallel.error == pytest.approx(serial.error)


def test_parallel_rejects_bad_rhs():
    with pytest.raises(ValueError):
        solve_parallel(np.zeros(5), num_threads=2)


def test_main_with_serial_check(capsys):
    code = main(["--ny", "16", "--nx", "16", "--iter-max", "20", "--threads", "3", "--serial-test"])
    assert code == 0
    out = capsys.readouterr().out
    assert "Jacobi relaxation Calculation: 16 x 16 mesh" in out
    assert "Parallel Execution..." in out
    assert "Speedup" in out


def test_main_parallel_only(capsys):
    assert main(["--ny", "8", "--nx", "8", "--iter-max", "5", "--threads", "2"]) == 0
    out = capsys.readouterr().out
    assert "Elapsed Time (s) - Parallel:" in out
    assert "    0, " in out
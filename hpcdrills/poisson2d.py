"""Jacobi relaxation of a 2D Poisson problem with periodic boundaries."""

from __future__ import annotations

import argparse
import math
import os
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

DEFAULT_NY = 4096
DEFAULT_NX = 4096
DEFAULT_ITER_MAX = 1000
DEFAULT_TOL = 1.0e-5
REPORT_EVERY = 100


@dataclass
class PoissonResult:
    """Solution grid, iteration count, final error and periodic error reports."""

    solution: np.ndarray
    iterations: int
    error: float
    history: list[tuple[int, float]] = field(default_factory=list)


def make_rhs(ny: int, nx: int) -> np.ndarray:
    """Right-hand side exp(-10 (x^2 + y^2)) on [-1, 1]^2, zero on the boundary."""
    if ny < 3 or nx < 3:
        raise ValueError("the grid needs at least 3 points in each direction")
    x = -1.0 + 2.0 * np.arange(nx) / (nx - 1)
    y = -1.0 + 2.0 * np.arange(ny) / (ny - 1)
    rhs = np.zeros((ny, nx))
    yy, xx = np.meshgrid(y[1:-1], x[1:-1], indexing="ij")
    rhs[1:-1, 1:-1] = np.exp(-10.0 * (xx * xx + yy * yy))
    return rhs


def row_chunks(ny: int, num_threads: int) -> list[tuple[int, int]]:
    """Interior row range [start, end) handled by each thread.

    Rows are split into chunks of ceil(ny / num_threads) and clipped to the
    interior; a thread's range may be empty.
    """
    if num_threads <= 0:
        raise ValueError("num_threads must be positive")
    chunk = math.ceil(ny / num_threads)
    chunks = []
    for thread in range(num_threads):
        start = thread * chunk
        end = start + chunk
        chunks.append((max(start, 1), min(end, ny - 1)))
    return chunks


def _check_rhs(rhs: np.ndarray) -> np.ndarray:
    values = np.asarray(rhs, dtype=np.float64)
    if values.ndim != 2 or values.shape[0] < 3 or values.shape[1] < 3:
        raise ValueError("rhs must be a 2D grid of at least 3 x 3 points")
    return values


def _relax_rows(a: np.ndarray, a_new: np.ndarray, rhs: np.ndarray, start: int, end: int) -> float:
    """Compute new interior values for rows [start, end); return the largest change."""
    if start >= end:
        return 0.0
    rows = slice(start, end)
    a_new[rows, 1:-1] = -0.25 * (
        rhs[rows, 1:-1]
        - (a[rows, 2:] + a[rows, :-2] + a[start - 1:end - 1, 1:-1] + a[start + 1:end + 1, 1:-1])
    )
    return float(np.max(np.abs(a_new[rows, 1:-1] - a[rows, 1:-1])))


def _apply_periodic(a: np.ndarray) -> None:
    a[0, 1:-1] = a[-2, 1:-1]
    a[-1, 1:-1] = a[1, 1:-1]
    a[1:-1, 0] = a[1:-1, -2]
    a[1:-1, -1] = a[1:-1, 1]


def solve_serial(
    rhs: np.ndarray, iter_max: int = DEFAULT_ITER_MAX, tol: float = DEFAULT_TOL
) -> PoissonResult:
    """Relax from a zero field until the largest change is at most ``tol``."""
    rhs = _check_rhs(rhs)
    ny = rhs.shape[0]
    a = np.zeros_like(rhs)
    a_new = np.zeros_like(rhs)
    history: list[tuple[int, float]] = []
    iteration = 0
    error = 1.0
    while error > tol and iteration < iter_max:
        error = _relax_rows(a, a_new, rhs, 1, ny - 1)
        a[1:-1, 1:-1] = a_new[1:-1, 1:-1]
        _apply_periodic(a)
        if iteration % REPORT_EVERY == 0:
            history.append((iteration, error))
        iteration += 1
    return PoissonResult(a, iteration, error, history)


def solve_parallel(
    rhs: np.ndarray,
    iter_max: int = DEFAULT_ITER_MAX,
    tol: float = DEFAULT_TOL,
    num_threads: int = 1,
) -> PoissonResult:
    """Relax as ``solve_serial`` does, with the rows split among worker threads.

    Every iteration the threads relax their rows, the largest change among
    them decides convergence, and the halo rows and columns are refreshed.
    """
    rhs = _check_rhs(rhs)
    chunks = [c for c in row_chunks(rhs.shape[0], num_threads) if c[0] < c[1]]
    a = np.zeros_like(rhs)
    a_new = np.zeros_like(rhs)
    history: list[tuple[int, float]] = []
    iteration = 0
    error = 1.0

    def relax(chunk: tuple[int, int]) -> float:
        return _relax_rows(a, a_new, rhs, *chunk)

    def copy_back(chunk: tuple[int, int]) -> None:
        start, end = chunk
        a[start:end, 1:-1] = a_new[start:end, 1:-1]

    with ThreadPoolExecutor(max_workers=max(1, len(chunks))) as pool:
        while error > tol and iteration < iter_max:
            error = max(pool.map(relax, chunks), default=0.0)
            list(pool.map(copy_back, chunks))
            _apply_periodic(a)
            if iteration % REPORT_EVERY == 0:
                history.append((iteration, error))
            iteration += 1
    return PoissonResult(a, iteration, error, history)


def _print_history(result: PoissonResult) -> None:
    for iteration, error in result.history:
        print(f"{iteration:5d}, {error:0.6f}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the parallel relaxation, optionally checked against the serial one."""
    parser = argparse.ArgumentParser(description="Jacobi relaxation of a 2D Poisson problem.")
    parser.add_argument("--ny", type=int, default=DEFAULT_NY)
    parser.add_argument("--nx", type=int, default=DEFAULT_NX)
    parser.add_argument("--iter-max", type=int, default=DEFAULT_ITER_MAX)
    parser.add_argument("--tol", type=float, default=DEFAULT_TOL)
    parser.add_argument("--threads", type=int, default=os.cpu_count() or 1)
    parser.add_argument(
        "--serial-test",
        action="store_true",
        help="also run the serial solver and compare the results",
    )
    args = parser.parse_args(argv)

    rhs = make_rhs(args.ny, args.nx)

    reference = None
    runtime_serial = 0.0
    if args.serial_test:
        print(f"Jacobi relaxation Calculation: {args.ny} x {args.nx} mesh")
        print("Single-GPU Execution...")
        start = time.perf_counter()
        reference = solve_serial(rhs, args.iter_max, args.tol)
        runtime_serial = time.perf_counter() - start
        _print_history(reference)

    print("Parallel Execution...")
    start = time.perf_counter()
    result = solve_parallel(rhs, args.iter_max, args.tol, args.threads)
    runtime_parallel = time.perf_counter() - start
    _print_history(result)

    if reference is not None:
        diff = reference.solution - result.solution
        bad = np.argwhere(np.abs(diff) > args.tol)
        if bad.size:
            iy, ix = (int(i) for i in bad[0])
            print(f"A_ref[{iy}][{ix}] - A[{iy}][{ix}] = {diff[iy, ix]:f}")
            print("Exiting...")
            return 1
        print(
            f"Elapsed Time (s) - Serial: {runtime_serial:8.4f}, "
            f"Parallel: {runtime_parallel:8.4f}, "
            f"Speedup: {runtime_serial / runtime_parallel:8.4f}"
        )
    else:
        print(f"Elapsed Time (s) - Parallel: {runtime_parallel:8.4f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
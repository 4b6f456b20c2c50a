"""Set up, run and report the row-decomposed Jacobi solver."""

from __future__ import annotations

import argparse
import math
import os
import re
import time
import warnings
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np

from hpcdrills.jacobi import JacobiConfig, Subdomain, jacobi, row_bounds

DEFAULT_ITERATIONS = 5
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass
class JacobiResult:
    """Outcome of one solver run."""

    iterations: int
    residual: float
    error: float
    elapsed: float
    subdomains: list[Subdomain] = field(default_factory=list, repr=False)


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def iterations_from_env(environ: Mapping[str, str] | None = None) -> int:
    """Iteration limit from the ITERATIONS variable, or the default.

    A value that does not start with a positive integer is ignored with a
    warning.
    """
    env = os.environ if environ is None else environ
    text = env.get("ITERATIONS")
    if text is None:
        return DEFAULT_ITERATIONS
    iterations = _atoi(text)
    if iterations > 0:
        return iterations
    warnings.warn(f"Ignoring invalid ITERATIONS={text}!", stacklevel=2)
    return DEFAULT_ITERATIONS


def initialize_subdomains(config: JacobiConfig, nprocs: int) -> list[Subdomain]:
    """Split the grid into strips with a zero start and the right-hand side.

    The right-hand side is chosen so that the exact solution is
    (1 - x^2)(1 - y^2) on [-1, 1]^2.
    """
    xx = -1.0 + config.dx * np.arange(config.cols)
    xx2 = xx * xx
    subdomains = []
    for rank in range(nprocs):
        first, last = row_bounds(rank, nprocs, config.rows)
        yy = -1.0 + config.dy * np.arange(first, last + 1)
        yy2 = (yy * yy)[:, np.newaxis]
        f = -config.alpha * (1.0 - xx2) * (1.0 - yy2) + 2.0 * (-2.0 + xx2 + yy2)
        u = np.zeros_like(f)
        subdomains.append(Subdomain(rank, nprocs, first, last, u, f))
    return subdomains


def check_error(subdomains: Sequence[Subdomain], config: JacobiConfig) -> float:
    """Distance of the numerical solution from the exact one.

    Rows shared between neighbouring strips are counted once.
    """
    total = 0.0
    xx = -1.0 + config.dx * np.arange(config.cols)
    for sd in subdomains:
        lo = 1 if sd.rank != 0 else 0
        hi = sd.num_rows - 1 if sd.rank != sd.nprocs - 1 else sd.num_rows
        if lo >= hi:
            continue
        rows = np.arange(sd.row_first + lo, sd.row_first + hi)
        yy = (-1.0 + config.dy * rows)[:, np.newaxis]
        exact = (1.0 - xx * xx) * (1.0 - yy * yy)
        diff = sd.u[lo:hi] - exact
        total += float(np.sum(diff * diff))
    return math.sqrt(total) / (config.cols * config.rows)


def mflops(config: JacobiConfig, iterations: int, elapsed: float) -> float:
    """Estimated rate in millions of floating-point operations per second."""
    if elapsed < 0:
        raise ValueError("elapsed time must not be negative")
    work = 0.000013 * iterations * (config.cols - 2) * (config.rows - 2)
    if elapsed == 0:
        return math.inf if work else 0.0
    return work / elapsed


def solve(config: JacobiConfig, nprocs: int = 1) -> JacobiResult:
    """Set up the strips, relax them and measure the error against the exact solution."""
    subdomains = initialize_subdomains(config, nprocs)
    start = time.perf_counter()
    iterations, residual = jacobi(subdomains, config)
    elapsed = time.perf_counter() - start
    error = check_error(subdomains, config)
    return JacobiResult(iterations, residual, error, elapsed, subdomains)


def format_results(result: JacobiResult, config: JacobiConfig) -> str:
    """Summary lines of a run."""
    rate = mflops(config, result.iterations, result.elapsed)
    return "\n".join(
        [
            f" Number of iterations : {result.iterations}",
            f" Residual             : {result.residual:e}",
            f" Solution Error       : {result.error:1.12f}",
            f" Elapsed Time         : {result.elapsed:5.7f}",
            f" MFlops               : {rate:6.6f}",
        ]
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the solver with settings from the command line and ITERATIONS."""
    parser = argparse.ArgumentParser(description="Jacobi relaxation on a strip-decomposed grid.")
    parser.add_argument("--procs", type=int, default=1, help="number of strips")
    parser.add_argument("--rows", type=int, default=2000)
    parser.add_argument("--cols", type=int, default=2000)
    args = parser.parse_args(argv)
    if args.procs <= 0:
        parser.error("--procs must be positive")

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        iterations = iterations_from_env()
    for warning in caught:
        print(warning.message)

    try:
        config = JacobiConfig(rows=args.rows, cols=args.cols, iter_max=iterations)
    except ValueError as err:
        parser.error(str(err))

    print(f"Jacobi {args.procs} process(es)")
    print(
        f"\n-> matrix size: {config.cols}x{config.rows}"
        f"\n-> alpha: {config.alpha:f}"
        f"\n-> relax: {config.relax:f}"
        f"\n-> tolerance: {config.tolerance:f}"
        f"\n-> iterations: {config.iter_max} \n"
    )
    result = solve(config, args.procs)
    print(format_results(result, config))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
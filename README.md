# hpcdrills

Small, self-contained numerical exercises of the kind used to learn
high-performance computing, written with NumPy. Each drill computes a result,
checks it against a known answer and reports what it found.

## What is in the package

- **Matrix multiply** (`hpcdrills.dgemm`): `dgemm` computes
  `alpha * A @ B + beta * C`, reading the arrays in row- or column-major order;
  `loop_matmul` is a plain accumulation-loop reference; `compare_results`
  checks the relative difference of every element against a tolerance and
  raises `MismatchError` for the first one that exceeds it; `random_matrix`
  builds uniform random test matrices.
- **Row and column sums** (`hpcdrills.matrix_sums`): `row_sums` and
  `column_sums` in single precision, `row_sums_reduction`, which sums each row
  the way a block of threads does with a halving tree reduction, and
  `validate`, which raises `SumMismatch` for the first wrong entry.
- **2-D Poisson solver** (`hpcdrills.poisson2d`): Jacobi relaxation with
  periodic boundaries. `solve_serial` and `solve_parallel` (rows split among
  worker threads by `row_chunks`) both return a `PoissonResult` holding the
  solution, the iteration count, the final error and an error report every
  100 iterations. `make_rhs` builds the right-hand side
  `exp(-10 (x^2 + y^2))`.
- **Message passing** (`hpcdrills.ranks`): `run_ranks` runs one function per
  rank, each in its own thread, handing it a `Communicator` with `send`,
  `recv` and `bcast`. The exercises `hello`, `bcast_demo` and `ptp_demo` run
  on top of it, and `hello_threads` reports one line per thread of a team.
- **Jacobi Helmholtz solver** (`hpcdrills.jacobi`, `hpcdrills.jacobi_driver`):
  the grid is split into row strips (`row_bounds`, `Subdomain`);
  `exchange_halos` refreshes the rows neighbouring strips share, and `jacobi`
  relaxes until the residual drops below the tolerance or the iteration limit
  in `JacobiConfig` is reached. The driver's `solve` sets up the strips, runs
  the solver and measures the error against the exact solution
  `(1 - x^2)(1 - y^2)`; `format_results` prints the summary with an MFlops
  estimate.

## Installation

```
pip install .
```

With the test suite:

```
pip install ".[test]"
pytest
```

## Commands

```
hpcdrills-dgemm verify --n 256            # two products compared; prints __SUCCESS__
hpcdrills-dgemm timing --n 200            # loop multiply timed against the library
hpcdrills-matrix-sums --size 1024 --optimized
hpcdrills-poisson2d --ny 256 --nx 256 --threads 4 --serial-test
hpcdrills-ranks hello --size 4            # also: bcast, ptp, threads, hybrid
hpcdrills-jacobi --procs 4 --rows 200 --cols 200
```

The defaults are sized for a workstation run: `hpcdrills-dgemm timing`
multiplies 8192 x 8192 matrices (the loop multiply in pure Python is very
slow at that size), `hpcdrills-matrix-sums` uses a 16384 x 16384 matrix,
`hpcdrills-poisson2d` a 4096 x 4096 grid and `hpcdrills-jacobi` a
2000 x 2000 grid. Pass smaller sizes for a quick run.

`hpcdrills-jacobi` takes its iteration limit from the `ITERATIONS`
environment variable (default 5); a value that is not a positive integer is
reported as ignored and the default is used.

Commands whose check fails print the first mismatch and exit with status 1.

## Using the library

```python
import numpy as np

from hpcdrills.dgemm import compare_results, dgemm, loop_matmul
from hpcdrills.jacobi import JacobiConfig
from hpcdrills.jacobi_driver import format_results, solve
from hpcdrills.ranks import hello, run_ranks

rng = np.random.default_rng(0)
x = rng.random((64, 64))
y = rng.random((64, 64))
compare_results(loop_matmul(x, y), dgemm(x, y), 1e-12)  # raises MismatchError on a bad element

print(run_ranks(3, hello))

config = JacobiConfig(rows=100, cols=100, iter_max=50)
result = solve(config, nprocs=4)
print(format_results(result, config))
```

## What the package does not do

- It has no vector-addition drill and no atmospheric flow model; the
  `hpcdrills.miniweather` sub-package is empty.
- Ranks are threads within one Python process: there is no launcher for
  separate processes or machines, and nothing runs on a GPU. The "hybrid"
  demo reports this host's name for every rank, and the processor a thread ran
  on is only known where `/proc` provides it (otherwise it is shown as -1).
- Results are printed, not written to files.
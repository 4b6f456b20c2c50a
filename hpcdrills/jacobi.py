"""Jacobi relaxation of a Helmholtz problem on a row-decomposed grid.

The grid is split into horizontal strips, one per process. Neighbouring
strips share two rows; before every sweep each strip refreshes its outer
rows from its neighbours' current values.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class JacobiConfig:
    """Grid size and solver settings."""

    rows: int = 2000
    cols: int = 2000
    alpha: float = 0.8
    relax: float = 1.0
    tolerance: float = 1e-10
    iter_max: int = 5

    def __post_init__(self) -> None:
        if self.rows < 3 or self.cols < 3:
            raise ValueError("the grid needs at least 3 rows and 3 columns")
        if self.iter_max < 0:
            raise ValueError("iter_max must not be negative")

    @property
    def dx(self) -> float:
        """Grid spacing along a row, on [-1, 1]."""
        return 2.0 / (self.cols - 1)

    @property
    def dy(self) -> float:
        """Grid spacing down a column, on [-1, 1]."""
        return 2.0 / (self.rows - 1)


@dataclass
class Subdomain:
    """One process's strip of rows ``row_first`` to ``row_last`` inclusive."""

    rank: int
    nprocs: int
    row_first: int
    row_last: int
    u: np.ndarray
    f: np.ndarray
    uold: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.u = np.asarray(self.u, dtype=np.float64)
        self.f = np.asarray(self.f, dtype=np.float64)
        rows = self.row_last - self.row_first + 1
        if self.u.ndim != 2 or self.u.shape[0] != rows:
            raise ValueError(f"u must have {rows} rows for rows {self.row_first}..{self.row_last}")
        if self.f.shape != self.u.shape:
            raise ValueError(f"f has shape {self.f.shape}, expected {self.u.shape}")
        self.uold = np.zeros_like(self.u)

    @property
    def num_rows(self) -> int:
        """Rows held, including the rows shared with neighbours."""
        return self.row_last - self.row_first + 1

    @property
    def cols(self) -> int:
        """Columns in every row."""
        return self.u.shape[1]

    def _row(self, global_row: int) -> np.ndarray:
        if not self.row_first <= global_row <= self.row_last:
            raise ValueError(f"rank {self.rank} does not hold row {global_row}")
        return self.u[global_row - self.row_first]


def row_bounds(rank: int, nprocs: int, rows: int) -> tuple[int, int]:
    """First and last global row, inclusive, of the strip held by ``rank``."""
    if nprocs <= 0:
        raise ValueError("nprocs must be positive")
    if not 0 <= rank < nprocs:
        raise ValueError(f"rank {rank} is outside {nprocs} processes")
    if rows < 3:
        raise ValueError("rows must be at least 3")
    first = rank * (rows - 2) // nprocs
    if rank == nprocs - 1:
        last = rows - 1
    else:
        last = (rank + 1) * (rows - 2) // nprocs + 1
    return first, last


def _check_layout(subdomains: Sequence[Subdomain]) -> None:
    if not subdomains:
        raise ValueError("no subdomains given")
    count = len(subdomains)
    for index, sd in enumerate(subdomains):
        if sd.rank != index or sd.nprocs != count:
            raise ValueError("subdomains must be listed in rank order, one per process")


def exchange_halos(subdomains: Sequence[Subdomain]) -> None:
    """Fill every strip's ``uold`` from its own and its neighbours' ``u``.

    Inner rows are copied from the strip itself; the first and last row come
    from the neighbouring strips, or from the strip itself at the grid edge.
    """
    _check_layout(subdomains)
    last = len(subdomains) - 1
    for index, sd in enumerate(subdomains):
        sd.uold[1:-1] = sd.u[1:-1]
        if index == 0:
            sd.uold[0] = sd.u[0]
        else:
            sd.uold[0] = subdomains[index - 1]._row(sd.row_first)
        if index == last:
            sd.uold[-1] = sd.u[-1]
        else:
            sd.uold[-1] = subdomains[index + 1]._row(sd.row_last)


def jacobi(subdomains: Sequence[Subdomain], config: JacobiConfig) -> tuple[int, float]:
    """Relax until the residual is at most the tolerance or ``iter_max`` is hit.

    Updates each strip's ``u`` in place and returns the number of iterations
    and the final residual, summed over all strips.
    """
    _check_layout(subdomains)
    for sd in subdomains:
        if sd.cols != config.cols:
            raise ValueError(f"rank {sd.rank} has {sd.cols} columns, expected {config.cols}")

    ax = 1.0 / (config.dx * config.dx)
    ay = 1.0 / (config.dy * config.dy)
    b = -2.0 * (ax + ay) - config.alpha
    residual = 10.0 * config.tolerance
    iterations = 0

    while iterations < config.iter_max and residual > config.tolerance:
        exchange_halos(subdomains)
        total = 0.0
        for sd in subdomains:
            old = sd.uold
            local_res = (
                ax * (old[1:-1, :-2] + old[1:-1, 2:])
                + ay * (old[:-2, 1:-1] + old[2:, 1:-1])
                + b * old[1:-1, 1:-1]
                - sd.f[1:-1, 1:-1]
            ) / b
            sd.u[1:-1, 1:-1] = old[1:-1, 1:-1] - config.relax * local_res
            total += float(np.sum(local_res * local_res))
        iterations += 1
        residual = math.sqrt(total) / (config.cols * config.rows)

    return iterations, residual
"""Dense matrix multiply: library routine, hand-written loop and cross-checks."""

from __future__ import annotations

import argparse
import time
from collections.abc import Sequence

import numpy as np

DEFAULT_VERIFY_N = 512
DEFAULT_TIMING_N = 8192
DEFAULT_MAX_VALUE = 10.0
DEFAULT_TOLERANCE = 1.0e-13


class MismatchError(Exception):
    """Raised when two matrix products disagree beyond the tolerance."""

    def __init__(self, row: int, col: int, reference: float, other: float) -> None:
        self.row = row
        self.col = col
        self.reference = reference
        self.other = other
        super().__init__(
            f"Element C[{row}][{col}] ({reference:f}) and "
            f"C_fromGPU[{row}][{col}] ({other:f}) do not match!"
        )


def random_matrix(
    n: int, max_value: float = 1.0, rng: np.random.Generator | None = None
) -> np.ndarray:
    """Return an n-by-n matrix of uniform random values in [0, max_value)."""
    if n < 0:
        raise ValueError("n must not be negative")
    generator = rng if rng is not None else np.random.default_rng()
    return generator.random((n, n)) * max_value


def dgemm(
    a: np.ndarray,
    b: np.ndarray,
    alpha: float = 1.0,
    beta: float = 0.0,
    c: np.ndarray | None = None,
    col_major: bool = False,
) -> np.ndarray:
    """Compute alpha * A B + beta * C.

    With ``col_major`` the arrays' memory is read in column-major order, as a
    column-major BLAS call would read row-major buffers; the returned array is
    the result laid out the same way.
    """
    left = np.asarray(a, dtype=np.float64)
    right = np.asarray(b, dtype=np.float64)
    if left.ndim != 2 or right.ndim != 2:
        raise ValueError("dgemm needs two-dimensional matrices")
    if col_major:
        left, right = right, left
    if left.shape[1] != right.shape[0]:
        raise ValueError(f"cannot multiply shapes {left.shape} and {right.shape}")

    product = alpha * (left @ right)
    if c is None:
        if beta != 0.0:
            raise ValueError("beta is non-zero but no C matrix was given")
        return product
    addend = np.asarray(c, dtype=np.float64)
    if addend.shape != product.shape:
        raise ValueError(f"C has shape {addend.shape}, expected {product.shape}")
    return product + beta * addend


def loop_matmul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Multiply two matrices with a plain accumulation loop."""
    rows = np.asarray(a, dtype=np.float64).tolist()
    right = np.asarray(b, dtype=np.float64)
    if right.ndim != 2 or (rows and len(rows[0]) != right.shape[0]):
        raise ValueError("inner dimensions do not match")
    columns = right.T.tolist()

    result = []
    for row in rows:
        out_row = []
        for column in columns:
            total = 0.0
            for x, y in zip(row, column):
                total = total + x * y
            out_row.append(total)
        result.append(out_row)
    return np.array(result, dtype=np.float64).reshape(len(rows), len(columns))


def compare_results(
    reference: np.ndarray, other: np.ndarray, tolerance: float = DEFAULT_TOLERANCE
) -> float:
    """Check the relative difference of every element against ``tolerance``.

    Returns the largest relative difference found; raises MismatchError for
    the first element, in row-major order, that exceeds the tolerance.
    """
    ref = np.asarray(reference, dtype=np.float64)
    oth = np.asarray(other, dtype=np.float64)
    if ref.shape != oth.shape:
        raise ValueError(f"shapes differ: {ref.shape} and {oth.shape}")
    with np.errstate(divide="ignore", invalid="ignore"):
        relative = np.abs((ref - oth) / ref)
    bad = np.argwhere(relative > tolerance)
    if bad.size:
        row, col = (int(i) for i in bad[0])
        raise MismatchError(row, col, float(ref[row, col]), float(oth[row, col]))
    finite = relative[~np.isnan(relative)]
    return float(finite.max()) if finite.size else 0.0


def _second_dgemm(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Column-major product computed along an independent path."""
    return np.einsum("ij,jk->ik", b, a)


def _verify(args: argparse.Namespace) -> int:
    rng = np.random.default_rng(args.seed)
    a = random_matrix(args.n, args.max_value, rng)
    b = random_matrix(args.n, args.max_value, rng)
    c = dgemm(a, b, 1.0, 0.0, np.zeros((args.n, args.n)), col_major=True)
    c_other = _second_dgemm(a, b)
    try:
        compare_results(c, c_other, args.tolerance)
    except MismatchError as err:
        print(err)
        return 1
    print("__SUCCESS__")
    return 0


def _timing(args: argparse.Namespace) -> int:
    start_total = time.perf_counter()
    rng = np.random.default_rng(args.seed)
    a = random_matrix(args.n, 1.0, rng)
    b = random_matrix(args.n, 1.0, rng)

    start = time.perf_counter()
    loop_matmul(a, b)
    loop_elapsed = time.perf_counter() - start

    start = time.perf_counter()
    dgemm(a, b)
    library_elapsed = time.perf_counter() - start

    total_elapsed = time.perf_counter() - start_total
    print(f"Elapsed time total (s)  : {total_elapsed:16.14f}")
    print(f"Elapsed time loop (s)   : {loop_elapsed:16.14f}")
    print(f"Elapsed time library (s): {library_elapsed:16.14f}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Verify two matrix products agree, or time a loop against the library."""
    parser = argparse.ArgumentParser(description="Matrix multiply checks and timings.")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    sub = parser.add_subparsers(dest="command")

    verify = sub.add_parser("verify", help="compare two dgemm results")
    verify.add_argument("--n", type=int, default=DEFAULT_VERIFY_N)
    verify.add_argument("--max-value", type=float, default=DEFAULT_MAX_VALUE)
    verify.add_argument("--tolerance", type=float, default=DEFAULT_TOLERANCE)

    timing = sub.add_parser("timing", help="time a loop multiply against dgemm")
    timing.add_argument("--n", type=int, default=DEFAULT_TIMING_N)

    args = parser.parse_args(argv)
    if args.command == "timing":
        return _timing(args)
    if args.command is None:
        args = parser.parse_args([*(argv or []), "verify"])
    return _verify(args)


if __name__ == "__main__":
    raise SystemExit(main())
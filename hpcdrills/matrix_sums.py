"""Row and column sums of a square matrix, with a block-reduction variant."""

from __future__ import annotations

import argparse
from collections.abc import Sequence

import numpy as np

DEFAULT_SIZE = 16384
DEFAULT_BLOCK_SIZE = 256


class SumMismatch(Exception):
    """Raised when a computed sum differs from the expected value."""

    def __init__(self, index: int, value: float, expected: float) -> None:
        self.index = index
        self.value = value
        self.expected = expected
        super().__init__(
            f"results mismatch at {index}, was: {value:f}, should be: {expected:f}"
        )


def _as_matrix(matrix: np.ndarray) -> np.ndarray:
    values = np.asarray(matrix, dtype=np.float32)
    if values.ndim != 2:
        raise ValueError("expected a two-dimensional matrix")
    return values


def row_sums(matrix: np.ndarray) -> np.ndarray:
    """Sum each row sequentially in single precision."""
    values = _as_matrix(matrix)
    if values.shape[1] == 0:
        return np.zeros(values.shape[0], dtype=np.float32)
    return np.cumsum(values, axis=1, dtype=np.float32)[:, -1]


def column_sums(matrix: np.ndarray) -> np.ndarray:
    """Sum each column sequentially in single precision."""
    values = _as_matrix(matrix)
    if values.shape[0] == 0:
        return np.zeros(values.shape[1], dtype=np.float32)
    return np.cumsum(values, axis=0, dtype=np.float32)[-1, :]


def row_sums_reduction(
    matrix: np.ndarray, block_size: int = DEFAULT_BLOCK_SIZE
) -> np.ndarray:
    """Sum each row the way one block of ``block_size`` threads does.

    Each lane accumulates a strided slice of the row, then the lanes are
    combined by a halving sweep reduction. As in the block kernel, a
    ``block_size`` that is not a power of two drops the lanes the sweep
    never reaches.
    """
    if block_size <= 0:
        raise ValueError("block_size must be positive")
    values = _as_matrix(matrix)
    rows, cols = values.shape
    lanes = np.zeros((rows, block_size), dtype=np.float32)
    for start in range(0, cols, block_size):
        chunk = values[:, start:start + block_size]
        lanes[:, : chunk.shape[1]] += chunk
    stride = block_size // 2
    while stride > 0:
        lanes[:, :stride] += lanes[:, stride:2 * stride]
        stride >>= 1
    return lanes[:, 0].copy()


def validate(sums: Sequence[float], expected: float) -> int:
    """Check every sum equals ``expected``; return how many were checked.

    Raises SumMismatch for the first differing entry.
    """
    values = np.asarray(sums, dtype=np.float32)
    target = np.float32(expected)
    wrong = np.flatnonzero(values != target)
    if wrong.size:
        index = int(wrong[0])
        raise SumMismatch(index, float(values[index]), float(target))
    return int(values.size)


def main(argv: Sequence[str] | None = None) -> int:
    """Sum the rows and columns of a matrix of ones and check the results."""
    parser = argparse.ArgumentParser(description="Row and column sums of a matrix of ones.")
    parser.add_argument("--size", type=int, default=DEFAULT_SIZE, help="matrix side length")
    parser.add_argument("--block-size", type=int, default=DEFAULT_BLOCK_SIZE)
    parser.add_argument(
        "--optimized",
        action="store_true",
        help="compute row sums with the block reduction",
    )
    args = parser.parse_args(argv)
    if args.size < 0:
        parser.error("--size must not be negative")
    if args.block_size <= 0:
        parser.error("--block-size must be positive")

    matrix = np.ones((args.size, args.size), dtype=np.float32)
    try:
        if args.optimized:
            sums = row_sums_reduction(matrix, args.block_size)
        else:
            sums = row_sums(matrix)
        validate(sums, float(args.size))
        print("row sums correct!")
        validate(column_sums(matrix), float(args.size))
        print("column sums correct!")
    except SumMismatch as err:
        print(err)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
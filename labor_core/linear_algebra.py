"""
Small Dense Linear Solver
=========================
Gaussian elimination with partial pivoting for the 2x2/3x3 normal-equation
systems produced by the curve fitters.
"""

import numpy as np
from typing import Sequence

from .errors import SingularMatrixError

PIVOT_EPSILON = 1e-9


def solve_linear_system(
    A: Sequence[Sequence[float]],
    B: Sequence[float],
    epsilon: float = PIVOT_EPSILON
) -> np.ndarray:
    """
    Solve A·x = B by Gaussian elimination with partial pivoting.

    At each column the row with the largest absolute value is swapped into
    the pivot position before elimination. Inputs are copied and left
    untouched.

    Args:
        A: Square coefficient matrix (n x n)
        B: Right-hand side vector (n)
        epsilon: Minimum pivot magnitude accepted

    Returns:
        Solution vector x of length n

    Raises:
        ValueError: If shapes are inconsistent
        SingularMatrixError: If a pivot magnitude falls below epsilon

    Example:
        >>> solve_linear_system([[2, 1], [1, 3]], [3, 5])
        array([0.8, 1.4])
    """
    a = np.array(A, dtype=float)
    b = np.array(B, dtype=float)

    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise ValueError(f"Coefficient matrix must be square, got shape {a.shape}")
    n = a.shape[0]
    if b.shape != (n,):
        raise ValueError(f"Right-hand side must have length {n}, got shape {b.shape}")

    for i in range(n):
        # Pivot
        max_row = i + int(np.argmax(np.abs(a[i:, i])))
        if max_row != i:
            a[[i, max_row], i:] = a[[max_row, i], i:]
            b[[i, max_row]] = b[[max_row, i]]

        pivot = a[i, i]
        if abs(pivot) < epsilon:
            raise SingularMatrixError(column=i, pivot=float(pivot), epsilon=epsilon)

        # Eliminate below the pivot
        for k in range(i + 1, n):
            factor = a[k, i] / pivot
            a[k, i:] -= factor * a[i, i:]
            a[k, i] = 0.0
            b[k] -= factor * b[i]

    # Back substitution
    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        x[i] = (b[i] - np.dot(a[i, i + 1:], x[i + 1:])) / a[i, i]

    return x


__all__ = [
    'PIVOT_EPSILON',
    'solve_linear_system',
]

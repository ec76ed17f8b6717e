"""
Error Taxonomy
==============
Exceptions raised by the labor prediction core.

Only programmer errors and precondition violations are raised. "Not enough
data yet" is a normal state for a live monitoring tool and is reported as an
absent prediction, never as an exception.
"""


class LaborCoreError(Exception):
    """Base class for all labor_core errors."""


class SingularMatrixError(LaborCoreError):
    """
    Linear system has no stable solution (near-zero pivot).

    Curve fitters convert this into a degenerate fit; it never escapes
    the delivery predictor.
    """

    def __init__(self, column: int, pivot: float, epsilon: float):
        self.column = column
        self.pivot = pivot
        self.epsilon = epsilon
        super().__init__(
            f"Singular matrix: pivot {pivot:.3e} in column {column} "
            f"is below epsilon {epsilon:.1e}"
        )


class InvalidInputError(LaborCoreError, ValueError):
    """Observation with a non-finite or negative time or duration."""

    def __init__(self, message: str, index: int = None):
        self.index = index
        if index is not None:
            message = f"Observation {index}: {message}"
        super().__init__(message)


__all__ = [
    'LaborCoreError',
    'SingularMatrixError',
    'InvalidInputError',
]

"""
Curve Fitting
=============
Weighted least-squares fits used to model contraction envelopes.

Available models:
- Polynomial: y = a + b·x + c·x² (normal equations, 3x3 solve)
- Exponential: y = a·e^(b·x) (log-linearised weighted regression)
- Linear: y = m·x + c, with zero crossing for decaying trends

All polynomial/exponential fits normalise x to [0, 1] before fitting so that
large epoch-second values keep the normal equations well conditioned.
FittedCurve.predict() takes raw x values and normalises internally.

Weighted mode ramps the point weights linearly from 1 (oldest) to 10
(newest) so recent contractions dominate the fit of a live process.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from .errors import SingularMatrixError
from .linear_algebra import solve_linear_system

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]

# Exponential must beat the polynomial RMSE by 5% to be preferred
DEFAULT_EXPONENTIAL_MARGIN = 0.95

MIN_POLYNOMIAL_POINTS = 3
MIN_EXPONENTIAL_POINTS = 2
DENOMINATOR_EPSILON = 1e-9


class FitKind(Enum):
    """Model family of a fitted curve."""
    POLYNOMIAL = "polynomial"
    EXPONENTIAL = "exponential"
    NONE = "none"  # Degenerate always-zero predictor


@dataclass(frozen=True)
class FittedCurve:
    """
    Immutable fitted model.

    Attributes:
        kind: Model family
        coefficients: (a, b, c) for polynomial, (a, b) for exponential,
            empty for the degenerate curve
        x_min: Minimum raw x of the fitted data
        x_range: Raw x span used for normalisation (1.0 for a single x value)
        rmse: Weighted RMSE against the fitted data, when computed
    """
    kind: FitKind
    coefficients: Tuple[float, ...] = ()
    x_min: float = 0.0
    x_range: float = 1.0
    rmse: Optional[float] = field(default=None, compare=False)

    @property
    def is_degenerate(self) -> bool:
        return self.kind == FitKind.NONE

    def normalize(self, x: ArrayLike) -> ArrayLike:
        return (np.asarray(x, dtype=float) - self.x_min) / self.x_range

    def predict(self, x: ArrayLike) -> ArrayLike:
        """
        Evaluate the curve at raw x value(s).

        Returns a float for scalar input, an ndarray for array input.
        """
        xn = self.normalize(x)

        if self.kind == FitKind.POLYNOMIAL:
            a, b, c = self.coefficients
            y = a + b * xn + c * xn * xn
        elif self.kind == FitKind.EXPONENTIAL:
            a, b = self.coefficients
            y = a * np.exp(b * xn)
        else:
            y = np.zeros_like(xn)

        if np.ndim(y) == 0:
            return float(y)
        return y

    def with_rmse(self, rmse: float) -> 'FittedCurve':
        return FittedCurve(self.kind, self.coefficients, self.x_min, self.x_range, rmse)

    def to_dict(self):
        return {
            'kind': self.kind.value,
            'coefficients': list(self.coefficients),
            'x_min': self.x_min,
            'x_range': self.x_range,
            'rmse': self.rmse,
        }


def degenerate_curve() -> FittedCurve:
    """Curve that predicts 0 everywhere (fit unavailable)."""
    return FittedCurve(kind=FitKind.NONE)


@dataclass(frozen=True)
class LinearFit:
    """Straight line y = slope·x + intercept on raw x values."""
    slope: float
    intercept: float
    zero_crossing: Optional[float] = None

    def predict(self, x: ArrayLike) -> ArrayLike:
        y = self.slope * np.asarray(x, dtype=float) + self.intercept
        if np.ndim(y) == 0:
            return float(y)
        return y


# =============================================================================
# HELPERS
# =============================================================================

def _as_xy(x, y) -> Tuple[np.ndarray, np.ndarray]:
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape or x.ndim != 1:
        raise ValueError(
            f"x and y must be 1-D arrays of equal length, got {x.shape} and {y.shape}"
        )
    return x, y


def recency_weights(n: int, weighted: bool = True) -> np.ndarray:
    """
    Per-point weights in chronological order.

    Args:
        n: Number of points
        weighted: If True, ramp linearly from 1 to 10; otherwise all ones

    Returns:
        Array of n weights
    """
    if not weighted or n <= 1:
        return np.ones(n)
    return 1.0 + 9.0 * np.arange(n) / (n - 1)


def _normalization(x: np.ndarray) -> Tuple[float, float]:
    x_min = float(np.min(x))
    x_range = float(np.max(x)) - x_min
    return x_min, (x_range if x_range != 0 else 1.0)


def weighted_rmse(x, y, curve: FittedCurve, weighted: bool = False) -> float:
    """
    Root mean squared error of a curve against data.

    Args:
        x: Raw x values
        y: Observed y values
        curve: Fitted curve to evaluate
        weighted: Apply the recency weight ramp

    Returns:
        Weighted RMSE (nan for empty input)
    """
    x, y = _as_xy(x, y)
    if len(x) == 0:
        return float('nan')

    w = recency_weights(len(x), weighted)
    residuals = y - curve.predict(x)
    return float(np.sqrt(np.sum(w * residuals ** 2) / np.sum(w)))


# =============================================================================
# MODEL FITS
# =============================================================================

def fit_polynomial(x, y, weighted: bool = False) -> FittedCurve:
    """
    Fit a quadratic y = a + b·xn + c·xn² by weighted least squares.

    Builds the 3x3 normal equations from weighted power sums of the
    normalised x and solves them with partial pivoting.

    Args:
        x: Raw x values (e.g. epoch seconds), chronological
        y: Observed values
        weighted: Apply the recency weight ramp

    Returns:
        FittedCurve of kind POLYNOMIAL, or the degenerate curve when fewer
        than 3 points are given or the system is singular
    """
    x, y = _as_xy(x, y)
    if len(x) < MIN_POLYNOMIAL_POINTS:
        return degenerate_curve()

    x_min, x_range = _normalization(x)
    xn = (x - x_min) / x_range
    w = recency_weights(len(x), weighted)

    # Weighted power sums: S[k] = Σ w·x^k, T[k] = Σ w·x^k·y
    s = [float(np.sum(w * xn ** k)) for k in range(5)]
    t = [float(np.sum(w * xn ** k * y)) for k in range(3)]

    matrix = [
        [s[0], s[1], s[2]],
        [s[1], s[2], s[3]],
        [s[2], s[3], s[4]],
    ]

    try:
        coeffs = solve_linear_system(matrix, t)
    except SingularMatrixError as e:
        logger.debug(f"Polynomial fit unavailable: {e}")
        return degenerate_curve()

    return FittedCurve(
        kind=FitKind.POLYNOMIAL,
        coefficients=tuple(float(c) for c in coeffs),
        x_min=x_min,
        x_range=x_range,
    )


def fit_exponential(x, y, weighted: bool = False) -> FittedCurve:
    """
    Fit y = a·e^(b·xn) by linear regression on ln(y).

    Only points with y > 0 take part in the regression; the x normalisation
    still spans all points so the curve shares its x-domain with a
    polynomial fit of the same data.

    Args:
        x: Raw x values, chronological
        y: Observed values
        weighted: Apply the recency weight ramp (over the valid subset)

    Returns:
        FittedCurve of kind EXPONENTIAL, or the degenerate curve when fewer
        than 2 positive points remain or the regression is ill-posed
    """
    x, y = _as_xy(x, y)
    if len(x) < MIN_EXPONENTIAL_POINTS:
        return degenerate_curve()

    x_min, x_range = _normalization(x)

    valid = y > 0
    if np.count_nonzero(valid) < MIN_EXPONENTIAL_POINTS:
        return degenerate_curve()

    xn = (x[valid] - x_min) / x_range
    ln_y = np.log(y[valid])
    w = recency_weights(len(xn), weighted)

    sum_w = np.sum(w)
    sum_wx = np.sum(w * xn)
    sum_wy = np.sum(w * ln_y)
    sum_wxy = np.sum(w * xn * ln_y)
    sum_wxx = np.sum(w * xn * xn)

    denominator = sum_w * sum_wxx - sum_wx * sum_wx
    if abs(denominator) < DENOMINATOR_EPSILON:
        return degenerate_curve()

    slope = (sum_w * sum_wxy - sum_wx * sum_wy) / denominator
    intercept = (sum_wy - slope * sum_wx) / sum_w

    return FittedCurve(
        kind=FitKind.EXPONENTIAL,
        coefficients=(float(np.exp(intercept)), float(slope)),
        x_min=x_min,
        x_range=x_range,
    )


def fit_best(
    x,
    y,
    weighted: bool = False,
    exponential_margin: float = DEFAULT_EXPONENTIAL_MARGIN
) -> FittedCurve:
    """
    Fit both models and keep the better one by weighted RMSE.

    The exponential model is chosen only when its RMSE is below
    ``exponential_margin`` times the polynomial RMSE; otherwise the
    polynomial is kept.

    Args:
        x: Raw x values, chronological
        y: Observed values
        weighted: Apply the recency weight ramp to fits and RMSE
        exponential_margin: Required RMSE ratio for the exponential model

    Returns:
        Winning FittedCurve with its RMSE attached

    Example:
        >>> curve = fit_best(times, durations, weighted=True)
        >>> curve.kind, curve.predict(times[-1] + 300)
    """
    x, y = _as_xy(x, y)
    poly = fit_polynomial(x, y, weighted)
    expo = fit_exponential(x, y, weighted)

    rmse_poly = weighted_rmse(x, y, poly, weighted)
    rmse_exp = weighted_rmse(x, y, expo, weighted)

    if rmse_exp < rmse_poly * exponential_margin:
        logger.debug(f"Selected exponential fit (rmse {rmse_exp:.4g} vs {rmse_poly:.4g})")
        return expo.with_rmse(rmse_exp)

    logger.debug(f"Selected polynomial fit (rmse {rmse_poly:.4g} vs {rmse_exp:.4g})")
    return poly.with_rmse(rmse_poly)


def fit_linear(x, y) -> LinearFit:
    """
    Ordinary least-squares line on raw x values.

    The zero crossing (x where y = 0) is reported only for a negative slope,
    i.e. a quantity decaying towards zero.

    Args:
        x: Raw x values
        y: Observed values

    Returns:
        LinearFit; a flat zero line when fewer than 2 points or all x equal
    """
    x, y = _as_xy(x, y)
    n = len(x)
    if n < 2:
        return LinearFit(slope=0.0, intercept=0.0)

    x_mean = np.mean(x)
    y_mean = np.mean(y)

    denominator = np.sum((x - x_mean) ** 2)
    if denominator == 0:
        return LinearFit(slope=0.0, intercept=float(y_mean))

    slope = float(np.sum((x - x_mean) * (y - y_mean)) / denominator)
    intercept = float(y_mean - slope * x_mean)

    return LinearFit(
        slope=slope,
        intercept=intercept,
        zero_crossing=-intercept / slope if slope < 0 else None,
    )


__all__ = [
    'DEFAULT_EXPONENTIAL_MARGIN',
    'FitKind',
    'FittedCurve',
    'LinearFit',
    'degenerate_curve',
    'recency_weights',
    'weighted_rmse',
    'fit_polynomial',
    'fit_exponential',
    'fit_best',
    'fit_linear',
]

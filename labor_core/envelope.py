"""
Duration Envelope
=================
Centered rolling mean/standard-deviation band around contraction durations.

For each point the window spans [i - w//2, i + w//2], clipped at the series
ends. The band is mean ± k·σ using the population standard deviation, with
the lower edge floored at zero (a duration cannot be negative).
"""

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np
import pandas as pd

# 2σ "clinical range" funnel
ENVELOPE_SIGMA_MULTIPLIER = 2.0
MIN_WINDOW_SIZE = 3
WINDOW_DIVISOR = 5


@dataclass(frozen=True)
class EnvelopeBand:
    """
    Upper/lower band index-aligned to an input series.

    Attributes:
        times: Raw x values of the input points
        mean: Rolling window mean
        upper: mean + k·σ
        lower: max(0, mean - k·σ)
        window_size: Nominal window size w
        sigma_multiplier: k
    """
    times: np.ndarray
    mean: np.ndarray
    upper: np.ndarray
    lower: np.ndarray
    window_size: int
    sigma_multiplier: float = ENVELOPE_SIGMA_MULTIPLIER

    def __len__(self) -> int:
        return len(self.times)

    @property
    def is_empty(self) -> bool:
        return len(self.times) == 0

    @property
    def width(self) -> np.ndarray:
        """upper - lower at each point."""
        return self.upper - self.lower

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            'time': self.times,
            'mean': self.mean,
            'upper': self.upper,
            'lower': self.lower,
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            'times': self.times.tolist(),
            'mean': self.mean.tolist(),
            'upper': self.upper.tolist(),
            'lower': self.lower.tolist(),
            'window_size': self.window_size,
            'sigma_multiplier': self.sigma_multiplier,
        }


def fine_window_size(
    n_points: int,
    min_window: int = MIN_WINDOW_SIZE,
    divisor: int = WINDOW_DIVISOR
) -> int:
    """
    Window size of the "fine" envelope: max(3, N // 5).

    Example:
        >>> fine_window_size(40)
        8
    """
    return max(min_window, n_points // divisor)


def empty_envelope(window_size: int = 0,
                   sigma_multiplier: float = ENVELOPE_SIGMA_MULTIPLIER) -> EnvelopeBand:
    empty = np.array([], dtype=float)
    return EnvelopeBand(empty, empty, empty, empty, window_size, sigma_multiplier)


def build_envelope(
    times,
    values,
    window_size: int,
    sigma_multiplier: float = ENVELOPE_SIGMA_MULTIPLIER
) -> EnvelopeBand:
    """
    Build the rolling dispersion envelope of a chronological series.

    Args:
        times: Raw x values (sorted ascending)
        values: Durations aligned with times
        window_size: Nominal window size w (half-width w//2 on each side)
        sigma_multiplier: Band half-width in standard deviations

    Returns:
        EnvelopeBand aligned to the input; empty for fewer than 2 points

    Raises:
        ValueError: If times and values differ in length or window_size < 1

    Example:
        >>> band = build_envelope(t, durations, fine_window_size(len(t)))
        >>> band.upper[-1], band.lower[-1]
    """
    times = np.asarray(times, dtype=float)
    values = np.asarray(values, dtype=float)

    if times.shape != values.shape:
        raise ValueError(
            f"times and values must have equal length, got {len(times)} and {len(values)}"
        )
    if window_size < 1:
        raise ValueError(f"window_size must be at least 1, got {window_size}")

    if len(values) < 2:
        return empty_envelope(window_size, sigma_multiplier)

    half = window_size // 2
    rolling = pd.Series(values).rolling(window=2 * half + 1, center=True, min_periods=1)

    # Population moments over the clipped window
    mean = rolling.mean().to_numpy()
    variance = np.clip(rolling.var(ddof=0).fillna(0.0).to_numpy(), 0.0, None)
    sd = np.sqrt(variance)

    upper = mean + sigma_multiplier * sd
    lower = np.maximum(0.0, mean - sigma_multiplier * sd)

    return EnvelopeBand(
        times=times,
        mean=mean,
        upper=upper,
        lower=lower,
        window_size=window_size,
        sigma_multiplier=sigma_multiplier,
    )


__all__ = [
    'ENVELOPE_SIGMA_MULTIPLIER',
    'EnvelopeBand',
    'fine_window_size',
    'empty_envelope',
    'build_envelope',
]

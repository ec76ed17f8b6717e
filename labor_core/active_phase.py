"""
Active Phase Detection
======================
Locates the onset of sustained, frequent contractions ("active phase") so
that early irregular contractions can be excluded from curve fitting.

Available methods:
- Gap run: earliest run of N consecutive gaps below a threshold
- Fallback: later fraction of the series when no run exists
"""

from typing import Tuple

import numpy as np

ACTIVE_GAP_THRESHOLD_S = 6 * 60
ACTIVE_RUN_LENGTH = 3
FALLBACK_FRACTION = 0.5


def find_short_gap_run(
    times,
    gap_threshold_s: float = ACTIVE_GAP_THRESHOLD_S,
    run_length: int = ACTIVE_RUN_LENGTH
) -> int:
    """
    Find the start index of the first run of short consecutive gaps.

    A gap is time[k] - time[k-1]. The run is complete at the first index i
    where the gaps ending at i-run_length+1 .. i are all below the threshold.

    Args:
        times: Sorted raw times in seconds
        gap_threshold_s: Maximum gap counted as "frequent"
        run_length: Number of consecutive short gaps required

    Returns:
        Index i - run_length (first point of the run), or -1 if none
    """
    times = np.asarray(times, dtype=float)
    consistent = 0

    for i in range(1, len(times)):
        if times[i] - times[i - 1] < gap_threshold_s:
            consistent += 1
        else:
            consistent = 0

        if consistent >= run_length:
            return i - run_length

    return -1


def detect_active_phase_start(
    times,
    gap_threshold_s: float = ACTIVE_GAP_THRESHOLD_S,
    run_length: int = ACTIVE_RUN_LENGTH,
    fallback_fraction: float = FALLBACK_FRACTION,
    min_points: int = 3
) -> Tuple[int, str]:
    """
    Detect where the active phase begins.

    Tries the gap-run method first; if the series never shows a sustained
    run of short gaps, keeps the later part of the data instead. The
    fallback start is pulled back so that at least ``min_points`` points
    remain whenever the series has that many.

    Args:
        times: Sorted raw times in seconds
        gap_threshold_s: Maximum gap counted as "frequent" (default 6 min)
        run_length: Consecutive short gaps required (default 3)
        fallback_fraction: Fraction of the series skipped by the fallback
        min_points: Points the fallback must leave in the active phase

    Returns:
        Tuple of (start_index, method_used) where method is 'gap_run' or
        'fallback'

    Example:
        >>> start, method = detect_active_phase_start(times)
        >>> active_times = times[start:]
    """
    times = np.asarray(times, dtype=float)
    n = len(times)

    start = find_short_gap_run(times, gap_threshold_s, run_length)
    if start >= 0:
        return start, 'gap_run'

    fallback = int(np.floor(n * fallback_fraction))
    if n >= min_points:
        fallback = min(fallback, n - min_points)

    return max(0, fallback), 'fallback'


__all__ = [
    'ACTIVE_GAP_THRESHOLD_S',
    'ACTIVE_RUN_LENGTH',
    'FALLBACK_FRACTION',
    'find_short_gap_run',
    'detect_active_phase_start',
]

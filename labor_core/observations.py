"""
Observations
============
Input model for the prediction core and the adapters that produce it.

An Observation is one completed contraction: its start instant and its
duration in seconds. The session store hands over ContractionRecords; only
completed ones (end time and duration recorded) become observations.

Validation rejects non-finite or negative values before they reach the
fitting pipeline. In strict mode the first invalid observation raises
InvalidInputError; otherwise invalid observations are dropped and logged.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Observation:
    """
    One completed contraction.

    Attributes:
        time: Contraction start instant
        value: Duration in seconds (>= 0); None when not recorded
    """
    time: datetime
    value: Optional[float]

    @property
    def has_duration(self) -> bool:
        # A zero duration counts as "not recorded", like an unfinished timer
        return self.value is not None and self.value != 0

    @property
    def timestamp(self) -> float:
        return to_epoch_seconds(self.time)


@dataclass(frozen=True)
class ContractionRecord:
    """
    Contraction event as kept by the session store.

    Attributes:
        start_time: When the contraction started
        end_time: When it ended (None while still running)
        duration_s: Duration in seconds
        frequency_s: Seconds since the previous contraction started
    """
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_s: Optional[float] = None
    frequency_s: Optional[float] = None

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None and bool(self.duration_s)

    def to_observation(self) -> Observation:
        return Observation(time=self.start_time, value=self.duration_s)


ObservationLike = Union[Observation, Tuple[datetime, Optional[float]]]


# =============================================================================
# TIME CONVERSION
# =============================================================================

def to_epoch_seconds(value: datetime) -> float:
    """
    Convert an instant to epoch seconds.

    Naive datetimes are interpreted as UTC so that conversions are
    independent of the host time zone.
    """
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if not isinstance(value, datetime):
        raise InvalidInputError(f"time must be a datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def from_epoch_seconds(seconds: float, like: Optional[datetime] = None) -> datetime:
    """
    Convert epoch seconds back to a datetime.

    The result takes the time zone of ``like``; a naive reference (or none)
    yields a naive UTC datetime.
    """
    result = datetime.fromtimestamp(seconds, tz=timezone.utc)
    if like is None or like.tzinfo is None:
        return result.replace(tzinfo=None)
    return result.astimezone(like.tzinfo)


# =============================================================================
# ADAPTERS
# =============================================================================

def as_observation(item: ObservationLike) -> Observation:
    if isinstance(item, Observation):
        return item
    if isinstance(item, ContractionRecord):
        return item.to_observation()
    time, value = item
    return Observation(time=time, value=value)


def completed_observations(records: Iterable[ContractionRecord]) -> List[Observation]:
    """Observations for records that have both an end time and a duration."""
    return [r.to_observation() for r in records if r.is_completed]


def observations_from_dataframe(
    df: pd.DataFrame,
    time_col: str = 'start_time',
    duration_col: str = 'duration_s'
) -> List[Observation]:
    """
    Build observations from a tabular contraction log.

    Args:
        df: DataFrame with one row per contraction
        time_col: Column with start instants (anything pd.to_datetime accepts)
        duration_col: Column with durations in seconds (NaN = not recorded)

    Returns:
        List of observations in row order

    Raises:
        ValueError: If a required column is missing
    """
    for col in (time_col, duration_col):
        if col not in df.columns:
            raise ValueError(f"Column '{col}' not found in contraction data")

    times = pd.to_datetime(df[time_col])
    durations = pd.to_numeric(df[duration_col], errors='coerce')

    observations = []
    for t, d in zip(times, durations):
        value = None if pd.isna(d) else float(d)
        observations.append(Observation(time=t.to_pydatetime(), value=value))
    return observations


# =============================================================================
# VALIDATION
# =============================================================================

def check_observation(obs: Observation) -> Optional[str]:
    """
    Check one observation.

    Returns:
        Problem description, or None if the observation is valid
    """
    if not isinstance(obs.time, datetime):
        return f"time must be a datetime, got {type(obs.time).__name__}"
    if pd.isna(obs.time):
        return "time is missing (NaT)"
    if obs.value is None:
        return None
    if isinstance(obs.value, bool) or not isinstance(obs.value, (int, float, np.number)):
        return f"duration must be a number, got {type(obs.value).__name__}"
    if not math.isfinite(obs.value):
        return f"duration must be finite, got {obs.value}"
    if obs.value < 0:
        return f"duration must be non-negative, got {obs.value}"
    return None


def validate_observations(
    observations: Iterable[Any],
    strict: bool = False
) -> List[Observation]:
    """
    Normalise and validate raw observations.

    Args:
        observations: Observations, ContractionRecords or (time, duration)
            pairs, in any order
        strict: Raise on the first invalid observation instead of dropping it

    Returns:
        Valid observations, input order preserved

    Raises:
        InvalidInputError: In strict mode, for the first invalid observation
    """
    valid = []
    dropped = 0

    for index, item in enumerate(observations):
        try:
            obs = as_observation(item)
        except (TypeError, ValueError) as e:
            problem = f"cannot interpret {item!r} as an observation ({e})"
        else:
            problem = check_observation(obs)

        if problem is None:
            valid.append(obs)
            continue

        if strict:
            raise InvalidInputError(problem, index=index)
        dropped += 1
        logger.warning(f"Dropping observation {index}: {problem}")

    if dropped:
        logger.warning(f"Dropped {dropped} invalid observation(s) before prediction")

    return valid


def to_point_arrays(observations: Sequence[Observation]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Completed observations as chronologically sorted (x, y) arrays.

    Observations without a recorded duration are skipped. The sort is
    stable, so equal timestamps keep their input order.

    Returns:
        Tuple of (epoch_seconds, durations)
    """
    points = [(o.timestamp, float(o.value)) for o in observations if o.has_duration]
    if not points:
        return np.array([], dtype=float), np.array([], dtype=float)

    x = np.array([p[0] for p in points], dtype=float)
    y = np.array([p[1] for p in points], dtype=float)
    order = np.argsort(x, kind='stable')
    return x[order], y[order]


__all__ = [
    'Observation',
    'ContractionRecord',
    'to_epoch_seconds',
    'from_epoch_seconds',
    'as_observation',
    'completed_observations',
    'observations_from_dataframe',
    'check_observation',
    'validate_observations',
    'to_point_arrays',
]

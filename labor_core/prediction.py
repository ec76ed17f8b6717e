"""
Delivery Prediction
===================
Predicts the delivery instant from a contraction series by projecting the
duration envelope forward until its upper and lower bands converge.

Pipeline:
1. Keep observations with a recorded duration (at least 3), sort by time
2. Slice to the active phase (at least 3 points)
3. Build the fine envelope of the active phase
4. Fit best-of curves (weighted) to the trend, the upper and the lower band
5. Step forward from the last observation until upper <= lower
6. Grade confidence from the active-phase gap and duration averages

"No convergence yet" is the normal answer early in labor and is returned
as a prediction with time=None and low confidence, never as an exception.

Usage:
    from labor_core.prediction import predict_delivery

    prediction = predict_delivery(observations)
    if prediction.time is not None:
        print(prediction.time, prediction.confidence.value)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

import numpy as np

from .active_phase import detect_active_phase_start
from .config import DEFAULT_CONFIG, PredictorConfig
from .curve_fitting import FittedCurve, fit_best
from .envelope import EnvelopeBand, build_envelope, fine_window_size
from .observations import from_epoch_seconds, to_point_arrays, validate_observations

logger = logging.getLogger(__name__)


class ConfidenceGrade(Enum):
    """How characteristic of late-stage labor the active phase looks."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class DeliveryPrediction:
    """
    Result of a delivery prediction.

    Attributes:
        time: Predicted delivery instant, or None when the bands do not
            converge within the horizon (or data is insufficient)
        confidence: Confidence grade
        reason: Short explanation of the outcome
        active_start_index: Index (in the sorted completed series) where the
            active phase starts
        active_method: 'gap_run' or 'fallback'
        steps_evaluated: Projection steps evaluated before stopping

    The remaining fields carry the intermediate fits for display; they do
    not take part in equality comparisons.
    """
    time: Optional[datetime]
    confidence: ConfidenceGrade = ConfidenceGrade.LOW
    reason: str = ""
    active_start_index: Optional[int] = None
    active_method: Optional[str] = None
    steps_evaluated: int = 0

    trend_fit: Optional[FittedCurve] = field(default=None, compare=False, repr=False)
    upper_fit: Optional[FittedCurve] = field(default=None, compare=False, repr=False)
    lower_fit: Optional[FittedCurve] = field(default=None, compare=False, repr=False)
    envelope: Optional[EnvelopeBand] = field(default=None, compare=False, repr=False)
    active_times: Optional[np.ndarray] = field(default=None, compare=False, repr=False)
    active_durations: Optional[np.ndarray] = field(default=None, compare=False, repr=False)

    @property
    def has_time(self) -> bool:
        return self.time is not None

    @property
    def last_time_s(self) -> Optional[float]:
        if self.active_times is None or len(self.active_times) == 0:
            return None
        return float(self.active_times[-1])

    def to_dict(self) -> Dict[str, Any]:
        """External shape: {'time': iso string or None, 'confidence': ...}."""
        return {
            'time': self.time.isoformat() if self.time is not None else None,
            'confidence': self.confidence.value,
            'reason': self.reason,
            'active_start_index': self.active_start_index,
            'active_method': self.active_method,
            'steps_evaluated': self.steps_evaluated,
            'trend_fit': self.trend_fit.to_dict() if self.trend_fit else None,
            'upper_fit': self.upper_fit.to_dict() if self.upper_fit else None,
            'lower_fit': self.lower_fit.to_dict() if self.lower_fit else None,
        }


def no_prediction(reason: str, **details) -> DeliveryPrediction:
    """Absent prediction with low confidence."""
    return DeliveryPrediction(time=None, confidence=ConfidenceGrade.LOW, reason=reason, **details)


# =============================================================================
# BUILDING BLOCKS
# =============================================================================

def project_convergence(
    upper_fit: FittedCurve,
    lower_fit: FittedCurve,
    start_s: float,
    step_s: float = 300.0,
    horizon_s: float = 12 * 3600.0,
    tolerance: float = 0.0,
    interpolate: bool = False
) -> Tuple[Optional[float], int]:
    """
    Step the fitted bands forward until they meet.

    Evaluates t = start_s + k·step_s for k = 0, 1, ... while t stays within
    the horizon. The lower band is floored at zero. The bands have
    converged once upper - lower <= tolerance.

    Args:
        upper_fit: Curve fitted to the upper band
        lower_fit: Curve fitted to the lower band
        start_s: Last observed time (epoch seconds)
        step_s: Projection step
        horizon_s: Maximum look-ahead
        tolerance: Gap treated as converged
        interpolate: Linearly interpolate the crossing between the previous
            and the converged step

    Returns:
        Tuple of (crossing_time_s or None, steps_evaluated)
    """
    n_steps = int(np.floor(horizon_s / step_s + 1e-9))
    prev_gap = None
    prev_t = None

    for k in range(n_steps + 1):
        t = start_s + k * step_s
        u = upper_fit.predict(t)
        l = max(0.0, lower_fit.predict(t))
        gap = u - l

        if gap <= tolerance:
            if interpolate and prev_gap is not None:
                fraction = (prev_gap - tolerance) / (prev_gap - gap)
                t = prev_t + step_s * fraction
            return t, k + 1

        prev_gap, prev_t = gap, t

    return None, n_steps + 1


def grade_confidence(
    times,
    durations,
    config: PredictorConfig = DEFAULT_CONFIG
) -> ConfidenceGrade:
    """
    Grade confidence from the active-phase statistics.

    - HIGH: average gap < 3 min and average duration >= 45 s
    - MEDIUM: average gap < 5 min and average duration >= 45 s,
      or at least 10 active points
    - LOW: otherwise

    Args:
        times: Sorted active-phase times (seconds)
        durations: Active-phase durations (seconds)
        config: Grading thresholds

    Returns:
        ConfidenceGrade
    """
    times = np.asarray(times, dtype=float)
    durations = np.asarray(durations, dtype=float)
    n = len(times)

    if n == 0:
        return ConfidenceGrade.LOW

    avg_gap = float(np.mean(np.diff(times))) if n > 1 else 0.0
    avg_duration = float(np.mean(durations))
    strong = avg_duration >= config.min_strong_duration_s

    if avg_gap < config.high_gap_s and strong:
        return ConfidenceGrade.HIGH
    if (avg_gap < config.medium_gap_s and strong) or n >= config.medium_min_points:
        return ConfidenceGrade.MEDIUM
    return ConfidenceGrade.LOW


# =============================================================================
# PREDICTOR
# =============================================================================

class DeliveryPredictor:
    """
    Single-shot delivery predictor.

    Holds only its configuration; every call re-fits from scratch and
    shares no state with other calls.

    Usage:
        predictor = DeliveryPredictor(PredictorConfig(interpolate_crossing=True))
        prediction = predictor.predict(observations)
    """

    def __init__(self, config: Optional[PredictorConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def predict(self, observations: Iterable[Any]) -> DeliveryPrediction:
        """
        Predict the delivery time.

        Args:
            observations: Observations, ContractionRecords or
                (start_time, duration_s) pairs in any order

        Returns:
            DeliveryPrediction (time=None when no convergence is found)

        Raises:
            InvalidInputError: In strict mode, for malformed observations
        """
        cfg = self.config
        valid = validate_observations(observations, strict=cfg.strict)
        x, y = to_point_arrays(valid)

        if len(x) < cfg.min_points:
            logger.debug(f"No prediction: {len(x)} completed contractions")
            return no_prediction(
                f"Need at least {cfg.min_points} completed contractions, have {len(x)}"
            )

        reference_time = max((o for o in valid if o.has_duration), key=lambda o: o.timestamp).time

        start, method = detect_active_phase_start(
            x,
            gap_threshold_s=cfg.active_gap_threshold_s,
            run_length=cfg.active_run_length,
            fallback_fraction=cfg.fallback_fraction,
            min_points=cfg.min_points,
        )
        active_x = x[start:]
        active_y = y[start:]

        details = {
            'active_start_index': start,
            'active_method': method,
            'active_times': active_x,
            'active_durations': active_y,
        }

        if len(active_x) < cfg.min_points:
            return no_prediction(
                f"Active phase has {len(active_x)} contractions, need {cfg.min_points}",
                **details
            )

        window = fine_window_size(len(active_x), cfg.min_window_size, cfg.window_divisor)
        envelope = build_envelope(active_x, active_y, window, cfg.sigma_multiplier)

        trend_fit = fit_best(active_x, active_y, cfg.weighted_fit, cfg.exponential_margin)
        upper_fit = fit_best(envelope.times, envelope.upper, cfg.weighted_fit, cfg.exponential_margin)
        lower_fit = fit_best(envelope.times, envelope.lower, cfg.weighted_fit, cfg.exponential_margin)

        details.update(
            envelope=envelope,
            trend_fit=trend_fit,
            upper_fit=upper_fit,
            lower_fit=lower_fit,
        )

        if upper_fit.is_degenerate or lower_fit.is_degenerate:
            return no_prediction("Envelope fit unavailable", **details)

        crossing_s, steps = project_convergence(
            upper_fit,
            lower_fit,
            start_s=float(x[-1]),
            step_s=cfg.step_s,
            horizon_s=cfg.horizon_s,
            tolerance=cfg.convergence_tolerance,
            interpolate=cfg.interpolate_crossing,
        )
        details['steps_evaluated'] = steps

        if crossing_s is None:
            logger.debug(f"No convergence within {cfg.horizon_s / 3600:.1f} h")
            return no_prediction(
                f"Bands do not converge within {cfg.horizon_s / 3600:g} hours",
                **details
            )

        confidence = grade_confidence(active_x, active_y, cfg)
        predicted = from_epoch_seconds(crossing_s, like=reference_time)

        logger.info(
            f"Predicted delivery at {predicted.isoformat()} "
            f"({confidence.value} confidence, {len(active_x)} active contractions)"
        )

        return DeliveryPrediction(
            time=predicted,
            confidence=confidence,
            reason="Envelope bands converge",
            **details
        )


def predict_delivery(
    observations: Iterable[Any],
    config: Optional[PredictorConfig] = None
) -> DeliveryPrediction:
    """
    Predict the delivery time from completed contractions.

    Convenience wrapper around DeliveryPredictor.

    Example:
        >>> prediction = predict_delivery([(start, 55.0) for start in starts])
        >>> prediction.to_dict()['confidence']
        'high'
    """
    return DeliveryPredictor(config).predict(observations)


__all__ = [
    'ConfidenceGrade',
    'DeliveryPrediction',
    'DeliveryPredictor',
    'no_prediction',
    'project_convergence',
    'grade_confidence',
    'predict_delivery',
]

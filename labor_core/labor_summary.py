"""
Labor Summary
=============
Session-level summary shown alongside the delivery prediction: average
contraction frequency and duration, whether contractions are getting closer
together, and a short plain-language reasoning line.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from .config import PredictorConfig
from .errors import InvalidInputError
from .observations import (
    ContractionRecord,
    check_observation,
    completed_observations,
    to_epoch_seconds,
)
from .prediction import ConfidenceGrade, DeliveryPrediction, predict_delivery

logger = logging.getLogger(__name__)

TREND_WINDOW = 3
TREND_FASTER_RATIO = 0.8
TREND_SLOWER_RATIO = 1.2


class LaborTrend(Enum):
    """Direction of contraction frequency."""
    INCREASING = "increasing"  # Contractions coming closer together
    STABLE = "stable"
    DECREASING = "decreasing"  # Contractions spreading out


@dataclass
class LaborSummary:
    """Prediction plus the session statistics it is reported with."""
    prediction: DeliveryPrediction
    avg_frequency_s: float
    avg_duration_s: float
    trend: LaborTrend
    reasoning: str
    n_completed: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'prediction': self.prediction.to_dict(),
            'avg_frequency_s': self.avg_frequency_s,
            'avg_duration_s': self.avg_duration_s,
            'trend': self.trend.value,
            'reasoning': self.reasoning,
            'n_completed': self.n_completed,
        }


def detect_frequency_trend(frequencies) -> LaborTrend:
    """
    Compare recent contraction frequency with the start of the session.

    The mean of the last 3 frequencies is compared with the mean of the
    first min(3, n - 3). Recent below 80% of earlier means contractions are
    coming faster; above 120% means they are slowing down.

    Args:
        frequencies: Seconds between consecutive contraction starts,
            chronological

    Returns:
        LaborTrend (STABLE when fewer than 4 values)
    """
    values = np.asarray(frequencies, dtype=float)
    if len(values) < TREND_WINDOW:
        return LaborTrend.STABLE

    recent = values[-TREND_WINDOW:]
    earlier = values[:min(TREND_WINDOW, len(values) - TREND_WINDOW)]
    if len(earlier) == 0:
        return LaborTrend.STABLE

    recent_avg = np.mean(recent)
    earlier_avg = np.mean(earlier)

    if recent_avg < earlier_avg * TREND_FASTER_RATIO:
        return LaborTrend.INCREASING
    if recent_avg > earlier_avg * TREND_SLOWER_RATIO:
        return LaborTrend.DECREASING
    return LaborTrend.STABLE


def frequencies_from_records(records: Iterable[ContractionRecord]) -> List[float]:
    """
    Frequencies of completed records, in chronological order.

    Uses the recorded frequency when present and otherwise the time since
    the previous record's start.
    """
    ordered = sorted(records, key=lambda r: to_epoch_seconds(r.start_time))
    frequencies = []
    previous_start = None

    for record in ordered:
        start = to_epoch_seconds(record.start_time)
        if record.is_completed:
            if record.frequency_s:
                frequencies.append(float(record.frequency_s))
            elif previous_start is not None:
                frequencies.append(start - previous_start)
        previous_start = start

    return frequencies


def build_reasoning(prediction: DeliveryPrediction, trend: LaborTrend) -> str:
    if prediction.time is None:
        return "Continue monitoring. Unable to calculate delivery prediction yet."

    if prediction.confidence == ConfidenceGrade.HIGH:
        reasoning = "Active labor phase detected. Contractions are frequent and strong."
    elif prediction.confidence == ConfidenceGrade.MEDIUM:
        reasoning = "Labor is progressing. Contractions are becoming more regular."
    else:
        reasoning = "Early labor phase. Continue monitoring as patterns develop."

    if trend == LaborTrend.INCREASING:
        reasoning += " Labor is progressing rapidly."
    elif trend == LaborTrend.DECREASING:
        reasoning += " Labor progression has slowed."

    return reasoning


def summarize_labor(
    records: Iterable[ContractionRecord],
    config: Optional[PredictorConfig] = None
) -> Optional[LaborSummary]:
    """
    Summarise a contraction session.

    Args:
        records: Session contraction records (completed or not)
        config: Predictor configuration

    Returns:
        LaborSummary, or None with fewer than 3 valid completed contractions

    Raises:
        InvalidInputError: In strict mode, for a completed record with an
            invalid duration

    Example:
        >>> summary = summarize_labor(session_records)
        >>> if summary:
        >>>     print(summary.reasoning)
    """
    records = list(records)
    strict = config.strict if config else False

    kept = []
    for index, record in enumerate(records):
        if record.is_completed:
            problem = check_observation(record.to_observation())
            if problem is not None:
                if strict:
                    raise InvalidInputError(problem, index=index)
                logger.warning(f"Dropping contraction {index} from summary: {problem}")
                continue
        kept.append(record)

    completed = [r for r in kept if r.is_completed]
    min_points = config.min_points if config else 3
    if len(completed) < min_points:
        return None

    prediction = predict_delivery(completed_observations(completed), config)

    frequencies = frequencies_from_records(kept)
    avg_frequency = float(np.mean(frequencies)) if frequencies else 0.0
    avg_duration = float(np.mean([r.duration_s for r in completed]))
    trend = detect_frequency_trend(frequencies)

    return LaborSummary(
        prediction=prediction,
        avg_frequency_s=avg_frequency,
        avg_duration_s=avg_duration,
        trend=trend,
        reasoning=build_reasoning(prediction, trend),
        n_completed=len(completed),
    )


def format_summary_for_display(summary: LaborSummary) -> str:
    """
    Format a labor summary for display in UI.

    Returns:
        Markdown-formatted string
    """
    prediction = summary.prediction
    lines = ["## Labor Summary", ""]

    if prediction.time is not None:
        lines.append(f"**Estimated delivery:** {prediction.time:%Y-%m-%d %H:%M}")
    else:
        lines.append("**Estimated delivery:** not yet available")

    lines.extend([
        f"**Confidence:** {prediction.confidence.value}",
        "",
        f"- Completed contractions: {summary.n_completed}",
        f"- Average frequency: {summary.avg_frequency_s / 60:.2f} minutes",
        f"- Average duration: {summary.avg_duration_s:.0f} seconds",
        f"- Trend: {summary.trend.value}",
        "",
        summary.reasoning,
    ])

    return "\n".join(lines)


__all__ = [
    'LaborTrend',
    'LaborSummary',
    'detect_frequency_trend',
    'frequencies_from_records',
    'build_reasoning',
    'summarize_labor',
    'format_summary_for_display',
]

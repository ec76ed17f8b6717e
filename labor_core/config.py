"""
Predictor Configuration
=======================
Tuning constants for the delivery predictor.

The defaults are empirical values (2σ envelope, 6-minute active-phase gap,
5% exponential preference margin, 5-minute steps over a 12-hour horizon).
They are exposed as configuration rather than hard-coded so they can be
adjusted without touching the pipeline.

Key Principle: Fail fast on bad configs. All problems are collected and
reported together in a single ValueError.

Usage:
    from labor_core.config import PredictorConfig, load_predictor_config

    config = PredictorConfig(step_s=60, interpolate_crossing=True)
    config = load_predictor_config('predictor.json')
"""

import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union


@dataclass(frozen=True)
class PredictorConfig:
    """Delivery predictor settings."""
    # Minimum points before and after active-phase slicing
    min_points: int = 3

    # Active phase detection
    active_gap_threshold_s: float = 360.0
    active_run_length: int = 3
    fallback_fraction: float = 0.5

    # Envelope
    sigma_multiplier: float = 2.0
    min_window_size: int = 3
    window_divisor: int = 5

    # Curve fitting
    weighted_fit: bool = True
    exponential_margin: float = 0.95

    # Forward projection
    step_s: float = 300.0
    horizon_s: float = 12 * 3600.0
    convergence_tolerance: float = 0.0
    interpolate_crossing: bool = False

    # Confidence grading
    high_gap_s: float = 180.0
    medium_gap_s: float = 300.0
    min_strong_duration_s: float = 45.0
    medium_min_points: int = 10

    # Raise on invalid observations instead of dropping them
    strict: bool = False

    def __post_init__(self):
        is_valid, errors = validate_predictor_config(asdict(self))
        if not is_valid:
            raise ValueError(
                "Predictor configuration validation failed:\n  - " + "\n  - ".join(errors)
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def replace(self, **changes) -> 'PredictorConfig':
        """Copy with some fields changed (validated)."""
        data = self.to_dict()
        data.update(changes)
        return PredictorConfig.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PredictorConfig':
        """
        Build a validated config from a dictionary.

        Unknown keys are ignored; missing keys take their defaults.

        Raises:
            ValueError: If any value fails validation
        """
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


# Upper bound on horizon_s / step_s
MAX_PROJECTION_STEPS = 100_000

_POSITIVE_FIELDS = (
    'active_gap_threshold_s', 'sigma_multiplier', 'step_s', 'horizon_s',
    'high_gap_s', 'medium_gap_s',
)
_MIN_ONE_INT_FIELDS = (
    'min_points', 'active_run_length', 'min_window_size', 'window_divisor',
    'medium_min_points',
)
_BOOL_FIELDS = ('weighted_fit', 'interpolate_crossing', 'strict')


def validate_predictor_config(config: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Check a predictor config dictionary.

    Args:
        config: Partial or complete config dictionary

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    defaults = {f.name: f.default for f in fields(PredictorConfig)}
    merged = {**defaults, **config}

    for name in _POSITIVE_FIELDS:
        value = merged[name]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            errors.append(f"{name} must be a number, got {value!r}")
        elif value <= 0:
            errors.append(f"{name} must be positive, got {value}")

    for name in _MIN_ONE_INT_FIELDS:
        value = merged[name]
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{name} must be an integer, got {value!r}")
        elif value < 1:
            errors.append(f"{name} must be at least 1, got {value}")

    for name in _BOOL_FIELDS:
        if not isinstance(merged[name], bool):
            errors.append(f"{name} must be true or false, got {merged[name]!r}")

    fraction = merged['fallback_fraction']
    if not isinstance(fraction, (int, float)) or not 0 <= fraction < 1:
        errors.append(f"fallback_fraction must be in [0, 1), got {fraction!r}")

    margin = merged['exponential_margin']
    if not isinstance(margin, (int, float)) or not 0 < margin <= 1:
        errors.append(f"exponential_margin must be in (0, 1], got {margin!r}")

    for name in ('convergence_tolerance', 'min_strong_duration_s'):
        value = merged[name]
        if not isinstance(value, (int, float)) or value < 0:
            errors.append(f"{name} must be a non-negative number, got {value!r}")

    # Cross-field checks
    if not errors:
        if merged['high_gap_s'] > merged['medium_gap_s']:
            errors.append(
                f"high_gap_s ({merged['high_gap_s']}) must not exceed "
                f"medium_gap_s ({merged['medium_gap_s']})"
            )
        if merged['step_s'] > merged['horizon_s']:
            errors.append(
                f"step_s ({merged['step_s']}) must not exceed horizon_s ({merged['horizon_s']})"
            )
        elif merged['horizon_s'] / merged['step_s'] > MAX_PROJECTION_STEPS:
            errors.append(
                f"horizon_s / step_s must not exceed {MAX_PROJECTION_STEPS} projection steps"
            )

    return len(errors) == 0, errors


DEFAULT_CONFIG = PredictorConfig()


def load_predictor_config(path: Union[str, Path]) -> PredictorConfig:
    """
    Load a predictor config from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the JSON is malformed or fails validation
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Predictor config not found: {path}")

    with open(path, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Predictor config in {path} must be a JSON object")

    return PredictorConfig.from_dict(data)


__all__ = [
    'PredictorConfig',
    'DEFAULT_CONFIG',
    'validate_predictor_config',
    'load_predictor_config',
]

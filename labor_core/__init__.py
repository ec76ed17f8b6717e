"""
Labor Funnel - Core Module
==========================
Delivery-time prediction from a live series of contraction timings.

Prediction Components:
- linear_algebra: Small dense solver (Gaussian elimination, partial pivoting)
- curve_fitting: Weighted polynomial/exponential fits and best-of selection
- envelope: Rolling mean ± kσ duration envelope
- active_phase: Active labor onset detection
- prediction: Forward projection to band convergence, confidence grading

Shared Utilities:
- observations: Observation model, completed-record filtering, validation
- config: Predictor tuning constants
- labor_summary: Averages, frequency trend and reasoning text
- visualization: Funnel chart data and plotly figure

Usage:
    from labor_core import predict_delivery, Observation
    from labor_core.config import PredictorConfig
    from labor_core.labor_summary import summarize_labor
    from labor_core.visualization import build_funnel_chart_data, plot_labor_funnel
"""

from .errors import (
    LaborCoreError,
    SingularMatrixError,
    InvalidInputError,
)

from .linear_algebra import solve_linear_system

from .curve_fitting import (
    FitKind,
    FittedCurve,
    LinearFit,
    recency_weights,
    weighted_rmse,
    fit_polynomial,
    fit_exponential,
    fit_best,
    fit_linear,
)

from .envelope import (
    EnvelopeBand,
    fine_window_size,
    build_envelope,
)

from .active_phase import detect_active_phase_start

from .observations import (
    Observation,
    ContractionRecord,
    completed_observations,
    observations_from_dataframe,
    validate_observations,
)

from .config import (
    PredictorConfig,
    DEFAULT_CONFIG,
    validate_predictor_config,
    load_predictor_config,
)

from .prediction import (
    ConfidenceGrade,
    DeliveryPrediction,
    DeliveryPredictor,
    grade_confidence,
    project_convergence,
    predict_delivery,
)

from .labor_summary import (
    LaborTrend,
    LaborSummary,
    detect_frequency_trend,
    summarize_labor,
    format_summary_for_display,
)

__version__ = "1.0.0"

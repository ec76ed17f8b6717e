"""
Labor Funnel Chart
==================
Chart data and plotly figure for the contraction envelope "funnel".

The chart is derived from the same DeliveryPrediction the text report uses,
so the drawn intersection and the reported delivery time always agree.

Key features:
- Observed contraction durations
- Best-of trend line over the active phase
- Upper/lower envelope fits, projected forward to the intersection
- Intersection marker at the predicted delivery time
- Linear trend of the band width (funnel narrowing)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Optional

import numpy as np
import plotly.graph_objects as go

from .config import PredictorConfig
from .curve_fitting import LinearFit, fit_linear
from .observations import (
    from_epoch_seconds,
    to_epoch_seconds,
    to_point_arrays,
    validate_observations,
)
from .prediction import DeliveryPrediction, DeliveryPredictor

PROJECTION_POINTS = 50


@dataclass
class ChartSeries:
    """Named line or marker series with datetime x values."""
    name: str
    x: List[datetime] = field(default_factory=list)
    y: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.x)


@dataclass
class FunnelChartData:
    """All series needed to draw the labor funnel."""
    observed: ChartSeries
    trend_line: ChartSeries
    upper_line: ChartSeries
    lower_line: ChartSeries
    upper_projection: ChartSeries
    lower_projection: ChartSeries
    prediction: DeliveryPrediction
    intersection: Optional[ChartSeries] = None
    width_trend: Optional[LinearFit] = None

    @property
    def has_intersection(self) -> bool:
        return self.intersection is not None and len(self.intersection) > 0


def _curve_series(name: str, curve, x_s: np.ndarray, like: datetime,
                  floor_zero: bool = False) -> ChartSeries:
    if curve is None or len(x_s) == 0:
        return ChartSeries(name)
    y = np.asarray(curve.predict(x_s), dtype=float)
    if floor_zero:
        y = np.maximum(0.0, y)
    return ChartSeries(
        name=name,
        x=[from_epoch_seconds(t, like=like) for t in x_s],
        y=y.tolist(),
    )


def build_funnel_chart_data(
    observations: Iterable[Any],
    config: Optional[PredictorConfig] = None,
) -> FunnelChartData:
    """
    Run the prediction and turn its fits into chart series.

    Args:
        observations: Same input accepted by predict_delivery
        config: Predictor configuration

    Returns:
        FunnelChartData; fitted series are empty when no fit was possible
    """
    predictor = DeliveryPredictor(config)
    valid = validate_observations(observations, strict=predictor.config.strict)
    prediction = predictor.predict(valid)

    x, y = to_point_arrays(valid)
    completed = [o for o in valid if o.has_duration]
    like = max(completed, key=lambda o: o.timestamp).time if completed else None

    observed = ChartSeries(
        name='Contractions',
        x=[from_epoch_seconds(t, like=like) for t in x],
        y=y.tolist(),
    )

    active_x = prediction.active_times if prediction.active_times is not None else np.array([])
    trend_line = _curve_series('Trend', prediction.trend_fit, active_x, like)
    upper_line = _curve_series('Upper band', prediction.upper_fit, active_x, like)
    lower_line = _curve_series('Lower band', prediction.lower_fit, active_x, like, floor_zero=True)

    # Straight-line trend of the band width; a negative slope means the
    # funnel is narrowing
    width_trend = None
    if prediction.envelope is not None and not prediction.envelope.is_empty:
        width_trend = fit_linear(prediction.envelope.times, prediction.envelope.width)

    upper_projection = ChartSeries('Upper projection')
    lower_projection = ChartSeries('Lower projection')
    intersection = None

    last_s = prediction.last_time_s
    if (last_s is not None and prediction.upper_fit is not None
            and not prediction.upper_fit.is_degenerate and not prediction.lower_fit.is_degenerate):
        cfg = predictor.config
        if prediction.time is not None:
            end_s = to_epoch_seconds(prediction.time)
        else:
            end_s = last_s + cfg.horizon_s
        proj_x = np.linspace(last_s, max(end_s, last_s), PROJECTION_POINTS)
        upper_projection = _curve_series('Upper projection', prediction.upper_fit, proj_x, like)
        lower_projection = _curve_series('Lower projection', prediction.lower_fit, proj_x, like,
                                         floor_zero=True)

        if prediction.time is not None:
            level = max(0.0, prediction.lower_fit.predict(end_s))
            intersection = ChartSeries('Predicted delivery', [prediction.time], [level])

    return FunnelChartData(
        observed=observed,
        trend_line=trend_line,
        upper_line=upper_line,
        lower_line=lower_line,
        upper_projection=upper_projection,
        lower_projection=lower_projection,
        prediction=prediction,
        intersection=intersection,
        width_trend=width_trend,
    )


def plot_labor_funnel(
    chart_data: FunnelChartData,
    title: str = "Contraction Duration Funnel",
) -> go.Figure:
    """
    Create the interactive funnel plot.

    Args:
        chart_data: Output of build_funnel_chart_data
        title: Plot title

    Returns:
        Plotly Figure object

    Example:
        >>> fig = plot_labor_funnel(build_funnel_chart_data(observations))
        >>> fig.write_html("funnel.html")
    """
    fig = go.Figure()

    # Observed durations
    fig.add_trace(go.Scatter(
        x=chart_data.observed.x,
        y=chart_data.observed.y,
        mode='markers',
        name=chart_data.observed.name,
        marker=dict(size=8, color='steelblue'),
        hovertemplate='%{x|%H:%M}<br>Duration: %{y:.0f} s<extra></extra>',
    ))

    if len(chart_data.trend_line):
        fig.add_trace(go.Scatter(
            x=chart_data.trend_line.x,
            y=chart_data.trend_line.y,
            mode='lines',
            name=chart_data.trend_line.name,
            line=dict(color='gray', width=2),
        ))

    # Envelope over the active phase, filled between the bands
    if len(chart_data.upper_line) and len(chart_data.lower_line):
        fig.add_trace(go.Scatter(
            x=chart_data.upper_line.x,
            y=chart_data.upper_line.y,
            mode='lines',
            name=chart_data.upper_line.name,
            line=dict(color='rgba(200, 60, 60, 0.8)', width=2),
        ))
        fig.add_trace(go.Scatter(
            x=chart_data.lower_line.x,
            y=chart_data.lower_line.y,
            mode='lines',
            name=chart_data.lower_line.name,
            line=dict(color='rgba(60, 120, 200, 0.8)', width=2),
            fill='tonexty',
            fillcolor='rgba(150, 150, 255, 0.15)',
        ))

    for series, color in ((chart_data.upper_projection, 'rgba(200, 60, 60, 0.6)'),
                          (chart_data.lower_projection, 'rgba(60, 120, 200, 0.6)')):
        if len(series):
            fig.add_trace(go.Scatter(
                x=series.x,
                y=series.y,
                mode='lines',
                name=series.name,
                line=dict(color=color, width=2, dash='dash'),
            ))

    if chart_data.has_intersection:
        confidence = chart_data.prediction.confidence.value
        fig.add_trace(go.Scatter(
            x=chart_data.intersection.x,
            y=chart_data.intersection.y,
            mode='markers',
            name=f'{chart_data.intersection.name} ({confidence} confidence)',
            marker=dict(size=14, color='darkgreen', symbol='star'),
            hovertemplate='Predicted delivery<br>%{x|%Y-%m-%d %H:%M}<extra></extra>',
        ))

    fig.update_layout(
        title=dict(text=title, font=dict(size=20, family='Arial, sans-serif')),
        xaxis=dict(title=dict(text='Time'), gridcolor='lightgray'),
        yaxis=dict(title=dict(text='Duration (s)'), gridcolor='lightgray', rangemode='tozero'),
        hovermode='closest',
        plot_bgcolor='white',
        legend=dict(x=1.02, y=1, bgcolor='rgba(255, 255, 255, 0.9)',
                    bordercolor='gray', borderwidth=1),
    )

    return fig


__all__ = [
    'ChartSeries',
    'FunnelChartData',
    'build_funnel_chart_data',
    'plot_labor_funnel',
]

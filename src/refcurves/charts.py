"""
Chart builders: percentile growth charts and bilirubin threshold charts.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

import plotly.graph_objects as go

from .config import (
    PERCENTILE_COLORS,
    PERCENTILE_DASHES,
    PERCENTILE_WIDTHS,
    PLOT_COLORS,
    PLOT_HEIGHT,
    STANDARD_PERCENTILES,
)
from .curves import CurvePoint, generate_curve, threshold_curve
from .tables import ReferenceTable


def percentile_label(percentile: float) -> str:
    """Legend label: '3rd', '10th', '50th (median)'."""
    if percentile == 50:
        return "50th (median)"
    p = int(percentile) if float(percentile).is_integer() else percentile
    suffix = "th"
    if isinstance(p, int) and p % 100 not in (11, 12, 13):
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(p % 10, "th")
    return f"{p}{suffix}"


def percentile_trace(
    label: str, points: Sequence[CurvePoint], percentile: float, x_scale: float = 1.0
) -> go.Scatter:
    """Line trace for one percentile curve, styled per percentile."""
    return go.Scatter(
        x=[pt.independent * x_scale for pt in points],
        y=[pt.value for pt in points],
        mode="lines",
        name=label,
        line=dict(
            color=PERCENTILE_COLORS.get(percentile, PLOT_COLORS["default_percentile"]),
            width=PERCENTILE_WIDTHS.get(percentile, 1),
            dash=PERCENTILE_DASHES.get(percentile, "solid"),
            shape="spline",
        ),
        hoverinfo="skip",
        showlegend=False,
    )


def patient_trace(label: str, points: Sequence[Tuple[float, float]]) -> go.Scatter:
    """Patient measurements drawn on top of the reference curves."""
    return go.Scatter(
        x=[x for x, _ in points],
        y=[y for _, y in points],
        mode="lines+markers",
        name=label,
        line=dict(color=PLOT_COLORS["patient"], width=2),
        marker=dict(
            size=12,
            color=PLOT_COLORS["patient"],
            line=dict(color="white", width=2),
        ),
    )


def growth_chart(
    table: ReferenceTable,
    percentiles: Iterable[float] = STANDARD_PERCENTILES,
    step: float = 1.0,
    patient_points: Optional[Sequence[Tuple[float, float]]] = None,
    x_label: str = "Age (months)",
    y_label: str = "Value",
    x_scale: float = 1.0,
) -> go.Figure:
    """
    Percentile chart for an LMS table with optional patient measurements.

    Args:
        table: LMS reference table
        percentiles: Percentiles to draw
        step: Curve step in the table's age unit
        patient_points: (x, y) pairs already expressed in chart units
        x_label: X axis title
        y_label: Y axis title
        x_scale: Multiplier from table age units to chart x units
            (e.g. 1/12 to plot a months table in years)

    Returns:
        Plotly figure
    """
    fig = go.Figure()
    for p in percentiles:
        curve = generate_curve(table, p, step)
        fig.add_trace(percentile_trace(percentile_label(p), curve, p, x_scale))

    if patient_points:
        fig.add_trace(patient_trace("Patient", patient_points))

    fig.update_layout(
        height=PLOT_HEIGHT,
        xaxis_title=x_label,
        yaxis_title=y_label,
        hovermode="closest",
        showlegend=False,
        margin=dict(l=50, r=20, t=30, b=50),
    )
    return fig


def bilirubin_chart(
    photo_table: ReferenceTable,
    exchange_table: ReferenceTable,
    age_hours: Optional[float] = None,
    tsb: Optional[float] = None,
) -> go.Figure:
    """Phototherapy and exchange transfusion curves with the patient's TSB."""
    traces: List[go.Scatter] = []
    photo = threshold_curve(photo_table)
    traces.append(
        go.Scatter(
            x=[pt.independent for pt in photo],
            y=[pt.value for pt in photo],
            mode="lines",
            name="Phototherapy Threshold",
            line=dict(color=PLOT_COLORS["phototherapy"], width=2, shape="spline"),
        )
    )
    exchange = threshold_curve(exchange_table)
    traces.append(
        go.Scatter(
            x=[pt.independent for pt in exchange],
            y=[pt.value for pt in exchange],
            mode="lines",
            name="Exchange Transfusion",
            line=dict(color=PLOT_COLORS["exchange"], width=2, dash="dash", shape="spline"),
        )
    )
    if age_hours is not None and tsb is not None:
        traces.append(
            go.Scatter(
                x=[age_hours],
                y=[tsb],
                mode="markers",
                name="Patient TSB",
                marker=dict(
                    size=14,
                    color=PLOT_COLORS["patient"],
                    line=dict(color="white", width=3),
                ),
                hovertemplate="%{x} hours<br>%{y:.1f} mg/dL<extra></extra>",
            )
        )

    fig = go.Figure(data=traces)
    fig.update_layout(
        height=PLOT_HEIGHT,
        xaxis=dict(title="Postnatal Age (hours)", range=[0, 100]),
        yaxis=dict(title="Total Serum Bilirubin (mg/dL)", rangemode="tozero"),
        legend=dict(orientation="h", yanchor="top", y=-0.2),
    )
    return fig

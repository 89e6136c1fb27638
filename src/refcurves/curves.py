"""
Percentile curve generation for charting.
"""

from typing import Dict, Iterable, List, NamedTuple, Optional
import math

import numpy as np

from .config import DEFAULT_CURVE_STEP, MAX_CURVE_POINTS, STANDARD_PERCENTILES
from .interpolation import interpolate
from .tables import LMSParameters, ReferenceTable
from .zscores import value_from_z, z_from_percentile


class CurvePoint(NamedTuple):
    independent: float
    value: float


def _grid(start: float, stop: float, step: float) -> np.ndarray:
    """Points start + k*step up to and including stop (within rounding)."""
    count = (stop - start) / step
    if not count < MAX_CURVE_POINTS:
        raise ValueError(
            f"Curve step {step} needs more than {MAX_CURVE_POINTS} points "
            f"over [{start}, {stop}]"
        )
    n = math.floor(count + 1e-9)
    return np.minimum(start + step * np.arange(n + 1), stop)


def generate_curve(
    table: Optional[ReferenceTable],
    percentile: float,
    step: Optional[float] = DEFAULT_CURVE_STEP,
) -> List[CurvePoint]:
    """
    Trace one percentile across a table's full age range.

    Walks from the first to the last tabulated age in ``step`` increments and
    evaluates the inverse LMS transform at each point. Points that cannot be
    computed are skipped.

    Args:
        table: LMS reference table
        percentile: Percentile to trace (0-100), e.g. 50 or 97
        step: Age increment in the table's unit; non-positive, non-finite or
            missing values fall back to 1

    Returns:
        Curve points in ascending age order; empty for an empty table.

    Raises:
        ValueError: If ``step`` would need more than MAX_CURVE_POINTS points.
    """
    if table is None or len(table) == 0:
        return []
    if step is None or not math.isfinite(step) or step <= 0:
        step = 1.0

    z = z_from_percentile(percentile / 100)
    points = []
    for age in _grid(float(table.ages[0]), float(table.ages[-1]), step):
        lms = interpolate(table, float(age))
        if not isinstance(lms, LMSParameters):
            continue
        value = value_from_z(z, lms.L, lms.M, lms.S)
        if value is None:
            continue
        points.append(CurvePoint(float(age), value))
    return points


def percentile_curves(
    table: Optional[ReferenceTable],
    percentiles: Iterable[float] = STANDARD_PERCENTILES,
    step: Optional[float] = DEFAULT_CURVE_STEP,
) -> Dict[float, List[CurvePoint]]:
    """Curves for several percentiles, keyed by percentile."""
    return {p: generate_curve(table, p, step) for p in percentiles}


def threshold_curve(table: Optional[ReferenceTable]) -> List[CurvePoint]:
    """Tabulated rows of a threshold table as curve points."""
    if table is None or len(table) == 0:
        return []
    if table.kind != "threshold":
        raise ValueError(f"threshold_curve needs a threshold table, got {table.kind}")
    return [
        CurvePoint(float(age), float(value))
        for age, value in zip(table.ages, table.column("threshold"))
    ]

"""
Piecewise-linear interpolation over reference tables.

Queries outside the tabulated range are clamped: at or below the first row
the first row's parameters are returned unmodified, at or above the last row
the last row's. Extreme ages therefore reuse the boundary parameters instead
of extrapolating.
"""

from typing import Dict, Optional, Tuple, Union
import logging
import math

import numpy as np

from .tables import LMSParameters, ReferenceTable

logger = logging.getLogger(__name__)

Interpolated = Union[LMSParameters, float, Dict[str, float]]


def _package(table: ReferenceTable, values: Tuple[float, ...]) -> Interpolated:
    """Shape interpolated dependent values for the table kind."""
    if table.kind == "lms":
        return LMSParameters(*values)
    if len(values) == 1:
        return values[0]
    return dict(zip(table.fields, values))


def interpolate_values(
    table: Optional[ReferenceTable], query: float
) -> Optional[Tuple[float, ...]]:
    """
    Interpolate every dependent field of a table at ``query``.

    Args:
        table: Reference table sorted ascending by age
        query: Independent-variable value in the table's unit

    Returns:
        Tuple of dependent values in field order, or None if the table is
        empty/missing, the query is not finite, or no row pair brackets it.
    """
    if table is None or len(table) == 0:
        return None
    if not math.isfinite(query):
        return None

    ages = table.ages
    if query <= ages[0]:
        return table.values_at(0)
    if query >= ages[-1]:
        return table.values_at(len(table) - 1)

    # First pair with ages[i] <= query <= ages[i + 1]
    bracketing = np.nonzero((ages[:-1] <= query) & (query <= ages[1:]))[0]
    if bracketing.size == 0:
        logger.warning(
            f"{table.name or 'reference table'}: no rows bracket {query}; "
            "table may be unsorted"
        )
        return None
    i = int(bracketing[0])

    width = ages[i + 1] - ages[i]
    left = table.values_at(i)
    if width == 0:
        return left
    right = table.values_at(i + 1)
    frac = (query - ages[i]) / width
    return tuple(float(lo + frac * (hi - lo)) for lo, hi in zip(left, right))


def interpolate(
    table: Optional[ReferenceTable], query: float
) -> Optional[Interpolated]:
    """
    Estimate a table's parameters at an arbitrary query point.

    Returns:
        LMSParameters for LMS tables, a float for threshold tables, a dict of
        field values for other layouts, or None when there is no reference data.
    """
    values = interpolate_values(table, query)
    if values is None:
        return None
    return _package(table, values)


def interpolate_threshold(
    table: Optional[ReferenceTable], query: float
) -> Optional[float]:
    """Interpolated threshold of a two-column table (e.g. a bilirubin curve)."""
    values = interpolate_values(table, query)
    if values is None:
        return None
    return values[0]


def interpolate_lms(
    table: Optional[ReferenceTable], queries: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorized LMS interpolation for many query points.

    Uses ``np.interp``, which clamps at both ends like ``interpolate``.
    Non-finite queries and empty tables give NaN.

    Args:
        table: LMS reference table sorted ascending by age
        queries: Ages in the table's unit

    Returns:
        Tuple of (L, M, S) arrays matching the input shape
    """
    queries = np.asarray(queries, dtype=np.float64)
    if table is None or len(table) == 0:
        nan = np.full(queries.shape, np.nan)
        return nan, nan.copy(), nan.copy()
    if table.kind != "lms":
        raise ValueError(f"interpolate_lms needs an LMS table, got {table.kind}")

    finite = np.isfinite(queries)
    out = []
    for field in ("L", "M", "S"):
        values = np.full(queries.shape, np.nan)
        values[finite] = np.interp(queries[finite], table.ages, table.column(field))
        out.append(values)
    return out[0], out[1], out[2]

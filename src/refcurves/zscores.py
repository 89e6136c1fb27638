"""
Z-Score and Percentile Transforms for LMS Reference Data

This module converts between raw measurements, LMS z-scores and percentiles.
Scalar functions return None for uncomputable inputs; the vectorized kernels
return NaN in the same places. Nothing here clamps z-scores except
``calculate``, which applies the display bounds from config.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import logging
import math

import numpy as np
from numba import jit
from scipy import stats

from .config import CDF_SATURATION, DISPLAY_DECIMALS, L_ZERO_THRESHOLD, Z_DISPLAY_BOUNDS
from .interpolation import interpolate, interpolate_lms
from .tables import LMSParameters, ReferenceTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZScoreResult:
    """Z-score, percentile (0-100) and the interpolated LMS parameters used."""

    z: float
    percentile: float
    lms: LMSParameters


def zscore_from_value(value: float, L: float, M: float, S: float) -> Optional[float]:
    """
    Calculate the LMS z-score of a single measurement.

    Implements the LMS method from Cole (1990):
    For L ≠ 0: z = ((X/M)^L - 1) / (L * S)
    For L ≈ 0: z = ln(X/M) / S

    Args:
        value: Observed measurement (kg/cm)
        L: Box-Cox power
        M: Median
        S: Coefficient of variation

    Returns:
        Unclamped z-score, or None if value, M or S is non-positive, any
        input is not finite, or the z-score itself overflows.
    """
    if not all(math.isfinite(v) for v in (value, L, M, S)):
        return None
    if M <= 0 or S <= 0 or value <= 0:
        return None
    try:
        if abs(L) < L_ZERO_THRESHOLD:
            z = math.log(value / M) / S
        else:
            z = ((value / M) ** L - 1) / (L * S)
    except OverflowError:
        return None
    if not math.isfinite(z):
        return None
    return z


def value_from_z(z: float, L: float, M: float, S: float) -> Optional[float]:
    """
    Inverse LMS transform: the measurement lying at z-score ``z``.

    Formula: M * (1 + L*S*z)^(1/L), or M * exp(S*z) when L ≈ 0.

    Returns:
        Measurement value, or None when the result is undefined or not finite
        (non-finite z, or 1 + L*S*z <= 0 outside the distribution's support).
    """
    if not all(math.isfinite(v) for v in (z, L, M, S)):
        return None
    try:
        if abs(L) < L_ZERO_THRESHOLD:
            value = M * math.exp(S * z)
        else:
            base = 1 + L * S * z
            if base <= 0:
                return None
            value = M * base ** (1 / L)
    except OverflowError:
        return None
    if not math.isfinite(value):
        return None
    return value


def percentile_from_z(z: float) -> float:
    """
    Standard normal CDF.

    Saturates to exactly 0 below -6 and 1 above +6. Returns a probability in
    [0, 1]; multiply by 100 for a percentile.
    """
    if math.isnan(z):
        return math.nan
    if z < -CDF_SATURATION:
        return 0.0
    if z > CDF_SATURATION:
        return 1.0
    return float(stats.norm.cdf(z))


def z_from_percentile(p: float) -> float:
    """
    Inverse standard normal CDF (probit).

    Args:
        p: Cumulative probability in (0, 1)

    Returns:
        z with P(Z <= z) = p; -inf for p <= 0, +inf for p >= 1, 0 for p = 0.5.
    """
    if math.isnan(p):
        return math.nan
    if p <= 0:
        return -math.inf
    if p >= 1:
        return math.inf
    if p == 0.5:
        return 0.0
    return float(stats.norm.ppf(p))


@jit(nopython=True, cache=True)
def _lms_zscore_kernel(
    X: np.ndarray, L: np.ndarray, M: np.ndarray, S: np.ndarray
) -> np.ndarray:
    z = np.empty(X.size, dtype=np.float64)
    for i in range(X.size):
        x, lam, m, s = X[i], L[i], M[i], S[i]
        if not (
            np.isfinite(x) and np.isfinite(lam) and np.isfinite(m) and np.isfinite(s)
        ):
            z[i] = np.nan
        elif x <= 0.0 or m <= 0.0 or s <= 0.0:
            z[i] = np.nan
        else:
            if abs(lam) < L_ZERO_THRESHOLD:
                v = np.log(x / m) / s
            else:
                v = ((x / m) ** lam - 1.0) / (lam * s)
            z[i] = v if np.isfinite(v) else np.nan
    return z


@jit(nopython=True, cache=True)
def _lms_value_kernel(
    Z: np.ndarray, L: np.ndarray, M: np.ndarray, S: np.ndarray
) -> np.ndarray:
    out = np.empty(Z.size, dtype=np.float64)
    for i in range(Z.size):
        z, lam, m, s = Z[i], L[i], M[i], S[i]
        if not (
            np.isfinite(z) and np.isfinite(lam) and np.isfinite(m) and np.isfinite(s)
        ):
            out[i] = np.nan
            continue
        if abs(lam) < L_ZERO_THRESHOLD:
            v = m * np.exp(s * z)
        else:
            base = 1.0 + lam * s * z
            if base <= 0.0:
                out[i] = np.nan
                continue
            v = m * base ** (1.0 / lam)
        out[i] = v if np.isfinite(v) else np.nan
    return out


def _flat_inputs(*arrays: np.ndarray) -> Tuple[Tuple[int, ...], Tuple[np.ndarray, ...]]:
    """Broadcast inputs together and flatten to contiguous float64 1-D arrays."""
    broadcast = np.broadcast_arrays(*[np.asarray(a, dtype=np.float64) for a in arrays])
    shape = broadcast[0].shape
    return shape, tuple(np.ascontiguousarray(b).ravel() for b in broadcast)


def lms_zscore(X: np.ndarray, L: np.ndarray, M: np.ndarray, S: np.ndarray) -> np.ndarray:
    """
    Vectorized LMS z-scores.

    Accepts broadcastable arrays of any shape (including 0-d) and returns an
    array of that shape; entries where ``zscore_from_value`` would return None
    are NaN.

    Args:
        X: Observed values (kg/cm)
        L: Lambda (power, skewness parameter from reference data)
        M: Mu (median at age/sex)
        S: Sigma (coefficient of variation at age/sex)

    Returns:
        Z-scores with the broadcast shape of the inputs
    """
    shape, (x, lam, m, s) = _flat_inputs(X, L, M, S)
    if x.size == 0:
        return np.full(shape, np.nan)
    return _lms_zscore_kernel(x, lam, m, s).reshape(shape)


def lms_value(z: np.ndarray, L: np.ndarray, M: np.ndarray, S: np.ndarray) -> np.ndarray:
    """Vectorized inverse LMS transform; NaN where ``value_from_z`` returns None."""
    shape, (zz, lam, m, s) = _flat_inputs(z, L, M, S)
    if zz.size == 0:
        return np.full(shape, np.nan)
    return _lms_value_kernel(zz, lam, m, s).reshape(shape)


def _clamp(z: float, bounds: Optional[Tuple[float, float]]) -> float:
    if bounds is None:
        return z
    lower, upper = bounds
    return max(lower, min(upper, z))


def calculate(
    table: Optional[ReferenceTable],
    age: float,
    value: float,
    z_bounds: Optional[Tuple[float, float]] = Z_DISPLAY_BOUNDS,
) -> Optional[ZScoreResult]:
    """
    Z-score and percentile of a measurement against an LMS table.

    The z-score is clamped to ``z_bounds`` (default [-5, 5]) before the
    percentile is taken, so measurements beyond the bounds report the
    boundary percentile. Pass ``z_bounds=None`` to keep the raw value.
    Both numbers are rounded to 2 decimals for display with Python's
    ``round``, which rounds binary floats half to even, so a value printed
    as x.xx5 may round down where half-up rounding would round it up.

    Args:
        table: LMS reference table
        age: Age in the table's unit
        value: Measured value
        z_bounds: Display clamp for z, or None

    Returns:
        ZScoreResult, or None if there is no reference data or the
        measurement cannot be assessed.
    """
    lms = interpolate(table, age)
    if lms is None:
        return None
    if not isinstance(lms, LMSParameters):
        raise ValueError(f"calculate needs an LMS table, got {table.kind}")
    z = zscore_from_value(value, lms.L, lms.M, lms.S)
    if z is None:
        return None
    z = _clamp(z, z_bounds)
    return ZScoreResult(
        z=round(z, DISPLAY_DECIMALS),
        percentile=round(percentile_from_z(z) * 100, DISPLAY_DECIMALS),
        lms=lms,
    )


def value_at_percentile(
    table: Optional[ReferenceTable], age: float, percentile: float
) -> Optional[float]:
    """
    Measurement at a given percentile (0-100) for a given age.

    Returns:
        Value, or None if there is no reference data or the percentile maps
        outside the distribution (0 or 100).
    """
    lms = interpolate(table, age)
    if not isinstance(lms, LMSParameters):
        return None
    return value_from_z(z_from_percentile(percentile / 100), lms.L, lms.M, lms.S)


def zscores_for_table(
    table: Optional[ReferenceTable], ages: np.ndarray, values: np.ndarray
) -> np.ndarray:
    """
    Batch z-scores of many measurements against one LMS table.

    Returns:
        Unclamped z-scores; NaN where there is no reference data or the
        measurement is invalid.
    """
    if table is None or len(table) == 0:
        logger.warning("No reference data; batch z-scores will be NaN")
    L, M, S = interpolate_lms(table, ages)
    return lms_zscore(np.asarray(values, dtype=np.float64), L, M, S)

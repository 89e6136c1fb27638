"""
LMS z-scores, percentile curves and threshold interpolation for pediatric
reference data.
"""

from .curves import CurvePoint, generate_curve, percentile_curves, threshold_curve
from .interpolation import interpolate, interpolate_lms, interpolate_threshold
from .tables import LMSParameters, ReferenceTable, load_table_set, validate_table
from .zscores import (
    ZScoreResult,
    calculate,
    lms_value,
    lms_zscore,
    percentile_from_z,
    value_at_percentile,
    value_from_z,
    z_from_percentile,
    zscore_from_value,
)

__all__ = [
    "CurvePoint",
    "LMSParameters",
    "ReferenceTable",
    "ZScoreResult",
    "calculate",
    "generate_curve",
    "interpolate",
    "interpolate_lms",
    "interpolate_threshold",
    "lms_value",
    "lms_zscore",
    "load_table_set",
    "percentile_curves",
    "percentile_from_z",
    "threshold_curve",
    "validate_table",
    "value_at_percentile",
    "value_from_z",
    "z_from_percentile",
    "zscore_from_value",
]

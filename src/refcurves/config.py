"""
Configuration constants for the reference engine and calculators.
"""

import os
from pathlib import Path

# Reference data location (JSON tables produced by scripts/download_data.py)
PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = Path(os.environ.get("REFCURVES_DATA_DIR", PROJECT_ROOT / "data"))

# LMS transform
L_ZERO_THRESHOLD = 0.001  # |L| below this uses the log form
CDF_SATURATION = 6.0  # normal CDF returns exactly 0/1 beyond +/- this z

# Display policy applied by zscores.calculate(); the raw transform is unclamped
Z_DISPLAY_BOUNDS = (-5.0, 5.0)
DISPLAY_DECIMALS = 2

# Percentile curves
STANDARD_PERCENTILES = [3, 10, 25, 50, 75, 90, 97]
DEFAULT_CURVE_STEP = 1.0
MAX_CURVE_POINTS = 100_000

# Calendar constants
DAYS_PER_MONTH = 30.44
DAYS_PER_YEAR = 365.25
DAYS_PER_WEEK = 7

# Growth standards
WHO_MAX_AGE_MONTHS = 24.0  # WHO at or below, CDC above
TERM_GA_WEEKS = 40
FENTON_MAX_GA_WEEKS = 37  # Fenton only for births before 37 weeks
FENTON_MAX_PMA_WEEKS = 50.0

PERCENTILE_DANGER = (3.0, 97.0)
PERCENTILE_WARNING = (10.0, 90.0)

# Bilirubin
BILI_APPROACHING_FRACTION = 0.85

# CKiD U25 GFR and blood pressure norms
CKID_AGE_RANGE_YEARS = (1.0, 18.0)
GFR_STAGES = [  # upper bound (exclusive), label
    (15, "CKD stage 5"),
    (30, "CKD stage 4"),
    (45, "CKD stage 3b"),
    (60, "CKD stage 3a"),
    (90, "CKD stage 2"),
]
GFR_CKD_BELOW = 60
GFR_NORMAL_FROM = 90
BP_REFERENCE_HEIGHT_CM = 130
BP_SYSTOLIC_FLOOR = 80

# Unit conversion
LB_TO_KG = 0.45359237

# Plot configuration
PLOT_HEIGHT = 400
PERCENTILE_COLORS = {
    3: "rgba(220, 38, 38, 0.25)",
    10: "rgba(217, 119, 6, 0.25)",
    25: "rgba(37, 99, 235, 0.2)",
    50: "rgba(37, 99, 235, 0.6)",
    75: "rgba(37, 99, 235, 0.2)",
    90: "rgba(217, 119, 6, 0.25)",
    97: "rgba(220, 38, 38, 0.25)",
}
PERCENTILE_WIDTHS = {3: 1, 10: 1, 25: 1.5, 50: 2.5, 75: 1.5, 90: 1, 97: 1}
PERCENTILE_DASHES = {
    3: "dash",
    10: "dash",
    25: "dot",
    50: "solid",
    75: "dot",
    90: "dash",
    97: "dash",
}
PLOT_COLORS = {
    "default_percentile": "rgba(37, 99, 235, 0.3)",
    "patient": "#2563eb",
    "phototherapy": "#d97706",
    "exchange": "#dc2626",
}

"""
Pediatric kidney function (CKiD U25 GFR) and blood pressure norms.

GFR uses the CKiD U25 log-linear equation:

    GFR = exp(5.10 + 1.27*ln(age_months) - 0.87*ln(Cr) + 0.21*height_m - 0.22*black)

with creatinine in mg/dL, giving mL/min/1.73 m^2. BP norms are a simplified
AHA table shifted by height.
"""

from dataclasses import dataclass
from typing import List
import math

from ..config import (
    BP_REFERENCE_HEIGHT_CM,
    BP_SYSTOLIC_FLOOR,
    CKID_AGE_RANGE_YEARS,
    GFR_CKD_BELOW,
    GFR_NORMAL_FROM,
    GFR_STAGES,
)

BP_PERCENTILES = ["50th", "75th", "90th", "95th", "95th+", "99th", "High"]
BP_SYSTOLIC = [95, 100, 105, 110, 115, 120, 125]
BP_DIASTOLIC = [55, 60, 65, 70, 70, 70, 75]


@dataclass(frozen=True)
class GFRAssessment:
    gfr: int
    stage: str
    assessment: str
    next_step: str

    @property
    def is_ckd(self) -> bool:
        return self.gfr < GFR_CKD_BELOW


@dataclass(frozen=True)
class BPNorm:
    percentile: str
    systolic: int
    diastolic: int


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _check_age(age_years: float) -> None:
    lower, upper = CKID_AGE_RANGE_YEARS
    if not math.isfinite(age_years) or not lower <= age_years <= upper:
        raise ValueError(f"Age must be between {lower:g}-{upper:g} years")


def _check_positive(value: float, name: str) -> None:
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"Enter a valid {name}")


def ckid_u25_gfr(
    age_years: float, height_cm: float, creatinine: float, black: bool = False
) -> int:
    """
    Estimated GFR in mL/min/1.73 m^2, rounded to a whole number.

    Args:
        age_years: Age in years (1-18)
        height_cm: Height in cm
        creatinine: Serum creatinine in mg/dL
        black: Black race coefficient

    Raises:
        ValueError: If age is outside 1-18 years or height/creatinine is not positive.
    """
    _check_age(age_years)
    _check_positive(height_cm, "height")
    _check_positive(creatinine, "creatinine")
    ln_gfr = (
        5.10
        + 1.27 * math.log(age_years * 12)
        - 0.87 * math.log(creatinine)
        + 0.21 * (height_cm / 100)
        - 0.22 * (1 if black else 0)
    )
    return _round_half_up(math.exp(ln_gfr))


def gfr_stage(gfr: float) -> str:
    for upper, label in GFR_STAGES:
        if gfr < upper:
            return label
    return "Normal GFR"


def assess_gfr(
    age_years: float, height_cm: float, creatinine: float, black: bool = False
) -> GFRAssessment:
    """GFR with CKD stage, a one-line assessment and the suggested next step."""
    gfr = ckid_u25_gfr(age_years, height_cm, creatinine, black)
    if gfr < GFR_CKD_BELOW:
        assessment = "Chronic kidney disease"
    elif gfr >= GFR_NORMAL_FROM:
        assessment = "Normal kidney function"
    else:
        assessment = "Decreased function"
    next_step = (
        "Follow-up with pediatric nephrology"
        if gfr < GFR_CKD_BELOW
        else "Normal monitoring"
    )
    return GFRAssessment(gfr, gfr_stage(gfr), assessment, next_step)


def bp_norms(age_years: float, height_cm: float) -> List[BPNorm]:
    """
    Systolic/diastolic norms by percentile for a child's height.

    Systolic values move 2 mmHg per 10 cm away from 130 cm, at most 2 steps
    either way, and never drop below 80. Diastolic values are not adjusted.

    Raises:
        ValueError: If age is outside 1-18 years or height is not positive.
    """
    _check_age(age_years)
    _check_positive(height_cm, "height")
    steps = _round_half_up((height_cm - BP_REFERENCE_HEIGHT_CM) / 10)
    adjustment = max(-2, min(2, steps)) * 2
    return [
        BPNorm(p, max(BP_SYSTOLIC_FLOOR, sys + adjustment), dia)
        for p, sys, dia in zip(BP_PERCENTILES, BP_SYSTOLIC, BP_DIASTOLIC)
    ]

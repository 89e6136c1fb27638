"""
Growth assessment against WHO (0-24 months), CDC (2-20 years) and
Fenton (preterm) LMS references.
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging

import numpy as np
import pandas as pd

from ..config import (
    DATA_DIR,
    DAYS_PER_MONTH,
    DAYS_PER_WEEK,
    FENTON_MAX_GA_WEEKS,
    FENTON_MAX_PMA_WEEKS,
    PERCENTILE_DANGER,
    PERCENTILE_WARNING,
    TERM_GA_WEEKS,
    WHO_MAX_AGE_MONTHS,
)
from ..tables import ReferenceTable, load_table_set
from ..zscores import calculate, percentile_from_z, zscores_for_table

logger = logging.getLogger(__name__)

SEXES = ("male", "female")
METRICS = ("weight", "length", "hc")

# Measure keys in each reference file, per metric
TABLE_KEYS = {
    "WHO": {"weight": "weightForAge", "length": "lengthForAge", "hc": "headCircForAge"},
    "CDC": {"weight": "weightForAge", "length": "statureForAge"},
    "Fenton": {"weight": "weightForGA", "length": "lengthForGA", "hc": "headCircForGA"},
}

UNITS = {"weight": "kg", "length": "cm", "hc": "cm"}

TableSet = Dict[str, Dict[str, ReferenceTable]]

# Fenton data is not downloaded; either file name is picked up from the data dir
FENTON_FILENAMES = ("fenton-lms.json", "fenton-2025-lms.json")


@dataclass(frozen=True)
class MeasurementResult:
    label: str
    metric: str
    value: float
    unit: str
    z: float
    percentile: float


@dataclass
class GrowthAssessment:
    """
    Result of scoring one visit's measurements.

    Attributes:
        standard: "WHO", "CDC" or "Fenton"
        age_months: Age used for WHO/CDC lookup (corrected when preterm)
        chronological_months: Uncorrected age in months
        pma_weeks: Postmenstrual age in weeks when Fenton was used
        results: One entry per measurement that could be scored
    """

    standard: str
    age_months: float
    chronological_months: float
    sex: str
    pma_weeks: Optional[float] = None
    results: List[MeasurementResult] = field(default_factory=list)

    @property
    def chart_age(self) -> float:
        """X position of this visit on its chart (weeks GA for Fenton, else months)."""
        return self.pma_weeks if self.pma_weeks is not None else self.age_months


def age_in_months(dob: date, measured: date) -> float:
    """Calendar months between two dates plus the leftover days as a fraction."""
    months = (measured.year - dob.year) * 12 + (measured.month - dob.month)
    return months + (measured.day - dob.day) / DAYS_PER_MONTH


def corrected_age(age_months: float, ga_weeks: Optional[float]) -> float:
    """Age corrected for prematurity; unchanged at or after 40 weeks GA."""
    if not ga_weeks or ga_weeks >= TERM_GA_WEEKS:
        return age_months
    correction = (TERM_GA_WEEKS - ga_weeks) * DAYS_PER_WEEK / DAYS_PER_MONTH
    return max(0.0, age_months - correction)


def select_standard(age_months: float) -> str:
    return "WHO" if age_months <= WHO_MAX_AGE_MONTHS else "CDC"


def percentile_band(percentile: float) -> str:
    """Display band: 'danger' outside 3rd-97th, 'warning' outside 10th-90th."""
    if percentile < PERCENTILE_DANGER[0] or percentile > PERCENTILE_DANGER[1]:
        return "danger"
    if percentile < PERCENTILE_WARNING[0] or percentile > PERCENTILE_WARNING[1]:
        return "warning"
    return "normal"


class GrowthReferences:
    """WHO, CDC and (optionally) Fenton LMS table sets."""

    def __init__(
        self, who: TableSet, cdc: TableSet, fenton: Optional[TableSet] = None
    ) -> None:
        self.sets: Dict[str, Optional[TableSet]] = {
            "WHO": who,
            "CDC": cdc,
            "Fenton": fenton,
        }

    @classmethod
    def from_files(
        cls,
        who: Union[str, Path],
        cdc: Union[str, Path],
        fenton: Optional[Union[str, Path]] = None,
    ) -> "GrowthReferences":
        """
        Load reference JSON files.

        A missing Fenton file is not fatal; preterm charts fall back to WHO/CDC.
        """
        fenton_set = None
        if fenton is not None:
            try:
                fenton_set = load_table_set(Path(fenton))
            except FileNotFoundError:
                logger.warning(f"Fenton reference data not found at {fenton}")
        return cls(load_table_set(Path(who)), load_table_set(Path(cdc)), fenton_set)

    @classmethod
    def from_data_dir(
        cls, data_dir: Optional[Union[str, Path]] = None
    ) -> "GrowthReferences":
        """
        Load the reference files from ``data_dir`` (default DATA_DIR).

        ``who-lms.json`` and ``cdc-lms.json`` are written by
        ``scripts/download_data.py``. The Fenton preterm tables are not
        downloaded: place them in the same directory as ``fenton-lms.json``
        or ``fenton-2025-lms.json``, otherwise preterm infants fall back to
        WHO/CDC.
        """
        data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
        fenton = next(
            (data_dir / n for n in FENTON_FILENAMES if (data_dir / n).exists()),
            data_dir / FENTON_FILENAMES[0],
        )
        return cls.from_files(
            data_dir / "who-lms.json", data_dir / "cdc-lms.json", fenton
        )

    @property
    def has_fenton(self) -> bool:
        return bool(self.sets["Fenton"])

    def table_for(self, standard: str, sex: str, metric: str) -> Optional[ReferenceTable]:
        """Reference table for a standard/sex/metric, or None if not available."""
        table_set = self.sets.get(standard)
        key = TABLE_KEYS.get(standard, {}).get(metric)
        if not table_set or key is None:
            return None
        return table_set.get(key, {}).get(sex)


def _label(standard: str, metric: str, age_months: float) -> str:
    if standard == "Fenton":
        return {
            "weight": "Weight-for-GA (Fenton)",
            "length": "Length-for-GA (Fenton)",
            "hc": "HC-for-GA (Fenton)",
        }[metric]
    if metric == "weight":
        return "Weight-for-Age"
    if metric == "length":
        return "Length-for-Age" if age_months <= WHO_MAX_AGE_MONTHS else "Height-for-Age"
    return "Head Circumference"


def assess_growth(
    refs: GrowthReferences,
    sex: str,
    dob: date,
    measured: date,
    weight: Optional[float] = None,
    length: Optional[float] = None,
    head_circ: Optional[float] = None,
    ga_weeks: Optional[float] = None,
) -> GrowthAssessment:
    """
    Score one visit's weight, length and head circumference.

    Preterm infants (GA < 37 weeks) are plotted on Fenton by postmenstrual age
    while it stays at or below 50 weeks; everyone else uses WHO or CDC by
    corrected age. Measurements that are missing, non-positive or without a
    reference table are left out of ``results``.

    Args:
        refs: Loaded reference tables
        sex: "male" or "female"
        dob: Date of birth
        measured: Measurement date
        weight: Weight in kg
        length: Length/height in cm
        head_circ: Head circumference in cm
        ga_weeks: Gestational age at birth in weeks, for preterm infants

    Returns:
        GrowthAssessment

    Raises:
        ValueError: If sex is invalid or the measurement precedes birth.
    """
    if sex not in SEXES:
        raise ValueError("Sex values must be 'male' or 'female'")

    raw_age = age_in_months(dob, measured)
    if raw_age < 0:
        raise ValueError("Measurement date must be after date of birth")
    age = corrected_age(raw_age, ga_weeks)

    standard = select_standard(age)
    pma_weeks = None
    if refs.has_fenton and ga_weeks and ga_weeks < FENTON_MAX_GA_WEEKS:
        pma = ga_weeks + raw_age * DAYS_PER_MONTH / DAYS_PER_WEEK
        if pma <= FENTON_MAX_PMA_WEEKS:
            standard = "Fenton"
            pma_weeks = pma

    assessment = GrowthAssessment(
        standard=standard,
        age_months=age,
        chronological_months=raw_age,
        sex=sex,
        pma_weeks=pma_weeks,
    )

    lookup_age = pma_weeks if pma_weeks is not None else age
    for metric, value in (("weight", weight), ("length", length), ("hc", head_circ)):
        if value is None or not value > 0:
            continue
        if metric == "hc" and standard == "CDC":
            continue
        table = refs.table_for(standard, sex, metric)
        if table is None:
            continue
        scored = calculate(table, lookup_age, value)
        if scored is None:
            continue
        assessment.results.append(
            MeasurementResult(
                label=_label(standard, metric, age),
                metric=metric,
                value=value,
                unit=UNITS[metric],
                z=scored.z,
                percentile=scored.percentile,
            )
        )
    return assessment


def score_measurements(
    df: pd.DataFrame,
    refs: GrowthReferences,
    sex: str,
    age_col: str = "age_months",
    metric_cols: Optional[Dict[str, str]] = None,
) -> pd.DataFrame:
    """
    Z-scores and percentiles for a measurement history of one child.

    Each row is scored against WHO or CDC by its own age. Z-scores are not
    clamped here. Missing or invalid measurements give NaN.

    Args:
        df: One row per visit with an age column in months
        refs: Loaded reference tables
        sex: "male" or "female"
        age_col: Column with (corrected) age in months
        metric_cols: Mapping of metric to column name; defaults to
            {"weight": "weight_kg", "length": "length_cm", "hc": "head_circ_cm"}

    Returns:
        Copy of ``df`` with ``<metric>_z`` and ``<metric>_pct`` columns added
        for every metric column present.
    """
    if sex not in SEXES:
        raise ValueError("Sex values must be 'male' or 'female'")
    if age_col not in df.columns:
        raise ValueError(f"Column '{age_col}' does not exist in DataFrame")
    if metric_cols is None:
        metric_cols = {"weight": "weight_kg", "length": "length_cm", "hc": "head_circ_cm"}

    out = df.copy()
    ages = out[age_col].to_numpy(dtype=np.float64)
    who_mask = ages <= WHO_MAX_AGE_MONTHS

    for metric, col in metric_cols.items():
        if col not in out.columns:
            continue
        values = out[col].to_numpy(dtype=np.float64)
        z = np.full(len(out), np.nan)
        for standard, mask in (("WHO", who_mask), ("CDC", ~who_mask)):
            if not np.any(mask):
                continue
            table = refs.table_for(standard, sex, metric)
            if table is None:
                continue
            z[mask] = zscores_for_table(table, ages[mask], values[mask])
        out[f"{metric}_z"] = z
        out[f"{metric}_pct"] = [
            np.nan if np.isnan(v) else percentile_from_z(v) * 100 for v in z
        ]
    return out

"""
Neonatal hyperbilirubinemia risk against AAP 2022 treatment thresholds.

Threshold curves are two-column tables of postnatal age (hours) against total
serum bilirubin (mg/dL), one per gestational week, with separate sets for
infants with and without neurotoxicity risk factors.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import BILI_APPROACHING_FRACTION
from ..interpolation import interpolate_threshold
from ..tables import ReferenceTable, ThresholdRow, load_reference_file

logger = logging.getLogger(__name__)


class RiskFactor(BaseModel):
    id: str
    label: str


class ThresholdSet(BaseModel):
    """Curves keyed by gestational age, e.g. "38wk"."""

    model_config = ConfigDict(populate_by_name=True)

    no_risk_factors: Dict[str, List[ThresholdRow]] = Field(alias="noRiskFactors")
    with_risk_factors: Dict[str, List[ThresholdRow]] = Field(alias="withRiskFactors")


class BilirubinThresholds(BaseModel):
    """Contents of the bilirubin threshold reference file."""

    model_config = ConfigDict(populate_by_name=True)

    risk_factors: List[RiskFactor] = Field(default_factory=list, alias="riskFactors")
    phototherapy: ThresholdSet
    exchange_transfusion: ThresholdSet = Field(alias="exchangeTransfusion")

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BilirubinThresholds":
        """
        Load and validate a threshold JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file does not match the expected layout.
        """
        content = load_reference_file(path)
        try:
            return cls.model_validate(content)
        except ValidationError as e:
            raise ValueError(f"Invalid bilirubin threshold data: {e}") from e

    def curves(
        self, ga_weeks: int, has_risk_factors: bool
    ) -> Tuple[Optional[ReferenceTable], Optional[ReferenceTable]]:
        """Phototherapy and exchange curves for a gestational week, or None if absent."""
        key = f"{ga_weeks}wk"
        tables = []
        for name, threshold_set in (
            ("phototherapy", self.phototherapy),
            ("exchange", self.exchange_transfusion),
        ):
            by_ga = (
                threshold_set.with_risk_factors
                if has_risk_factors
                else threshold_set.no_risk_factors
            )
            rows = by_ga.get(key)
            tables.append(
                ReferenceTable.from_rows(rows, name=f"{name}/{key}") if rows else None
            )
        return tables[0], tables[1]

    @property
    def gestational_ages(self) -> List[int]:
        """Gestational weeks with phototherapy curves."""
        keys = set(self.phototherapy.no_risk_factors) | set(
            self.phototherapy.with_risk_factors
        )
        return sorted(int(k.rstrip("wk")) for k in keys if k.rstrip("wk").isdigit())


class RiskLevel(str, Enum):
    ABOVE_EXCHANGE = "above-exchange"
    ABOVE_PHOTO = "above-photo"
    APPROACHING = "approaching"
    LOW = "low"


RISK_MESSAGES = {
    RiskLevel.ABOVE_EXCHANGE: "ABOVE EXCHANGE TRANSFUSION THRESHOLD: Immediate intervention required",
    RiskLevel.ABOVE_PHOTO: "ABOVE PHOTOTHERAPY THRESHOLD: Initiate phototherapy",
    RiskLevel.APPROACHING: "APPROACHING PHOTOTHERAPY THRESHOLD: Close monitoring recommended",
    RiskLevel.LOW: "Below phototherapy threshold: Continue routine monitoring",
}


@dataclass(frozen=True)
class BilirubinAssessment:
    tsb: float
    age_hours: float
    ga_weeks: int
    has_risk_factors: bool
    phototherapy_threshold: float
    exchange_threshold: float
    level: RiskLevel

    @property
    def message(self) -> str:
        return RISK_MESSAGES[self.level]

    @property
    def below_phototherapy(self) -> float:
        """Margin between the phototherapy threshold and the measured TSB."""
        return self.phototherapy_threshold - self.tsb


def classify_risk(tsb: float, photo_threshold: float, exchange_threshold: float) -> RiskLevel:
    if tsb >= exchange_threshold:
        return RiskLevel.ABOVE_EXCHANGE
    if tsb >= photo_threshold:
        return RiskLevel.ABOVE_PHOTO
    if tsb >= photo_threshold * BILI_APPROACHING_FRACTION:
        return RiskLevel.APPROACHING
    return RiskLevel.LOW


def assess_bilirubin(
    thresholds: BilirubinThresholds,
    ga_weeks: int,
    age_hours: float,
    tsb: float,
    has_risk_factors: bool = False,
) -> Optional[BilirubinAssessment]:
    """
    Compare a TSB level against the interpolated treatment thresholds.

    Ages outside a curve's tabulated range use the nearest tabulated threshold.

    Args:
        thresholds: Loaded threshold data
        ga_weeks: Gestational age at birth in completed weeks
        age_hours: Postnatal age in hours
        tsb: Total serum bilirubin in mg/dL
        has_risk_factors: Whether any neurotoxicity risk factor is present

    Returns:
        BilirubinAssessment, or None if no curves exist for this gestational age.

    Raises:
        ValueError: If age or TSB is negative.
    """
    if age_hours < 0 or tsb < 0:
        raise ValueError("Postnatal age and bilirubin level must be non-negative")

    photo_table, exchange_table = thresholds.curves(ga_weeks, has_risk_factors)
    if photo_table is None or exchange_table is None:
        logger.warning(
            f"No threshold data for {ga_weeks} weeks; "
            f"available: {thresholds.gestational_ages}"
        )
        return None

    photo = interpolate_threshold(photo_table, age_hours)
    exchange = interpolate_threshold(exchange_table, age_hours)
    if photo is None or exchange is None:
        return None

    return BilirubinAssessment(
        tsb=tsb,
        age_hours=age_hours,
        ga_weeks=ga_weeks,
        has_risk_factors=has_risk_factors,
        phototherapy_threshold=photo,
        exchange_threshold=exchange,
        level=classify_risk(tsb, photo, exchange),
    )

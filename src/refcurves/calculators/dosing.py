"""
Weight-based medication dosing with single-dose caps and age guardrails.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union
import math
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..config import LB_TO_KG
from ..tables import load_reference_file

_MIN_AGE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(month|months|mo|year|years|yr)")


class Concentration(BaseModel):
    label: str
    mg_per_ml: Optional[float] = Field(default=None, alias="mgPerMl")
    mg_per_tab: Optional[float] = Field(default=None, alias="mgPerTab")


class Medication(BaseModel):
    """One entry of the dosing reference file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    dose_per_kg: float = Field(alias="dosePerKg")
    max_single_dose: float = Field(alias="maxSingleDose")
    unit: str = "mg"
    frequency: str = ""
    route: str = ""
    max_daily_dose: Optional[float] = Field(default=None, alias="maxDailyDose")
    max_daily_unit: Optional[str] = Field(default=None, alias="maxDailyUnit")
    max_daily_absolute: Optional[float] = Field(default=None, alias="maxDailyAbsolute")
    min_age: Optional[str] = Field(default=None, alias="minAge")
    concentrations: List[Concentration] = Field(default_factory=list)
    notes: str = ""

    @field_validator("dose_per_kg", "max_single_dose")
    @classmethod
    def positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Dose values must be positive")
        return v

    @property
    def min_age_months(self) -> float:
        return parse_min_age_months(self.min_age)


class DosingReference(BaseModel):
    medications: List[Medication]

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "DosingReference":
        content = load_reference_file(path)
        try:
            return cls.model_validate(content)
        except ValidationError as e:
            raise ValueError(f"Invalid dosing reference data: {e}") from e

    def get(self, medication_id: str) -> Optional[Medication]:
        return next((m for m in self.medications if m.id == medication_id), None)


@dataclass(frozen=True)
class FormulationVolume:
    label: str
    volume: Optional[float]
    unit: str


@dataclass
class DoseResult:
    medication: Medication
    weight_kg: float
    dose: Optional[float]
    is_capped: bool = False
    age_restricted: bool = False
    volumes: List[FormulationVolume] = field(default_factory=list)


def to_kg(weight: float, unit: str = "kg") -> float:
    """
    Convert a weight to kilograms.

    Raises:
        ValueError: If the weight is not a positive number or the unit is unknown.
    """
    if not math.isfinite(weight) or weight <= 0:
        raise ValueError("Enter a valid weight")
    if unit == "kg":
        return weight
    if unit == "lb":
        return weight * LB_TO_KG
    raise ValueError(f"Unsupported weight unit '{unit}'")


def parse_min_age_months(text: Optional[str]) -> float:
    """Minimum age in months from text such as '6 months' or '2 years'; 0 if none."""
    match = _MIN_AGE_PATTERN.search(str(text or "").lower())
    if not match:
        return 0.0
    value = float(match.group(1))
    if match.group(2).startswith(("year", "yr")):
        return value * 12
    return value


def calculate_dose(
    med: Medication, weight_kg: float, age_months: Optional[float] = None
) -> DoseResult:
    """
    Per-dose amount and volume for each formulation.

    The dose is rounded to 0.1 and capped at the medication's maximum single
    dose. When the patient is younger than the medication's minimum age no
    dose is calculated and ``age_restricted`` is set.

    Raises:
        ValueError: If weight is not positive or age is negative.
    """
    if not math.isfinite(weight_kg) or weight_kg <= 0:
        raise ValueError("Enter a valid weight")
    if age_months is not None and age_months < 0:
        raise ValueError("Enter a valid age")

    min_age = med.min_age_months
    if age_months is not None and min_age > 0 and age_months < min_age:
        return DoseResult(med, weight_kg, dose=None, age_restricted=True)

    dose = round(weight_kg * med.dose_per_kg, 1)
    is_capped = dose > med.max_single_dose
    if is_capped:
        dose = med.max_single_dose

    volumes = []
    for c in med.concentrations:
        if c.mg_per_ml:
            volumes.append(FormulationVolume(c.label, round(dose / c.mg_per_ml, 1), "mL"))
        elif c.mg_per_tab:
            volumes.append(FormulationVolume(c.label, round(dose / c.mg_per_tab, 1), "tab(s)"))
        else:
            volumes.append(FormulationVolume(c.label, None, "mL"))
    return DoseResult(med, weight_kg, dose, is_capped=is_capped, volumes=volumes)

"""
Childhood immunization catch-up planning.

A simplified CDSi-style evaluation: for each vaccine series, decide whether
the child is complete, due, not yet eligible or past the age limit, and for
due series list the remaining doses with their minimum ages and intervals.
All ages and intervals are in days.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from ..config import DAYS_PER_MONTH, DAYS_PER_YEAR

OVERDUE_GRACE_DAYS = 30


class VaccineSeries(BaseModel):
    """
    One vaccine series.

    Attributes:
        min_age: Minimum age for each dose
        min_interval: Minimum interval from dose n to dose n+1
        rec_age: Recommended age for each dose
        max_age: Age after which an incomplete series is not continued
        max_first_dose: Age after which the series must not be started
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    abbr: str
    total_doses: int
    min_age: List[int]
    min_interval: List[int]
    rec_age: List[int]
    max_age: Optional[int] = None
    max_first_dose: Optional[int] = None
    live_vaccine: bool = False
    notes: str = ""

    @model_validator(mode="after")
    def dose_lists_match(self) -> "VaccineSeries":
        if len(self.min_age) != self.total_doses or len(self.rec_age) != self.total_doses:
            raise ValueError(f"{self.id}: min_age and rec_age need one entry per dose")
        if len(self.min_interval) != max(self.total_doses - 1, 0):
            raise ValueError(f"{self.id}: min_interval needs one entry per dose gap")
        return self


SERIES = [
    VaccineSeries(
        id="hepb", name="Hepatitis B", abbr="HepB", total_doses=3,
        min_age=[0, 28, 168], min_interval=[28, 56], rec_age=[0, 30, 180],
        notes="Min age for dose 3: 24 weeks. Min interval dose 1->3: 16 weeks.",
    ),
    VaccineSeries(
        id="rv", name="Rotavirus", abbr="RV", total_doses=3,
        min_age=[42, 70, 98], min_interval=[28, 28], rec_age=[60, 120, 180],
        max_age=244, max_first_dose=104,
        notes=(
            "Max age for dose 1: 14 weeks 6 days. Do not initiate the first dose "
            "at 15 weeks of age or older due to increased risk of intussusception. "
            "Max age for final dose: 8 months 0 days."
        ),
    ),
    VaccineSeries(
        id="dtap", name="DTaP", abbr="DTaP", total_doses=5,
        min_age=[42, 70, 98, 365, 1461], min_interval=[28, 28, 180, 180],
        rec_age=[60, 120, 180, 455, 1461],
        notes="5th dose not needed if 4th given at age >= 4 years.",
    ),
    VaccineSeries(
        id="hib", name="Hib", abbr="Hib", total_doses=4,
        min_age=[42, 70, 98, 365], min_interval=[28, 28, 56],
        rec_age=[60, 120, 180, 395],
        notes="Dose count depends on vaccine type. If PRP-OMP: 2 primary doses + booster.",
    ),
    VaccineSeries(
        id="pcv", name="Pneumococcal (PCV)", abbr="PCV", total_doses=4,
        min_age=[42, 70, 98, 365], min_interval=[28, 28, 56],
        rec_age=[60, 120, 180, 395],
        notes="Additional doses for high-risk children.",
    ),
    VaccineSeries(
        id="ipv", name="Polio (IPV)", abbr="IPV", total_doses=4,
        min_age=[42, 70, 98, 1461], min_interval=[28, 28, 180],
        rec_age=[60, 120, 365, 1461],
        notes="Final dose on or after 4th birthday and >= 6 months after previous dose.",
    ),
    VaccineSeries(
        id="mmr", name="MMR", abbr="MMR", total_doses=2,
        min_age=[365, 1461], min_interval=[28], rec_age=[395, 1461],
        live_vaccine=True,
        notes="Live vaccine. If 2 live vaccines not given same day, space 28+ days apart.",
    ),
    VaccineSeries(
        id="var", name="Varicella", abbr="VAR", total_doses=2,
        min_age=[365, 1461], min_interval=[90], rec_age=[395, 1461],
        live_vaccine=True,
        notes="Min interval: 3 months if under 13, 4 weeks if 13+.",
    ),
    VaccineSeries(
        id="hepa", name="Hepatitis A", abbr="HepA", total_doses=2,
        min_age=[365, 547], min_interval=[180], rec_age=[365, 547],
        notes="2-dose series. Min interval 6 months.",
    ),
    VaccineSeries(
        id="menacwy", name="Meningococcal ACWY", abbr="MenACWY", total_doses=2,
        min_age=[3653, 5844], min_interval=[56], rec_age=[4018, 5844],
        notes="Routine at 11-12 with booster at 16. High-risk may start earlier.",
    ),
    VaccineSeries(
        id="tdap", name="Tdap", abbr="Tdap", total_doses=1,
        min_age=[2557], min_interval=[], rec_age=[4018],
        notes="Single dose at 11-12 years. Can give regardless of interval since last Td.",
    ),
    VaccineSeries(
        id="hpv", name="HPV", abbr="HPV", total_doses=2,
        min_age=[3287, 3653], min_interval=[150], rec_age=[4018, 4200],
        notes=(
            "Minimum age is 9 years. 2 doses if started before 15, 3 doses if "
            "started at 15+. Min interval: 5 months (2-dose schedule)."
        ),
    ),
]

SERIES_BY_ID = {s.id: s for s in SERIES}


@dataclass(frozen=True)
class PlannedDose:
    dose_number: int
    min_age: int
    min_interval: int
    rec_age: int
    earliest_age: int
    is_overdue: bool


@dataclass
class SeriesPlan:
    series: VaccineSeries
    status: str  # "due", "complete" or "aged-out"
    doses_given: int
    doses_needed: int
    next_doses: List[PlannedDose] = field(default_factory=list)
    message: str = ""


@dataclass
class CatchUpPlan:
    age_days: int
    series: List[SeriesPlan] = field(default_factory=list)

    @property
    def total_due(self) -> int:
        return sum(p.doses_needed for p in self.series if p.status == "due")

    @property
    def total_complete(self) -> int:
        return sum(1 for p in self.series if p.status == "complete")

    @property
    def series_due(self) -> List[SeriesPlan]:
        return [p for p in self.series if p.status == "due"]

    @property
    def caught_up(self) -> bool:
        return self.total_due == 0


def age_in_days(dob: date, today: date) -> int:
    days = (today - dob).days
    if days < 0:
        raise ValueError("Today's date must be after date of birth")
    return days


def _aged_out_message(series: VaccineSeries, started: bool) -> str:
    if not started:
        if series.id == "rv":
            return (
                "Do not initiate the first dose of rotavirus vaccine at 15 weeks of "
                "age or older (max first dose age is 14 weeks 6 days)."
            )
        return "Too old to start this series (max first dose age exceeded)."
    if series.id == "rv":
        return "Past maximum age for rotavirus dosing (8 months 0 days)."
    return "Past maximum age for this vaccine."


def _remaining_doses(series: VaccineSeries, doses_given: int, age_days: int) -> List[PlannedDose]:
    """
    Remaining doses with the earliest age each may be given.

    The next dose can be given at the later of its minimum age and today; each
    following dose at the later of its minimum age and the previous dose's
    earliest age plus the minimum interval.
    """
    doses = []
    previous_earliest: Optional[int] = None
    for i in range(doses_given, series.total_doses):
        min_interval = series.min_interval[i - 1] if i > 0 else 0
        earliest = max(series.min_age[i], age_days)
        if previous_earliest is not None:
            earliest = max(earliest, previous_earliest + min_interval)
        doses.append(
            PlannedDose(
                dose_number=i + 1,
                min_age=series.min_age[i],
                min_interval=min_interval,
                rec_age=series.rec_age[i],
                earliest_age=earliest,
                is_overdue=age_days > series.rec_age[i] + OVERDUE_GRACE_DAYS,
            )
        )
        previous_earliest = earliest
    return doses


def build_catch_up_plan(
    age_days: int,
    doses_received: Mapping[str, int],
    series: Optional[List[VaccineSeries]] = None,
) -> CatchUpPlan:
    """
    Evaluate every vaccine series for a child of ``age_days``.

    A series never needs to be restarted regardless of the time elapsed
    between doses. Series the child is too young to start are omitted.

    Args:
        age_days: Current age in days
        doses_received: Doses already given, keyed by series id
        series: Series definitions; defaults to SERIES

    Returns:
        CatchUpPlan

    Raises:
        ValueError: If age is negative or a dose count is invalid.
    """
    if age_days < 0:
        raise ValueError("Age must be non-negative")
    unknown = set(doses_received) - {s.id for s in (series or SERIES)}
    if unknown:
        raise ValueError(f"Unknown vaccine series: {sorted(unknown)}")

    plan = CatchUpPlan(age_days=age_days)
    for s in series or SERIES:
        given = doses_received.get(s.id, 0)
        if given < 0:
            raise ValueError(f"{s.id}: dose count must be non-negative")
        given = min(given, s.total_doses)

        if given == 0 and s.max_first_dose is not None and age_days > s.max_first_dose:
            plan.series.append(
                SeriesPlan(s, "aged-out", 0, 0, message=_aged_out_message(s, False))
            )
            continue
        if s.max_age is not None and age_days > s.max_age and given < s.total_doses:
            plan.series.append(
                SeriesPlan(s, "aged-out", given, 0, message=_aged_out_message(s, True))
            )
            continue
        if given == 0 and age_days < s.min_age[0]:
            continue
        if given >= s.total_doses:
            plan.series.append(SeriesPlan(s, "complete", given, 0))
            continue

        plan.series.append(
            SeriesPlan(
                s,
                "due",
                given,
                s.total_doses - given,
                next_doses=_remaining_doses(s, given, age_days),
            )
        )
    return plan


def format_days(days: int) -> str:
    """Interval for display: days under 4 weeks, weeks under a year, then years."""
    if days < 28:
        return f"{days} days"
    if days < 365:
        return f"{round(days / 7)} weeks"
    return f"{days / DAYS_PER_YEAR:.1f} years"


def describe_age(days: int) -> str:
    if days < 30:
        return f"{days} days old"
    if days < 365:
        return f"{int(days // DAYS_PER_MONTH)} months old ({days} days)"
    return f"{days / DAYS_PER_YEAR:.1f} years old ({int(days // DAYS_PER_MONTH)} months)"

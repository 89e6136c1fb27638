"""
Gestational age, due date and corrected age.

Dates are derived from whichever of LMP, EDD and birth date + GA at birth
are supplied, assuming a 280-day pregnancy.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from ..config import DAYS_PER_MONTH, DAYS_PER_WEEK, DAYS_PER_YEAR

PREGNANCY_DAYS = 280
PRETERM_DAYS = 259  # 37 weeks
STOP_CORRECTING_MONTHS = 24


@dataclass
class GestationalAgeSummary:
    lmp: Optional[date] = None
    edd: Optional[date] = None
    birth: Optional[date] = None
    ga_at_birth_days: Optional[int] = None
    current_ga_days: Optional[int] = None
    days_to_edd: Optional[int] = None
    chronological_days: Optional[int] = None
    corrected_days: Optional[int] = None
    correction_days: Optional[int] = None
    stop_correcting_on: Optional[date] = None

    @property
    def trimester(self) -> Optional[str]:
        if self.current_ga_days is None:
            return None
        return trimester(self.current_ga_days)

    @property
    def term_status(self) -> Optional[str]:
        if self.ga_at_birth_days is None:
            return None
        return term_status(self.ga_at_birth_days)

    @property
    def corrected_age_display(self) -> Optional[str]:
        if self.corrected_days is None:
            return None
        if self.corrected_days < 0:
            return "Not yet at term equivalent"
        return format_age(self.corrected_days)

    @property
    def is_preterm(self) -> bool:
        return self.ga_at_birth_days is not None and self.ga_at_birth_days < PRETERM_DAYS


def format_weeks_days(total_days: int) -> str:
    return f"{total_days // DAYS_PER_WEEK}w {total_days % DAYS_PER_WEEK}d"


def format_age(total_days: int) -> str:
    if total_days < 0:
        return "Not yet born"
    if total_days < 28:
        return f"{total_days} days"
    if total_days < 365:
        months = int(total_days // DAYS_PER_MONTH)
        rem_days = round(total_days - months * DAYS_PER_MONTH)
        return (
            f"{months} month{'s' if months != 1 else ''}, "
            f"{rem_days} day{'s' if rem_days != 1 else ''}"
        )
    years = int(total_days // DAYS_PER_YEAR)
    rem_months = int((total_days - years * DAYS_PER_YEAR) // DAYS_PER_MONTH)
    return (
        f"{years} year{'s' if years != 1 else ''}, "
        f"{rem_months} month{'s' if rem_months != 1 else ''}"
    )


def trimester(ga_days: int) -> str:
    if ga_days < 98:
        return "1st"
    if ga_days < 196:
        return "2nd"
    return "3rd"


def term_status(ga_days: int) -> str:
    if ga_days < PRETERM_DAYS:
        return "Preterm"
    if ga_days < 280:
        return "Early term"
    if ga_days < 294:
        return "Full term"
    if ga_days < 301:
        return "Late term"
    return "Post-term"


def assess_gestational_age(
    today: date,
    lmp: Optional[date] = None,
    edd: Optional[date] = None,
    birth: Optional[date] = None,
    ga_weeks: Optional[int] = None,
    ga_days: int = 0,
) -> GestationalAgeSummary:
    """
    Fill in missing dates and compute gestational and corrected ages.

    Args:
        today: Reference date for current GA and chronological age
        lmp: First day of the last menstrual period
        edd: Estimated due date
        birth: Date of birth
        ga_weeks: Completed weeks of gestation at birth
        ga_days: Extra days of gestation at birth

    Returns:
        GestationalAgeSummary

    Raises:
        ValueError: If no date is given, or GA days are out of range.
    """
    if lmp is None and edd is None and birth is None:
        raise ValueError("Enter at least one date (LMP, EDD, or birth date with GA)")
    if not 0 <= ga_days < DAYS_PER_WEEK:
        raise ValueError("GA days must be between 0 and 6")

    ga_at_birth = ga_weeks * DAYS_PER_WEEK + ga_days if ga_weeks is not None else None

    if lmp is not None and edd is None:
        edd = lmp + timedelta(days=PREGNANCY_DAYS)
    if edd is not None and lmp is None:
        lmp = edd - timedelta(days=PREGNANCY_DAYS)
    if ga_at_birth and birth is not None and lmp is None:
        lmp = birth - timedelta(days=ga_at_birth)
        edd = lmp + timedelta(days=PREGNANCY_DAYS)
    if lmp is not None and birth is not None and not ga_at_birth:
        ga_at_birth = (birth - lmp).days

    summary = GestationalAgeSummary(
        lmp=lmp, edd=edd, birth=birth, ga_at_birth_days=ga_at_birth
    )

    if lmp is not None:
        current_ga = (today - lmp).days
        if current_ga >= 0:
            summary.current_ga_days = current_ga
            if edd is not None:
                summary.days_to_edd = (edd - today).days

    if birth is not None:
        chronological = (today - birth).days
        if chronological >= 0:
            summary.chronological_days = chronological
        if ga_at_birth and ga_at_birth < PRETERM_DAYS:
            correction = PREGNANCY_DAYS - ga_at_birth
            summary.correction_days = correction
            summary.corrected_days = chronological - correction
            summary.stop_correcting_on = birth + timedelta(
                days=round(STOP_CORRECTING_MONTHS * DAYS_PER_MONTH) + correction
            )
    return summary

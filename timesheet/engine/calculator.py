"""
Calculation Engine

Pure functions converting an activity's original amount / duration into
day-equivalents, hours and billable amount under the project's calculation
mode.

Every billing rate is resolved through resolve_rate(), so rate math never
diverges between components or runtimes.
"""

import math
import re
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel, ConfigDict

from timesheet.models.timesheet import Activity, CalculationMode, Project


class RateSubject(Protocol):
    collaborator: str


class CalculationSource(Protocol):
    collaborator: str
    duration: str
    original_amount: float


class Quantities(BaseModel):
    """Computed quantities for one activity."""
    model_config = ConfigDict(frozen=True)

    day_equivalents: float = 0.0
    hours: float = 0.0
    billable_amount: float = 0.0
    has_rate_error: bool = False


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_duration(value) -> float:
    """
    Parse a duration into decimal hours.

    Accepts "H:MM" ("1:30" -> 1.5) or a decimal with comma or dot
    ("2,5" -> 2.5). Like a lenient spreadsheet reader, only the leading
    numeric part counts ("2.5h" -> 2.5). Empty or unparseable input is 0.
    """
    if value is None:
        return 0.0
    text = str(value).strip()
    if not text:
        return 0.0

    if ":" in text:
        hours_part, minutes_part = text.split(":")[:2]
        return _leading_int(hours_part) + _leading_int(minutes_part) / 60

    return parse_leading_float(text.replace(",", ".", 1))


def parse_leading_float(value) -> float:
    """Numeric value of the leading part of value ("12.5 EUR" -> 12.5), else 0."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else 0.0
    match = _LEADING_FLOAT.match(str(value or ""))
    return float(match.group(1)) if match else 0.0


def _leading_int(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def resolve_rate(activity: RateSubject, project: Project) -> Optional[float]:
    """
    Billing rate for an activity, or None when it cannot be resolved.

    COLLABORATOR_RATE: the collaborator's configured rate, None if missing
    or not positive. Other modes: the project daily rate.
    """
    if project.calculation_mode == CalculationMode.COLLABORATOR_RATE:
        rate = project.collaborator_rates.get(activity.collaborator)
        if rate is None or rate <= 0:
            return None
        return rate
    return project.daily_rate


def effective_rate(activity: RateSubject, project: Project) -> float:
    """Resolved rate, falling back to the project daily rate."""
    return resolve_rate(activity, project) or project.daily_rate


def derive_quantities(
    day_equivalents: float,
    activity: RateSubject,
    project: Project,
) -> Quantities:
    """
    Hours and billable amount for a given day-equivalents value.

    An unresolved collaborator rate stays flagged even though the amount
    falls back to the project daily rate.
    """
    return Quantities(
        day_equivalents=day_equivalents,
        hours=day_equivalents * project.hours_per_day,
        billable_amount=day_equivalents * effective_rate(activity, project),
        has_rate_error=resolve_rate(activity, project) is None,
    )


def compute_by_mode(source: CalculationSource, project: Project) -> Quantities:
    """Compute day-equivalents, hours and billable amount from imported values."""
    mode = project.calculation_mode

    if mode == CalculationMode.HOURS:
        hours = parse_duration(source.duration)
        return derive_quantities(hours / project.hours_per_day, source, project)

    if mode == CalculationMode.COLLABORATOR_RATE:
        rate = resolve_rate(source, project)
        if rate is None:
            return Quantities(has_rate_error=True)
        return derive_quantities(source.original_amount / rate, source, project)

    return derive_quantities(source.original_amount / project.daily_rate, source, project)


def compute_baseline(activity: Activity, project: Project) -> Quantities:
    """Reference (unedited) quantities, always from the imported snapshot."""
    return compute_by_mode(activity.source, project)


def apply_quantities(activity: Activity, quantities: Quantities) -> None:
    activity.day_equivalents = quantities.day_equivalents
    activity.hours = quantities.hours
    activity.billable_amount = quantities.billable_amount
    activity.has_rate_error = quantities.has_rate_error


def apply_day_equivalents(activity: Activity, value: float, project: Project) -> None:
    """Set day-equivalents and re-derive hours and billable amount."""
    apply_quantities(activity, derive_quantities(value, activity, project))


def recalculate(activity: Activity, project: Project) -> None:
    """
    Re-derive one activity under the current project configuration.

    A quantity override keeps its day-equivalents; only hours/billable,
    the rate flag and the reference originals are recomputed. Otherwise
    everything is recomputed from the imported snapshot.
    """
    baseline = compute_baseline(activity, project)
    if activity.has_quantity_override:
        apply_day_equivalents(activity, activity.day_equivalents, project)
        activity.original_day_equivalents = baseline.day_equivalents
        activity.original_hours = baseline.hours
        activity.original_billable_amount = baseline.billable_amount
    else:
        apply_quantities(activity, baseline)


def recalculate_all(activities: Iterable[Activity], project: Project) -> int:
    """Recalculate every activity after a configuration change. Returns the count."""
    count = 0
    for activity in activities:
        recalculate(activity, project)
        count += 1
    return count

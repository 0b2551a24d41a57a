"""
Redistribution Algorithms

Three operations that reassign day-equivalents across a selected subset of
one month's activities:

- apply_rounding: scale the selection proportionally to a target total
- apply_uniform: give every member the same share of a total
- redistribute_excess: cap members above one day and move the surplus to
  the other members

DESIGN DECISION: One proportional strategy for every caller. All members
but the last are multiplied by the ratio, the last one absorbs the residual
so the target is met exactly. Intermediate values are never rounded.

Every function validates the whole selection before touching any activity,
so a rejection leaves the selection unchanged. Changed activities get their
reference quantities captured, are re-derived via resolve_rate and, when a
report is given, are persisted into it.
"""

import math
from typing import Iterable, Optional, Sequence

from timesheet.engine.errors import OperationRejected
from timesheet.engine.overrides import persist_activity, set_day_equivalents
from timesheet.models.results import RejectionReason
from timesheet.models.timesheet import Activity, MonthlyReport, Project
from timesheet.validation import validator


def selection_total(activities: Iterable[Activity]) -> float:
    return math.fsum(a.day_equivalents for a in activities)


def scale_to_total(values: Sequence[float], target_total: float) -> list[float]:
    """
    Scale values proportionally so they sum to target_total.

    The last value takes target_total minus the sum of the others.
    The current total must be non-zero.
    """
    current = math.fsum(values)
    ratio = target_total / current
    scaled = [value * ratio for value in values[:-1]]
    scaled.append(target_total - math.fsum(scaled))
    return scaled


def _require_selection(activities: Iterable[Activity]) -> list[Activity]:
    selection = list(activities)
    if not selection:
        raise OperationRejected(RejectionReason.EMPTY_SELECTION, "No activities selected")
    return selection


def _assign(
    activities: Sequence[Activity],
    values: Sequence[float],
    project: Project,
    report: Optional[MonthlyReport],
) -> None:
    for activity, value in zip(activities, values):
        set_day_equivalents(activity, value, project)
        if report is not None:
            persist_activity(activity, report)


def apply_rounding(
    activities: Iterable[Activity],
    target_total: float,
    project: Project,
    report: Optional[MonthlyReport] = None,
) -> int:
    """
    Scale the selection so its day-equivalents sum to target_total.

    Rejected when the selection is empty or currently sums to zero.
    Returns the number of activities changed.
    """
    selection = _require_selection(activities)
    target_total = validator.require_number(target_total, "Target total")

    if selection_total(selection) == 0:
        raise OperationRejected(
            RejectionReason.ZERO_TOTAL,
            "Selected activities total zero day-equivalents; nothing to scale"
        )

    values = scale_to_total([a.day_equivalents for a in selection], target_total)
    _assign(selection, values, project, report)
    return len(selection)


def apply_uniform(
    activities: Iterable[Activity],
    total: float,
    project: Project,
    report: Optional[MonthlyReport] = None,
) -> int:
    """Set every selected activity to total / n. Returns the number changed."""
    selection = _require_selection(activities)
    total = validator.require_positive(total, "Total")

    value_each = total / len(selection)
    _assign(selection, [value_each] * len(selection), project, report)
    return len(selection)


def find_excess(activities: Iterable[Activity], cap: float = 1.0) -> list[Activity]:
    """Activities whose day-equivalents exceed the cap."""
    return [a for a in activities if a.day_equivalents > cap]


def redistribute_excess(
    activities: Iterable[Activity],
    project: Project,
    report: Optional[MonthlyReport] = None,
    cap: float = 1.0,
) -> int:
    """
    Cap members above `cap` and move the surplus onto the other members.

    Recipients keep their proportions and grow by the total excess; when
    they currently sum to zero the excess is split evenly. Rejected when no
    member exceeds the cap or every member does. Returns the number changed.
    """
    selection = _require_selection(activities)

    excess = find_excess(selection, cap)
    if not excess:
        raise OperationRejected(
            RejectionReason.NO_EXCESS,
            f"No selected activity exceeds {cap:g} day-equivalents"
        )
    excess_ids = {id(a) for a in excess}
    recipients = [a for a in selection if id(a) not in excess_ids]
    if not recipients:
        raise OperationRejected(
            RejectionReason.NO_RECIPIENTS,
            "Select other activities to receive the excess"
        )

    total_excess = math.fsum(a.day_equivalents - cap for a in excess)
    recipient_total = selection_total(recipients)

    if recipient_total > 0:
        recipient_values = scale_to_total(
            [a.day_equivalents for a in recipients],
            recipient_total + total_excess,
        )
    else:
        recipient_values = [total_excess / len(recipients)] * len(recipients)

    _assign(excess, [cap] * len(excess), project, report)
    _assign(recipients, recipient_values, project, report)
    return len(excess) + len(recipients)

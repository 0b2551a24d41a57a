"""
Two-Stage Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - INPUT VALIDATION:
- Operator-supplied values (names, rates, colors, quantities, modes)
- Violations raise OperationRejected before any state is touched
- This is what keeps rejected operations free of partial changes

STAGE 2 - MONTH CHECKS (advisory):
- Collaborators without a rate under per-collaborator billing
- Past months that are still open
- Activities above the excess cap
- These are reported as warnings and NEVER block a mutation

IMPORTANT: Validation NEVER silently fixes issues.
It either rejects the input or reports what it found.
"""

import math
import re
from datetime import date
from typing import Any, Iterable, Optional

from timesheet.config import get_settings
from timesheet.engine.errors import OperationRejected
from timesheet.engine.lifecycle import is_month_in_past
from timesheet.models.results import MonthCheckResult, RejectionReason, ValidationIssue
from timesheet.models.timesheet import Activity, CalculationMode, Project


HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


# =============================================================================
# STAGE 1 - INPUT VALIDATION
# =============================================================================

def require_text(value: Any, field: str, max_length: int = 200) -> str:
    """Non-empty text after trimming."""
    text = str(value).strip() if value is not None else ""
    if not text:
        raise OperationRejected(RejectionReason.INVALID_VALUE, f"{field} is required")
    if len(text) > max_length:
        raise OperationRejected(
            RejectionReason.INVALID_VALUE,
            f"{field} must be at most {max_length} characters"
        )
    return text


def require_number(value: Any, field: str, minimum: float = 0.0, inclusive: bool = True) -> float:
    """A finite number above (or at, when inclusive) the minimum."""
    if isinstance(value, bool):
        raise OperationRejected(RejectionReason.INVALID_VALUE, f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise OperationRejected(RejectionReason.INVALID_VALUE, f"{field} must be a number")

    too_small = number < minimum if inclusive else number <= minimum
    if not math.isfinite(number) or too_small:
        bound = f"at least {minimum:g}" if inclusive else f"greater than {minimum:g}"
        raise OperationRejected(RejectionReason.INVALID_VALUE, f"{field} must be {bound}")
    return number


def require_positive(value: Any, field: str) -> float:
    return require_number(value, field, minimum=0.0, inclusive=False)


def require_color(value: Any) -> str:
    color = str(value or "").strip()
    if not HEX_COLOR_PATTERN.match(color):
        raise OperationRejected(
            RejectionReason.INVALID_VALUE,
            f"Color must be a hex value like #3498db (got '{color}')"
        )
    return color


def require_calculation_mode(value: Any) -> CalculationMode:
    try:
        return CalculationMode(value)
    except ValueError:
        allowed = ", ".join(m.value for m in CalculationMode)
        raise OperationRejected(
            RejectionReason.INVALID_VALUE,
            f"Unknown calculation mode '{value}' (expected one of: {allowed})"
        )


# =============================================================================
# STAGE 2 - MONTH CHECKS
# =============================================================================

class MonthChecker:
    """
    Advisory checks over one month's activities.

    Results feed the warnings of workbench operations; nothing here rejects.
    """

    def __init__(self, excess_cap: Optional[float] = None):
        self._excess_cap = excess_cap if excess_cap is not None else get_settings().engine.excess_cap

    def check(
        self,
        project: Project,
        month_key: str,
        activities: Iterable[Activity],
        today: Optional[date] = None,
    ) -> MonthCheckResult:
        activities = list(activities)
        issues: list[ValidationIssue] = []

        report = project.monthly_reports.get(month_key)
        if report is not None and not report.is_closed and is_month_in_past(month_key, today):
            issues.append(ValidationIssue(
                field="month",
                issue_type="past_open_month",
                message=f"Month {month_key} is in the past and still open",
                severity="warning",
                suggested_fix="Close the month once it has been invoiced",
            ))

        missing = sorted({a.collaborator for a in activities if a.has_rate_error})
        if missing:
            issues.append(ValidationIssue(
                field="collaborator_rates",
                issue_type="missing_rate",
                message=f"{len(missing)} collaborators without a daily rate: {', '.join(missing)}",
                severity="warning",
                suggested_fix="Set their rates; affected activities count as 0 day-equivalents",
            ))

        excess = [a for a in activities if a.day_equivalents > self._excess_cap]
        if excess:
            issues.append(ValidationIssue(
                field="day_equivalents",
                issue_type="excess",
                message=f"{len(excess)} activities exceed {self._excess_cap:g} day-equivalents",
                severity="info",
                suggested_fix="Use excess redistribution to spread the surplus",
            ))

        return MonthCheckResult(
            month_key=month_key,
            is_clean=not any(i.severity != "info" for i in issues),
            issues=issues,
        )

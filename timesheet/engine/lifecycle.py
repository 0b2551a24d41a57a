"""
Monthly Report Lifecycle

States: OPEN (initial) and CLOSED.

- OPEN -> CLOSED requires at least one activity and stamps closed_at
- CLOSED -> OPEN is unconditional and clears closed_at
- Every mutation of a month goes through ensure_open() first

Whether a month lies in the past is advisory only and never blocks a
mutation.
"""

import re
from datetime import date, datetime
from typing import Optional

from timesheet.engine.errors import OperationRejected
from timesheet.models.results import RejectionReason
from timesheet.models.timesheet import MonthlyReport, MonthStatus, Project


MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_month_key(month_key: str) -> str:
    if not isinstance(month_key, str) or not MONTH_KEY_PATTERN.match(month_key):
        raise OperationRejected(
            RejectionReason.INVALID_MONTH_KEY,
            f"Invalid month key '{month_key}' (expected YYYY-MM)"
        )
    return month_key


def current_month_key(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{today.year:04d}-{today.month:02d}"


def is_month_in_past(month_key: str, today: Optional[date] = None) -> bool:
    return month_key < current_month_key(today)


def _label(month_key: str) -> str:
    return f"Month {month_key}" if month_key else "Month"


def get_or_create_report(project: Project, month_key: str) -> MonthlyReport:
    """Return the month's report, creating an OPEN, empty one on first access."""
    validate_month_key(month_key)
    report = project.monthly_reports.get(month_key)
    if report is None:
        report = MonthlyReport()
        project.monthly_reports[month_key] = report
    return report


def require_report(project: Project, month_key: str) -> MonthlyReport:
    """Return an existing report; unknown months are rejected, never created."""
    validate_month_key(month_key)
    report = project.monthly_reports.get(month_key)
    if report is None:
        raise OperationRejected(
            RejectionReason.UNKNOWN_MONTH,
            f"No report for month {month_key}"
        )
    return report


def ensure_open(report: MonthlyReport, month_key: str = "") -> None:
    """The gate in front of every mutation."""
    if report.is_closed:
        raise OperationRejected(
            RejectionReason.MONTH_CLOSED,
            f"{_label(month_key)} is closed; reopen it to make changes"
        )


def close_month(report: MonthlyReport, month_key: str = "", now: Optional[datetime] = None) -> None:
    if report.is_closed:
        raise OperationRejected(
            RejectionReason.ALREADY_CLOSED,
            f"{_label(month_key)} is already closed"
        )
    if report.activity_count == 0:
        raise OperationRejected(
            RejectionReason.EMPTY_MONTH,
            f"{_label(month_key)} has no activities to close"
        )
    report.status = MonthStatus.CLOSED
    report.closed_at = now or datetime.utcnow()


def reopen_month(report: MonthlyReport) -> bool:
    """Reopen a closed month. Returns False when it was already open."""
    if not report.is_closed:
        return False
    report.status = MonthStatus.OPEN
    report.closed_at = None
    return True


def past_month_warning(
    project: Project,
    month_key: str,
    today: Optional[date] = None,
) -> Optional[str]:
    """Advisory message for a past month that is still open, else None."""
    report = project.monthly_reports.get(month_key)
    if report is None or report.is_closed or not is_month_in_past(month_key, today):
        return None
    return f"Month {month_key} is in the past and still open"

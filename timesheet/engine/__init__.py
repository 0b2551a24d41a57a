"""
Engine Package

Pure, synchronous core shared by the interactive workbench and the
automation engine. Nothing in here performs I/O.
"""

from timesheet.engine.errors import OperationRejected, TimesheetError
from timesheet.engine.hashing import activity_hash
from timesheet.engine.calculator import (
    compute_by_mode,
    parse_duration,
    recalculate_all,
    resolve_rate,
)
from timesheet.engine.overrides import (
    edit_duration,
    edit_field,
    persist_activity,
    restore_activities,
    restore_activity,
    set_day_equivalents,
)
from timesheet.engine.redistribution import (
    apply_rounding,
    apply_uniform,
    redistribute_excess,
)
from timesheet.engine.lifecycle import (
    close_month,
    ensure_open,
    get_or_create_report,
    is_month_in_past,
    reopen_month,
)
from timesheet.engine.reconciliation import load_activities, reconcile

__all__ = [
    "OperationRejected",
    "TimesheetError",
    "activity_hash",
    "compute_by_mode",
    "parse_duration",
    "recalculate_all",
    "resolve_rate",
    "edit_duration",
    "edit_field",
    "persist_activity",
    "restore_activities",
    "restore_activity",
    "set_day_equivalents",
    "apply_rounding",
    "apply_uniform",
    "redistribute_excess",
    "close_month",
    "ensure_open",
    "get_or_create_report",
    "is_month_in_past",
    "reopen_month",
    "load_activities",
    "reconcile",
]

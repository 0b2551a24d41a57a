"""
Override Tracker

Records manual edits to an activity as deltas against its imported
snapshot and reverses them on demand.

Two independent override classes:
- Text overrides (date, task, collaborator, description, duration), each
  captured and restorable on its own
- The quantity override (day-equivalents), which freezes hours and billable
  amount to be derived from the edited value

The pre-edit value of a field is captured exactly once; later edits of the
same field never overwrite it.
"""

from typing import Iterable, Optional

from timesheet.engine.calculator import (
    apply_day_equivalents,
    apply_quantities,
    compute_baseline,
    parse_duration,
)
from timesheet.engine.errors import OperationRejected
from timesheet.models.results import RejectionReason
from timesheet.models.timesheet import (
    TEXT_OVERRIDE_FIELDS,
    Activity,
    ActivityRecord,
    FieldOverrides,
    MonthlyReport,
    OriginalData,
    Project,
)

# Duration goes through edit_duration() because it also rescales the quantity.
PLAIN_TEXT_FIELDS = ("date", "task", "collaborator", "description")


def capture_quantities(activity: Activity, project: Project) -> None:
    """Snapshot the reference quantities once, before the first quantity edit."""
    if activity.has_quantity_override:
        return
    baseline = compute_baseline(activity, project)
    activity.original_day_equivalents = baseline.day_equivalents
    activity.original_hours = baseline.hours
    activity.original_billable_amount = baseline.billable_amount


def edit_field(activity: Activity, field: str, value: str) -> None:
    """Override one plain text field, capturing its pre-edit value once."""
    if field not in PLAIN_TEXT_FIELDS:
        raise OperationRejected(
            RejectionReason.INVALID_VALUE,
            f"Field '{field}' cannot be edited as text"
        )
    if value is None:
        raise OperationRejected(RejectionReason.INVALID_VALUE, f"A value for '{field}' is required")
    original_attr = f"original_{field}"
    if getattr(activity, original_attr) is None:
        setattr(activity, original_attr, getattr(activity, field))
    setattr(activity, field, str(value))


def edit_duration(activity: Activity, value: str, project: Project) -> None:
    """
    Override the duration and rescale day-equivalents with it.

    Doubling the duration doubles the reference day-equivalents. When the
    imported duration parses to zero hours, the new hours are converted
    directly with the project's hours per day.
    """
    if value is None:
        raise OperationRejected(RejectionReason.INVALID_VALUE, "A value for 'duration' is required")
    if activity.original_duration is None:
        activity.original_duration = activity.duration
    capture_quantities(activity, project)

    original_hours = parse_duration(activity.original_duration)
    new_hours = parse_duration(value)
    activity.duration = str(value)

    if original_hours > 0:
        day_equivalents = activity.original_day_equivalents * new_hours / original_hours
    else:
        day_equivalents = new_hours / project.hours_per_day
    apply_day_equivalents(activity, day_equivalents, project)


def set_day_equivalents(activity: Activity, value: float, project: Project) -> None:
    """Override the quantity; hours and billable amount follow via resolve_rate."""
    capture_quantities(activity, project)
    apply_day_equivalents(activity, float(value), project)


def persist_activity(activity: Activity, report: MonthlyReport) -> ActivityRecord:
    """
    Write an activity's state into its persisted record.

    original_data is written only when the record is created. Overrides are
    written exactly for what the activity has captured.
    """
    record = report.activities.get(activity.hash)
    if record is None:
        record = ActivityRecord(original_data=activity.source)
        report.activities[activity.hash] = record

    record.cluster_id = activity.cluster_id
    record.day_equivalents_override = (
        activity.day_equivalents if activity.has_quantity_override else None
    )
    record.field_overrides = FieldOverrides(**{
        name: getattr(activity, name) for name in activity.overridden_fields()
    })
    return record


def apply_record(activity: Activity, record: ActivityRecord, project: Project) -> None:
    """Re-apply a stored record's cluster and overrides on a fresh baseline."""
    activity.cluster_id = record.cluster_id

    for name in TEXT_OVERRIDE_FIELDS:
        value = getattr(record.field_overrides, name)
        if value is not None:
            setattr(activity, f"original_{name}", getattr(activity, name))
            setattr(activity, name, value)

    if record.day_equivalents_override is not None:
        capture_quantities(activity, project)
        apply_day_equivalents(activity, record.day_equivalents_override, project)


def build_activity(
    activity_hash: str,
    original: OriginalData,
    project: Project,
    record: Optional[ActivityRecord] = None,
    is_new: bool = False,
) -> Activity:
    """Build the in-memory activity: baseline quantities plus stored overrides."""
    activity = Activity.from_original(activity_hash, original, is_new=is_new)
    apply_quantities(activity, compute_baseline(activity, project))
    if record is not None:
        apply_record(activity, record, project)
    return activity


def restore_activity(
    activity: Activity,
    project: Project,
    report: Optional[MonthlyReport] = None,
) -> bool:
    """
    Revert every override on one activity.

    Text fields go back to the imported values, quantities are recomputed
    under the current mode and the persisted record loses its overrides.
    Returns False (and changes nothing) for an unmodified activity.
    """
    if not activity.is_modified:
        return False

    for name in TEXT_OVERRIDE_FIELDS:
        setattr(activity, name, getattr(activity.source, name))
        setattr(activity, f"original_{name}", None)

    activity.original_day_equivalents = None
    activity.original_hours = None
    activity.original_billable_amount = None
    apply_quantities(activity, compute_baseline(activity, project))

    if report is not None:
        record = report.activities.get(activity.hash)
        if record is not None:
            record.day_equivalents_override = None
            record.field_overrides = FieldOverrides()
    return True


def restore_activities(
    activities: Iterable[Activity],
    project: Project,
    report: Optional[MonthlyReport] = None,
) -> int:
    """Restore a subset of activities. Returns how many were actually restored."""
    return sum(1 for activity in activities if restore_activity(activity, project, report))

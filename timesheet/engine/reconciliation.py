"""
Reconciliation (import merge)

Merges a freshly parsed import batch into a month:

1. Each row is hashed
2. A known hash is not new: the stored cluster and overrides are re-applied
   on top of a freshly computed baseline
3. An unknown hash is new and gets a fresh record (no overrides)
4. The month's in-memory activity list is replaced by the merged batch
5. Unseen collaborators are registered with a zero rate
6. An import history entry is prepended (bounded)

Re-importing the same batch is idempotent: every row comes back as not new
and no stored cluster or override changes.
"""

from datetime import datetime
from typing import Iterable, Optional

from timesheet.engine.calculator import resolve_rate
from timesheet.engine.hashing import activity_hash
from timesheet.engine.lifecycle import ensure_open
from timesheet.engine.overrides import build_activity, persist_activity
from timesheet.models.results import ImportSummary
from timesheet.models.timesheet import (
    Activity,
    CalculationMode,
    ImportHistoryEntry,
    MonthlyReport,
    OriginalData,
    Project,
)


def load_activities(report: MonthlyReport, project: Project) -> list[Activity]:
    """Rebuild a month's in-memory activities from its persisted records."""
    return [
        build_activity(key, record.original_data, project, record=record)
        for key, record in report.activities.items()
    ]


def register_collaborators(project: Project, activities: Iterable[Activity]) -> list[str]:
    """Add unseen collaborators with a zero rate. Returns the names added, in order."""
    added: list[str] = []
    for activity in activities:
        name = activity.collaborator
        if name and name not in project.collaborator_rates:
            project.collaborator_rates[name] = 0.0
            added.append(name)
    return added


def unrated_collaborators(project: Project, activities: Iterable[Activity]) -> list[str]:
    """Collaborators without a usable rate, in order. Empty outside COLLABORATOR_RATE."""
    if project.calculation_mode != CalculationMode.COLLABORATOR_RATE:
        return []
    missing: list[str] = []
    for activity in activities:
        name = activity.collaborator
        if name and name not in missing and resolve_rate(activity, project) is None:
            missing.append(name)
    return missing


def record_import(
    report: MonthlyReport,
    file_name: str,
    loaded: int,
    new: int,
    history_limit: int = 20,
    now: Optional[datetime] = None,
) -> ImportHistoryEntry:
    entry = ImportHistoryEntry(
        imported_at=now or datetime.utcnow(),
        file_name=file_name,
        loaded=loaded,
        new=new,
    )
    report.import_history.insert(0, entry)
    del report.import_history[history_limit:]
    return entry


def reconcile(
    project: Project,
    month_key: str,
    report: MonthlyReport,
    rows: Iterable[OriginalData],
    file_name: str = "",
    history_limit: int = 20,
    now: Optional[datetime] = None,
) -> tuple[list[Activity], ImportSummary]:
    """
    Merge an import batch into the month's report.

    A known hash is rebuilt from its stored (write-once) snapshot, so the
    batch row only decides identity. Rows repeating a hash already seen in
    this batch are counted as duplicates and merged into the first one.

    Returns the month's new in-memory activity list and an ImportSummary.
    """
    ensure_open(report, month_key)

    activities: list[Activity] = []
    seen: set[str] = set()
    new_count = 0
    duplicates = 0

    for original in rows:
        hash_ = activity_hash(original)
        if hash_ in seen:
            duplicates += 1
            continue
        seen.add(hash_)

        record = report.activities.get(hash_)
        if record is not None:
            activity = build_activity(hash_, record.original_data, project, record=record)
        else:
            activity = build_activity(hash_, original, project, is_new=True)
            persist_activity(activity, report)
            new_count += 1
        activities.append(activity)

    register_collaborators(project, activities)
    missing_rates = unrated_collaborators(project, activities)

    record_import(report, file_name, len(activities), new_count, history_limit, now)

    return activities, ImportSummary(
        loaded=len(activities),
        new=new_count,
        duplicates=duplicates,
        missing_rates=missing_rates,
    )

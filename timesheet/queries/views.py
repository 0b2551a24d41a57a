"""
Read-Only Views

DESIGN DECISION: Views are DETERMINISTIC projections of loaded activities.
Consumers (export, automation tools, reports) read day-equivalents, billable
amounts and flags from here and never re-run the calculation engine.

Display values (totals) are rounded to 2 decimals; per-activity values are
returned unrounded so nothing downstream compounds a rounding error.
"""

import math
from datetime import datetime
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from timesheet.engine.reconciliation import load_activities
from timesheet.models.timesheet import Activity, MonthStatus, Project


class ActivityView(BaseModel):
    """One activity as seen by report consumers."""

    hash: str
    client: str
    task: str
    date: str
    collaborator: str
    description: str
    duration: str
    original_amount: float
    day_equivalents: float
    hours: float
    billable_amount: float
    cluster_id: Optional[str] = None
    cluster_name: Optional[str] = None
    is_modified: bool = False
    has_rate_error: bool = False


class MonthTotals(BaseModel):
    count: int = 0
    day_equivalents: float = 0.0
    billable_amount: float = 0.0
    new: int = 0


class MonthActivities(BaseModel):
    project_id: str
    month_key: str
    status: MonthStatus
    activities: list[ActivityView] = Field(default_factory=list)
    totals: MonthTotals = Field(default_factory=MonthTotals)


class ClusterSummaryLine(BaseModel):
    cluster_id: Optional[str] = None
    cluster_name: str = "Unassigned"
    color: Optional[str] = None
    count: int = 0
    day_equivalents: float = 0.0
    billable_amount: float = 0.0


class MonthSummary(BaseModel):
    project_id: str
    month_key: str
    clusters: list[ClusterSummaryLine] = Field(default_factory=list)
    totals: MonthTotals = Field(default_factory=MonthTotals)


class ProjectListing(BaseModel):
    id: str
    name: str
    calculation_mode: str
    months: int
    activities: int
    current_month: Optional[str] = None


class MonthListing(BaseModel):
    month_key: str
    status: MonthStatus
    activity_count: int
    closed_at: Optional[datetime] = None
    last_import: Optional[datetime] = None


class ProjectDetail(BaseModel):
    id: str
    name: str
    daily_rate: float
    hours_per_day: float
    calculation_mode: str
    collaborator_rates: dict[str, float] = Field(default_factory=dict)
    clusters: list[dict] = Field(default_factory=list)
    months: list[MonthListing] = Field(default_factory=list)
    current_month: Optional[str] = None


def date_sort_key(date_str: str) -> tuple:
    """Sort key for DD/MM/YYYY strings; anything else sorts last, by text."""
    parts = str(date_str or "").split("/")
    if len(parts) == 3 and all(p.strip().isdigit() for p in parts):
        day, month, year = (int(p) for p in parts)
        return (0, year, month, day, "")
    return (1, 0, 0, 0, str(date_str or ""))


def _round2(value: float) -> float:
    return round(value, 2)


def _totals(activities: list[Activity]) -> MonthTotals:
    return MonthTotals(
        count=len(activities),
        day_equivalents=_round2(math.fsum(a.day_equivalents for a in activities)),
        billable_amount=_round2(math.fsum(a.billable_amount for a in activities)),
        new=sum(1 for a in activities if a.is_new),
    )


def _view(activity: Activity, project: Project) -> ActivityView:
    cluster = project.find_cluster(activity.cluster_id)
    return ActivityView(
        hash=activity.hash,
        client=activity.client,
        task=activity.task,
        date=activity.date,
        collaborator=activity.collaborator,
        description=activity.description,
        duration=activity.duration,
        original_amount=activity.original_amount,
        day_equivalents=activity.day_equivalents,
        hours=activity.hours,
        billable_amount=activity.billable_amount,
        cluster_id=activity.cluster_id,
        cluster_name=cluster.name if cluster else None,
        is_modified=activity.is_modified,
        has_rate_error=activity.has_rate_error,
    )


def _month_activities(
    project: Project,
    month_key: str,
    activities: Optional[Iterable[Activity]],
) -> list[Activity]:
    if activities is not None:
        return list(activities)
    report = project.monthly_reports.get(month_key)
    return load_activities(report, project) if report else []


def month_activities(
    project: Project,
    month_key: str,
    activities: Optional[Iterable[Activity]] = None,
) -> MonthActivities:
    """
    Every activity of the month, sorted by date, with display totals.

    Pass the workbench's loaded activities to keep is_new flags from the
    last import; otherwise the month is rebuilt from its stored records.
    """
    loaded = _month_activities(project, month_key, activities)
    loaded.sort(key=lambda a: date_sort_key(a.date))

    report = project.monthly_reports.get(month_key)
    return MonthActivities(
        project_id=project.id,
        month_key=month_key,
        status=report.status if report else MonthStatus.OPEN,
        activities=[_view(a, project) for a in loaded],
        totals=_totals(loaded),
    )


def month_summary(
    project: Project,
    month_key: str,
    activities: Optional[Iterable[Activity]] = None,
) -> MonthSummary:
    """Day-equivalents and billable amount per cluster; unassigned last."""
    loaded = _month_activities(project, month_key, activities)

    groups: dict[Optional[str], list[Activity]] = {}
    for activity in loaded:
        # Stale references count as unassigned
        key = activity.cluster_id if project.find_cluster(activity.cluster_id) else None
        groups.setdefault(key, []).append(activity)

    lines: list[ClusterSummaryLine] = []
    for cluster in sorted(project.clusters, key=lambda c: c.name.casefold()):
        members = groups.get(cluster.id)
        if not members:
            continue
        totals = _totals(members)
        lines.append(ClusterSummaryLine(
            cluster_id=cluster.id,
            cluster_name=cluster.name,
            color=cluster.color,
            count=totals.count,
            day_equivalents=totals.day_equivalents,
            billable_amount=totals.billable_amount,
        ))

    unassigned = groups.get(None)
    if unassigned:
        totals = _totals(unassigned)
        lines.append(ClusterSummaryLine(
            count=totals.count,
            day_equivalents=totals.day_equivalents,
            billable_amount=totals.billable_amount,
        ))

    return MonthSummary(
        project_id=project.id,
        month_key=month_key,
        clusters=lines,
        totals=_totals(loaded),
    )


def list_projects(projects: Iterable[Project]) -> list[ProjectListing]:
    return [
        ProjectListing(
            id=p.id,
            name=p.name,
            calculation_mode=p.calculation_mode.value,
            months=len(p.monthly_reports),
            activities=p.total_activities,
            current_month=p.current_month,
        )
        for p in sorted(projects, key=lambda p: p.name.casefold())
    ]


def project_detail(project: Project) -> ProjectDetail:
    """Billing configuration plus every month, most recent first."""
    months = [
        MonthListing(
            month_key=key,
            status=report.status,
            activity_count=report.activity_count,
            closed_at=report.closed_at,
            last_import=report.import_history[0].imported_at if report.import_history else None,
        )
        for key, report in sorted(project.monthly_reports.items(), reverse=True)
    ]
    return ProjectDetail(
        id=project.id,
        name=project.name,
        daily_rate=project.daily_rate,
        hours_per_day=project.hours_per_day,
        calculation_mode=project.calculation_mode.value,
        collaborator_rates=dict(project.collaborator_rates),
        clusters=[c.model_dump() for c in project.clusters],
        months=months,
        current_month=project.current_month,
    )

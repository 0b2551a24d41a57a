"""
Project Service

Project-level operations that do not belong to a single month:
creating projects, billing settings, clusters and collaborator rates.

DESIGN DECISION: These operations validate every input before mutating the
project, and raise OperationRejected on failure. The workbench and the
automation engine turn rejections into OperationResult values.

Deleting a cluster is a project-level operation: references are nulled in
every month, closed months included, so no record ever points at a cluster
that no longer exists.
"""

from typing import Any, Optional

from timesheet.config import Settings, get_settings
from timesheet.engine.errors import OperationRejected
from timesheet.models.results import RejectionReason
from timesheet.models.timesheet import CalculationMode, Cluster, Project
from timesheet.validation import (
    require_calculation_mode,
    require_color,
    require_number,
    require_positive,
    require_text,
)


DEFAULT_CLUSTER_COLOR = "#3498db"
RATE_ACTIONS = ("list", "set", "delete")


# =============================================================================
# PROJECTS
# =============================================================================

def create_project(
    name: str,
    daily_rate: Optional[float] = None,
    hours_per_day: Optional[float] = None,
    calculation_mode: Any = CalculationMode.RATE,
    settings: Optional[Settings] = None,
) -> Project:
    """Create a project, taking rate defaults from EngineSettings."""
    engine_settings = (settings or get_settings()).engine

    name = require_text(name, "Project name")
    daily_rate = require_positive(
        engine_settings.default_daily_rate if daily_rate is None else daily_rate,
        "Daily rate",
    )
    hours_per_day = require_positive(
        engine_settings.default_hours_per_day if hours_per_day is None else hours_per_day,
        "Hours per day",
    )
    mode = require_calculation_mode(calculation_mode)

    return Project(
        name=name,
        daily_rate=daily_rate,
        hours_per_day=hours_per_day,
        calculation_mode=mode,
    )


def update_settings(
    project: Project,
    name: Optional[str] = None,
    daily_rate: Optional[float] = None,
    hours_per_day: Optional[float] = None,
    calculation_mode: Any = None,
) -> list[str]:
    """
    Update billing settings in place.

    Returns the names of the settings that actually changed. Callers must
    recalculate loaded activities when a calculation setting changed.
    """
    updates: dict[str, Any] = {}
    if name is not None:
        updates["name"] = require_text(name, "Project name")
    if daily_rate is not None:
        updates["daily_rate"] = require_positive(daily_rate, "Daily rate")
    if hours_per_day is not None:
        updates["hours_per_day"] = require_positive(hours_per_day, "Hours per day")
    if calculation_mode is not None:
        updates["calculation_mode"] = require_calculation_mode(calculation_mode)

    changed = []
    for field, value in updates.items():
        if getattr(project, field) != value:
            setattr(project, field, value)
            changed.append(field)
    return changed


# =============================================================================
# CLUSTERS
# =============================================================================

def require_cluster(project: Project, cluster_id: Optional[str]) -> Cluster:
    cluster = project.find_cluster(cluster_id)
    if cluster is None:
        raise OperationRejected(
            RejectionReason.UNKNOWN_CLUSTER,
            f"Cluster '{cluster_id}' does not exist in this project"
        )
    return cluster


def _require_unique_name(project: Project, name: str, exclude_id: Optional[str] = None) -> None:
    lowered = name.casefold()
    for cluster in project.clusters:
        if cluster.id != exclude_id and cluster.name.casefold() == lowered:
            raise OperationRejected(
                RejectionReason.DUPLICATE_CLUSTER,
                f"A cluster named '{cluster.name}' already exists"
            )


def create_cluster(project: Project, name: str, color: Optional[str] = None) -> Cluster:
    name = require_text(name, "Cluster name", max_length=100)
    color = require_color(color) if color else DEFAULT_CLUSTER_COLOR
    _require_unique_name(project, name)

    cluster = Cluster(name=name, color=color)
    project.clusters.append(cluster)
    return cluster


def rename_cluster(project: Project, cluster_id: str, name: str) -> Cluster:
    cluster = require_cluster(project, cluster_id)
    name = require_text(name, "Cluster name", max_length=100)
    _require_unique_name(project, name, exclude_id=cluster.id)
    cluster.name = name
    return cluster


def recolor_cluster(project: Project, cluster_id: str, color: str) -> Cluster:
    cluster = require_cluster(project, cluster_id)
    cluster.color = require_color(color)
    return cluster


def delete_cluster(project: Project, cluster_id: str) -> int:
    """Remove a cluster and null every record pointing at it. Returns records cleared."""
    cluster = require_cluster(project, cluster_id)

    cleared = 0
    for report in project.monthly_reports.values():
        for record in report.activities.values():
            if record.cluster_id == cluster.id:
                record.cluster_id = None
                cleared += 1

    project.clusters = [c for c in project.clusters if c.id != cluster.id]
    return cleared


# =============================================================================
# COLLABORATOR RATES
# =============================================================================

def manage_collaborator_rates(
    project: Project,
    action: str,
    name: Optional[str] = None,
    rate: Optional[float] = None,
) -> dict[str, float]:
    """
    List, set or delete a collaborator's daily rate.

    A rate of 0 means "not configured"; under COLLABORATOR_RATE billing the
    collaborator's activities carry has_rate_error until a rate is set.
    Returns the rate table after the action.
    """
    if action not in RATE_ACTIONS:
        raise OperationRejected(
            RejectionReason.INVALID_VALUE,
            f"Unknown action '{action}' (expected one of: {', '.join(RATE_ACTIONS)})"
        )

    if action == "set":
        name = require_text(name, "Collaborator name")
        project.collaborator_rates[name] = require_number(rate, "Rate")
    elif action == "delete":
        name = require_text(name, "Collaborator name")
        if name not in project.collaborator_rates:
            raise OperationRejected(
                RejectionReason.INVALID_VALUE,
                f"No rate configured for collaborator '{name}'"
            )
        del project.collaborator_rates[name]

    return dict(project.collaborator_rates)

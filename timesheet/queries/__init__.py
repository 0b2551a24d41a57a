"""Read-only views package."""

from timesheet.queries.views import (
    ActivityView,
    ClusterSummaryLine,
    MonthActivities,
    MonthSummary,
    ProjectDetail,
    ProjectListing,
    list_projects,
    month_activities,
    month_summary,
    project_detail,
)

__all__ = [
    "ActivityView",
    "ClusterSummaryLine",
    "MonthActivities",
    "MonthSummary",
    "ProjectDetail",
    "ProjectListing",
    "list_projects",
    "month_activities",
    "month_summary",
    "project_detail",
]

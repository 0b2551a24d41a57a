"""
Data Models Package

This package contains all Pydantic models used in the Timesheet Reconciler.
All data flowing through the engine must conform to these schemas.
"""

from timesheet.models.timesheet import (
    TEXT_OVERRIDE_FIELDS,
    Activity,
    ActivityRecord,
    CalculationMode,
    Cluster,
    FieldOverrides,
    ImportHistoryEntry,
    MonthlyReport,
    MonthStatus,
    OriginalData,
    Project,
)
from timesheet.models.results import (
    ImportSummary,
    MonthCheckResult,
    OperationResult,
    RejectionReason,
    ValidationIssue,
)
from timesheet.models.events import (
    EngineEvent,
    EngineEventBuilder,
    EngineEventType,
    EventSeverity,
)

__all__ = [
    # Timesheet models
    "TEXT_OVERRIDE_FIELDS",
    "Activity",
    "ActivityRecord",
    "CalculationMode",
    "Cluster",
    "FieldOverrides",
    "ImportHistoryEntry",
    "MonthlyReport",
    "MonthStatus",
    "OriginalData",
    "Project",
    # Results
    "ImportSummary",
    "OperationResult",
    "RejectionReason",
    "MonthCheckResult",
    "ValidationIssue",
    # Events
    "EngineEvent",
    "EngineEventBuilder",
    "EngineEventType",
    "EventSeverity",
]

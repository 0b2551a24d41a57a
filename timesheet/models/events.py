"""
Engine Event Models

Every significant engine operation (import, edit, redistribution, month
close/reopen, persistence) emits one structured event. Events go to the
structured log only; the persisted project keeps no history beyond the
original-vs-current override record.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class EngineEventType(str, Enum):
    """Types of events the engine logs."""
    # Import
    IMPORT_APPLIED = "import_applied"
    MISSING_RATES_DETECTED = "missing_rates_detected"

    # Edits
    FIELD_EDITED = "field_edited"
    DAY_EQUIVALENTS_SET = "day_equivalents_set"
    ACTIVITIES_RESTORED = "activities_restored"
    CLUSTER_ASSIGNED = "cluster_assigned"

    # Redistribution
    ROUNDING_APPLIED = "rounding_applied"
    UNIFORM_APPLIED = "uniform_applied"
    EXCESS_REDISTRIBUTED = "excess_redistributed"

    # Lifecycle
    MONTH_CLOSED = "month_closed"
    MONTH_REOPENED = "month_reopened"

    # Project configuration
    PROJECT_CREATED = "project_created"
    SETTINGS_UPDATED = "settings_updated"
    CLUSTER_CHANGED = "cluster_changed"
    RATES_CHANGED = "rates_changed"

    # Persistence
    PROJECT_SAVED = "project_saved"

    # Failures
    OPERATION_REJECTED = "operation_rejected"
    STORAGE_ERROR = "storage_error"


class EventSeverity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class EngineEvent(BaseModel):
    """A single structured engine event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )
    event_type: EngineEventType
    severity: EventSeverity = EventSeverity.INFO

    project_id: Optional[str] = None
    month_key: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "project_id": self.project_id,
            "month_key": self.month_key,
            "description": self.description,
            "details": self.details,
        }


class EngineEventBuilder:
    """
    Helper class to build engine events with common patterns.

    Usage:
        event = EngineEventBuilder.import_applied(project_id, month_key, "jan.xlsx", 40, 3)
        event = EngineEventBuilder.month_status_changed(project_id, month_key, True, 40)
    """

    @staticmethod
    def import_applied(
        project_id: str,
        month_key: str,
        file_name: str,
        loaded: int,
        new: int,
    ) -> EngineEvent:
        return EngineEvent(
            event_type=EngineEventType.IMPORT_APPLIED,
            project_id=project_id,
            month_key=month_key,
            description=f"Imported {loaded} activities ({new} new) from {file_name or 'unnamed batch'}",
            details={"file_name": file_name, "loaded": loaded, "new": new},
        )

    @staticmethod
    def missing_rates(
        project_id: str,
        month_key: str,
        collaborators: list[str],
    ) -> EngineEvent:
        return EngineEvent(
            event_type=EngineEventType.MISSING_RATES_DETECTED,
            severity=EventSeverity.WARNING,
            project_id=project_id,
            month_key=month_key,
            description=f"{len(collaborators)} collaborators have no daily rate",
            details={"collaborators": collaborators},
        )

    @staticmethod
    def activities_changed(
        event_type: EngineEventType,
        project_id: str,
        month_key: str,
        affected: int,
        details: Optional[dict] = None,
    ) -> EngineEvent:
        return EngineEvent(
            event_type=event_type,
            project_id=project_id,
            month_key=month_key,
            description=f"{event_type.value.replace('_', ' ').capitalize()}: {affected} activities",
            details={"affected": affected, **(details or {})},
        )

    @staticmethod
    def month_status_changed(
        project_id: str,
        month_key: str,
        closed: bool,
        activity_count: int,
    ) -> EngineEvent:
        return EngineEvent(
            event_type=EngineEventType.MONTH_CLOSED if closed else EngineEventType.MONTH_REOPENED,
            project_id=project_id,
            month_key=month_key,
            description=f"Month {month_key} {'closed' if closed else 'reopened'}",
            details={"activity_count": activity_count},
        )

    @staticmethod
    def project_changed(
        event_type: EngineEventType,
        project_id: str,
        description: str,
        details: Optional[dict] = None,
    ) -> EngineEvent:
        return EngineEvent(
            event_type=event_type,
            project_id=project_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        reason: str,
        message: str,
        project_id: Optional[str] = None,
        month_key: Optional[str] = None,
    ) -> EngineEvent:
        return EngineEvent(
            event_type=EngineEventType.OPERATION_REJECTED,
            severity=EventSeverity.WARNING,
            project_id=project_id,
            month_key=month_key,
            description=f"{operation} rejected: {message}"[:500],
            details={"operation": operation, "reason": reason},
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        project_id: Optional[str] = None,
    ) -> EngineEvent:
        return EngineEvent(
            event_type=EngineEventType.STORAGE_ERROR,
            severity=EventSeverity.ERROR,
            project_id=project_id,
            description=f"Storage error during {operation}",
            details={"operation": operation, "error": error_message},
        )

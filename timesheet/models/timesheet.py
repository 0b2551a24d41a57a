"""
Core Data Models for the Timesheet Reconciler

These models define the persisted project document and the in-memory
activity projection the engine works on. They are designed to:
1. Keep the imported values (OriginalData) apart from manual edits
2. Make every optional edit explicit (no ad hoc keys on records)
3. Be serializable for storage and logging

DESIGN DECISION: ActivityRecord is what gets persisted, Activity is what
gets computed. An Activity is rebuilt from its record every time a month is
loaded and is never written to storage directly.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CalculationMode(str, Enum):
    """
    How an activity's imported amount/duration maps to day-equivalents.

    RATE: amount / project daily rate
    HOURS: parsed duration / hours per day
    COLLABORATOR_RATE: amount / the collaborator's own daily rate
    """
    RATE = "rate"
    HOURS = "hours"
    COLLABORATOR_RATE = "collaborator_rate"


class MonthStatus(str, Enum):
    """
    Monthly report status.

    CRITICAL: A CLOSED month rejects every mutation until it is reopened.
    """
    OPEN = "open"
    CLOSED = "closed"


# Text fields an operator may override on an activity, in display order.
TEXT_OVERRIDE_FIELDS = ("date", "task", "collaborator", "description", "duration")


def _new_project_id() -> str:
    return f"proj_{uuid4().hex[:12]}"


def _new_cluster_id() -> str:
    return f"cl_{uuid4().hex[:12]}"


# =============================================================================
# PROJECT CONFIGURATION
# =============================================================================

class Cluster(BaseModel):
    """A named, colored tag applied to activities for grouping."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_cluster_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Cluster name (unique within the project)"
    )
    color: str = Field(
        default="#3498db",
        description="Display color (hex)"
    )


# =============================================================================
# PERSISTED ACTIVITY RECORDS
# =============================================================================

class OriginalData(BaseModel):
    """
    Immutable snapshot of an activity as it was imported.

    Written once per hash. Manual edits live in ActivityRecord next to it.
    """
    model_config = ConfigDict(frozen=True)

    client: str = ""
    task: str = ""
    date: str = Field(default="", description="Activity date as imported (DD/MM/YYYY)")
    collaborator: str = ""
    reason_code: str = ""
    description: str = ""
    duration: str = Field(default="", description="Duration as imported (H:MM or decimal)")
    original_amount: float = Field(default=0.0, description="Imported monetary amount")


class FieldOverrides(BaseModel):
    """Manual text-field edits. A field is overridden iff it is not None."""

    date: Optional[str] = None
    task: Optional[str] = None
    collaborator: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in TEXT_OVERRIDE_FIELDS)


class ActivityRecord(BaseModel):
    """
    Persisted state of one activity, keyed by its hash in a MonthlyReport.

    day_equivalents_override is present iff the quantity was edited by hand
    (directly, by a redistribution, or through a duration edit).
    """

    original_data: OriginalData
    cluster_id: Optional[str] = None
    day_equivalents_override: Optional[float] = None
    field_overrides: FieldOverrides = Field(default_factory=FieldOverrides)

    @property
    def has_overrides(self) -> bool:
        return (
            self.day_equivalents_override is not None
            or not self.field_overrides.is_empty()
        )


class ImportHistoryEntry(BaseModel):
    """One import batch applied to a month."""

    imported_at: datetime = Field(default_factory=datetime.utcnow)
    file_name: str = ""
    loaded: int = Field(default=0, ge=0)
    new: int = Field(default=0, ge=0)


class MonthlyReport(BaseModel):
    """
    Per-month container of activities, import history and open/closed status.

    Keyed by YYYY-MM in Project.monthly_reports.
    """

    status: MonthStatus = MonthStatus.OPEN
    closed_at: Optional[datetime] = None
    activities: dict[str, ActivityRecord] = Field(default_factory=dict)
    import_history: list[ImportHistoryEntry] = Field(
        default_factory=list,
        description="Most recent first, bounded"
    )

    @property
    def is_closed(self) -> bool:
        return self.status == MonthStatus.CLOSED

    @property
    def activity_count(self) -> int:
        return len(self.activities)


class Project(BaseModel):
    """
    Top-level aggregate: billing configuration, clusters and monthly reports.

    The whole project is the unit of persistence.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    id: str = Field(default_factory=_new_project_id)
    name: str = Field(..., min_length=1, max_length=200)
    daily_rate: float = Field(
        default=600.0,
        gt=0,
        description="Project daily rate, fallback for every rate lookup"
    )
    hours_per_day: float = Field(default=8.0, gt=0)
    calculation_mode: CalculationMode = CalculationMode.RATE
    collaborator_rates: dict[str, float] = Field(
        default_factory=dict,
        description="Collaborator name -> daily rate (0 means not configured)"
    )
    clusters: list[Cluster] = Field(default_factory=list)
    monthly_reports: dict[str, MonthlyReport] = Field(default_factory=dict)
    current_month: Optional[str] = Field(
        default=None,
        description="Last month the operator worked on (YYYY-MM)"
    )
    folder_name: Optional[str] = Field(
        default=None,
        description="Folder holding the project document in a workspace"
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def find_cluster(self, cluster_id: Optional[str]) -> Optional[Cluster]:
        if not cluster_id:
            return None
        return next((c for c in self.clusters if c.id == cluster_id), None)

    @property
    def total_activities(self) -> int:
        return sum(r.activity_count for r in self.monthly_reports.values())


# =============================================================================
# IN-MEMORY ACTIVITY (derived, never persisted)
# =============================================================================

class Activity(BaseModel):
    """
    Runtime projection of an ActivityRecord merged with computed quantities.

    The original_* fields hold pre-edit values and are set only for what was
    actually edited: the three quantity fields together (quantity override),
    and each text field on its own.
    """

    hash: str
    source: OriginalData

    # Current (possibly edited) values
    client: str = ""
    task: str = ""
    date: str = ""
    collaborator: str = ""
    reason_code: str = ""
    description: str = ""
    duration: str = ""
    original_amount: float = 0.0
    cluster_id: Optional[str] = None

    # Computed
    day_equivalents: float = 0.0
    hours: float = 0.0
    billable_amount: float = 0.0

    # Flags
    is_new: bool = False
    has_rate_error: bool = False

    # Pre-edit quantities
    original_day_equivalents: Optional[float] = None
    original_hours: Optional[float] = None
    original_billable_amount: Optional[float] = None

    # Pre-edit text fields
    original_date: Optional[str] = None
    original_task: Optional[str] = None
    original_collaborator: Optional[str] = None
    original_description: Optional[str] = None
    original_duration: Optional[str] = None

    @classmethod
    def from_original(
        cls,
        activity_hash: str,
        original: OriginalData,
        is_new: bool = False,
        cluster_id: Optional[str] = None,
    ) -> "Activity":
        """Build an unedited activity from its imported snapshot."""
        return cls(
            hash=activity_hash,
            source=original,
            client=original.client,
            task=original.task,
            date=original.date,
            collaborator=original.collaborator,
            reason_code=original.reason_code,
            description=original.description,
            duration=original.duration,
            original_amount=original.original_amount,
            cluster_id=cluster_id,
            is_new=is_new,
        )

    @property
    def has_quantity_override(self) -> bool:
        return self.original_day_equivalents is not None

    def overridden_fields(self) -> list[str]:
        return [
            name for name in TEXT_OVERRIDE_FIELDS
            if getattr(self, f"original_{name}") is not None
        ]

    @property
    def is_modified(self) -> bool:
        return self.has_quantity_override or bool(self.overridden_fields())

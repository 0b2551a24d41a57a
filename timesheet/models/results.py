"""
Operation Result Models

Every mutating operation in the engine either succeeds or is rejected with a
machine-readable reason. Rejections are raised internally as
OperationRejected and converted to an OperationResult at the boundary
(workbench / automation engine), so callers never see an exception for a
validation failure.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class RejectionReason(str, Enum):
    """Why an operation was refused. Stable codes, safe to show to tools."""

    UNKNOWN_PROJECT = "unknown_project"
    UNKNOWN_MONTH = "unknown_month"
    UNKNOWN_CLUSTER = "unknown_cluster"
    UNKNOWN_ACTIVITY = "unknown_activity"
    EMPTY_SELECTION = "empty_selection"
    ZERO_TOTAL = "zero_total"
    INVALID_VALUE = "invalid_value"
    MONTH_CLOSED = "month_closed"
    ALREADY_CLOSED = "already_closed"
    EMPTY_MONTH = "empty_month"
    NO_EXCESS = "no_excess"
    NO_RECIPIENTS = "no_recipients"
    DUPLICATE_CLUSTER = "duplicate_cluster"
    INVALID_MONTH_KEY = "invalid_month_key"


class OperationResult(BaseModel):
    """
    Outcome of a single engine operation.

    affected counts the activities (or entities) actually changed.
    data carries operation-specific payload (e.g. the created cluster).
    """

    success: bool
    affected: int = Field(default=0, ge=0)
    reason: Optional[RejectionReason] = None
    message: str = ""
    warnings: list[str] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(
        cls,
        affected: int = 0,
        message: str = "",
        warnings: Optional[list[str]] = None,
        **data: Any,
    ) -> "OperationResult":
        return cls(
            success=True,
            affected=affected,
            message=message,
            warnings=warnings or [],
            data=data,
        )

    @classmethod
    def rejected(cls, reason: RejectionReason, message: str) -> "OperationResult":
        return cls(success=False, reason=reason, message=message)

    def to_response(self) -> dict[str, Any]:
        """
        Flatten into the JSON response shape used by automation tools.

        {"success": True, "affected": n, "message": ..., **data}
        {"success": False, "error": message, "reason": code}
        """
        if not self.success:
            return {
                "success": False,
                "error": self.message,
                "reason": self.reason.value if self.reason else None,
            }
        response: dict[str, Any] = {
            "success": True,
            "affected": self.affected,
            "message": self.message,
        }
        if self.warnings:
            response["warnings"] = list(self.warnings)
        response.update(self.data)
        return response


class ImportSummary(BaseModel):
    """Result of merging one import batch into a month."""

    loaded: int = Field(default=0, ge=0, description="Rows turned into activities")
    new: int = Field(default=0, ge=0, description="Activities not seen before")
    duplicates: int = Field(
        default=0,
        ge=0,
        description="Rows sharing a hash with an earlier row of the same batch"
    )
    missing_rates: list[str] = Field(
        default_factory=list,
        description="Collaborators without a configured rate (collaborator_rate mode only)"
    )


class ValidationIssue(BaseModel):
    """A single issue found while checking operator input or month data."""

    field: str = Field(..., description="Field or area with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g. 'missing_rate', 'past_open_month', 'excess')"
    )
    message: str = Field(..., description="Human-readable description of the issue")
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class MonthCheckResult(BaseModel):
    """Advisory checks over one month. Never blocks a mutation."""

    month_key: str
    is_clean: bool = True
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity != "info"]

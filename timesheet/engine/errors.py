"""
Engine exceptions.

OperationRejected is raised inside the engine when a precondition fails and
is converted into an OperationResult at the workbench / automation boundary.
"""

from timesheet.models.results import OperationResult, RejectionReason


class TimesheetError(Exception):
    """Base exception for engine operations."""
    pass


class OperationRejected(TimesheetError):
    """A validation failure. Raised before any state is touched."""

    def __init__(self, reason: RejectionReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message

    def to_result(self) -> OperationResult:
        return OperationResult.rejected(self.reason, self.message)

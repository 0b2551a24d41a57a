"""
Data-File Engine (automation runtime)

Headless runtime used by automation tooling. Operates on the same project
documents as the interactive runtime and runs the very same workbench
operations, so both compute identical results from identical inputs.

FLOW (every call):
1. Load the whole project from storage
2. Bind a MonthWorkbench (unknown months are rejected, never created)
3. Run the operation
4. Save the whole project, only if the operation succeeded
5. Return a JSON-serialisable response dict

CRITICAL: No call raises. Rejections and storage failures come back as
{"success": False, "error": ..., "reason": ...}. A rejected operation never
reaches step 4, so the stored document stays byte-for-byte unchanged.
"""

from datetime import date
from typing import Callable, Iterable, Optional

from timesheet.config import Settings, get_settings
from timesheet.engine.errors import OperationRejected
from timesheet.events import EventLogger
from timesheet.models.events import EngineEventType
from timesheet.models.results import OperationResult, RejectionReason
from timesheet.models.timesheet import Project
from timesheet.queries import list_projects, month_activities, month_summary, project_detail
from timesheet.services import projects
from timesheet.services.storage import (
    NotFoundError,
    ProjectStorageInterface,
    StorageError,
    create_storage,
)
from timesheet.workbench import MonthWorkbench, run_guarded


STORAGE_ERROR_REASON = "storage_error"


class DataFileEngine:
    """
    Automation entry point over a project store.

    Every public method takes explicit ids (project, month, hashes) and
    returns a response dict.
    """

    def __init__(
        self,
        storage: Optional[ProjectStorageInterface] = None,
        settings: Optional[Settings] = None,
        event_logger: Optional[EventLogger] = None,
        today: Optional[date] = None,
    ):
        self._settings = settings or get_settings()
        self._storage = storage or create_storage(self._settings.storage)
        self._event_logger = event_logger or EventLogger("timesheet.automation")
        self._today = today

    # =========================================================================
    # PLUMBING
    # =========================================================================

    def _storage_failure(self, operation: str, error: Exception, project_id: Optional[str]) -> dict:
        self._event_logger.log_storage_error(
            operation=operation,
            error_message=str(error),
            project_id=project_id,
        )
        return {"success": False, "error": str(error), "reason": STORAGE_ERROR_REASON}

    def _rejected(self, operation: str, rejection: OperationRejected, project_id: Optional[str]) -> dict:
        self._event_logger.log_rejected(
            operation=operation,
            reason=rejection.reason.value,
            message=rejection.message,
            project_id=project_id,
        )
        return rejection.to_result().to_response()

    def _load(self, project_id: str) -> Project:
        try:
            return self._storage.load_project(project_id)
        except NotFoundError:
            raise OperationRejected(
                RejectionReason.UNKNOWN_PROJECT,
                f"Project '{project_id}' not found"
            )

    def _save(self, operation: str, project: Project) -> None:
        self._storage.save_project(project)
        self._event_logger.log_project_changed(
            event_type=EngineEventType.PROJECT_SAVED,
            project_id=project.id,
            description=f"Saved after {operation}",
        )

    def _project_call(
        self,
        operation: str,
        project_id: str,
        action: Callable[[Project], OperationResult],
        mutates: bool = True,
    ) -> dict:
        """Load, run a project-level action, save on success."""
        try:
            project = self._load(project_id)
            result = run_guarded(
                operation,
                lambda: action(project),
                self._event_logger,
                project_id=project_id,
            )
            if result.success and mutates:
                self._save(operation, project)
            return result.to_response()
        except OperationRejected as e:
            return self._rejected(operation, e, project_id)
        except StorageError as e:
            return self._storage_failure(operation, e, project_id)

    def _month_call(
        self,
        operation: str,
        project_id: str,
        month_key: str,
        action: Callable[[MonthWorkbench], OperationResult],
        mutates: bool = True,
    ) -> dict:
        """Load, bind the month (never created), run, save on success."""

        def project_action(project: Project) -> OperationResult:
            workbench = MonthWorkbench(
                project,
                month_key,
                settings=self._settings,
                event_logger=self._event_logger,
                lazy=False,
                today=self._today,
            )
            return action(workbench)

        return self._project_call(operation, project_id, project_action, mutates)

    # =========================================================================
    # READS
    # =========================================================================

    def list_projects(self) -> dict:
        try:
            listing = list_projects(self._storage.list_projects())
        except StorageError as e:
            return self._storage_failure("list_projects", e, None)
        return {
            "success": True,
            "projects": [p.model_dump(mode="json") for p in listing],
        }

    def get_project(self, project_id: str) -> dict:
        return self._project_call(
            "get_project",
            project_id,
            lambda project: OperationResult.ok(
                project=project_detail(project).model_dump(mode="json")
            ),
            mutates=False,
        )

    def get_activities(self, project_id: str, month_key: str) -> dict:
        def action(workbench: MonthWorkbench) -> OperationResult:
            view = month_activities(workbench.project, month_key, workbench.activities)
            return OperationResult.ok(
                len(view.activities),
                warnings=workbench.advisory_warnings(),
                **view.model_dump(mode="json"),
            )

        return self._month_call("get_activities", project_id, month_key, action, mutates=False)

    def get_month_summary(self, project_id: str, month_key: str) -> dict:
        def action(workbench: MonthWorkbench) -> OperationResult:
            summary = month_summary(workbench.project, month_key, workbench.activities)
            return OperationResult.ok(**summary.model_dump(mode="json"))

        return self._month_call("get_month_summary", project_id, month_key, action, mutates=False)

    # =========================================================================
    # MONTH MUTATIONS
    # =========================================================================

    def assign_cluster(
        self,
        project_id: str,
        month_key: str,
        hashes: Iterable[str],
        cluster_id: Optional[str] = None,
    ) -> dict:
        return self._month_call(
            "assign_cluster",
            project_id,
            month_key,
            lambda wb: wb.assign_cluster(hashes, cluster_id),
        )

    def apply_rounding(
        self,
        project_id: str,
        month_key: str,
        hashes: Iterable[str],
        target_total: float,
    ) -> dict:
        return self._month_call(
            "apply_rounding",
            project_id,
            month_key,
            lambda wb: wb.apply_rounding(hashes, target_total),
        )

    def update_day_equivalents(
        self,
        project_id: str,
        month_key: str,
        hashes: Iterable[str],
        value: float,
    ) -> dict:
        return self._month_call(
            "update_day_equivalents",
            project_id,
            month_key,
            lambda wb: wb.set_day_equivalents(hashes, value),
        )

    def close_month(self, project_id: str, month_key: str) -> dict:
        return self._month_call("close_month", project_id, month_key, lambda wb: wb.close())

    def reopen_month(self, project_id: str, month_key: str) -> dict:
        return self._month_call("reopen_month", project_id, month_key, lambda wb: wb.reopen())

    # =========================================================================
    # PROJECT MUTATIONS
    # =========================================================================

    def create_cluster(self, project_id: str, name: str, color: Optional[str] = None) -> dict:
        def action(project: Project) -> OperationResult:
            cluster = projects.create_cluster(project, name, color)
            self._event_logger.log_project_changed(
                event_type=EngineEventType.CLUSTER_CHANGED,
                project_id=project.id,
                description=f"Created cluster {cluster.name}",
                details={"cluster_id": cluster.id},
            )
            return OperationResult.ok(
                1,
                f"Cluster '{cluster.name}' created",
                cluster=cluster.model_dump(mode="json"),
            )

        return self._project_call("create_cluster", project_id, action)

    def manage_collaborator_rates(
        self,
        project_id: str,
        action: str,
        name: Optional[str] = None,
        rate: Optional[float] = None,
    ) -> dict:
        def run(project: Project) -> OperationResult:
            rates = projects.manage_collaborator_rates(project, action, name, rate)
            if action == "list":
                return OperationResult.ok(0, f"{len(rates)} collaborator rates", rates=rates)
            self._event_logger.log_project_changed(
                event_type=EngineEventType.RATES_CHANGED,
                project_id=project.id,
                description=f"Rate {action} for {name}",
                details={"collaborator": name, "rate": rate},
            )
            return OperationResult.ok(1, f"Rate for {name} {action}", rates=rates)

        return self._project_call(
            "manage_collaborator_rates",
            project_id,
            run,
            mutates=action != "list",
        )

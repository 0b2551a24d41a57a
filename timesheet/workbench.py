"""
Month Workbench

The interactive runtime's session over one project month, also reused by
the automation engine for every month-scoped operation.

FLOW (every mutating method):
1. Validate inputs and resolve the selection (nothing touched yet)
2. Gate on the month being OPEN
3. Apply the engine operation to the in-memory activities
4. Persist the touched activities into the monthly report
5. Log an engine event and return an OperationResult

DESIGN DECISION: There is no ambient "current project/month". A workbench
is bound explicitly to (project, month_key), and nothing outside of it
holds activity state.

Rejections never escape as exceptions: OperationRejected raised anywhere
below is turned into OperationResult.rejected() here.
"""

from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional, Sequence

from timesheet.config import Settings, get_settings
from timesheet.engine import calculator, lifecycle, overrides, redistribution
from timesheet.engine.errors import OperationRejected
from timesheet.engine.reconciliation import load_activities, reconcile
from timesheet.events import EventLogger
from timesheet.importing import parse_rows
from timesheet.models.events import EngineEventType
from timesheet.models.results import MonthCheckResult, OperationResult, RejectionReason
from timesheet.models.timesheet import Activity, MonthlyReport, OriginalData, Project
from timesheet.services import projects
from timesheet.validation import MonthChecker, require_number


def run_guarded(
    operation: str,
    action: Callable[[], OperationResult],
    event_logger: EventLogger,
    project_id: Optional[str] = None,
    month_key: Optional[str] = None,
) -> OperationResult:
    """Run an operation, converting a rejection into a rejected result."""
    try:
        return action()
    except OperationRejected as e:
        event_logger.log_rejected(
            operation=operation,
            reason=e.reason.value,
            message=e.message,
            project_id=project_id,
            month_key=month_key,
        )
        return e.to_result()


class MonthWorkbench:
    """
    Session over one month of one project.

    lazy=True (interactive): an unknown month is created OPEN and empty, and
    becomes the project's current month.
    lazy=False (automation): an unknown month raises OperationRejected
    (UNKNOWN_MONTH) from the constructor.
    """

    def __init__(
        self,
        project: Project,
        month_key: str,
        settings: Optional[Settings] = None,
        event_logger: Optional[EventLogger] = None,
        lazy: bool = True,
        today: Optional[date] = None,
    ):
        self._project = project
        self._month_key = month_key
        self._settings = settings or get_settings()
        self._event_logger = event_logger or EventLogger()
        self._today = today

        if lazy:
            self._report = lifecycle.get_or_create_report(project, month_key)
            project.current_month = month_key
        else:
            self._report = lifecycle.require_report(project, month_key)

        self._activities = load_activities(self._report, project)

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def project(self) -> Project:
        return self._project

    @property
    def month_key(self) -> str:
        return self._month_key

    @property
    def report(self) -> MonthlyReport:
        return self._report

    @property
    def activities(self) -> list[Activity]:
        return list(self._activities)

    @property
    def is_closed(self) -> bool:
        return self._report.is_closed

    def get_activity(self, activity_hash: str) -> Optional[Activity]:
        return next((a for a in self._activities if a.hash == activity_hash), None)

    def past_month_warning(self) -> Optional[str]:
        return lifecycle.past_month_warning(self._project, self._month_key, self._today)

    def check(self) -> MonthCheckResult:
        """Advisory checks for the month (never blocks anything)."""
        checker = MonthChecker(self._settings.engine.excess_cap)
        return checker.check(self._project, self._month_key, self._activities, self._today)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _run(self, operation: str, action: Callable[[], OperationResult]) -> OperationResult:
        return run_guarded(
            operation,
            action,
            self._event_logger,
            project_id=self._project.id,
            month_key=self._month_key,
        )

    def _select(self, hashes: Iterable[str]) -> list[Activity]:
        """Resolve hashes (deduplicated, order kept) to loaded activities."""
        if hashes is None:
            raise OperationRejected(RejectionReason.EMPTY_SELECTION, "No activities selected")
        if isinstance(hashes, str):
            hashes = [hashes]

        by_hash = {a.hash: a for a in self._activities}
        selection: list[Activity] = []
        unknown: list[str] = []
        seen: set[str] = set()
        for activity_hash in hashes:
            if activity_hash in seen:
                continue
            seen.add(activity_hash)
            activity = by_hash.get(activity_hash)
            if activity is None:
                unknown.append(activity_hash)
            else:
                selection.append(activity)

        if unknown:
            raise OperationRejected(
                RejectionReason.UNKNOWN_ACTIVITY,
                f"Unknown activities in {self._month_key}: {', '.join(unknown)}"
            )
        if not selection:
            raise OperationRejected(RejectionReason.EMPTY_SELECTION, "No activities selected")
        return selection

    def _ensure_open(self) -> None:
        lifecycle.ensure_open(self._report, self._month_key)

    def advisory_warnings(self) -> list[str]:
        warning = self.past_month_warning()
        return [warning] if warning else []

    def _persist(self, activities: Iterable[Activity]) -> None:
        for activity in activities:
            overrides.persist_activity(activity, self._report)

    def _changed(
        self,
        event_type: EngineEventType,
        affected: int,
        message: str,
        details: Optional[dict] = None,
        **data: Any,
    ) -> OperationResult:
        self._event_logger.log_activities_changed(
            event_type=event_type,
            project_id=self._project.id,
            month_key=self._month_key,
            affected=affected,
            details=details,
        )
        return OperationResult.ok(affected, message, self.advisory_warnings(), **data)

    def _recalculate(self) -> None:
        calculator.recalculate_all(self._activities, self._project)

    # =========================================================================
    # IMPORT
    # =========================================================================

    def import_rows(self, raw_rows: Iterable[Sequence[Any]], file_name: str = "") -> OperationResult:
        """Interpret raw spreadsheet rows (header first) and merge them."""
        return self.import_batch(parse_rows(raw_rows), file_name)

    def import_batch(
        self,
        rows: Iterable[OriginalData],
        file_name: str = "",
        now: Optional[datetime] = None,
    ) -> OperationResult:
        def action() -> OperationResult:
            activities, summary = reconcile(
                self._project,
                self._month_key,
                self._report,
                rows,
                file_name=file_name,
                history_limit=self._settings.engine.import_history_limit,
                now=now,
            )
            self._activities = activities

            self._event_logger.log_import(
                project_id=self._project.id,
                month_key=self._month_key,
                file_name=file_name,
                loaded=summary.loaded,
                new=summary.new,
                missing_rates=summary.missing_rates,
            )

            warnings = self.advisory_warnings()
            if summary.missing_rates:
                warnings.append(
                    f"Collaborators without a daily rate: {', '.join(summary.missing_rates)}"
                )
            return OperationResult.ok(
                summary.loaded,
                f"Imported {summary.loaded} activities ({summary.new} new)",
                warnings,
                **summary.model_dump(),
            )

        return self._run("import", action)

    # =========================================================================
    # EDITS
    # =========================================================================

    def edit_field(self, activity_hash: str, field: str, value: str) -> OperationResult:
        """Override one text field. Editing the duration rescales the quantity."""
        def action() -> OperationResult:
            if field != "duration" and field not in overrides.PLAIN_TEXT_FIELDS:
                raise OperationRejected(
                    RejectionReason.INVALID_VALUE,
                    f"Field '{field}' cannot be edited"
                )
            (activity,) = self._select([activity_hash])
            self._ensure_open()

            if field == "duration":
                overrides.edit_duration(activity, value, self._project)
            else:
                overrides.edit_field(activity, field, value)
            self._persist([activity])

            return self._changed(
                EngineEventType.FIELD_EDITED,
                1,
                f"Updated {field}",
                details={"hash": activity.hash, "field": field},
            )

        return self._run("edit_field", action)

    def set_day_equivalents(self, hashes: Iterable[str], value: float) -> OperationResult:
        def action() -> OperationResult:
            number = require_number(value, "Day-equivalents")
            selection = self._select(hashes)
            self._ensure_open()

            for activity in selection:
                overrides.set_day_equivalents(activity, number, self._project)
            self._persist(selection)

            return self._changed(
                EngineEventType.DAY_EQUIVALENTS_SET,
                len(selection),
                f"Set {len(selection)} activities to {number:g} day-equivalents",
                details={"value": number},
            )

        return self._run("set_day_equivalents", action)

    def restore(self, hashes: Optional[Iterable[str]] = None) -> OperationResult:
        """Revert overrides on the selection (all activities when hashes is None)."""
        def action() -> OperationResult:
            selection = list(self._activities) if hashes is None else self._select(hashes)
            self._ensure_open()

            restored = overrides.restore_activities(selection, self._project, self._report)
            return self._changed(
                EngineEventType.ACTIVITIES_RESTORED,
                restored,
                f"Restored {restored} activities",
            )

        return self._run("restore", action)

    def assign_cluster(self, hashes: Iterable[str], cluster_id: Optional[str]) -> OperationResult:
        """Tag the selection with a cluster, or untag it when cluster_id is None."""
        def action() -> OperationResult:
            if cluster_id is not None:
                projects.require_cluster(self._project, cluster_id)
            selection = self._select(hashes)
            self._ensure_open()

            changed = [a for a in selection if a.cluster_id != cluster_id]
            for activity in changed:
                activity.cluster_id = cluster_id
            self._persist(changed)

            return self._changed(
                EngineEventType.CLUSTER_ASSIGNED,
                len(changed),
                f"Assigned {len(changed)} activities",
                details={"cluster_id": cluster_id},
            )

        return self._run("assign_cluster", action)

    # =========================================================================
    # REDISTRIBUTION
    # =========================================================================

    def apply_rounding(self, hashes: Iterable[str], target_total: float) -> OperationResult:
        def action() -> OperationResult:
            selection = self._select(hashes)
            self._ensure_open()

            affected = redistribution.apply_rounding(
                selection, target_total, self._project, self._report
            )
            return self._changed(
                EngineEventType.ROUNDING_APPLIED,
                affected,
                f"Scaled {affected} activities to {float(target_total):g} day-equivalents",
                details={"target_total": target_total},
                total=redistribution.selection_total(selection),
            )

        return self._run("apply_rounding", action)

    def apply_uniform(self, hashes: Iterable[str], total: float) -> OperationResult:
        def action() -> OperationResult:
            selection = self._select(hashes)
            self._ensure_open()

            affected = redistribution.apply_uniform(selection, total, self._project, self._report)
            return self._changed(
                EngineEventType.UNIFORM_APPLIED,
                affected,
                f"Split {float(total):g} day-equivalents over {affected} activities",
                details={"total": total},
            )

        return self._run("apply_uniform", action)

    def redistribute_excess(self, hashes: Iterable[str]) -> OperationResult:
        def action() -> OperationResult:
            selection = self._select(hashes)
            self._ensure_open()

            cap = self._settings.engine.excess_cap
            affected = redistribution.redistribute_excess(
                selection, self._project, self._report, cap=cap
            )
            return self._changed(
                EngineEventType.EXCESS_REDISTRIBUTED,
                affected,
                f"Redistributed excess over {affected} activities",
                details={"cap": cap},
            )

        return self._run("redistribute_excess", action)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close(self, now: Optional[datetime] = None) -> OperationResult:
        def action() -> OperationResult:
            lifecycle.close_month(self._report, self._month_key, now)
            self._event_logger.log_month_status(
                project_id=self._project.id,
                month_key=self._month_key,
                closed=True,
                activity_count=self._report.activity_count,
            )
            return OperationResult.ok(
                self._report.activity_count,
                f"Month {self._month_key} closed",
                closed_at=self._report.closed_at.isoformat(),
            )

        return self._run("close_month", action)

    def reopen(self) -> OperationResult:
        def action() -> OperationResult:
            if not lifecycle.reopen_month(self._report):
                return OperationResult.ok(0, f"Month {self._month_key} is already open")
            self._event_logger.log_month_status(
                project_id=self._project.id,
                month_key=self._month_key,
                closed=False,
                activity_count=self._report.activity_count,
            )
            return OperationResult.ok(
                self._report.activity_count,
                f"Month {self._month_key} reopened",
                self.advisory_warnings(),
            )

        return self._run("reopen_month", action)

    # =========================================================================
    # PROJECT-LEVEL EDITS SEEN FROM THIS MONTH
    # =========================================================================

    def update_settings(self, **changes: Any) -> OperationResult:
        """Change billing settings and recalculate the loaded activities."""
        def action() -> OperationResult:
            changed = projects.update_settings(self._project, **changes)
            if changed:
                self._recalculate()
                self._event_logger.log_project_changed(
                    event_type=EngineEventType.SETTINGS_UPDATED,
                    project_id=self._project.id,
                    description=f"Updated {', '.join(changed)}",
                    details={"changed": changed},
                )
            return OperationResult.ok(
                len(changed),
                f"Updated {len(changed)} settings" if changed else "No settings changed",
                changed=changed,
            )

        return self._run("update_settings", action)

    def manage_collaborator_rates(
        self,
        action_name: str,
        name: Optional[str] = None,
        rate: Optional[float] = None,
    ) -> OperationResult:
        """List/set/delete a collaborator rate and recalculate the loaded activities."""
        def action() -> OperationResult:
            rates = projects.manage_collaborator_rates(self._project, action_name, name, rate)
            if action_name == "list":
                return OperationResult.ok(0, f"{len(rates)} collaborator rates", rates=rates)

            self._recalculate()
            self._event_logger.log_project_changed(
                event_type=EngineEventType.RATES_CHANGED,
                project_id=self._project.id,
                description=f"Rate {action_name} for {name}",
                details={"collaborator": name, "rate": rate},
            )
            return OperationResult.ok(1, f"Rate for {name} {action_name}", rates=rates)

        return self._run("manage_collaborator_rates", action)

    def delete_cluster(self, cluster_id: str) -> OperationResult:
        """Delete a cluster project-wide and untag the loaded activities."""
        def action() -> OperationResult:
            cleared = projects.delete_cluster(self._project, cluster_id)
            for activity in self._activities:
                if activity.cluster_id == cluster_id:
                    activity.cluster_id = None
            self._event_logger.log_project_changed(
                event_type=EngineEventType.CLUSTER_CHANGED,
                project_id=self._project.id,
                description=f"Deleted cluster {cluster_id}",
                details={"cluster_id": cluster_id, "cleared": cleared},
            )
            return OperationResult.ok(cleared, f"Cluster deleted, {cleared} activities untagged")

        return self._run("delete_cluster", action)

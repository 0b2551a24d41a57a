"""
Tests for the month workbench.

Every operation returns an OperationResult; rejections must leave the
monthly report exactly as it was.
"""

from datetime import datetime

import pytest

from timesheet.engine.errors import OperationRejected
from timesheet.models.events import EngineEventType
from timesheet.models.results import RejectionReason
from timesheet.services import create_cluster
from timesheet.workbench import MonthWorkbench

from tests.factories import MONTH, TODAY


def _open(project, events, month_key=MONTH, **kwargs) -> MonthWorkbench:
    return MonthWorkbench(project, month_key, event_logger=events, today=TODAY, **kwargs)


@pytest.fixture
def workbench(project, events, raw_rows):
    bench = _open(project, events)
    bench.import_rows(raw_rows, "march.xlsx")
    return bench


def _by_description(bench, description):
    return next(a for a in bench.activities if a.description == description)


def _hashes(bench):
    return [a.hash for a in bench.activities]


class TestOpening:

    def test_lazy_creates_month_and_marks_current(self, project, events):
        bench = _open(project, events, "2024-04")

        assert "2024-04" in project.monthly_reports
        assert project.current_month == "2024-04"
        assert bench.activities == []

    def test_strict_rejects_unknown_month(self, project, events):
        with pytest.raises(OperationRejected) as exc_info:
            _open(project, events, lazy=False)

        assert exc_info.value.reason == RejectionReason.UNKNOWN_MONTH
        assert project.monthly_reports == {}

    def test_reload_rebuilds_overrides(self, project, events, workbench):
        api = _by_description(workbench, "API work")
        workbench.set_day_equivalents([api.hash], 2.0)

        reloaded = _open(project, events, lazy=False)

        assert reloaded.get_activity(api.hash).day_equivalents == pytest.approx(2.0)
        assert not any(a.is_new for a in reloaded.activities)


class TestImport:

    def test_import_rows(self, project, events, raw_rows):
        bench = _open(project, events)

        result = bench.import_rows(raw_rows, "march.xlsx")

        assert result.success
        assert result.affected == 3
        assert result.data["new"] == 3
        assert result.data["missing_rates"] == []
        assert result.warnings == []
        assert EngineEventType.IMPORT_APPLIED in events.types()
        assert project.monthly_reports[MONTH].import_history[0].file_name == "march.xlsx"

    def test_missing_rates_warn(self, collaborator_project, events, raw_rows):
        bench = _open(collaborator_project, events)

        result = bench.import_rows(raw_rows)

        assert result.success
        assert result.data["missing_rates"] == ["Luigi"]
        assert any("Luigi" in w for w in result.warnings)
        assert EngineEventType.MISSING_RATES_DETECTED in events.types()

    def test_import_into_closed_month(self, project, events, workbench, raw_rows):
        workbench.close()
        before = project.monthly_reports[MONTH].model_dump()

        result = workbench.import_rows(raw_rows)

        assert not result.success
        assert result.reason == RejectionReason.MONTH_CLOSED
        assert project.monthly_reports[MONTH].model_dump() == before


class TestEdits:

    def test_edit_text_field(self, project, workbench):
        api = _by_description(workbench, "API work")

        result = workbench.edit_field(api.hash, "description", "REST API")

        assert result.success
        record = project.monthly_reports[MONTH].activities[api.hash]
        assert record.field_overrides.description == "REST API"
        assert workbench.get_activity(api.hash).original_description == "API work"

    def test_edit_duration_rescales(self, workbench):
        api = _by_description(workbench, "API work")

        workbench.edit_field(api.hash, "duration", "8:00")

        edited = workbench.get_activity(api.hash)
        assert edited.duration == "8:00"
        assert edited.day_equivalents == pytest.approx(1.0)
        assert edited.original_day_equivalents == pytest.approx(0.5)

    def test_edit_unknown_field(self, workbench):
        api = _by_description(workbench, "API work")

        result = workbench.edit_field(api.hash, "original_amount", "1000")

        assert result.reason == RejectionReason.INVALID_VALUE

    def test_set_day_equivalents_deduplicates(self, workbench):
        api = _by_description(workbench, "API work")

        result = workbench.set_day_equivalents([api.hash, api.hash], 0.75)

        assert result.affected == 1
        assert workbench.get_activity(api.hash).day_equivalents == 0.75
        assert workbench.get_activity(api.hash).hours == pytest.approx(6.0)

    def test_unknown_activity_rejected(self, project, events, workbench):
        before = project.monthly_reports[MONTH].model_dump()

        result = workbench.set_day_equivalents([_hashes(workbench)[0], "act_missing"], 1.0)

        assert result.reason == RejectionReason.UNKNOWN_ACTIVITY
        assert "act_missing" in result.message
        assert project.monthly_reports[MONTH].model_dump() == before
        assert events.types()[-1] == EngineEventType.OPERATION_REJECTED

    def test_empty_selection_rejected(self, workbench):
        result = workbench.set_day_equivalents([], 1.0)
        assert result.reason == RejectionReason.EMPTY_SELECTION

    def test_missing_selection_rejected(self, workbench):
        before = [a.day_equivalents for a in workbench.activities]

        result = workbench.set_day_equivalents(None, 5.0)

        assert result.reason == RejectionReason.EMPTY_SELECTION
        assert [a.day_equivalents for a in workbench.activities] == before

    def test_invalid_value_rejected(self, workbench):
        result = workbench.set_day_equivalents(_hashes(workbench), -1)
        assert result.reason == RejectionReason.INVALID_VALUE

    def test_restore_all(self, project, workbench):
        api = _by_description(workbench, "API work")
        workbench.edit_field(api.hash, "task", "Backend")
        workbench.set_day_equivalents([api.hash], 3.0)

        result = workbench.restore()

        assert result.affected == 1
        restored = workbench.get_activity(api.hash)
        assert restored.task == "Development"
        assert restored.day_equivalents == pytest.approx(0.5)
        assert not project.monthly_reports[MONTH].activities[api.hash].has_overrides


class TestClusters:

    def test_assign_counts_actual_changes(self, project, workbench):
        cluster = create_cluster(project, "Backend")
        hashes = _hashes(workbench)

        assert workbench.assign_cluster(hashes[:2], cluster.id).affected == 2
        assert workbench.assign_cluster(hashes, cluster.id).affected == 1
        assert workbench.assign_cluster(hashes, cluster.id).affected == 0

        stored = project.monthly_reports[MONTH].activities
        assert all(stored[h].cluster_id == cluster.id for h in hashes)

    def test_unassign(self, project, workbench):
        cluster = create_cluster(project, "Backend")
        hashes = _hashes(workbench)
        workbench.assign_cluster(hashes, cluster.id)

        result = workbench.assign_cluster(hashes[:1], None)

        assert result.affected == 1
        assert project.monthly_reports[MONTH].activities[hashes[0]].cluster_id is None

    def test_unknown_cluster(self, workbench):
        result = workbench.assign_cluster(_hashes(workbench), "cl_missing")
        assert result.reason == RejectionReason.UNKNOWN_CLUSTER

    def test_delete_cluster_untags_loaded_activities(self, project, workbench):
        cluster = create_cluster(project, "Backend")
        workbench.assign_cluster(_hashes(workbench), cluster.id)

        result = workbench.delete_cluster(cluster.id)

        assert result.affected == 3
        assert all(a.cluster_id is None for a in workbench.activities)
        assert project.clusters == []


class TestRedistribution:

    def test_rounding_reports_total(self, workbench):
        result = workbench.apply_rounding(_hashes(workbench), 2.0)

        assert result.success
        assert result.affected == 3
        assert result.data["total"] == 2.0

    def test_uniform(self, workbench):
        result = workbench.apply_uniform(_hashes(workbench), 1.5)

        assert result.affected == 3
        assert [a.day_equivalents for a in workbench.activities] == [0.5, 0.5, 0.5]

    def test_excess(self, workbench):
        api = _by_description(workbench, "API work")
        workbench.set_day_equivalents([api.hash], 1.5)

        result = workbench.redistribute_excess(_hashes(workbench))

        assert result.success
        assert workbench.get_activity(api.hash).day_equivalents == 1.0

    def test_no_excess(self, workbench):
        result = workbench.redistribute_excess(_hashes(workbench))
        assert result.reason == RejectionReason.NO_EXCESS


class TestLifecycle:

    def test_close_and_reopen(self, project, events, workbench):
        closed_at = datetime(2024, 4, 1, 8, 30)

        result = workbench.close(now=closed_at)
        assert result.success
        assert result.affected == 3
        assert result.data["closed_at"] == closed_at.isoformat()
        assert workbench.is_closed

        result = workbench.reopen()
        assert result.success
        assert not workbench.is_closed
        assert EngineEventType.MONTH_CLOSED in events.types()
        assert EngineEventType.MONTH_REOPENED in events.types()

    def test_reopen_open_month(self, workbench):
        result = workbench.reopen()
        assert result.success
        assert result.affected == 0

    def test_close_empty_month(self, project, events):
        result = _open(project, events).close()
        assert result.reason == RejectionReason.EMPTY_MONTH

    def test_closed_month_rejects_every_mutation(self, project, workbench):
        cluster = create_cluster(project, "Backend")
        workbench.close()
        before = project.monthly_reports[MONTH].model_dump()
        hashes = _hashes(workbench)

        results = [
            workbench.edit_field(hashes[0], "task", "x"),
            workbench.set_day_equivalents(hashes, 1.0),
            workbench.restore(),
            workbench.assign_cluster(hashes, cluster.id),
            workbench.apply_rounding(hashes, 5.0),
            workbench.apply_uniform(hashes, 5.0),
            workbench.redistribute_excess(hashes),
        ]

        assert all(r.reason == RejectionReason.MONTH_CLOSED for r in results)
        assert project.monthly_reports[MONTH].model_dump() == before

    def test_past_open_month_warns(self, project, events, raw_rows):
        bench = _open(project, events, "2024-02")
        bench.import_rows(raw_rows)

        result = bench.set_day_equivalents(_hashes(bench)[:1], 1.0)

        assert result.success
        assert any("2024-02" in w for w in result.warnings)


class TestProjectLevel:

    def test_update_settings_recalculates(self, workbench):
        result = workbench.update_settings(daily_rate=250.0)

        assert result.data["changed"] == ["daily_rate"]
        assert _by_description(workbench, "API work").day_equivalents == pytest.approx(1.0)

    def test_update_settings_keeps_quantity_overrides(self, workbench):
        api = _by_description(workbench, "API work")
        workbench.set_day_equivalents([api.hash], 0.8)

        workbench.update_settings(daily_rate=250.0)

        edited = workbench.get_activity(api.hash)
        assert edited.day_equivalents == 0.8
        assert edited.billable_amount == pytest.approx(200.0)
        assert edited.original_day_equivalents == pytest.approx(1.0)

    def test_no_change(self, workbench):
        result = workbench.update_settings(daily_rate=500.0)
        assert result.success
        assert result.affected == 0

    def test_setting_a_rate_clears_rate_errors(self, collaborator_project, events, raw_rows):
        bench = _open(collaborator_project, events)
        bench.import_rows(raw_rows)
        assert _by_description(bench, "Frontend").has_rate_error

        result = bench.manage_collaborator_rates("set", "Luigi", 250.0)

        assert result.data["rates"]["Luigi"] == 250.0
        frontend = _by_description(bench, "Frontend")
        assert not frontend.has_rate_error
        assert frontend.day_equivalents == pytest.approx(2.0)

    def test_override_keeps_missing_rate_visible(self, collaborator_project, events, raw_rows):
        bench = _open(collaborator_project, events)
        bench.import_rows(raw_rows)
        frontend = _by_description(bench, "Frontend")

        bench.set_day_equivalents([frontend.hash], 1.0)
        reloaded = _open(collaborator_project, events, lazy=False)

        frontend = reloaded.get_activity(frontend.hash)
        assert frontend.has_rate_error
        assert frontend.day_equivalents == pytest.approx(1.0)
        issue_types = [i.issue_type for i in reloaded.check().issues]
        assert "missing_rate" in issue_types

    def test_check(self, workbench):
        result = workbench.check()
        assert result.month_key == MONTH
        assert result.is_clean


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

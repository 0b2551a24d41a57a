"""
Tests for the override tracker.

Edits capture their pre-edit value exactly once and are fully reversible.
"""

import pytest

from timesheet.engine.errors import OperationRejected
from timesheet.engine.overrides import (
    apply_record,
    build_activity,
    edit_duration,
    edit_field,
    persist_activity,
    restore_activities,
    restore_activity,
    set_day_equivalents,
)
from timesheet.models.results import RejectionReason
from timesheet.models.timesheet import CalculationMode, MonthlyReport

from tests.factories import make_activities, make_activity


def _snapshot(activity):
    return (
        activity.day_equivalents,
        activity.hours,
        activity.billable_amount,
        activity.date,
        activity.task,
        activity.collaborator,
        activity.description,
        activity.duration,
    )


class TestFieldEdits:

    def test_edit_captures_original_once(self, project):
        activity = make_activity(project, description="API work")

        edit_field(activity, "description", "First edit")
        edit_field(activity, "description", "Second edit")

        assert activity.description == "Second edit"
        assert activity.original_description == "API work"
        assert activity.overridden_fields() == ["description"]
        assert activity.is_modified

    def test_text_edit_does_not_touch_quantities(self, project):
        activity = make_activity(project)
        before = activity.day_equivalents

        edit_field(activity, "task", "Review")

        assert activity.day_equivalents == before
        assert not activity.has_quantity_override

    def test_unknown_field_rejected(self, project):
        activity = make_activity(project)
        with pytest.raises(OperationRejected) as exc_info:
            edit_field(activity, "original_amount", "1")
        assert exc_info.value.reason == RejectionReason.INVALID_VALUE

    def test_missing_text_value_rejected(self, project):
        activity = make_activity(project)

        with pytest.raises(OperationRejected) as exc_info:
            edit_field(activity, "task", None)

        assert exc_info.value.reason == RejectionReason.INVALID_VALUE
        assert not activity.is_modified

    def test_missing_duration_rejected(self, project):
        activity = make_activity(project, duration="4:00")

        with pytest.raises(OperationRejected) as exc_info:
            edit_duration(activity, None, project)

        assert exc_info.value.reason == RejectionReason.INVALID_VALUE
        assert activity.duration == "4:00"
        assert not activity.has_quantity_override


class TestQuantityEdits:

    def test_set_day_equivalents_captures_reference(self, project):
        activity = make_activity(project, original_amount=250.0)

        set_day_equivalents(activity, 1.0, project)
        set_day_equivalents(activity, 2.0, project)

        assert activity.day_equivalents == pytest.approx(2.0)
        assert activity.hours == pytest.approx(16.0)
        assert activity.billable_amount == pytest.approx(1000.0)
        assert activity.original_day_equivalents == pytest.approx(0.5)
        assert activity.original_hours == pytest.approx(4.0)
        assert activity.original_billable_amount == pytest.approx(250.0)

    def test_duration_edit_rescales(self, project):
        """Doubling the duration doubles the reference day-equivalents."""
        activity = make_activity(project, duration="4:00", original_amount=250.0)

        edit_duration(activity, "8:00", project)

        assert activity.duration == "8:00"
        assert activity.original_duration == "4:00"
        assert activity.day_equivalents == pytest.approx(1.0)
        assert activity.original_day_equivalents == pytest.approx(0.5)

    def test_duration_edit_rescales_from_original_each_time(self, project):
        activity = make_activity(project, duration="4:00", original_amount=250.0)

        edit_duration(activity, "8:00", project)
        edit_duration(activity, "2:00", project)

        assert activity.day_equivalents == pytest.approx(0.25)
        assert activity.original_duration == "4:00"

    def test_duration_edit_from_zero_duration(self, project):
        activity = make_activity(project, duration="", original_amount=250.0)

        edit_duration(activity, "6:00", project)

        assert activity.day_equivalents == pytest.approx(0.75)


class TestRestore:
    """restore(override(a)) gives back a exactly."""

    def test_round_trip(self, project):
        activity = make_activity(project)
        before = _snapshot(activity)

        edit_field(activity, "date", "05/03/2024")
        edit_field(activity, "collaborator", "Luigi")
        edit_duration(activity, "6:00", project)
        set_day_equivalents(activity, 3.0, project)

        assert restore_activity(activity, project) is True
        assert _snapshot(activity) == before
        assert not activity.is_modified
        assert activity.original_day_equivalents is None
        assert activity.overridden_fields() == []

    def test_restore_uses_current_mode(self, project):
        activity = make_activity(project, duration="6:00", original_amount=250.0)
        set_day_equivalents(activity, 2.0, project)

        project.calculation_mode = CalculationMode.HOURS
        restore_activity(activity, project)

        assert activity.day_equivalents == pytest.approx(0.75)

    def test_unmodified_activity_is_skipped(self, project):
        activity = make_activity(project)
        assert restore_activity(activity, project) is False

    def test_bulk_restore_counts_only_modified(self, project):
        activities = make_activities(project, [100.0, 200.0, 300.0])
        set_day_equivalents(activities[0], 1.0, project)
        edit_field(activities[2], "task", "Other")

        assert restore_activities(activities, project) == 2

    def test_restore_clears_persisted_record(self, project):
        report = MonthlyReport()
        activity = make_activity(project)
        edit_field(activity, "task", "Other")
        set_day_equivalents(activity, 1.5, project)
        record = persist_activity(activity, report)
        assert record.has_overrides

        restore_activity(activity, project, report)

        assert not report.activities[activity.hash].has_overrides


class TestPersistence:
    """Records carry exactly the captured overrides and rebuild the activity."""

    def test_persist_writes_only_edited_fields(self, project):
        report = MonthlyReport()
        activity = make_activity(project)
        edit_field(activity, "task", "Review")

        record = persist_activity(activity, report)

        assert record.field_overrides.task == "Review"
        assert record.field_overrides.description is None
        assert record.day_equivalents_override is None
        assert record.original_data == activity.source

    def test_original_data_is_write_once(self, project):
        report = MonthlyReport()
        activity = make_activity(project, task="Development")
        persist_activity(activity, report)

        edit_field(activity, "task", "Review")
        record = persist_activity(activity, report)

        assert record.original_data.task == "Development"

    def test_rebuild_from_record(self, project):
        report = MonthlyReport()
        activity = make_activity(project)
        edit_field(activity, "description", "Edited")
        set_day_equivalents(activity, 1.25, project)
        activity.cluster_id = "cl_abc"
        record = persist_activity(activity, report)

        rebuilt = build_activity(activity.hash, record.original_data, project, record=record)

        assert rebuilt.description == "Edited"
        assert rebuilt.original_description == activity.source.description
        assert rebuilt.day_equivalents == pytest.approx(1.25)
        assert rebuilt.original_day_equivalents == pytest.approx(0.5)
        assert rebuilt.cluster_id == "cl_abc"

    def test_apply_record_without_overrides(self, project):
        report = MonthlyReport()
        activity = make_activity(project)
        record = persist_activity(activity, report)

        fresh = make_activity(project)
        apply_record(fresh, record, project)

        assert not fresh.is_modified


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

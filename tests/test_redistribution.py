"""
Tests for the redistribution algorithms.

Rounding, uniform split and excess redistribution, including every
rejection path. A rejection must leave the selection untouched.
"""

import math

import pytest

from timesheet.engine.errors import OperationRejected
from timesheet.engine.overrides import set_day_equivalents
from timesheet.engine.redistribution import (
    apply_rounding,
    apply_uniform,
    find_excess,
    redistribute_excess,
    scale_to_total,
)
from timesheet.models.results import RejectionReason
from timesheet.models.timesheet import MonthlyReport

from tests.factories import make_activities


def _with_day_equivalents(project, values):
    """Activities whose day-equivalents are exactly `values` (RATE mode)."""
    return make_activities(project, [v * project.daily_rate for v in values])


def _values(activities):
    return [a.day_equivalents for a in activities]


class TestScaleToTotal:

    def test_hits_target_exactly(self):
        scaled = scale_to_total([0.1, 0.2, 0.3], 1.0)
        assert math.fsum(scaled) == 1.0

    def test_last_member_absorbs_residual(self):
        scaled = scale_to_total([1.0, 1.0, 1.0], 1.0)
        assert scaled[0] == scaled[1] == 1.0 / 3.0
        assert scaled[2] == 1.0 - math.fsum(scaled[:2])


class TestProportionalRounding:

    def test_two_three_five_to_twelve(self, project):
        activities = _with_day_equivalents(project, [2.0, 3.0, 5.0])

        affected = apply_rounding(activities, 12.0, project)

        assert affected == 3
        assert math.fsum(_values(activities)) == 12.0
        assert _values(activities) == pytest.approx([2.4, 3.6, 6.0])

    def test_quantities_follow(self, project):
        activities = _with_day_equivalents(project, [1.0, 1.0])

        apply_rounding(activities, 3.0, project)

        for activity in activities:
            assert activity.hours == pytest.approx(activity.day_equivalents * 8.0)
            assert activity.billable_amount == pytest.approx(activity.day_equivalents * 500.0)
            assert activity.original_day_equivalents == pytest.approx(1.0)
            assert activity.is_modified

    def test_persists_into_report(self, project):
        report = MonthlyReport()
        activities = _with_day_equivalents(project, [1.0, 3.0])

        apply_rounding(activities, 2.0, project, report)

        stored = [report.activities[a.hash].day_equivalents_override for a in activities]
        assert stored == pytest.approx([0.5, 1.5])

    def test_zero_total_rejected(self, project):
        activities = _with_day_equivalents(project, [0.0, 0.0])

        with pytest.raises(OperationRejected) as exc_info:
            apply_rounding(activities, 5.0, project)

        assert exc_info.value.reason == RejectionReason.ZERO_TOTAL
        assert not any(a.is_modified for a in activities)

    def test_empty_selection_rejected(self, project):
        with pytest.raises(OperationRejected) as exc_info:
            apply_rounding([], 5.0, project)
        assert exc_info.value.reason == RejectionReason.EMPTY_SELECTION

    @pytest.mark.parametrize("target", [-1.0, float("nan"), float("inf"), "abc", True, None])
    def test_invalid_target_rejected(self, project, target):
        activities = _with_day_equivalents(project, [1.0])

        with pytest.raises(OperationRejected) as exc_info:
            apply_rounding(activities, target, project)

        assert exc_info.value.reason == RejectionReason.INVALID_VALUE
        assert not activities[0].is_modified


class TestUniformDistribution:

    def test_flat_overwrite(self, project):
        activities = _with_day_equivalents(project, [0.2, 3.0, 1.0, 0.0])

        affected = apply_uniform(activities, 2.0, project)

        assert affected == 4
        assert _values(activities) == [0.5, 0.5, 0.5, 0.5]

    def test_zero_total_rejected(self, project):
        activities = _with_day_equivalents(project, [1.0, 1.0])

        with pytest.raises(OperationRejected) as exc_info:
            apply_uniform(activities, 0, project)

        assert exc_info.value.reason == RejectionReason.INVALID_VALUE

    def test_boolean_total_rejected(self, project):
        activities = _with_day_equivalents(project, [1.0, 1.0])

        with pytest.raises(OperationRejected) as exc_info:
            apply_uniform(activities, True, project)

        assert exc_info.value.reason == RejectionReason.INVALID_VALUE
        assert _values(activities) == [1.0, 1.0]


class TestExcessRedistribution:

    def test_conservation(self, project):
        """{2.5, 0.5, 1.0}: a is capped, b and c grow to 3.0 in a 1:2 ratio."""
        a, b, c = _with_day_equivalents(project, [2.5, 0.5, 1.0])

        affected = redistribute_excess([a, b, c], project)

        assert affected == 3
        assert a.day_equivalents == 1.0
        assert b.day_equivalents + c.day_equivalents == pytest.approx(3.0)
        assert b.day_equivalents == pytest.approx(1.0)
        assert c.day_equivalents == pytest.approx(2.0)
        assert math.fsum(_values([a, b, c])) == pytest.approx(4.0)

    def test_zero_recipients_split_evenly(self, project):
        big, r1, r2 = _with_day_equivalents(project, [2.0, 0.0, 0.0])

        redistribute_excess([big, r1, r2], project)

        assert big.day_equivalents == 1.0
        assert r1.day_equivalents == pytest.approx(0.5)
        assert r2.day_equivalents == pytest.approx(0.5)

    def test_several_excess_members(self, project):
        activities = _with_day_equivalents(project, [1.5, 2.0, 1.0])

        redistribute_excess(activities, project)

        assert _values(activities) == pytest.approx([1.0, 1.0, 2.5])

    def test_exactly_one_is_not_excess(self, project):
        activities = _with_day_equivalents(project, [1.0, 0.5])
        assert find_excess(activities) == []

    def test_no_excess_rejected(self, project):
        activities = _with_day_equivalents(project, [1.0, 0.5])

        with pytest.raises(OperationRejected) as exc_info:
            redistribute_excess(activities, project)

        assert exc_info.value.reason == RejectionReason.NO_EXCESS

    def test_no_recipients_rejected(self, project):
        activities = _with_day_equivalents(project, [1.5, 2.0])

        with pytest.raises(OperationRejected) as exc_info:
            redistribute_excess(activities, project)

        assert exc_info.value.reason == RejectionReason.NO_RECIPIENTS
        assert _values(activities) == pytest.approx([1.5, 2.0])
        assert not any(a.is_modified for a in activities)

    def test_custom_cap(self, project):
        big, small = _with_day_equivalents(project, [1.0, 0.25])

        redistribute_excess([big, small], project, cap=0.5)

        assert big.day_equivalents == 0.5
        assert small.day_equivalents == pytest.approx(0.75)

    def test_redistribution_keeps_first_reference(self, project):
        a, b = _with_day_equivalents(project, [1.0, 0.5])
        set_day_equivalents(a, 3.0, project)

        redistribute_excess([a, b], project)

        assert a.original_day_equivalents == pytest.approx(1.0)
        assert b.original_day_equivalents == pytest.approx(0.5)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

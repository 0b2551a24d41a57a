"""
Tests for the read-only views.
"""

from datetime import datetime

import pytest

from timesheet.engine.lifecycle import close_month, get_or_create_report
from timesheet.engine.reconciliation import reconcile
from timesheet.models.timesheet import Cluster, MonthStatus, Project
from timesheet.queries import list_projects, month_activities, month_summary, project_detail
from timesheet.queries.views import date_sort_key

from tests.factories import MONTH, make_original


def _imported(project, originals):
    report = get_or_create_report(project, MONTH)
    activities, _ = reconcile(project, MONTH, report, originals)
    return activities


class TestDateSortKey:

    def test_orders_by_calendar_date(self):
        dates = ["02/04/2024", "15/03/2024", "no date", "1/3/2024", ""]
        assert sorted(dates, key=date_sort_key) == ["1/3/2024", "15/03/2024", "02/04/2024", "", "no date"]


class TestMonthActivities:

    def test_sorted_with_totals(self, project):
        activities = _imported(project, [
            make_original(date="20/03/2024", description="late", original_amount=500.0),
            make_original(date="01/03/2024", description="early", original_amount=333.333),
        ])

        view = month_activities(project, MONTH, activities)

        assert [a.description for a in view.activities] == ["early", "late"]
        assert view.totals.count == 2
        assert view.totals.new == 2
        assert view.totals.day_equivalents == 1.67
        assert view.totals.billable_amount == 833.33
        # Per-activity values stay unrounded
        assert view.activities[0].day_equivalents == pytest.approx(333.333 / 500.0)

    def test_rebuilt_from_records(self, project):
        _imported(project, [make_original()])

        view = month_activities(project, MONTH)

        assert view.totals.count == 1
        assert view.totals.new == 0
        assert view.status == MonthStatus.OPEN

    def test_unknown_month_is_empty(self, project):
        view = month_activities(project, "2023-01")
        assert view.activities == []
        assert "2023-01" not in project.monthly_reports

    def test_cluster_name_and_flags(self, project):
        cluster = Cluster(name="Backend")
        project.clusters.append(cluster)
        (activity,) = _imported(project, [make_original()])
        activity.cluster_id = cluster.id

        (view,) = month_activities(project, MONTH, [activity]).activities

        assert view.cluster_name == "Backend"
        assert not view.is_modified
        assert not view.has_rate_error


class TestMonthSummary:

    def test_grouping(self, project):
        zeta, alpha = Cluster(name="zeta"), Cluster(name="Alpha")
        project.clusters.extend([zeta, alpha])
        a, b, c, d = _imported(project, [
            make_original(description=name) for name in ("a", "b", "c", "d")
        ])
        a.cluster_id = zeta.id
        b.cluster_id = alpha.id
        c.cluster_id = "cl_deleted"

        summary = month_summary(project, MONTH, [a, b, c, d])

        assert [line.cluster_name for line in summary.clusters] == ["Alpha", "zeta", "Unassigned"]
        assert summary.clusters[-1].count == 2
        assert summary.clusters[-1].cluster_id is None
        assert summary.totals.count == 4
        assert summary.totals.day_equivalents == 2.0

    def test_empty_clusters_omitted(self, project):
        project.clusters.append(Cluster(name="Unused"))
        activities = _imported(project, [make_original()])

        summary = month_summary(project, MONTH, activities)

        assert [line.cluster_name for line in summary.clusters] == ["Unassigned"]


class TestProjectViews:

    def test_list_projects(self):
        beta = Project(name="beta")
        alpha = Project(name="Alpha", current_month=MONTH)
        get_or_create_report(alpha, MONTH)

        listing = list_projects([beta, alpha])

        assert [p.name for p in listing] == ["Alpha", "beta"]
        assert listing[0].months == 1
        assert listing[0].current_month == MONTH
        assert listing[1].calculation_mode == "rate"

    def test_project_detail(self, project):
        imported_at = datetime(2024, 3, 5, 10, 0)
        report = get_or_create_report(project, MONTH)
        reconcile(project, MONTH, report, [make_original()], file_name="march.xlsx", now=imported_at)
        close_month(report, MONTH, now=datetime(2024, 4, 1))
        get_or_create_report(project, "2024-04")

        detail = project_detail(project)

        assert [m.month_key for m in detail.months] == ["2024-04", MONTH]
        march = detail.months[1]
        assert march.status == MonthStatus.CLOSED
        assert march.last_import == imported_at
        assert march.activity_count == 1
        assert detail.months[0].last_import is None
        assert detail.collaborator_rates == {"Mario": 0.0}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

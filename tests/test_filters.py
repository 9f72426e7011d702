"""Tests for report filter parsing and working set selection."""

from datetime import date, datetime, timedelta, timezone

from task_insights.core.filters import ReportFilters, get_working_set, parse_date, parse_id_list
from task_insights.core.scope import ScopePolicy
from task_insights.db.source import SqliteDataSource

from conftest import NOW


class TestParseIdList:
    def test_comma_separated(self):
        assert parse_id_list("1, 2,3") == frozenset({1, 2, 3})

    def test_single_int(self):
        assert parse_id_list(7) == frozenset({7})

    def test_iterable_mixed(self):
        assert parse_id_list([1, "2", " 3 "]) == frozenset({1, 2, 3})

    def test_malformed_parts_are_dropped(self):
        assert parse_id_list("1,abc,,2.5,4") == frozenset({1, 4})
        assert parse_id_list([True, 5]) == frozenset({5})

    def test_empty_means_absent(self):
        assert parse_id_list(None) is None
        assert parse_id_list("") is None
        assert parse_id_list("abc") is None
        assert parse_id_list([]) is None


class TestParseDate:
    def test_iso_date(self):
        assert parse_date("2025-01-13") == date(2025, 1, 13)

    def test_iso_datetime(self):
        assert parse_date("2025-01-13T08:00:00+00:00") == date(2025, 1, 13)

    def test_date_objects(self):
        assert parse_date(date(2025, 1, 13)) == date(2025, 1, 13)
        assert parse_date(datetime(2025, 1, 13, 5)) == date(2025, 1, 13)

    def test_malformed(self):
        assert parse_date("13/01/2025") is None
        assert parse_date("garbage") is None
        assert parse_date("  ") is None
        assert parse_date(None) is None


class TestReportFilters:
    def test_parse(self):
        filters = ReportFilters.parse(project_ids="1,2", start_date="2025-01-01", end_date="bad")
        assert filters.project_ids == frozenset({1, 2})
        assert filters.department_ids is None
        assert filters.start_date == date(2025, 1, 1)
        assert filters.end_date is None
        assert filters.has_date_range

    def test_no_range(self):
        assert not ReportFilters.parse(end_date="bad").has_date_range


def _ids(ws):
    return {t.id for t in ws.tasks}


class TestGetWorkingSet:
    def test_all_visible_tasks(self, org, db):
        ws = get_working_set(SqliteDataSource(db), "joel", now=NOW)
        t = org.tasks
        # Legacy is archived and Sales CRM is out of scope.
        assert _ids(ws) == {t["t1"], t["t2"], t["t3"], t["t6"]}
        assert ws.now == NOW

    def test_assignees_and_users_attached(self, org, db):
        ws = get_working_set(SqliteDataSource(db), "joel", now=NOW)
        shared = next(task for task in ws.tasks if task.id == org.tasks["t2"])
        assert shared.assignee_ids == ["mitch", "sam"]
        assert ws.user_name("sam") == "Sam Wu"
        assert ws.user_name("joel") == "Joel Ong"
        assert ws.user_name("ghost") == "ghost"

    def test_project_filter_intersects_scope(self, org, db):
        p = org.projects
        filters = ReportFilters.parse(project_ids=[p["budget"], p["crm"]])
        ws = get_working_set(SqliteDataSource(db), "joel", filters, now=NOW)
        assert _ids(ws) == {org.tasks["t3"]}

    def test_unknown_project_is_empty(self, db, org):
        ws = get_working_set(SqliteDataSource(db), "joel", ReportFilters.parse(project_ids="9999"), now=NOW)
        assert ws.tasks == []
        assert ws.users == {}

    def test_department_filter(self, org, db):
        filters = ReportFilters.parse(department_ids=str(org.depts["platform"]))
        ws = get_working_set(SqliteDataSource(db), "joel", filters, now=NOW)
        t = org.tasks
        assert _ids(ws) == {t["t1"], t["t2"], t["t6"]}

    def test_date_range_is_inclusive(self, org, db):
        filters = ReportFilters.parse(start_date="2025-01-12", end_date="2025-01-14")
        ws = get_working_set(SqliteDataSource(db), "joel", filters, now=NOW)
        assert _ids(ws) == {org.tasks["t2"], org.tasks["t3"]}

    def test_date_range_excludes_tasks_without_deadline(self, org, db):
        source = SqliteDataSource(db)
        assert org.tasks["t4"] in _ids(get_working_set(source, "sara", now=NOW))
        filters = ReportFilters.parse(start_date="2000-01-01")
        assert get_working_set(source, "sara", filters, now=NOW).tasks == []

    def test_malformed_dates_do_not_restrict(self, org, db):
        source = SqliteDataSource(db)
        unfiltered = _ids(get_working_set(source, "joel", now=NOW))
        filters = ReportFilters.parse(start_date="garbage", end_date="13/45/2025")
        assert _ids(get_working_set(source, "joel", filters, now=NOW)) == unfiltered

    def test_date_range_uses_report_timezone(self, org, db):
        # Cost dashboards is due 2025-01-14 09:00 UTC, which is 17:00 in UTC+8.
        # A deadline at 20:00 UTC would roll over; this one stays on the 14th.
        filters = ReportFilters.parse(start_date="2025-01-14", end_date="2025-01-14")
        sgt = timezone(timedelta(hours=8))
        ws = get_working_set(SqliteDataSource(db), "joel", filters, now=NOW, tz=sgt)
        assert _ids(ws) == {org.tasks["t2"]}

    def test_policy_is_applied(self, org, db):
        policy = ScopePolicy(include_shared_task_departments=False)
        ws = get_working_set(SqliteDataSource(db), "joel", now=NOW, policy=policy)
        t = org.tasks
        assert _ids(ws) == {t["t1"], t["t2"], t["t6"]}

    def test_user_without_projects(self, org, db):
        ws = get_working_set(SqliteDataSource(db), "hana", now=NOW)
        assert ws.tasks == []

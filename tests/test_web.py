"""Tests for the reports web API."""

import pytest
from starlette.testclient import TestClient

from task_insights.web.app import create_app


@pytest.fixture
def web_env(org, monkeypatch):
    """Point the app at the seeded store."""
    monkeypatch.setenv("TI_DB_PATH", str(org.db_path))
    monkeypatch.setenv("TI_REPORT_UTC_OFFSET", "0")
    return TestClient(create_app(), headers={"x-report-role": "admin"})


class TestHealth:
    def test_health(self, web_env):
        resp = web_env.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestReportsAPI:
    def test_requires_user(self, web_env):
        resp = web_env.get("/api/reports", params={"action": "task"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_invalid_action(self, web_env):
        resp = web_env.get("/api/reports", params={"action": "bogus", "userId": "joel"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid action"}

    def test_non_admin_role_forbidden(self, web_env):
        resp = web_env.get(
            "/api/reports",
            params={"action": "task", "userId": "joel"},
            headers={"x-report-role": "staff"},
        )
        assert resp.status_code == 403

    def test_missing_role_forbidden(self, org, monkeypatch):
        monkeypatch.setenv("TI_DB_PATH", str(org.db_path))
        client = TestClient(create_app())
        for action in ("time", "team", "task"):
            resp = client.get("/api/reports", params={"action": action, "userId": "joel"})
            assert resp.status_code == 403
            assert resp.json() == {"error": "Forbidden: Admin access required"}
        resp = client.get("/api/reports", params={"action": "projects", "userId": "joel"})
        assert resp.status_code == 200

    def test_admin_role_allowed(self, web_env):
        resp = web_env.get(
            "/api/reports",
            params={"action": "task", "userId": "joel"},
            headers={"x-report-role": "admin"},
        )
        assert resp.status_code == 200

    def test_default_action_is_logged_time(self, web_env):
        resp = web_env.get("/api/reports", params={"userId": "joel"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["kind"] == "loggedTime"
        assert data["completedTasks"] == 2
        assert data["totalTime"] == 10800

    def test_task_report(self, web_env):
        data = web_env.get("/api/reports", params={"action": "task", "userId": "joel"}).json()
        assert data["kind"] == "taskCompletions"
        assert data["totalTasks"] == 4
        assert (
            data["totalCompleted"] + data["totalInProgress"] + data["totalTodo"] + data["totalBlocked"]
            == data["totalTasks"]
        )

    def test_team_report(self, web_env):
        data = web_env.get("/api/reports", params={"action": "team", "userId": "joel"}).json()
        assert data["kind"] == "teamSummary"
        assert data["totalUsers"] == 3
        assert all(isinstance(k, str) for k in data["userTotals"])

    def test_malformed_dates_still_ok(self, web_env):
        resp = web_env.get(
            "/api/reports",
            params={"action": "task", "userId": "joel", "startDate": "garbage", "endDate": "2025-99-99"},
        )
        assert resp.status_code == 200
        assert resp.json()["totalTasks"] == 4

    def test_date_range(self, web_env):
        resp = web_env.get(
            "/api/reports",
            params={"action": "task", "userId": "joel", "startDate": "2025-01-13", "endDate": "2025-01-19"},
        )
        assert resp.json()["totalTasks"] == 1

    def test_unknown_project_gives_zeros(self, web_env):
        resp = web_env.get(
            "/api/reports", params={"action": "time", "userId": "joel", "projectIds": "9999"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["totalTime"] == 0
        assert data["timeByTask"] == {}

    def test_non_numeric_project_ids_ignored(self, web_env):
        plain = web_env.get("/api/reports", params={"action": "task", "userId": "joel"}).json()
        junk = web_env.get(
            "/api/reports", params={"action": "task", "userId": "joel", "projectIds": "abc"}
        ).json()
        assert plain == junk

    def test_same_request_same_bytes(self, web_env):
        params = {"action": "team", "userId": "joel"}
        assert web_env.get("/api/reports", params=params).content == web_env.get(
            "/api/reports", params=params
        ).content


class TestOptionsAPI:
    def test_departments(self, web_env):
        resp = web_env.get("/api/reports", params={"action": "departments", "userId": "joel"})
        assert resp.status_code == 200
        assert [d["name"] for d in resp.json()] == ["Engineering", "Finance", "Platform", "SRE"]

    def test_departments_for_project(self, web_env, org):
        resp = web_env.get(
            "/api/reports",
            params={"action": "departments", "userId": "joel", "projectIds": str(org.projects["budget"])},
        )
        assert resp.json() == [{"id": org.depts["finance"], "name": "Finance"}]

    def test_projects(self, web_env):
        resp = web_env.get("/api/reports", params={"action": "projects", "userId": "sara"})
        assert resp.json()[0]["name"] == "Sales CRM"

    def test_options_ignore_role_header(self, web_env):
        resp = web_env.get(
            "/api/reports",
            params={"action": "projects", "userId": "joel"},
            headers={"x-report-role": "staff"},
        )
        assert resp.status_code == 200

    def test_users_see_different_options(self, web_env):
        joel = web_env.get("/api/reports", params={"action": "departments", "userId": "joel"}).json()
        sara = web_env.get("/api/reports", params={"action": "departments", "userId": "sara"}).json()
        assert joel != sara


class TestDataAccessFailure:
    def test_server_error(self, tmp_path, monkeypatch):
        path = tmp_path / "ti.db"
        path.write_bytes(b"not a database" * 20)
        monkeypatch.setenv("TI_DB_PATH", str(path))
        resp = TestClient(create_app()).get(
            "/api/reports",
            params={"action": "task", "userId": "joel"},
            headers={"x-report-role": "admin"},
        )
        assert resp.status_code == 500
        assert resp.json()["error"] == "Server error"

    def test_missing_store(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TI_DB_PATH", str(tmp_path / "missing.db"))
        client = TestClient(create_app(), headers={"x-report-role": "admin"})
        resp = client.get("/api/reports", params={"action": "time", "userId": "joel"})
        assert resp.status_code == 500
        assert "Store not found" in resp.json()["details"]
        assert not (tmp_path / "missing.db").exists()

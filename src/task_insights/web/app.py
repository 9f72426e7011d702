"""Web API for task insight reports."""

import logging

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from task_insights.config import get_config
from task_insights.core.filters import ReportFilters
from task_insights.core.service import ReportService
from task_insights.db.source import DataAccessError

logger = logging.getLogger(__name__)

REPORT_ACTIONS = {
    "time": ReportService.compute_logged_time_report,
    "team": ReportService.compute_team_summary_report,
    "task": ReportService.compute_task_completion_report,
}

ADMIN_ROLE = "admin"


def _get_service() -> ReportService:
    return ReportService.from_config(get_config())


# ── Handlers ──────────────────────────────────────────────────────────────────


async def health(request: Request):
    return JSONResponse({"status": "ok"})


async def api_reports(request: Request):
    params = request.query_params
    action = params.get("action") or "time"
    user_id = params.get("userId")
    if not user_id:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    if action in REPORT_ACTIONS:
        # The role header is set by the fronting proxy; no header means no access.
        if request.headers.get("x-report-role") != ADMIN_ROLE:
            return JSONResponse({"error": "Forbidden: Admin access required"}, status_code=403)
    elif action not in ("departments", "projects"):
        return JSONResponse({"error": "Invalid action"}, status_code=400)

    service = _get_service()
    try:
        if action == "departments":
            return JSONResponse(
                service.resolve_visible_departments(user_id, params.get("projectIds"))
            )
        if action == "projects":
            return JSONResponse(
                service.resolve_visible_projects(user_id, params.get("departmentIds"))
            )

        filters = ReportFilters.parse(
            project_ids=params.get("projectIds"),
            department_ids=params.get("departmentIds"),
            start_date=params.get("startDate"),
            end_date=params.get("endDate"),
        )
        return JSONResponse(REPORT_ACTIONS[action](service, user_id, filters))
    except DataAccessError as e:
        logger.exception("Report API error")
        return JSONResponse({"error": "Server error", "details": str(e)}, status_code=500)


# ── App ───────────────────────────────────────────────────────────────────────


def create_app() -> Starlette:
    routes = [
        Route("/api/health", health),
        Route("/api/reports", api_reports),
    ]
    return Starlette(routes=routes)


def run_server(host: str = "127.0.0.1", port: int = 8787):
    app = create_app()
    uvicorn.run(app, host=host, port=port)

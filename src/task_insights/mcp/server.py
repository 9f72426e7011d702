"""MCP server exposing task insight reports as tools."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import Context, FastMCP

from task_insights.config import Config, get_config
from task_insights.core import formatting
from task_insights.core.filters import ReportFilters
from task_insights.core.service import ReportService
from task_insights.db.source import DataAccessError


@dataclass
class AppContext:
    service: ReportService
    config: Config


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Build the report service on startup."""
    config = get_config()
    yield AppContext(service=ReportService.from_config(config), config=config)


mcp = FastMCP("task-insights", lifespan=app_lifespan)


def _ctx(ctx: Context) -> AppContext:
    """Extract AppContext from MCP Context."""
    return ctx.request_context.lifespan_context


def _filters(
    project_ids: list[int] | None,
    department_ids: list[int] | None,
    start_date: str | None,
    end_date: str | None,
) -> ReportFilters:
    return ReportFilters.parse(
        project_ids=project_ids,
        department_ids=department_ids,
        start_date=start_date,
        end_date=end_date,
    )


# ── Report Tools ──────────────────────────────────────────────────────────────


@mcp.tool()
def logged_time_report(
    ctx: Context,
    user_id: str,
    project_ids: list[int] | None = None,
    department_ids: list[int] | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> dict:
    """Logged time, overdue work and on-time completion rate for the tasks a user can see.
    Dates are ISO (YYYY-MM-DD) and bound the task deadline, inclusive."""
    filters = _filters(project_ids, department_ids, start_date, end_date)
    try:
        return _ctx(ctx).service.compute_logged_time_report(user_id, filters)
    except DataAccessError as e:
        return {"error": str(e)}


@mcp.tool()
def team_summary_report(
    ctx: Context,
    user_id: str,
    project_ids: list[int] | None = None,
    department_ids: list[int] | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> dict:
    """Task status counts per ISO week of deadline and per assignee."""
    filters = _filters(project_ids, department_ids, start_date, end_date)
    try:
        return _ctx(ctx).service.compute_team_summary_report(user_id, filters)
    except DataAccessError as e:
        return {"error": str(e)}


@mcp.tool()
def task_completion_report(
    ctx: Context,
    user_id: str,
    project_ids: list[int] | None = None,
    department_ids: list[int] | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> dict:
    """Completion totals, completions per project and per-assignee completion statistics."""
    filters = _filters(project_ids, department_ids, start_date, end_date)
    try:
        return _ctx(ctx).service.compute_task_completion_report(user_id, filters)
    except DataAccessError as e:
        return {"error": str(e)}


# ── Scope Tools ───────────────────────────────────────────────────────────────


@mcp.tool()
def visible_departments(
    ctx: Context,
    user_id: str,
    project_ids: list[int] | None = None,
) -> list[dict] | dict:
    """Departments a user may filter reports by, optionally limited to some projects."""
    try:
        return _ctx(ctx).service.resolve_visible_departments(user_id, project_ids)
    except DataAccessError as e:
        return {"error": str(e)}


@mcp.tool()
def visible_projects(
    ctx: Context,
    user_id: str,
    department_ids: list[int] | None = None,
) -> list[dict] | dict:
    """Projects a user may filter reports by, optionally limited to some departments."""
    try:
        return _ctx(ctx).service.resolve_visible_projects(user_id, department_ids)
    except DataAccessError as e:
        return {"error": str(e)}


# ── Digest Tools ──────────────────────────────────────────────────────────────


@mcp.tool()
def daily_digest(ctx: Context, user_id: str | None = None) -> list[dict] | dict:
    """Today's overdue, due-today and upcoming tasks per user. Pass user_id for one user."""
    try:
        digests = _ctx(ctx).service.build_daily_digests()
    except DataAccessError as e:
        return {"error": str(e)}
    if user_id is not None:
        digests = [d for d in digests if d.user_id == user_id]
    return [formatting.format_digest(d) for d in digests]

"""CLI entry point for task insights."""

import json
import logging
import sys

import click

from task_insights.config import get_config
from task_insights.core import directory as directory_mod
from task_insights.core import formatting
from task_insights.core import tasks as tasks_mod
from task_insights.core.filters import ReportFilters
from task_insights.core.service import ReportService
from task_insights.db.engine import get_db
from task_insights.db.models import STATUSES
from task_insights.db.source import DataAccessError
from task_insights.integrations import slack as slack_mod


def _get_db():
    config = get_config()
    return get_db(config.db_path)


@click.group()
def main():
    """ti - Task Insights CLI"""
    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ── Directory Commands ────────────────────────────────────────────────────────


@main.group("dept")
def dept_group():
    """Manage departments."""
    pass


@dept_group.command("add")
@click.argument("name")
@click.option("--parent", default=None, type=int, help="Parent department ID")
def dept_add(name, parent):
    """Create a department."""
    with _get_db() as db:
        try:
            dept = directory_mod.create_department(db, name, parent)
        except ValueError as e:
            click.echo(str(e), err=True)
            sys.exit(1)
        click.echo(f"Department created: {dept.id} ({dept.name})")
        if dept.parent_id is not None:
            click.echo(f"  Parent: {dept.parent_id}")


@dept_group.command("list")
def dept_list():
    """List departments."""
    with _get_db() as db:
        departments = directory_mod.list_departments(db)
        if not departments:
            click.echo("No departments found.")
            return
        for d in departments:
            parent = f" (parent: {d.parent_id})" if d.parent_id is not None else ""
            click.echo(f"  {d.id}: {d.name}{parent}")


@main.group("user")
def user_group():
    """Manage users."""
    pass


@user_group.command("add")
@click.argument("user_id")
@click.argument("first_name")
@click.argument("last_name", default="")
@click.option("--dept", "department_id", default=None, type=int, help="Department ID")
def user_add(user_id, first_name, last_name, department_id):
    """Create a user."""
    with _get_db() as db:
        user = directory_mod.create_user(db, user_id, first_name, last_name, department_id)
        click.echo(f"User created: {user.id} ({user.full_name})")


@main.group("project")
def project_group():
    """Manage projects."""
    pass


@project_group.command("add")
@click.argument("name")
def project_add(name):
    """Create a project."""
    with _get_db() as db:
        project = directory_mod.create_project(db, name)
        click.echo(f"Project created: {project.id} ({project.name})")


@project_group.command("list")
def project_list():
    """List projects, archived ones included."""
    with _get_db() as db:
        projects = directory_mod.list_projects(db)
        if not projects:
            click.echo("No projects found.")
            return
        for p in projects:
            archived = " [archived]" if p.is_archived else ""
            click.echo(f"  {p.id}: {p.name}{archived}")


@project_group.command("archive")
@click.argument("project_id", type=int)
def project_archive(project_id):
    """Archive a project. Its tasks drop out of every report."""
    with _get_db() as db:
        project = directory_mod.archive_project(db, project_id)
        if not project:
            click.echo(f"Project not found: {project_id}", err=True)
            sys.exit(1)
        click.echo(f"Archived project {project.id} ({project.name})")


@project_group.command("link")
@click.argument("project_id", type=int)
@click.argument("department_id", type=int)
def project_link(project_id, department_id):
    """Link a project to a department."""
    with _get_db() as db:
        if directory_mod.link_project_department(db, project_id, department_id):
            click.echo(f"Linked project {project_id} to department {department_id}")
        else:
            click.echo(f"Project {project_id} already linked to department {department_id}")


# ── Task Commands ─────────────────────────────────────────────────────────────


@main.group("task")
def task_group():
    """Manage tasks."""
    pass


@task_group.command("add")
@click.argument("title")
@click.option("--project", "project_id", required=True, type=int, help="Project ID")
@click.option("--creator", default=None, help="Creator user ID")
@click.option("--priority", "-p", default=5, type=int, help="Priority bucket 1 (lowest) to 10 (highest)")
@click.option("--deadline", default=None, help="ISO deadline timestamp")
@click.option("--parent", "parent_task_id", default=None, type=int, help="Parent task ID")
def task_add(title, project_id, creator, priority, deadline, parent_task_id):
    """Create a new task."""
    with _get_db() as db:
        try:
            task = tasks_mod.create_task(
                db, title, project_id, creator_id=creator, priority_bucket=priority,
                deadline=deadline, parent_task_id=parent_task_id,
            )
        except ValueError as e:
            click.echo(str(e), err=True)
            sys.exit(1)
        click.echo(f"Created task: {task.id}")
        click.echo(f"  Title: {task.title}")
        click.echo(f"  Priority: {task.priority_bucket}/10")
        click.echo(f"  Status: {task.status}")
        if task.deadline:
            click.echo(f"  Deadline: {task.deadline.isoformat()}")


@task_group.command("list")
@click.option("--project", "project_id", default=None, type=int, help="Project ID")
@click.option("--status", default=None, type=click.Choice(STATUSES), help="Filter by status")
@click.option("--all", "include_archived", is_flag=True, help="Include archived tasks")
def task_list(project_id, status, include_archived):
    """List tasks, highest priority first."""
    with _get_db() as db:
        tasks = tasks_mod.list_tasks(db, project_id, status=status, include_archived=include_archived)
        if not tasks:
            click.echo("No tasks found.")
            return
        for task in tasks:
            due = f" due {task.deadline.date().isoformat()}" if task.deadline else ""
            who = f" [{', '.join(task.assignee_ids)}]" if task.assignee_ids else ""
            archived = " [archived]" if task.is_archived else ""
            click.echo(f"  P{task.priority_bucket} {task.id}: {task.title} ({task.status}){due}{who}{archived}")


@task_group.command("assign")
@click.argument("task_id", type=int)
@click.argument("assignee_id")
@click.option("--by", "assignor_id", default=None, help="Assigning user ID")
def task_assign(task_id, assignee_id, assignor_id):
    """Assign a user to a task."""
    with _get_db() as db:
        try:
            task = tasks_mod.assign_task(db, task_id, assignee_id, assignor_id)
        except ValueError as e:
            click.echo(str(e), err=True)
            sys.exit(1)
        click.echo(f"Task {task.id} assignees: {', '.join(task.assignee_ids)}")


@task_group.command("unassign")
@click.argument("task_id", type=int)
@click.argument("assignee_id")
def task_unassign(task_id, assignee_id):
    """Remove a user from a task."""
    with _get_db() as db:
        task = tasks_mod.unassign_task(db, task_id, assignee_id)
        if not task:
            click.echo(f"Task not found: {task_id}", err=True)
            sys.exit(1)
        click.echo(f"Task {task.id} assignees: {', '.join(task.assignee_ids) or 'none'}")


@task_group.command("status")
@click.argument("task_id", type=int)
@click.argument("status", type=click.Choice(STATUSES))
def task_status(task_id, status):
    """Move a task to a new status."""
    with _get_db() as db:
        task = tasks_mod.update_task_status(db, task_id, status)
        if not task:
            click.echo(f"Task not found: {task_id}", err=True)
            sys.exit(1)
        click.echo(f"Task {task.id}: {task.status}")


@task_group.command("log")
@click.argument("task_id", type=int)
@click.argument("minutes", type=int)
def task_log(task_id, minutes):
    """Log minutes of work against a task."""
    with _get_db() as db:
        try:
            task = tasks_mod.log_time(db, task_id, minutes * 60)
        except ValueError as e:
            click.echo(str(e), err=True)
            sys.exit(1)
        if not task:
            click.echo(f"Task not found: {task_id}", err=True)
            sys.exit(1)
        click.echo(f"Task {task.id}: {task.logged_time // 60} minutes logged")


@task_group.command("archive")
@click.argument("task_id", type=int)
def task_archive(task_id):
    """Archive a task and its subtasks."""
    with _get_db() as db:
        count = tasks_mod.archive_task(db, task_id)
        if not count:
            click.echo(f"Nothing to archive for task {task_id}", err=True)
            sys.exit(1)
        click.echo(f"Archived {count} task(s)")


# ── Report Commands ───────────────────────────────────────────────────────────


_REPORTS = {
    "time": ReportService.compute_logged_time_report,
    "team": ReportService.compute_team_summary_report,
    "task": ReportService.compute_task_completion_report,
}


@main.command("report")
@click.argument("kind", type=click.Choice(sorted(_REPORTS)))
@click.option("--user", "user_id", required=True, help="User the report is scoped to")
@click.option("--projects", default=None, help="Comma-separated project IDs")
@click.option("--departments", default=None, help="Comma-separated department IDs")
@click.option("--start", default=None, help="Earliest deadline (YYYY-MM-DD)")
@click.option("--end", default=None, help="Latest deadline (YYYY-MM-DD)")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def report(kind, user_id, projects, departments, start, end, json_output):
    """Compute a report: time, team or task."""
    service = ReportService.from_config(get_config())
    filters = ReportFilters.parse(
        project_ids=projects, department_ids=departments, start_date=start, end_date=end
    )
    try:
        payload = _REPORTS[kind](service, user_id, filters)
    except DataAccessError as e:
        click.echo(f"Report failed: {e}", err=True)
        sys.exit(1)

    if json_output:
        click.echo(json.dumps(payload, indent=2))
        return
    _print_report(payload)


def _print_report(payload: dict):
    click.echo(f"Report: {payload['kind']}")
    for key, value in payload.items():
        if key == "kind":
            continue
        if isinstance(value, dict):
            click.echo(f"  {key}:")
            for k, v in value.items():
                click.echo(f"    {k}: {v}")
        elif isinstance(value, list):
            click.echo(f"  {key}: {len(value)} row(s)")
            for row in value:
                click.echo(f"    {row}")
        elif isinstance(value, float):
            click.echo(f"  {key}: {value:.2f}")
        else:
            click.echo(f"  {key}: {value}")


@main.group("scope")
def scope_group():
    """Show what a user may report on."""
    pass


@scope_group.command("departments")
@click.option("--user", "user_id", required=True, help="User ID")
@click.option("--projects", default=None, help="Only departments linked to these project IDs")
def scope_departments(user_id, projects):
    """List departments visible to a user."""
    service = ReportService.from_config(get_config())
    try:
        departments = service.resolve_visible_departments(user_id, projects)
    except DataAccessError as e:
        click.echo(f"Scope lookup failed: {e}", err=True)
        sys.exit(1)
    if not departments:
        click.echo("No departments visible.")
        return
    for d in departments:
        click.echo(f"  {d['id']}: {d['name']}")


@scope_group.command("projects")
@click.option("--user", "user_id", required=True, help="User ID")
@click.option("--departments", default=None, help="Only projects linked to these department IDs")
def scope_projects(user_id, departments):
    """List projects visible to a user."""
    service = ReportService.from_config(get_config())
    try:
        projects = service.resolve_visible_projects(user_id, departments)
    except DataAccessError as e:
        click.echo(f"Scope lookup failed: {e}", err=True)
        sys.exit(1)
    if not projects:
        click.echo("No projects visible.")
        return
    for p in projects:
        click.echo(f"  {p['id']}: {p['name']}")


# ── Digest Command ────────────────────────────────────────────────────────────


@main.command("digest")
@click.option("--send", is_flag=True, help="Post digests to the configured Slack channel")
@click.option("--channel", default=None, help="Slack channel (defaults to TI_DIGEST_CHANNEL)")
def digest(send, channel):
    """Build today's per-user digests of overdue, due-today and upcoming tasks."""
    config = get_config()
    try:
        digests = ReportService.from_config(config).build_daily_digests()
    except DataAccessError as e:
        click.echo(f"Digest failed: {e}", err=True)
        sys.exit(1)

    if not send:
        click.echo(json.dumps([formatting.format_digest(d) for d in digests], indent=2))
        return

    channel = channel or config.digest_channel
    if not channel:
        click.echo("No Slack channel configured: pass --channel or set TI_DIGEST_CHANNEL", err=True)
        sys.exit(1)
    try:
        run = slack_mod.send_daily_digests(digests, config.slack_bot_token, channel)
    except slack_mod.SlackError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    click.echo(f"Sent {len(run.sent)} digest(s) to {channel}")
    if run.failed:
        click.echo(f"Failed for: {', '.join(run.failed)}", err=True)


# ── Server Commands ───────────────────────────────────────────────────────────


@main.command("serve")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8787, type=int, help="Port to listen on")
def serve_command(host, port):
    """Serve the reports API."""
    from task_insights.web.app import run_server

    click.echo(f"Serving reports API at http://{host}:{port}")
    run_server(host=host, port=port)


@main.group("mcp")
def mcp_group():
    """MCP server commands."""
    pass


@mcp_group.command("serve")
def mcp_serve():
    """Start the MCP server (stdio transport)."""
    from task_insights.mcp.server import mcp
    from task_insights.mcp import prompts  # noqa: F401 - registers prompts

    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

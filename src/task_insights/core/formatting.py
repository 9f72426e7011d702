"""Convert report structures into order-stable, JSON-safe payloads."""

import json
from datetime import date, datetime

from task_insights.core.reports import (
    LoggedTimeReport,
    StatusCounts,
    TaskCompletionReport,
    TeamSummaryReport,
)


def _iso(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _record(mapping: dict, convert=lambda v: v) -> dict:
    """Plain string-keyed record, keys in natural (numeric-aware) order."""
    return {str(k): convert(mapping[k]) for k in sorted(mapping)}


def _counts(counts: StatusCounts) -> dict:
    return {
        "todo": counts.todo,
        "inProgress": counts.in_progress,
        "completed": counts.completed,
        "blocked": counts.blocked,
        "total": counts.total,
    }


def format_logged_time(report: LoggedTimeReport) -> dict:
    return {
        "kind": report.kind,
        "totalTime": report.total_time,
        "avgTime": report.avg_time,
        "completedTasks": report.completed_tasks,
        "overdueTasks": report.overdue_tasks,
        "blockedTasks": report.blocked_tasks,
        "incompleteTime": report.incomplete_time,
        "overdueTime": report.overdue_time,
        "totalDelayHours": report.total_delay_hours,
        "onTimeCompletionRate": report.on_time_completion_rate,
        "timeByTask": _record(report.time_by_task),
    }


def format_team_summary(report: TeamSummaryReport) -> dict:
    return {
        "kind": report.kind,
        "totalTasks": report.total_tasks,
        "totalUsers": report.total_users,
        "weeklyBreakdown": [
            {
                "week": row.week,
                "weekStart": _iso(row.week_start),
                "userId": row.user_id,
                "userName": row.user_name,
                **_counts(row.counts),
            }
            for row in report.weekly_breakdown
        ],
        "userTotals": _record(
            report.user_totals,
            lambda t: {"userName": t.user_name, **_counts(t.counts)},
        ),
        "weekTotals": _record(
            report.week_totals,
            lambda t: {"weekStart": _iso(t.week_start), **_counts(t.counts)},
        ),
    }


def format_task_completion(report: TaskCompletionReport) -> dict:
    return {
        "kind": report.kind,
        "totalTasks": report.total_tasks,
        "totalCompleted": report.total_completed,
        "totalInProgress": report.total_in_progress,
        "totalTodo": report.total_todo,
        "totalBlocked": report.total_blocked,
        "overallCompletionRate": report.overall_completion_rate,
        "completedByProject": _record(report.completed_by_project),
        "userStats": [
            {
                "userId": s.user_id,
                "userName": s.user_name,
                "totalTasks": s.total_tasks,
                "completedTasks": s.completed_tasks,
                "inProgressTasks": s.in_progress_tasks,
                "todoTasks": s.todo_tasks,
                "blockedTasks": s.blocked_tasks,
                "completionRate": s.completion_rate,
                "onTimeCompletions": s.on_time_completions,
                "lateCompletions": s.late_completions,
                "onTimeRate": s.on_time_rate,
                "avgCompletionTime": s.avg_completion_time,
                "totalLoggedTime": s.total_logged_time,
                "avgLoggedTimePerTask": s.avg_logged_time_per_task,
            }
            for s in report.user_stats
        ],
    }


_FORMATTERS = {
    LoggedTimeReport: format_logged_time,
    TeamSummaryReport: format_team_summary,
    TaskCompletionReport: format_task_completion,
}


def format_report(report) -> dict:
    """Transport payload for any of the three report types."""
    try:
        formatter = _FORMATTERS[type(report)]
    except KeyError:
        raise TypeError(f"Not a report: {type(report).__name__}") from None
    return formatter(report)


def format_options(items) -> list[dict]:
    """Department or project options as {id, name} records sorted by name."""
    return [
        {"id": item.id, "name": item.name}
        for item in sorted(items, key=lambda i: (i.name.lower(), i.id))
    ]


def format_digest(digest) -> dict:
    def summary(t) -> dict:
        return {
            "id": t.id,
            "title": t.title,
            "status": t.status,
            "priorityBucket": t.priority_bucket,
            "deadline": _iso(t.deadline),
            "daysUntilDue": t.days_until_due,
        }

    return {
        "userId": digest.user_id,
        "userName": digest.user_name,
        "overdueTasks": [summary(t) for t in digest.overdue],
        "dueTodayTasks": [summary(t) for t in digest.due_today],
        "upcomingTasks": [summary(t) for t in digest.upcoming],
        "completedTasks": [summary(t) for t in digest.completed],
        "inProgressTasks": [summary(t) for t in digest.in_progress],
    }


def dumps(payload) -> str:
    """Canonical JSON for a payload; equal payloads give identical bytes."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=_iso)

"""Report engines: aggregate a working set into the three report shapes."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta

from task_insights.core import deadlines
from task_insights.core.filters import WorkingSet
from task_insights.db.models import BLOCKED, COMPLETED, IN_PROGRESS, TODO, Task

LOGGED_TIME = "loggedTime"
TEAM_SUMMARY = "teamSummary"
TASK_COMPLETIONS = "taskCompletions"

UNASSIGNED_ID = "unassigned"
UNASSIGNED_NAME = "Unassigned"

_STATUS_FIELDS = {
    TODO: "todo",
    IN_PROGRESS: "in_progress",
    COMPLETED: "completed",
    BLOCKED: "blocked",
}


# ── Report shapes ─────────────────────────────────────────────────────────────


@dataclass
class StatusCounts:
    todo: int = 0
    in_progress: int = 0
    completed: int = 0
    blocked: int = 0

    @property
    def total(self) -> int:
        return self.todo + self.in_progress + self.completed + self.blocked

    def add(self, status: str, n: int = 1):
        attr = _STATUS_FIELDS[status]
        setattr(self, attr, getattr(self, attr) + n)

    def merge(self, other: "StatusCounts"):
        self.todo += other.todo
        self.in_progress += other.in_progress
        self.completed += other.completed
        self.blocked += other.blocked


@dataclass
class LoggedTimeReport:
    total_time: int = 0
    avg_time: float = 0.0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    blocked_tasks: int = 0
    incomplete_time: int = 0
    overdue_time: int = 0
    total_delay_hours: float = 0.0
    on_time_completion_rate: float = 0.0
    time_by_task: dict[int, int] = field(default_factory=dict)
    kind: str = LOGGED_TIME


@dataclass
class WeeklyRow:
    week: str
    week_start: date
    user_id: str
    user_name: str
    counts: StatusCounts = field(default_factory=StatusCounts)


@dataclass
class UserTotals:
    user_name: str
    counts: StatusCounts = field(default_factory=StatusCounts)


@dataclass
class WeekTotals:
    week_start: date
    counts: StatusCounts = field(default_factory=StatusCounts)


@dataclass
class TeamSummaryReport:
    total_tasks: int = 0
    total_users: int = 0
    weekly_breakdown: list[WeeklyRow] = field(default_factory=list)
    user_totals: dict[str, UserTotals] = field(default_factory=dict)
    week_totals: dict[str, WeekTotals] = field(default_factory=dict)
    kind: str = TEAM_SUMMARY


@dataclass
class UserCompletionStats:
    user_id: str
    user_name: str
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0
    todo_tasks: int = 0
    blocked_tasks: int = 0
    completion_rate: float = 0.0
    on_time_completions: int = 0
    late_completions: int = 0
    on_time_rate: float = 0.0
    avg_completion_time: float = 0.0
    total_logged_time: float = 0.0
    avg_logged_time_per_task: float = 0.0


@dataclass
class TaskCompletionReport:
    total_tasks: int = 0
    total_completed: int = 0
    total_in_progress: int = 0
    total_todo: int = 0
    total_blocked: int = 0
    overall_completion_rate: float = 0.0
    completed_by_project: dict[int, int] = field(default_factory=dict)
    user_stats: list[UserCompletionStats] = field(default_factory=list)
    kind: str = TASK_COMPLETIONS


# ── Shared helpers ────────────────────────────────────────────────────────────


def ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator clamped to [0, 1]; 0 for an empty denominator."""
    if denominator <= 0:
        return 0.0
    return min(1.0, max(0.0, numerator / denominator))


def completion_delay_hours(task: Task) -> float | None:
    """Hours a completed task finished past its deadline (<= 0 is on time).

    None when the task is not completed or either timestamp is missing.
    """
    if task.completed_at is None or task.deadline is None:
        return None
    return (task.completed_at - task.deadline).total_seconds() / 3600


def iso_week(day: date) -> tuple[str, date]:
    """ISO week label and the Monday that starts it."""
    year, week, weekday = day.isocalendar()
    return f"{year}-W{week:02d}", day - timedelta(days=weekday - 1)


def _assignees(task: Task) -> list[str]:
    return sorted(set(task.assignee_ids)) or [UNASSIGNED_ID]


def _user_name(ws: WorkingSet, user_id: str) -> str:
    if user_id == UNASSIGNED_ID:
        return UNASSIGNED_NAME
    return ws.user_name(user_id)


# ── Logged time ───────────────────────────────────────────────────────────────


def build_logged_time_report(ws: WorkingSet) -> LoggedTimeReport:
    report = LoggedTimeReport()
    on_time = 0

    for task in ws.tasks:
        if task.status == COMPLETED:
            report.completed_tasks += 1
            report.total_time += task.logged_time
            delay = completion_delay_hours(task)
            if delay is not None:
                if delay > 0:
                    report.total_delay_hours += delay
                else:
                    on_time += 1
            continue

        report.incomplete_time += task.logged_time
        if task.status == BLOCKED:
            report.blocked_tasks += 1
        if deadlines.classify(task.status, task.deadline, ws.now, ws.tz) == deadlines.OVERDUE:
            report.overdue_tasks += 1
            report.overdue_time += task.logged_time

    if report.completed_tasks:
        report.avg_time = report.total_time / report.completed_tasks
    report.on_time_completion_rate = ratio(on_time, report.completed_tasks)
    report.time_by_task = _rolled_up_time(ws.tasks)
    return report


def _rolled_up_time(tasks: list[Task]) -> dict[int, int]:
    """Logged time per task, with subtask time added to every ancestor in the set."""
    by_id = {t.id: t for t in tasks}
    totals: dict[int, int] = defaultdict(int)
    for task in tasks:
        if not task.logged_time:
            continue
        totals[task.id] += task.logged_time
        seen = {task.id}
        parent_id = task.parent_task_id
        while parent_id in by_id and parent_id not in seen:
            seen.add(parent_id)
            totals[parent_id] += task.logged_time
            parent_id = by_id[parent_id].parent_task_id
    return {task_id: totals[task_id] for task_id in sorted(totals)}


# ── Team summary ──────────────────────────────────────────────────────────────


def build_team_summary_report(ws: WorkingSet) -> TeamSummaryReport:
    report = TeamSummaryReport(total_tasks=len(ws.tasks))
    rows: dict[tuple[str, str], WeeklyRow] = {}
    real_users: set[str] = set()

    for task in ws.tasks:
        real_users.update(task.assignee_ids)
        due = deadlines.to_local_date(task.deadline, ws.tz)
        if due is None:
            continue
        week, week_start = iso_week(due)
        for user_id in _assignees(task):
            row = rows.get((week, user_id))
            if row is None:
                row = rows[(week, user_id)] = WeeklyRow(
                    week=week,
                    week_start=week_start,
                    user_id=user_id,
                    user_name=_user_name(ws, user_id),
                )
            row.counts.add(task.status)

    report.total_users = len(real_users)
    report.weekly_breakdown = sorted(
        rows.values(), key=lambda r: (r.week_start, r.user_name, r.user_id)
    )

    for row in report.weekly_breakdown:
        user_total = report.user_totals.setdefault(row.user_id, UserTotals(row.user_name))
        user_total.counts.merge(row.counts)
        week_total = report.week_totals.setdefault(row.week, WeekTotals(row.week_start))
        week_total.counts.merge(row.counts)
    return report


# ── Task completion ───────────────────────────────────────────────────────────


def build_task_completion_report(ws: WorkingSet) -> TaskCompletionReport:
    overall = StatusCounts()
    completed_by_project: dict[int, int] = defaultdict(int)
    per_user: dict[str, list[Task]] = defaultdict(list)

    for task in ws.tasks:
        overall.add(task.status)
        if task.status == COMPLETED:
            completed_by_project[task.project_id] += 1
        for user_id in _assignees(task):
            per_user[user_id].append(task)

    stats = [_user_stats(ws, user_id, tasks) for user_id, tasks in per_user.items()]
    stats.sort(key=lambda s: (-s.total_tasks, s.user_name, s.user_id))

    return TaskCompletionReport(
        total_tasks=overall.total,
        total_completed=overall.completed,
        total_in_progress=overall.in_progress,
        total_todo=overall.todo,
        total_blocked=overall.blocked,
        overall_completion_rate=ratio(overall.completed, overall.total),
        completed_by_project=dict(sorted(completed_by_project.items())),
        user_stats=stats,
    )


def _user_stats(ws: WorkingSet, user_id: str, tasks: list[Task]) -> UserCompletionStats:
    counts = StatusCounts()
    stats = UserCompletionStats(user_id=user_id, user_name=_user_name(ws, user_id))
    completion_hours = []
    logged_seconds = 0

    for task in tasks:
        counts.add(task.status)
        logged_seconds += task.logged_time
        if task.status != COMPLETED:
            continue
        delay = completion_delay_hours(task)
        if delay is not None:
            if delay > 0:
                stats.late_completions += 1
            else:
                stats.on_time_completions += 1
        if task.created_at is not None and task.completed_at is not None:
            hours = (task.completed_at - task.created_at).total_seconds() / 3600
            completion_hours.append(max(0.0, hours))

    stats.total_tasks = counts.total
    stats.completed_tasks = counts.completed
    stats.in_progress_tasks = counts.in_progress
    stats.todo_tasks = counts.todo
    stats.blocked_tasks = counts.blocked
    stats.completion_rate = ratio(counts.completed, counts.total)
    stats.on_time_rate = ratio(stats.on_time_completions, counts.completed)
    if completion_hours:
        stats.avg_completion_time = sum(completion_hours) / len(completion_hours)
    stats.total_logged_time = logged_seconds / 3600
    if counts.total:
        stats.avg_logged_time_per_task = stats.total_logged_time / counts.total
    return stats

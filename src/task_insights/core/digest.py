"""Per-user daily digest of overdue, due-today and upcoming work."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo

from task_insights.core import deadlines
from task_insights.db.models import IN_PROGRESS, Task, User

logger = logging.getLogger(__name__)


@dataclass
class TaskSummary:
    id: int
    title: str
    status: str
    priority_bucket: int
    deadline: datetime | None = None
    days_until_due: int | None = None


@dataclass
class UserDigest:
    user_id: str
    user_name: str
    overdue: list[TaskSummary] = field(default_factory=list)
    due_today: list[TaskSummary] = field(default_factory=list)
    upcoming: list[TaskSummary] = field(default_factory=list)
    completed: list[TaskSummary] = field(default_factory=list)
    in_progress: list[TaskSummary] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """In-progress work alone does not make a digest worth sending."""
        return not (self.overdue or self.due_today or self.upcoming or self.completed)


def build_user_digest(
    user: User,
    tasks: list[Task],
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> UserDigest:
    digest = UserDigest(user_id=user.id, user_name=user.full_name)
    buckets = {
        deadlines.OVERDUE: digest.overdue,
        deadlines.DUE_TODAY: digest.due_today,
        deadlines.UPCOMING: digest.upcoming,
        deadlines.COMPLETED: digest.completed,
    }

    for task in sorted(tasks, key=_deadline_order):
        summary = TaskSummary(
            id=task.id,
            title=task.title,
            status=task.status,
            priority_bucket=task.priority_bucket,
            deadline=task.deadline,
            days_until_due=deadlines.days_until_due(task.deadline, now, tz),
        )
        urgency = deadlines.classify(task.status, task.deadline, now, tz)
        if urgency == deadlines.NO_DEADLINE:
            continue
        if urgency == deadlines.COMPLETED and not _completed_today(task, now, tz):
            continue
        bucket = buckets.get(urgency)
        if bucket is not None:
            bucket.append(summary)
        elif task.status == IN_PROGRESS:
            digest.in_progress.append(summary)
    return digest


def build_daily_digests(source, now: datetime, tz: tzinfo = timezone.utc) -> list[UserDigest]:
    """Digests for every user with at least one reportable assigned task."""
    tasks_by_user: dict[str, list[Task]] = defaultdict(list)
    for task in source.get_non_archived_tasks():
        for user_id in set(task.assignee_ids):
            tasks_by_user[user_id].append(task)

    digests = []
    for user in sorted(source.get_users(), key=lambda u: (u.full_name, u.id)):
        digest = build_user_digest(user, tasks_by_user.get(user.id, []), now, tz)
        if not digest.is_empty:
            digests.append(digest)
    logger.info("Built %d daily digests", len(digests))
    return digests


def _completed_today(task: Task, now: datetime, tz: tzinfo) -> bool:
    done = deadlines.to_local_date(task.completed_at, tz)
    return done is not None and done == deadlines.to_local_date(now, tz)


def _deadline_order(task: Task):
    return (task.deadline is None, task.deadline or datetime.min.replace(tzinfo=timezone.utc), task.id)

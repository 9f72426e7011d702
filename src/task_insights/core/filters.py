"""Turn a user's scope plus report filters into a working set of tasks."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo

from task_insights.core.deadlines import to_local_date
from task_insights.core.scope import ScopePolicy, ScopeResolver
from task_insights.db.models import Task, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportFilters:
    project_ids: frozenset[int] | None = None
    department_ids: frozenset[int] | None = None
    start_date: date | None = None
    end_date: date | None = None

    @property
    def has_date_range(self) -> bool:
        return self.start_date is not None or self.end_date is not None

    @classmethod
    def parse(
        cls,
        project_ids=None,
        department_ids=None,
        start_date=None,
        end_date=None,
    ) -> "ReportFilters":
        """Build filters from primitive values, dropping anything malformed."""
        return cls(
            project_ids=parse_id_list(project_ids),
            department_ids=parse_id_list(department_ids),
            start_date=parse_date(start_date),
            end_date=parse_date(end_date),
        )


@dataclass
class WorkingSet:
    tasks: list[Task] = field(default_factory=list)
    users: dict[str, User] = field(default_factory=dict)
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tz: tzinfo = timezone.utc

    def user_name(self, user_id: str) -> str:
        user = self.users.get(user_id)
        return user.full_name if user else user_id


def parse_id_list(value) -> frozenset[int] | None:
    """Parse "1,2,3", [1, "2"] or 7 into a set of ints. Empty means absent."""
    if value is None:
        return None
    if isinstance(value, (int, str)):
        parts: Iterable = str(value).split(",")
    else:
        parts = value

    ids = set()
    for part in parts:
        if isinstance(part, bool):
            continue
        if isinstance(part, int):
            ids.add(part)
            continue
        try:
            ids.add(int(str(part).strip()))
        except ValueError:
            continue
    return frozenset(ids) or None


def parse_date(value) -> date | None:
    """Parse an ISO date or datetime. Anything unparsable is None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def get_working_set(
    source,
    user_id: str,
    filters: ReportFilters | None = None,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
    policy: ScopePolicy | None = None,
) -> WorkingSet:
    """Resolve scope, narrow by filters and fetch the matching tasks."""
    filters = filters or ReportFilters()
    now = now or datetime.now(timezone.utc)

    resolver = ScopeResolver(source, policy)
    scope = resolver.resolve(user_id)

    effective = set(scope.project_ids)
    if filters.project_ids is not None:
        effective &= filters.project_ids
    if filters.department_ids is not None:
        effective &= resolver.projects_for_departments(filters.department_ids)

    if not effective:
        logger.debug("Empty effective project set for %s", user_id)
        return WorkingSet(now=now, tz=tz)

    tasks = [
        t for t in source.get_non_archived_tasks(effective)
        if not t.is_archived and t.project_id in effective
    ]
    if filters.has_date_range:
        tasks = [t for t in tasks if _deadline_in_range(t, filters, tz)]

    user_ids = {a for t in tasks for a in t.assignee_ids}
    user_ids |= {t.creator_id for t in tasks if t.creator_id}
    users = {u.id: u for u in source.get_users(user_ids)} if user_ids else {}

    logger.debug("Working set for %s: %d tasks", user_id, len(tasks))
    return WorkingSet(tasks=tasks, users=users, now=now, tz=tz)


def _deadline_in_range(task: Task, filters: ReportFilters, tz: tzinfo) -> bool:
    due = to_local_date(task.deadline, tz)
    if due is None:
        return False
    if filters.start_date is not None and due < filters.start_date:
        return False
    if filters.end_date is not None and due > filters.end_date:
        return False
    return True

"""Report service: the operations callers use to get reports and scope options.

Each call opens the data source, builds a fresh working set, aggregates and
formats it. Nothing is shared between calls, so one service instance can
serve concurrent requests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone, tzinfo
from functools import partial

from task_insights.core import formatting
from task_insights.core import reports as reports_mod
from task_insights.core.digest import build_daily_digests
from task_insights.core.filters import ReportFilters, get_working_set, parse_id_list
from task_insights.core.scope import ScopePolicy, ScopeResolver
from task_insights.db.source import open_sqlite_source

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(
        self,
        open_source: Callable,
        policy: ScopePolicy | None = None,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] | None = None,
    ):
        self.open_source = open_source
        self.policy = policy or ScopePolicy()
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_config(cls, config) -> "ReportService":
        return cls(
            partial(open_sqlite_source, config.db_path),
            policy=config.scope_policy,
            tz=config.report_tz,
        )

    # ── Reports ──────────────────────────────────────────────────────────────

    def compute_logged_time_report(self, user_id: str, filters: ReportFilters | None = None) -> dict:
        return self._compute(reports_mod.build_logged_time_report, user_id, filters)

    def compute_team_summary_report(self, user_id: str, filters: ReportFilters | None = None) -> dict:
        return self._compute(reports_mod.build_team_summary_report, user_id, filters)

    def compute_task_completion_report(self, user_id: str, filters: ReportFilters | None = None) -> dict:
        return self._compute(reports_mod.build_task_completion_report, user_id, filters)

    def _compute(self, build, user_id: str, filters: ReportFilters | None) -> dict:
        now = self.clock()
        with self.open_source() as source:
            ws = get_working_set(source, user_id, filters, now=now, tz=self.tz, policy=self.policy)
        report = build(ws)
        logger.debug("Computed %s report for %s over %d tasks", report.kind, user_id, len(ws.tasks))
        return formatting.format_report(report)

    # ── Scope options ────────────────────────────────────────────────────────

    def resolve_visible_departments(self, user_id: str, project_ids=None) -> list[dict]:
        """Departments the user can filter by, optionally limited to projects."""
        project_ids = parse_id_list(project_ids)
        with self.open_source() as source:
            resolver = ScopeResolver(source, self.policy)
            visible = resolver.resolve_visible_departments(
                user_id, set(project_ids) if project_ids is not None else None
            )
            departments = [d for d in source.get_department_tree() if d.id in visible]
        return formatting.format_options(departments)

    def resolve_visible_projects(self, user_id: str, department_ids=None) -> list[dict]:
        """Projects the user can filter by, optionally limited to departments."""
        department_ids = parse_id_list(department_ids)
        with self.open_source() as source:
            resolver = ScopeResolver(source, self.policy)
            visible = resolver.resolve_visible_projects(
                user_id,
                department_ids=set(department_ids) if department_ids is not None else None,
            )
            projects = [p for p in source.get_projects() if p.id in visible]
        return formatting.format_options(projects)

    # ── Digest ───────────────────────────────────────────────────────────────

    def build_daily_digests(self) -> list:
        now = self.clock()
        with self.open_source() as source:
            return build_daily_digests(source, now, self.tz)

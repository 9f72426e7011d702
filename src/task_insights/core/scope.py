"""Access scope resolution: which departments and projects a user may see."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopePolicy:
    """Visibility rules beyond the user's own department hierarchy."""

    include_shared_task_departments: bool = True


@dataclass(frozen=True)
class Scope:
    user_id: str
    department_ids: frozenset[int]
    project_ids: frozenset[int]


class ScopeResolver:
    """Resolve a user's visible departments and projects from a DataSource.

    Lookups are rebuilt from the source on every call; nothing is cached
    between calls.
    """

    def __init__(self, source, policy: ScopePolicy | None = None):
        self.source = source
        self.policy = policy or ScopePolicy()

    def resolve(self, user_id: str) -> Scope:
        departments = self.resolve_visible_departments(user_id)
        projects = self.projects_for_departments(departments)
        logger.debug(
            "Scope for %s: %d departments, %d projects", user_id, len(departments), len(projects)
        )
        return Scope(user_id, frozenset(departments), frozenset(projects))

    def resolve_visible_departments(
        self,
        user_id: str,
        project_ids: set[int] | None = None,
    ) -> set[int]:
        """Own department hierarchy plus departments of shared-task co-assignees.

        When ``project_ids`` is given, only departments linked to those
        projects are kept.
        """
        own = self.source.get_user_department(user_id)
        if own is None:
            return set()

        hierarchy = self.department_hierarchy(own)
        visible = set(hierarchy)
        if self.policy.include_shared_task_departments:
            visible |= self._shared_task_departments(hierarchy)

        if project_ids is not None:
            linked = {
                link.department_id
                for link in self.source.get_project_department_links()
                if link.project_id in project_ids
            }
            visible &= linked
        return visible

    def resolve_visible_projects(
        self,
        user_id: str,
        project_ids: set[int] | None = None,
        department_ids: set[int] | None = None,
    ) -> set[int]:
        """Non-archived projects linked to at least one visible department.

        ``project_ids`` intersects the result; ``department_ids`` keeps only
        projects linked to one of those departments.
        """
        projects = self.projects_for_departments(self.resolve_visible_departments(user_id))
        if project_ids is not None:
            projects &= project_ids
        if department_ids is not None:
            projects &= self.projects_for_departments(department_ids)
        return projects

    def department_hierarchy(self, root_id: int) -> set[int]:
        """The department and all its descendants."""
        children: dict[int, list[int]] = defaultdict(list)
        for dept in self.source.get_department_tree():
            if dept.parent_id is not None:
                children[dept.parent_id].append(dept.id)

        visited: set[int] = set()
        stack = [root_id]
        while stack:
            dept_id = stack.pop()
            if dept_id in visited:
                continue
            visited.add(dept_id)
            stack.extend(children.get(dept_id, ()))
        return visited

    def _shared_task_departments(self, hierarchy: set[int]) -> set[int]:
        dept_of = {u.id: u.department_id for u in self.source.get_users()}

        assignees_by_task: dict[int, set[str]] = defaultdict(set)
        for a in self.source.get_task_assignments_for_scope_computation():
            assignees_by_task[a.task_id].add(a.assignee_id)

        shared: set[int] = set()
        for assignees in assignees_by_task.values():
            if len(assignees) < 2:
                continue
            depts = {dept_of.get(a) for a in assignees} - {None}
            if depts & hierarchy:
                shared |= depts
        return shared

    def projects_for_departments(self, department_ids) -> set[int]:
        if not department_ids:
            return set()
        archived = {p.id for p in self.source.get_projects() if p.is_archived}
        return {
            link.project_id
            for link in self.source.get_project_department_links()
            if link.department_id in department_ids and link.project_id not in archived
        }

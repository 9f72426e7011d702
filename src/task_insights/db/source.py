"""Read-only data access used by the reporting core.

The core only ever talks to a ``DataSource``. ``SqliteDataSource`` is the
implementation backed by the local store; tests and other storage engines can
supply their own object with the same methods.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from task_insights.db.models import (
    STATUSES,
    TODO,
    Assignment,
    Department,
    Project,
    ProjectDepartmentLink,
    Task,
    User,
)

logger = logging.getLogger(__name__)


class DataAccessError(Exception):
    """Raised when the underlying store cannot be read."""


class DataSource(Protocol):
    def get_department_tree(self) -> list[Department]: ...

    def get_task_assignments_for_scope_computation(self) -> list[Assignment]: ...

    def get_user_department(self, user_id: str) -> int | None: ...

    def get_users(self, user_ids: Iterable[str] | None = None) -> list[User]: ...

    def get_projects(self) -> list[Project]: ...

    def get_project_department_links(self) -> list[ProjectDepartmentLink]: ...

    def get_non_archived_tasks(self, project_ids: Iterable[int] | None = None) -> list[Task]: ...


class SqliteDataSource:
    """DataSource over a sqlite connection. Never writes."""

    def __init__(self, db: sqlite3.Connection):
        self.db = db

    def get_department_tree(self) -> list[Department]:
        rows = self._fetch("SELECT id, name, parent_id FROM departments ORDER BY id")
        return [Department(id=r["id"], name=r["name"], parent_id=r["parent_id"]) for r in rows]

    def get_task_assignments_for_scope_computation(self) -> list[Assignment]:
        rows = self._fetch(
            """SELECT ta.task_id, ta.assignee_id FROM task_assignments ta
               JOIN tasks t ON t.id = ta.task_id
               WHERE t.is_archived = 0"""
        )
        return [Assignment(task_id=r["task_id"], assignee_id=r["assignee_id"]) for r in rows]

    def get_user_department(self, user_id: str) -> int | None:
        rows = self._fetch("SELECT department_id FROM users WHERE id = ?", (user_id,))
        return rows[0]["department_id"] if rows else None

    def get_users(self, user_ids: Iterable[str] | None = None) -> list[User]:
        query = "SELECT * FROM users"
        params: list = []
        if user_ids is not None:
            ids = sorted(set(user_ids))
            if not ids:
                return []
            query += f" WHERE id IN ({', '.join('?' for _ in ids)})"
            params.extend(ids)
        query += " ORDER BY id"
        return [_row_to_user(r) for r in self._fetch(query, params)]

    def get_projects(self) -> list[Project]:
        rows = self._fetch("SELECT id, name, is_archived FROM projects ORDER BY id")
        return [
            Project(id=r["id"], name=r["name"], is_archived=bool(r["is_archived"]))
            for r in rows
        ]

    def get_project_department_links(self) -> list[ProjectDepartmentLink]:
        rows = self._fetch(
            "SELECT project_id, department_id FROM project_departments "
            "ORDER BY project_id, department_id"
        )
        return [
            ProjectDepartmentLink(project_id=r["project_id"], department_id=r["department_id"])
            for r in rows
        ]

    def get_non_archived_tasks(self, project_ids: Iterable[int] | None = None) -> list[Task]:
        """Non-archived tasks with their assignee ids attached."""
        query = "SELECT * FROM tasks WHERE is_archived = 0"
        params: list = []
        if project_ids is not None:
            ids = sorted(set(project_ids))
            if not ids:
                return []
            query += f" AND project_id IN ({', '.join('?' for _ in ids)})"
            params.extend(ids)
        query += " ORDER BY id"
        tasks = [row_to_task(r) for r in self._fetch(query, params)]
        if not tasks:
            return tasks

        by_id = {t.id: t for t in tasks}
        placeholders = ", ".join("?" for _ in by_id)
        rows = self._fetch(
            f"SELECT task_id, assignee_id FROM task_assignments "
            f"WHERE task_id IN ({placeholders}) ORDER BY task_id, assignee_id",
            list(by_id),
        )
        for r in rows:
            by_id[r["task_id"]].assignee_ids.append(r["assignee_id"])
        return tasks

    def _fetch(self, query: str, params: Iterable = ()) -> list[sqlite3.Row]:
        try:
            return self.db.execute(query, list(params)).fetchall()
        except sqlite3.Error as e:
            raise DataAccessError(str(e)) from e


@contextmanager
def open_sqlite_source(db_path: Path) -> Iterator[SqliteDataSource]:
    """Open a read-only source over the store; the connection is always closed.

    The store is never created or migrated here. A missing file is a
    ``DataAccessError`` like any other unreadable store.
    """
    db_path = Path(db_path)
    if not db_path.is_file():
        raise DataAccessError(f"Store not found: {db_path}")
    try:
        conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise DataAccessError(str(e)) from e
    conn.row_factory = sqlite3.Row
    try:
        yield SqliteDataSource(conn)
    finally:
        conn.close()


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        first_name=row["first_name"] or "",
        last_name=row["last_name"] or "",
        department_id=row["department_id"],
    )


def row_to_task(row: sqlite3.Row) -> Task:
    status = row["status"]
    if status not in STATUSES:
        logger.warning("Task %s has unknown status %r; treating as %r", row["id"], status, TODO)
        status = TODO
    return Task(
        id=row["id"],
        title=row["title"],
        project_id=row["project_id"],
        status=status,
        priority_bucket=row["priority_bucket"],
        deadline=parse_dt(row["deadline"]),
        logged_time=max(0, row["logged_time"] or 0),
        creator_id=row["creator_id"],
        parent_task_id=row["parent_task_id"],
        recurrence_interval=row["recurrence_interval"] or 0,
        is_archived=bool(row["is_archived"]),
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
    )


def parse_dt(val) -> datetime | None:
    """Parse a stored timestamp. Naive values are UTC; garbage is None."""
    if val is None:
        return None
    if isinstance(val, datetime):
        dt = val
    else:
        try:
            dt = datetime.fromisoformat(str(val).strip())
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

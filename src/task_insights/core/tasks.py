"""Task management operations.

These are the write paths that feed the reporting core: creating tasks,
assigning them, moving them through statuses and logging time.
"""

import sqlite3
from datetime import datetime, timezone

from task_insights.db.models import COMPLETED, MAX_ASSIGNEES, STATUSES, TODO, Task
from task_insights.db.source import parse_dt, row_to_task


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _stamp(value: datetime | str | None) -> str | None:
    if value is None:
        return None
    dt = parse_dt(value)
    if dt is None:
        raise ValueError(f"Invalid timestamp: {value!r}")
    return dt.isoformat()


def create_task(
    db: sqlite3.Connection,
    title: str,
    project_id: int,
    creator_id: str | None = None,
    status: str = TODO,
    priority_bucket: int = 5,
    deadline: datetime | str | None = None,
    logged_time: int = 0,
    parent_task_id: int | None = None,
    description: str = "",
    recurrence_interval: int = 0,
    created_at: datetime | str | None = None,
    updated_at: datetime | str | None = None,
) -> Task:
    """Create a new task."""
    if status not in STATUSES:
        raise ValueError(f"Invalid status: {status}")
    if not 1 <= priority_bucket <= 10:
        raise ValueError(f"Priority bucket must be between 1 and 10, got {priority_bucket}")
    if logged_time < 0:
        raise ValueError("Logged time cannot be negative")

    created = _stamp(created_at) or _now()
    cur = db.execute(
        """INSERT INTO tasks (title, description, status, priority_bucket, deadline,
                              logged_time, project_id, creator_id, parent_task_id,
                              recurrence_interval, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            title, description, status, priority_bucket, _stamp(deadline),
            logged_time, project_id, creator_id, parent_task_id,
            recurrence_interval, created, _stamp(updated_at) or created,
        ),
    )
    db.commit()
    return get_task(db, cur.lastrowid)


def get_task(db: sqlite3.Connection, task_id: int) -> Task | None:
    """Get a task by ID with its assignees."""
    row = db.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    if not row:
        return None
    task = row_to_task(row)
    assignees = db.execute(
        "SELECT assignee_id FROM task_assignments WHERE task_id = ? ORDER BY assignee_id",
        (task_id,),
    ).fetchall()
    task.assignee_ids = [a["assignee_id"] for a in assignees]
    return task


def list_tasks(
    db: sqlite3.Connection,
    project_id: int | None = None,
    status: str | None = None,
    include_archived: bool = False,
) -> list[Task]:
    """List tasks with optional filters."""
    query = "SELECT id FROM tasks WHERE 1=1"
    params: list = []

    if project_id is not None:
        query += " AND project_id = ?"
        params.append(project_id)
    if status:
        query += " AND status = ?"
        params.append(status)
    if not include_archived:
        query += " AND is_archived = 0"

    query += " ORDER BY priority_bucket DESC, id ASC"
    rows = db.execute(query, params).fetchall()
    return [get_task(db, r["id"]) for r in rows]


def assign_task(
    db: sqlite3.Connection,
    task_id: int,
    assignee_id: str,
    assignor_id: str | None = None,
) -> Task:
    """Assign a user to a task.

    The first assignment of a project's task to someone in a department links
    that project to the department.
    """
    task = get_task(db, task_id)
    if not task:
        raise ValueError(f"Task not found: {task_id}")
    if assignee_id in task.assignee_ids:
        return task  # Already assigned
    if len(task.assignee_ids) >= MAX_ASSIGNEES:
        raise ValueError(f"Task {task_id} already has {MAX_ASSIGNEES} assignees")

    user = db.execute("SELECT department_id FROM users WHERE id = ?", (assignee_id,)).fetchone()
    if not user:
        raise ValueError(f"User not found: {assignee_id}")

    db.execute(
        "INSERT INTO task_assignments (task_id, assignee_id, assignor_id) VALUES (?, ?, ?)",
        (task_id, assignee_id, assignor_id),
    )
    if user["department_id"] is not None:
        db.execute(
            "INSERT OR IGNORE INTO project_departments (project_id, department_id) VALUES (?, ?)",
            (task.project_id, user["department_id"]),
        )
    db.commit()
    return get_task(db, task_id)


def unassign_task(db: sqlite3.Connection, task_id: int, assignee_id: str) -> Task | None:
    db.execute(
        "DELETE FROM task_assignments WHERE task_id = ? AND assignee_id = ?",
        (task_id, assignee_id),
    )
    db.commit()
    return get_task(db, task_id)


def update_task_status(
    db: sqlite3.Connection,
    task_id: int,
    status: str,
    at: datetime | str | None = None,
) -> Task | None:
    """Update a task's status. Returns the updated task.

    ``updated_at`` doubles as the completion time for Completed tasks.
    """
    if status not in STATUSES:
        raise ValueError(f"Invalid status: {status}")
    task = get_task(db, task_id)
    if not task:
        return None
    db.execute(
        "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ?",
        (status, _stamp(at) or _now(), task_id),
    )
    db.commit()
    return get_task(db, task_id)


def log_time(db: sqlite3.Connection, task_id: int, seconds: int) -> Task | None:
    """Add logged seconds to a task."""
    if seconds < 0:
        raise ValueError("Logged time cannot be negative")
    task = get_task(db, task_id)
    if not task:
        return None
    if task.status == COMPLETED:
        # Keep the completion stamp intact.
        db.execute(
            "UPDATE tasks SET logged_time = logged_time + ? WHERE id = ?",
            (seconds, task_id),
        )
    else:
        db.execute(
            "UPDATE tasks SET logged_time = logged_time + ?, updated_at = ? WHERE id = ?",
            (seconds, _now(), task_id),
        )
    db.commit()
    return get_task(db, task_id)


def archive_task(db: sqlite3.Connection, task_id: int) -> int:
    """Archive a task and all of its subtasks. Returns how many were archived."""
    if not get_task(db, task_id):
        return 0
    archived = 0
    pending = [task_id]
    seen = set()
    while pending:
        current = pending.pop()
        if current in seen:
            continue
        seen.add(current)
        result = db.execute(
            "UPDATE tasks SET is_archived = 1 WHERE id = ? AND is_archived = 0", (current,)
        )
        archived += result.rowcount
        children = db.execute(
            "SELECT id FROM tasks WHERE parent_task_id = ?", (current,)
        ).fetchall()
        pending.extend(c["id"] for c in children)
    db.commit()
    return archived

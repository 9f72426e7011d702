"""Department, user and project management operations."""

import sqlite3

from task_insights.db.models import Department, Project, User


def create_department(
    db: sqlite3.Connection,
    name: str,
    parent_id: int | None = None,
) -> Department:
    """Create a department, optionally under a parent."""
    if parent_id is not None and not get_department(db, parent_id):
        raise ValueError(f"Parent department not found: {parent_id}")
    cur = db.execute(
        "INSERT INTO departments (name, parent_id) VALUES (?, ?)",
        (name, parent_id),
    )
    db.commit()
    return get_department(db, cur.lastrowid)


def get_department(db: sqlite3.Connection, department_id: int) -> Department | None:
    row = db.execute("SELECT * FROM departments WHERE id = ?", (department_id,)).fetchone()
    if not row:
        return None
    return Department(id=row["id"], name=row["name"], parent_id=row["parent_id"])


def list_departments(db: sqlite3.Connection) -> list[Department]:
    rows = db.execute("SELECT * FROM departments ORDER BY name").fetchall()
    return [Department(id=r["id"], name=r["name"], parent_id=r["parent_id"]) for r in rows]


def create_user(
    db: sqlite3.Connection,
    user_id: str,
    first_name: str,
    last_name: str = "",
    department_id: int | None = None,
) -> User:
    """Create a user, optionally placed in a department."""
    db.execute(
        "INSERT INTO users (id, first_name, last_name, department_id) VALUES (?, ?, ?, ?)",
        (user_id, first_name, last_name, department_id),
    )
    db.commit()
    return get_user(db, user_id)


def get_user(db: sqlite3.Connection, user_id: str) -> User | None:
    row = db.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    if not row:
        return None
    return User(
        id=row["id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        department_id=row["department_id"],
    )


def create_project(db: sqlite3.Connection, name: str) -> Project:
    cur = db.execute("INSERT INTO projects (name) VALUES (?)", (name,))
    db.commit()
    return get_project(db, cur.lastrowid)


def get_project(db: sqlite3.Connection, project_id: int) -> Project | None:
    row = db.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
    if not row:
        return None
    return Project(id=row["id"], name=row["name"], is_archived=bool(row["is_archived"]))


def list_projects(db: sqlite3.Connection) -> list[Project]:
    rows = db.execute("SELECT * FROM projects ORDER BY name").fetchall()
    return [Project(id=r["id"], name=r["name"], is_archived=bool(r["is_archived"])) for r in rows]


def archive_project(db: sqlite3.Connection, project_id: int) -> Project | None:
    db.execute(
        "UPDATE projects SET is_archived = 1, updated_at = datetime('now') WHERE id = ?",
        (project_id,),
    )
    db.commit()
    return get_project(db, project_id)


def link_project_department(db: sqlite3.Connection, project_id: int, department_id: int) -> bool:
    """Link a project to a department. Returns False if already linked."""
    result = db.execute(
        "INSERT OR IGNORE INTO project_departments (project_id, department_id) VALUES (?, ?)",
        (project_id, department_id),
    )
    db.commit()
    return result.rowcount > 0

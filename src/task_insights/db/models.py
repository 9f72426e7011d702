"""Data models for task insights."""

from dataclasses import dataclass, field
from datetime import datetime

TODO = "To Do"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"
BLOCKED = "Blocked"

STATUSES = (TODO, IN_PROGRESS, COMPLETED, BLOCKED)

MAX_ASSIGNEES = 5


@dataclass
class Department:
    id: int
    name: str
    parent_id: int | None = None


@dataclass
class User:
    id: str
    first_name: str = ""
    last_name: str = ""
    department_id: int | None = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.id


@dataclass
class Project:
    id: int
    name: str
    is_archived: bool = False


@dataclass
class ProjectDepartmentLink:
    project_id: int
    department_id: int


@dataclass
class Assignment:
    task_id: int
    assignee_id: str
    assignor_id: str | None = None


@dataclass
class Task:
    id: int
    title: str
    project_id: int
    status: str = TODO
    priority_bucket: int = 5
    deadline: datetime | None = None
    logged_time: int = 0
    creator_id: str | None = None
    parent_task_id: int | None = None
    recurrence_interval: int = 0
    is_archived: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    assignee_ids: list[str] = field(default_factory=list)

    @property
    def completed_at(self) -> datetime | None:
        """When the task was completed; the store stamps updated_at on completion."""
        if self.status != COMPLETED:
            return None
        return self.updated_at

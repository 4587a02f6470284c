from datetime import datetime
from enum import Enum

from sqlmodel import SQLModel


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class User(SQLModel, table=False):
    id: int
    name: str
    email: str
    role: str = Role.USER.value
    is_active: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProjectUser(SQLModel, table=False):
    """User summary attached to a project (the assignment relation)."""

    id: int
    name: str
    email: str


class Project(SQLModel, table=False):
    id: int
    name: str
    description: str = ""
    is_active: int = 1
    users: list[ProjectUser] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Task(SQLModel, table=False):
    id: int
    name: str
    description: str = ""
    parent_id: int | None = None
    project_id: int | None = None
    assignee_id: int | None = None
    due_date: str | None = None
    status: TaskStatus = TaskStatus.TODO
    created_at: datetime | None = None
    updated_at: datetime | None = None

"""Request payloads and the tagged result every sync operation returns.

Uses SQLModel (table=False) for consistency with models.py.
"""

from typing import Any, Literal

from sqlmodel import SQLModel

from models import Role, TaskStatus


class SyncResult(SQLModel, table=False):
    """Outcome of one sync operation: a success payload or a failure message."""

    status: Literal["ok", "error"]
    operation: str  # e.g. "users/fetch_page"
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class UserCreate(SQLModel):
    name: str
    email: str
    password: str
    role: str = Role.USER.value


class UserUpdate(SQLModel):
    """Body for PUT /admin/user/{id}. ``id`` routes the request and is not sent."""

    id: int
    name: str
    email: str
    role: str
    is_active: int = 1


class ProjectCreate(SQLModel):
    name: str
    description: str = ""
    is_active: int = 1


class ProjectUpdate(SQLModel):
    id: int
    name: str
    description: str = ""
    is_active: int = 1


class TaskCreate(SQLModel):
    name: str
    description: str = ""
    due_date: str | None = None
    status: TaskStatus = TaskStatus.TODO


class TaskUpdate(SQLModel):
    id: int
    name: str
    description: str = ""
    due_date: str | None = None
    status: TaskStatus = TaskStatus.TODO


def request_body(payload: SQLModel) -> dict[str, Any]:
    """JSON body for a create/update payload, without the routing id."""
    return payload.model_dump(mode="json", exclude={"id"})

"""Remote API paths, relative to the configured base URL."""

from models import Role

USERS = "/admin/user"
ADMIN_PROJECTS = "/admin/project"
MEMBER_PROJECTS = "/project"


def resolve_list_endpoint(role: str | None) -> str:
    """Project list path for *role*: admins see every project, everyone else only their own."""
    if role == Role.ADMIN.value:
        return ADMIN_PROJECTS
    return MEMBER_PROJECTS


def user_path(user_id: int) -> str:
    return f"{USERS}/{user_id}"


def project_path(project_id: int) -> str:
    return f"{ADMIN_PROJECTS}/{project_id}"


def project_assign_path(project_id: int) -> str:
    return f"{ADMIN_PROJECTS}/{project_id}/assign"


def tasks_path(project_id: int) -> str:
    return f"{MEMBER_PROJECTS}/{project_id}/task"


def task_path(project_id: int, task_id: int) -> str:
    return f"{tasks_path(project_id)}/{task_id}"


def task_assign_path(project_id: int, task_id: int) -> str:
    return f"{task_path(project_id, task_id)}/assign"

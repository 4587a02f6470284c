"""Sync operations: one async procedure per resource type and verb.

Each operation issues exactly one request (fetch_all issues one per page),
applies the outcome to its ResourceStore and returns a SyncResult. ApiError
stops here: callers and stores only ever see tagged results.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Iterable, TypeVar

from sqlmodel import SQLModel

import endpoints
from aggregation import fetch_all_pages
from api_client import ApiClient, ApiError, unwrap_item, unwrap_list
from credentials import SessionCredentials
from models import Project, Task, User
from schemas import (
    ProjectCreate,
    ProjectUpdate,
    SyncResult,
    TaskCreate,
    TaskUpdate,
    UserCreate,
    UserUpdate,
    request_body,
)
from store import ALL, DETAIL, PAGE, ResourceStore

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=SQLModel)


def _ok(operation: str, data: Any = None) -> SyncResult:
    return SyncResult(status="ok", operation=operation, data=data)


def _err(operation: str, message: str) -> SyncResult:
    return SyncResult(status="error", operation=operation, error=message)


class ResourceSync(Generic[R]):
    """Shared plumbing: credential lookup, request, and create/update/delete."""

    resource = "resources"
    model: type[R]

    def __init__(
        self,
        client: ApiClient,
        credentials: SessionCredentials,
        store: ResourceStore[R] | None = None,
    ) -> None:
        self.client = client
        self.credentials = credentials
        self.store: ResourceStore[R] = store if store is not None else ResourceStore(self.resource)

    def _op(self, verb: str) -> str:
        return f"{self.resource}/{verb}"

    async def _call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        return await self.client.request(
            method, path, token=self.credentials.bearer_token(), params=params, json=json
        )

    def _failed(self, op: str, e: ApiError) -> SyncResult:
        logger.warning("%s failed: %s", op, e.message)
        self.store.mutation_failed(e.message)
        return _err(op, e.message)

    async def _create(self, path: str, payload: SQLModel) -> SyncResult:
        op = self._op("create")
        self.store.begin_mutation()
        try:
            body = await self._call("POST", path, json=request_body(payload))
            item = unwrap_item(body, self.model)
        except ApiError as e:
            return self._failed(op, e)
        self.store.created(item)
        logger.info("%s: id=%s", op, item.id)
        return _ok(op, item)

    async def _update(self, path: str, payload: SQLModel) -> SyncResult:
        op = self._op("update")
        self.store.begin_mutation()
        try:
            body = await self._call("PUT", path, json=request_body(payload))
            item = unwrap_item(body, self.model)
        except ApiError as e:
            return self._failed(op, e)
        self.store.updated(item)
        logger.info("%s: id=%s", op, item.id)
        return _ok(op, item)

    async def _delete(self, path: str, item_id: int) -> SyncResult:
        op = self._op("delete")
        self.store.begin_mutation()
        try:
            await self._call("DELETE", path)
        except ApiError as e:
            return self._failed(op, e)
        self.store.deleted(item_id)
        logger.info("%s: id=%s", op, item_id)
        return _ok(op, item_id)


class PaginatedSync(ResourceSync[R]):
    """Resources listed page by page, with a fetch-all aggregate."""

    def list_path(self) -> str:
        raise NotImplementedError

    async def _get_page(self, path: str, page: int) -> tuple[list[R], int]:
        body = await self._call("GET", path, params={"page": str(page)})
        return unwrap_list(body, self.model)

    async def fetch_page(self, page: int = 1) -> SyncResult:
        """Replace the store's current page with page *page* of the collection."""
        op = self._op("fetch_page")
        path = self.list_path()
        seq = self.store.begin_fetch(PAGE)
        try:
            items, last_page = await self._get_page(path, page)
        except ApiError as e:
            logger.warning("%s page=%s failed: %s", op, page, e.message)
            self.store.fetch_failed(seq, e.message)
            return _err(op, e.message)
        self.store.page_loaded(seq, items, last_page, page)
        return _ok(op, items)

    async def fetch_all(self, force: bool = False) -> SyncResult:
        """Load every page into the store's aggregate collection.

        A non-empty aggregate is reused unless a fetch is in flight or *force*
        is set; it is never refreshed on its own.
        """
        op = self._op("fetch_all")
        snapshot = self.store.observe()
        if not force and snapshot.all_items and not snapshot.loading:
            logger.debug("%s: reusing %s cached items", op, len(snapshot.all_items))
            return _ok(op, list(snapshot.all_items))

        path = self.list_path()
        seq = self.store.begin_fetch(ALL)
        try:
            items = await fetch_all_pages(lambda page: self._get_page(path, page))
        except ApiError as e:
            logger.warning("%s failed: %s", op, e.message)
            self.store.fetch_failed(seq, e.message)
            return _err(op, e.message)
        self.store.all_loaded(seq, items)
        return _ok(op, items)

    def set_page(self, page: int) -> None:
        self.store.set_page(page)


class UserSync(PaginatedSync[User]):
    resource = "users"
    model = User

    def list_path(self) -> str:
        return endpoints.USERS

    async def create(self, payload: UserCreate) -> SyncResult:
        return await self._create(endpoints.USERS, payload)

    async def update(self, payload: UserUpdate) -> SyncResult:
        return await self._update(endpoints.user_path(payload.id), payload)

    async def delete(self, user_id: int) -> SyncResult:
        return await self._delete(endpoints.user_path(user_id), user_id)


class ProjectSync(PaginatedSync[Project]):
    resource = "projects"
    model = Project

    def list_path(self) -> str:
        # Evaluated per call: the session role may change between calls.
        return endpoints.resolve_list_endpoint(self.credentials.role())

    async def create(self, payload: ProjectCreate) -> SyncResult:
        return await self._create(endpoints.ADMIN_PROJECTS, payload)

    async def update(self, payload: ProjectUpdate) -> SyncResult:
        return await self._update(endpoints.project_path(payload.id), payload)

    async def delete(self, project_id: int) -> SyncResult:
        return await self._delete(endpoints.project_path(project_id), project_id)

    async def assign_users(self, project_id: int, user_ids: Iterable[int]) -> SyncResult:
        """Replace the project's members with *user_ids* in one call."""
        op = self._op("assign_users")
        ids = list(user_ids)
        self.store.begin_mutation()
        try:
            body = await self._call(
                "POST", endpoints.project_assign_path(project_id), json={"user_ids": ids}
            )
            project = unwrap_item(body, Project, required=False)
        except ApiError as e:
            return self._failed(op, e)
        if project is not None:
            self.store.updated(project)
        logger.info("%s: project=%s users=%s", op, project_id, ids)
        return _ok(op, ids)


class TaskSync(ResourceSync[Task]):
    """Tasks of one project at a time; the list is not paginated."""

    resource = "tasks"
    model = Task

    async def fetch(self, project_id: int) -> SyncResult:
        op = self._op("fetch")
        seq = self.store.begin_fetch(PAGE)
        try:
            body = await self._call("GET", endpoints.tasks_path(project_id))
            items, last_page = unwrap_list(body, Task)
        except ApiError as e:
            logger.warning("%s project=%s failed: %s", op, project_id, e.message)
            self.store.fetch_failed(seq, e.message)
            return _err(op, e.message)
        self.store.page_loaded(seq, items, last_page, 1)
        return _ok(op, items)

    async def fetch_details(self, project_id: int, task_id: int) -> SyncResult:
        op = self._op("fetch_details")
        seq = self.store.begin_fetch(DETAIL)
        try:
            body = await self._call("GET", endpoints.task_path(project_id, task_id))
            task = unwrap_item(body, Task)
        except ApiError as e:
            logger.warning("%s task=%s failed: %s", op, task_id, e.message)
            self.store.fetch_failed(seq, e.message)
            return _err(op, e.message)
        self.store.detail_loaded(seq, task)
        return _ok(op, task)

    async def create(self, project_id: int, payload: TaskCreate) -> SyncResult:
        return await self._create(endpoints.tasks_path(project_id), payload)

    async def update(self, project_id: int, payload: TaskUpdate) -> SyncResult:
        return await self._update(endpoints.task_path(project_id, payload.id), payload)

    async def delete(self, project_id: int, task_id: int) -> SyncResult:
        return await self._delete(endpoints.task_path(project_id, task_id), task_id)

    async def assign(self, project_id: int, task_id: int, assignee_id: int) -> SyncResult:
        """Set the task's assignee. Applies the returned task, or patches the known one."""
        op = self._op("assign")
        self.store.begin_mutation()
        try:
            body = await self._call(
                "POST",
                endpoints.task_assign_path(project_id, task_id),
                json={"assignee_id": assignee_id},
            )
            task = unwrap_item(body, Task, required=False)
        except ApiError as e:
            return self._failed(op, e)
        if task is None:
            known = next((t for t in self.store.observe().items if t.id == task_id), None)
            if known is not None:
                task = known.model_copy(update={"assignee_id": assignee_id})
        if task is not None:
            self.store.updated(task)
        logger.info("%s: task=%s assignee=%s", op, task_id, assignee_id)
        return _ok(op, task)

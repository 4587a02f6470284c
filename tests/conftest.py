"""Shared fixtures: an in-process fake of the task-manager API and clients bound to it."""

import asyncio
import json
import math
from dataclasses import dataclass
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from api_client import ApiClient
from credentials import SessionCredentials
from sync import ProjectSync, TaskSync, UserSync

PREFIX = "/api/v1"
TOKEN = "test-token"
PAGE_SIZE = 10
MEMBER_ID = 1  # the caller, for self-scoped project listing


@dataclass
class RecordedRequest:
    method: str
    path: str  # relative to /api/v1
    query: dict[str, str]
    authorization: str | None
    body: Any


def _user(i: int) -> dict:
    return {
        "id": i,
        "name": f"User {i}",
        "email": f"user{i}@example.com",
        "role": "user",
        "is_active": 1,
    }


def _summary(user: dict) -> dict:
    return {"id": user["id"], "name": user["name"], "email": user["email"]}


def _not_found(kind: str) -> web.Response:
    return web.json_response({"message": f"{kind} not found."}, status=404)


class FakeTaskApi:
    """Serves users, projects and tasks from memory and records every request.

    ``fail()`` and ``delay()`` key on (method, path, page) where page is the
    ``page`` query value or None.
    """

    def __init__(self, user_count: int = 25) -> None:
        self.users = [_user(i) for i in range(1, user_count + 1)]
        self.projects = [
            {
                "id": 1,
                "name": "Apollo",
                "description": "Launch site",
                "is_active": 1,
                "users": [_summary(self.users[0]), _summary(self.users[1])],
            },
            {"id": 2, "name": "Gemini", "description": "Docs", "is_active": 1, "users": []},
        ]
        self.tasks = [
            {"id": 1, "project_id": 1, "name": "Write brief", "description": "", "status": "todo",
             "assignee_id": None, "parent_id": None, "due_date": "2026-11-01"},
            {"id": 2, "project_id": 1, "name": "Review brief", "description": "", "status": "in_progress",
             "assignee_id": 2, "parent_id": 1, "due_date": None},
            {"id": 3, "project_id": 2, "name": "Outline", "description": "", "status": "done",
             "assignee_id": None, "parent_id": None, "due_date": None},
        ]
        self.requests: list[RecordedRequest] = []
        self.failures: dict[tuple, tuple[int, Any]] = {}
        self.delays: dict[tuple, float] = {}
        self.assign_returns_project = True
        self.base_url = ""
        self._next_id = 100

    # -- test controls ---------------------------------------------------

    def fail(self, method: str, path: str, status: int = 500, message: str | None = None, page: int | None = None):
        body = {"message": message} if message is not None else None
        self.failures[(method, path, None if page is None else str(page))] = (status, body)

    def delay(self, method: str, path: str, seconds: float, page: int | None = None):
        self.delays[(method, path, None if page is None else str(page))] = seconds

    def requests_to(self, method: str, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.method == method and r.path == path]

    # -- app ---------------------------------------------------------------

    def build_app(self) -> web.Application:
        @web.middleware
        async def record(request, handler):
            raw = await request.read()
            body = json.loads(raw) if raw else None
            path = request.path[len(PREFIX):]
            page = request.query.get("page")
            self.requests.append(
                RecordedRequest(request.method, path, dict(request.query), request.headers.get("Authorization"), body)
            )
            key = (request.method, path, page)
            if key in self.delays:
                await asyncio.sleep(self.delays[key])
            if key in self.failures:
                status, payload = self.failures[key]
                if payload is None:
                    return web.Response(status=status)
                return web.json_response(payload, status=status)
            if request.headers.get("Authorization") != f"Bearer {TOKEN}":
                return web.json_response({"message": "Unauthenticated."}, status=401)
            return await handler(request)

        app = web.Application(middlewares=[record])
        r = app.router
        r.add_get(PREFIX + "/admin/user", self.list_users)
        r.add_post(PREFIX + "/admin/user", self.create_user)
        r.add_put(PREFIX + "/admin/user/{id}", self.update_user)
        r.add_delete(PREFIX + "/admin/user/{id}", self.delete_user)
        r.add_get(PREFIX + "/admin/project", self.list_all_projects)
        r.add_get(PREFIX + "/project", self.list_my_projects)
        r.add_post(PREFIX + "/admin/project", self.create_project)
        r.add_put(PREFIX + "/admin/project/{id}", self.update_project)
        r.add_delete(PREFIX + "/admin/project/{id}", self.delete_project)
        r.add_post(PREFIX + "/admin/project/{id}/assign", self.assign_project_users)
        r.add_get(PREFIX + "/project/{project_id}/task", self.list_tasks)
        r.add_post(PREFIX + "/project/{project_id}/task", self.create_task)
        r.add_get(PREFIX + "/project/{project_id}/task/{id}", self.get_task)
        r.add_put(PREFIX + "/project/{project_id}/task/{id}", self.update_task)
        r.add_delete(PREFIX + "/project/{project_id}/task/{id}", self.delete_task)
        r.add_post(PREFIX + "/project/{project_id}/task/{id}/assign", self.assign_task)
        return app

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    @staticmethod
    def _paginate(items: list[dict], request: web.Request) -> web.Response:
        page = int(request.query.get("page", "1"))
        last_page = max(1, math.ceil(len(items) / PAGE_SIZE))
        start = (page - 1) * PAGE_SIZE
        return web.json_response({
            "data": {
                "current_page": page,
                "data": items[start:start + PAGE_SIZE],
                "last_page": last_page,
                "total": len(items),
            }
        })

    @staticmethod
    def _find(items: list[dict], request: web.Request, key: str = "id") -> dict | None:
        ident = int(request.match_info[key])
        return next((item for item in items if item["id"] == ident), None)

    # -- users -------------------------------------------------------------

    async def list_users(self, request):
        return self._paginate(self.users, request)

    async def create_user(self, request):
        body = await request.json()
        if any(u["email"] == body.get("email") for u in self.users):
            return web.json_response({"message": "The email has already been taken."}, status=422)
        user = {
            "id": self._new_id(),
            "name": body["name"],
            "email": body["email"],
            "role": body.get("role", "user"),
            "is_active": 1,
        }
        self.users.append(user)
        return web.json_response({"data": user}, status=201)

    async def update_user(self, request):
        user = self._find(self.users, request)
        if user is None:
            return _not_found("User")
        body = await request.json()
        user.update({k: body[k] for k in ("name", "email", "role", "is_active") if k in body})
        return web.json_response({"data": user})

    async def delete_user(self, request):
        user = self._find(self.users, request)
        if user is None:
            return _not_found("User")
        self.users.remove(user)
        return web.Response(status=204)

    # -- projects ----------------------------------------------------------

    async def list_all_projects(self, request):
        return self._paginate(self.projects, request)

    async def list_my_projects(self, request):
        mine = [p for p in self.projects if any(u["id"] == MEMBER_ID for u in p["users"])]
        return self._paginate(mine, request)

    async def create_project(self, request):
        body = await request.json()
        project = {
            "id": self._new_id(),
            "name": body["name"],
            "description": body.get("description", ""),
            "is_active": body.get("is_active", 1),
            "users": [],
        }
        self.projects.append(project)
        return web.json_response({"data": project}, status=201)

    async def update_project(self, request):
        project = self._find(self.projects, request)
        if project is None:
            return _not_found("Project")
        body = await request.json()
        project.update({k: body[k] for k in ("name", "description", "is_active") if k in body})
        return web.json_response({"data": project})

    async def delete_project(self, request):
        project = self._find(self.projects, request)
        if project is None:
            return _not_found("Project")
        self.projects.remove(project)
        return web.Response(status=204)

    async def assign_project_users(self, request):
        project = self._find(self.projects, request)
        if project is None:
            return _not_found("Project")
        body = await request.json()
        by_id = {u["id"]: u for u in self.users}
        for i, user_id in enumerate(body.get("user_ids", [])):
            if user_id not in by_id:
                return web.json_response({"message": f"The selected user_ids.{i} is invalid."}, status=422)
        project["users"] = [_summary(by_id[user_id]) for user_id in body["user_ids"]]
        if self.assign_returns_project:
            return web.json_response({"data": project})
        return web.json_response({"message": "Users assigned."})

    # -- tasks -------------------------------------------------------------

    def _project_tasks(self, request) -> list[dict]:
        project_id = int(request.match_info["project_id"])
        return [t for t in self.tasks if t["project_id"] == project_id]

    async def list_tasks(self, request):
        return web.json_response({"data": self._project_tasks(request)})

    async def create_task(self, request):
        body = await request.json()
        task = {
            "id": self._new_id(),
            "project_id": int(request.match_info["project_id"]),
            "parent_id": None,
            "assignee_id": None,
            "name": body["name"],
            "description": body.get("description", ""),
            "due_date": body.get("due_date"),
            "status": body.get("status", "todo"),
        }
        self.tasks.append(task)
        return web.json_response({"data": task}, status=201)

    async def get_task(self, request):
        task = self._find(self._project_tasks(request), request)
        if task is None:
            return _not_found("Task")
        return web.json_response({"data": task})

    async def update_task(self, request):
        task = self._find(self._project_tasks(request), request)
        if task is None:
            return _not_found("Task")
        body = await request.json()
        task.update({k: body[k] for k in ("name", "description", "due_date", "status") if k in body})
        return web.json_response({"data": task})

    async def delete_task(self, request):
        task = self._find(self._project_tasks(request), request)
        if task is None:
            return _not_found("Task")
        self.tasks.remove(task)
        return web.Response(status=204)

    async def assign_task(self, request):
        task = self._find(self._project_tasks(request), request)
        if task is None:
            return _not_found("Task")
        body = await request.json()
        task["assignee_id"] = body["assignee_id"]
        return web.json_response({"message": "Task assigned successfully."})


@pytest_asyncio.fixture
async def fake_api():
    api = FakeTaskApi()
    server = TestServer(api.build_app())
    await server.start_server()
    api.base_url = str(server.make_url(PREFIX))
    try:
        yield api
    finally:
        await server.close()


@pytest_asyncio.fixture
async def client(fake_api):
    api_client = ApiClient(base_url=fake_api.base_url, timeout=5)
    try:
        yield api_client
    finally:
        await api_client.close()


@pytest.fixture
def credentials():
    return SessionCredentials(token=TOKEN, role="admin")


@pytest.fixture
def users_sync(client, credentials):
    return UserSync(client, credentials)


@pytest.fixture
def projects_sync(client, credentials):
    return ProjectSync(client, credentials)


@pytest.fixture
def tasks_sync(client, credentials):
    return TaskSync(client, credentials)

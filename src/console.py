"""Wiring for the admin console: one client, one session, three stores."""

from __future__ import annotations

import logging

from api_client import ApiClient
from assignment import AssignmentReconciler
from credentials import SessionCredentials
from sync import ProjectSync, TaskSync, UserSync

logger = logging.getLogger(__name__)


class Console:
    """Entry point presentation code holds on to.

    ``users``, ``projects`` and ``tasks`` are the sync operations; each exposes
    its store as ``.store``.
    """

    def __init__(self, client: ApiClient, credentials: SessionCredentials) -> None:
        self.client = client
        self.credentials = credentials
        self.users = UserSync(client, credentials)
        self.projects = ProjectSync(client, credentials)
        self.tasks = TaskSync(client, credentials)

    @classmethod
    def from_env(cls) -> Console:
        """Build from TASKDESK_* settings."""
        return cls(ApiClient(), SessionCredentials.from_env())

    async def __aenter__(self) -> Console:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    def assignment_editor(self, project_id: int) -> AssignmentReconciler:
        return AssignmentReconciler(project_id, self.projects, self.users)

    def logout(self) -> None:
        """Forget the session and everything loaded under it."""
        self.credentials.sign_out()
        for sync in (self.users, self.projects, self.tasks):
            sync.store.reset()
        logger.info("Signed out; stores cleared")

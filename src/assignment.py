"""Project membership editor.

The reconciler keeps a working selection of users for one project, seeded from
the project's committed relation, and commits the whole selection with one
replace-style assign call. While open, every read of the selection first
re-seeds it if the relation in the project store has changed.
"""

from __future__ import annotations

import logging
from typing import Any

from models import ProjectUser
from schemas import SyncResult
from sync import ProjectSync, UserSync

logger = logging.getLogger(__name__)


def _summary(user: Any) -> ProjectUser:
    return ProjectUser(id=user.id, name=user.name, email=user.email)


def _relation_key(users: list[ProjectUser]) -> tuple[tuple[int, str, str], ...]:
    return tuple((u.id, u.name, u.email) for u in users)


class AssignmentReconciler:
    """Working set of users for *project_id*, diverging freely until commit()."""

    def __init__(self, project_id: int, projects: ProjectSync, users: UserSync) -> None:
        self.project_id = project_id
        self.projects = projects
        self.users = users
        self.is_open = False
        self.error: str | None = None
        self._working: list[ProjectUser] = []
        self._seed_key: tuple | None = None

    def committed_relation(self) -> list[ProjectUser]:
        """Users currently assigned to the project, as last loaded into the project store."""
        for project in self.projects.store.observe().items:
            if project.id == self.project_id:
                return list(project.users)
        return []

    def _follow_relation(self) -> None:
        if self.is_open:
            self.refresh()

    def _has(self, user_id: int) -> bool:
        return any(u.id == user_id for u in self._working)

    @property
    def working_set(self) -> list[ProjectUser]:
        self._follow_relation()
        return list(self._working)

    def selected_ids(self) -> list[int]:
        self._follow_relation()
        return [u.id for u in self._working]

    def is_selected(self, user_id: int) -> bool:
        self._follow_relation()
        return self._has(user_id)

    async def open(self) -> None:
        """Seed the working set and make sure the all-users picklist is loaded."""
        self.is_open = True
        self.error = None
        self._seed_key = None
        self.refresh()
        await self.ensure_all_users()

    async def ensure_all_users(self) -> SyncResult | None:
        snapshot = self.users.store.observe()
        if snapshot.all_items or snapshot.loading:
            return None
        return await self.users.fetch_all()

    def refresh(self) -> bool:
        """Re-seed from the committed relation if it changed since the last seed."""
        relation = self.committed_relation()
        key = _relation_key(relation)
        if key == self._seed_key:
            return False
        self._working = []
        for user in relation:
            if not self._has(user.id):
                self._working.append(_summary(user))
        self._seed_key = key
        return True

    def toggle(self, user: Any) -> bool:
        """Remove *user* if selected, else append it. Returns True when now selected."""
        if self.is_selected(user.id):
            self._working = [u for u in self._working if u.id != user.id]
            return False
        self._working.append(_summary(user))
        return True

    def filtered_view(self, query: str) -> list[Any]:
        """All known users whose name or email contains *query*, case-insensitively."""
        everyone = list(self.users.store.observe().all_items)
        needle = (query or "").lower()
        if not needle:
            return everyone
        return [u for u in everyone if needle in u.name.lower() or needle in u.email.lower()]

    async def commit(self) -> SyncResult:
        """Send the full working set. Closes on success; keeps everything on failure."""
        result = await self.projects.assign_users(self.project_id, self.selected_ids())
        if result.ok:
            self.error = None
            self.is_open = False
        else:
            self.error = result.error
            logger.warning("Assignment for project %s not saved: %s", self.project_id, result.error)
        return result

    def cancel(self) -> None:
        self._working = []
        self._seed_key = None
        self.error = None
        self.is_open = False

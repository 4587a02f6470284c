"""In-memory resource stores.

One ResourceStore per resource type holds the current page, the aggregated
(all pages) collection, an optional detail record, the page cursor and the
operation status. Sync operations are the only writers; presentation reads
through observe().

Fetches are sequenced: begin_fetch() hands out an increasing number and a
completion older than the last one applied to the same collection is dropped,
so overlapping page requests cannot roll the store back to an older page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")

PAGE = "page"
ALL = "all"
DETAIL = "detail"
_CHANNELS = (PAGE, ALL, DETAIL)


class OperationStatus(str, Enum):
    IDLE = "idle"  # nothing fetched yet
    LOADING = "loading"
    SETTLED = "settled"


@dataclass(frozen=True)
class PageCursor:
    current_page: int = 1
    total_pages: int = 1


@dataclass(frozen=True)
class StoreSnapshot(Generic[R]):
    items: tuple[R, ...]
    all_items: tuple[R, ...]
    detail: R | None
    cursor: PageCursor
    status: OperationStatus
    error: str | None
    revision: int

    @property
    def loading(self) -> bool:
        return self.status is OperationStatus.LOADING


def _dedupe(name: str, items: list[Any]) -> list[Any]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[int] = set()
    out = []
    for item in items:
        if item.id in seen:
            logger.warning("%s: dropping duplicate id=%s from server response", name, item.id)
            continue
        seen.add(item.id)
        out.append(item)
    return out


@dataclass
class _Sequencer:
    issued: int = 0
    in_flight: dict[int, str] = field(default_factory=dict)  # seq -> channel
    applied: dict[str, int] = field(default_factory=dict)  # channel -> last applied seq


class ResourceStore(Generic[R]):
    """Canonical collection and status for one resource type."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._seq = _Sequencer()
        self.reset()

    def reset(self) -> None:
        """Back to the initial state: empty collections, cursor 1/1, idle.

        Fetches still in flight are forgotten and their completions dropped.
        Sequence numbers keep counting so they are never reused.
        """
        self._items: list[R] = []
        self._all_items: list[R] = []
        self._detail: R | None = None
        self._cursor = PageCursor()
        self._status = OperationStatus.IDLE
        self._error: str | None = None
        self._revision = 0
        self._seq = _Sequencer(issued=self._seq.issued)

    def observe(self) -> StoreSnapshot[R]:
        return StoreSnapshot(
            items=tuple(self._items),
            all_items=tuple(self._all_items),
            detail=self._detail,
            cursor=self._cursor,
            status=self._status,
            error=self._error,
            revision=self._revision,
        )

    def _commit(self) -> None:
        self._revision += 1

    # ------------------------------------------------------------------
    # Fetch lifecycle
    # ------------------------------------------------------------------

    def begin_fetch(self, channel: str = PAGE) -> int:
        """Enter Loading, clear the error and return the sequence number for this fetch."""
        if channel not in _CHANNELS:
            raise ValueError(f"Unknown fetch channel: {channel}")
        self._seq.issued += 1
        seq = self._seq.issued
        self._seq.in_flight[seq] = channel
        self._status = OperationStatus.LOADING
        self._error = None
        return seq

    def _settle(self, seq: int) -> bool:
        """Mark *seq* done. Return False when a newer fetch on its channel already applied."""
        channel = self._seq.in_flight.pop(seq, None)
        if channel is None:
            logger.debug("%s: discarding fetch %s, no longer in flight", self.name, seq)
            return False
        if not self._seq.in_flight:
            self._status = OperationStatus.SETTLED
        if seq < self._seq.applied.get(channel, 0):
            logger.debug("%s: discarding stale %s fetch %s", self.name, channel, seq)
            return False
        self._seq.applied[channel] = seq
        return True

    def page_loaded(self, seq: int, items: list[R], last_page: int, page: int) -> bool:
        """Replace the current page and cursor. Returns False if the result was stale."""
        if not self._settle(seq):
            return False
        total = max(1, last_page)
        self._items = _dedupe(self.name, list(items))
        self._cursor = PageCursor(current_page=min(max(1, page), total), total_pages=total)
        self._commit()
        return True

    def all_loaded(self, seq: int, items: list[R]) -> bool:
        """Replace the aggregated collection with a complete fetch-all result."""
        if not self._settle(seq):
            return False
        self._all_items = _dedupe(self.name, list(items))
        self._commit()
        return True

    def detail_loaded(self, seq: int, item: R) -> bool:
        if not self._settle(seq):
            return False
        self._detail = item
        self._commit()
        return True

    def fetch_failed(self, seq: int, message: str) -> bool:
        """Record the error; collections stay as they were."""
        if not self._settle(seq):
            return False
        self._error = message
        self._commit()
        return True

    def set_page(self, page: int) -> None:
        if page < 1 or page > self._cursor.total_pages:
            raise ValueError(f"Invalid page: {page} (of {self._cursor.total_pages})")
        self._cursor = PageCursor(current_page=page, total_pages=self._cursor.total_pages)
        self._commit()

    # ------------------------------------------------------------------
    # Mutations (applied only after the remote call succeeded)
    # ------------------------------------------------------------------

    def begin_mutation(self) -> None:
        self._error = None

    def created(self, item: R) -> None:
        for i, existing in enumerate(self._items):
            if existing.id == item.id:
                logger.warning("%s: created id=%s already present, replacing", self.name, item.id)
                self._items[i] = item
                break
        else:
            self._items.append(item)
        self._commit()

    def updated(self, item: R) -> bool:
        """Replace the element with the same id. Absent id is a logged no-op."""
        for i, existing in enumerate(self._items):
            if existing.id == item.id:
                self._items[i] = item
                if self._detail is not None and self._detail.id == item.id:
                    self._detail = item
                self._commit()
                return True
        logger.debug("%s: updated id=%s not in local collection", self.name, item.id)
        return False

    def deleted(self, item_id: int) -> bool:
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            logger.debug("%s: deleted id=%s not in local collection", self.name, item_id)
            return False
        self._items = remaining
        if self._detail is not None and self._detail.id == item_id:
            self._detail = None
        self._commit()
        return True

    def mutation_failed(self, message: str) -> None:
        self._error = message
        self._commit()

"""
In-Memory Store — Infrastructure adapter keeping everything in dictionaries.

Implements SchedulerStore for tests and for embedding the engine in a
process that owns persistence elsewhere. Every value crossing the boundary
is deep-copied so callers never alias stored state.
"""

import copy
from collections.abc import Iterable
from datetime import datetime

from mnemo.domain.models import (
    ItemFilters,
    LearningParameters,
    ReviewRecord,
    ReviewSession,
    SessionStatus,
    StudyItem,
)
from mnemo.domain.ports import SchedulerStore


class InMemoryStore(SchedulerStore):
    """Process-local implementation of the scheduler store port."""

    def __init__(self, items: Iterable[StudyItem] = ()):
        self._parameters: dict[str, LearningParameters] = {}
        self._items: dict[str, StudyItem] = {}
        self._reviews: list[ReviewRecord] = []
        self._sessions: dict[str, ReviewSession] = {}

        for item in items:
            item.validate()
            self._items[item.id] = copy.deepcopy(item)

    # ---------- Parameters ----------

    async def load_parameters(self, user_id: str) -> LearningParameters | None:
        params = self._parameters.get(user_id)
        return copy.deepcopy(params) if params is not None else None

    async def save_parameters(self, user_id: str, params: LearningParameters) -> None:
        self._parameters[user_id] = copy.deepcopy(params)

    # ---------- Items ----------

    async def query_due_items(
        self,
        user_id: str,
        now: datetime,
        filters: ItemFilters,
        limit: int,
    ) -> list[StudyItem]:
        due = [
            item
            for item in self._items.values()
            if item.user_id == user_id and filters.matches(item) and item.due_key <= now
        ]
        due.sort(key=lambda i: (i.due_key, i.id))
        return copy.deepcopy(due[:limit])

    async def query_upcoming_items(
        self,
        user_id: str,
        now: datetime,
        until: datetime,
        filters: ItemFilters,
        limit: int | None = None,
    ) -> list[StudyItem]:
        upcoming = [
            item
            for item in self._items.values()
            if item.user_id == user_id
            and filters.matches(item)
            and item.state.next_review_at is not None
            and now < item.state.next_review_at <= until
        ]
        upcoming.sort(key=lambda i: (i.due_key, i.id))
        if limit is not None:
            upcoming = upcoming[:limit]
        return copy.deepcopy(upcoming)

    async def get_item(self, item_id: str) -> StudyItem | None:
        item = self._items.get(item_id)
        return copy.deepcopy(item) if item is not None else None

    async def get_items(self, item_ids: list[str]) -> list[StudyItem]:
        return [copy.deepcopy(self._items[i]) for i in item_ids if i in self._items]

    async def count_items(self, user_id: str) -> int:
        return sum(1 for item in self._items.values() if item.user_id == user_id)

    async def upsert_item_state(self, item: StudyItem) -> None:
        item.validate()
        self._items[item.id] = copy.deepcopy(item)

    # ---------- Review log ----------

    async def append_review_record(self, record: ReviewRecord) -> None:
        self._reviews.append(record)

    async def list_review_records(
        self,
        user_id: str,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[ReviewRecord]:
        indexed = [
            (record.reviewed_at, position, record)
            for position, record in enumerate(self._reviews)
            if record.user_id == user_id and (since is None or record.reviewed_at >= since)
        ]
        indexed.sort(key=lambda entry: (entry[0], entry[1]), reverse=True)
        records = [record for _, _, record in indexed]
        return records[:limit] if limit is not None else records

    # ---------- Sessions ----------

    async def create_session_record(self, session: ReviewSession) -> None:
        if session.id in self._sessions:
            raise ValueError(f"Session record already exists: {session.id}")
        self._sessions[session.id] = copy.deepcopy(session)

    async def update_session_record(self, session: ReviewSession) -> None:
        if session.id not in self._sessions:
            raise KeyError(f"Unknown session record: {session.id}")
        self._sessions[session.id] = copy.deepcopy(session)

    async def list_session_records(
        self,
        user_id: str,
        status: SessionStatus | None = None,
        limit: int | None = None,
    ) -> list[ReviewSession]:
        sessions = [
            s
            for s in self._sessions.values()
            if s.user_id == user_id and (status is None or s.status == status)
        ]
        sessions.sort(key=lambda s: s.ended_at or s.started_at, reverse=True)
        if limit is not None:
            sessions = sessions[:limit]
        return copy.deepcopy(sessions)

"""
YAML File Store — Infrastructure adapter backed by a single YAML document.

Implements SchedulerStore on top of InMemoryStore, rewriting the file after
every successful write. A write that cannot be flushed is rolled back in
memory before the error propagates, so the store never reports state that
is not on disk.
"""

import copy
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import yaml

from mnemo.domain.errors import PersistenceError
from mnemo.domain.models import LearningParameters, ReviewRecord, ReviewSession, StudyItem

from .memory_store import InMemoryStore
from .serialization import (
    item_from_dict,
    item_to_dict,
    parameters_from_dict,
    parameters_to_dict,
    record_from_dict,
    record_to_dict,
    session_from_dict,
    session_to_dict,
)

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class YamlFileStore(InMemoryStore):
    """
    File-backed store for single-user or CLI use.

    Every write deep-copies the in-memory state for rollback and rewrites
    the whole file synchronously, blocking the event loop for the flush.
    Fine for a personal collection driven from the CLI; a shared service
    should use a database-backed SchedulerStore.

    Layout:
        version: 1
        parameters: {user_id: {...}}
        items: [{...}]
        reviews: [{...}]
        sessions: [{...}]
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._load()

    # ---------- Writes ----------

    async def save_parameters(self, user_id: str, params: LearningParameters) -> None:
        with self._transaction():
            await super().save_parameters(user_id, params)

    async def upsert_item_state(self, item: StudyItem) -> None:
        with self._transaction():
            await super().upsert_item_state(item)

    async def append_review_record(self, record: ReviewRecord) -> None:
        with self._transaction():
            await super().append_review_record(record)

    async def create_session_record(self, session: ReviewSession) -> None:
        with self._transaction():
            await super().create_session_record(session)

    async def update_session_record(self, session: ReviewSession) -> None:
        with self._transaction():
            await super().update_session_record(session)

    # ---------- File I/O ----------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        snapshot = self._snapshot()
        try:
            yield
            self._flush()
        except Exception:
            self._restore(snapshot)
            raise

    def _snapshot(self) -> tuple[Any, ...]:
        return (
            copy.deepcopy(self._parameters),
            copy.deepcopy(self._items),
            list(self._reviews),
            copy.deepcopy(self._sessions),
        )

    def _restore(self, snapshot: tuple[Any, ...]) -> None:
        self._parameters, self._items, self._reviews, self._sessions = snapshot

    def _load(self) -> None:
        if not self.path.exists():
            logger.debug(f"Store file {self.path} does not exist yet; starting empty")
            return

        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Could not read store file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Store file {self.path} is not a YAML mapping")

        try:
            self._load_document(data)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Malformed store file {self.path}: {e}") from e

        logger.debug(
            f"Loaded {len(self._items)} items and {len(self._reviews)} reviews from {self.path}"
        )

    def _load_document(self, data: dict[str, Any]) -> None:
        for user_id, raw in (data.get("parameters") or {}).items():
            self._parameters[str(user_id)] = parameters_from_dict(raw)
        for raw in data.get("items") or []:
            item = item_from_dict(raw)
            self._items[item.id] = item
        self._reviews = [record_from_dict(raw) for raw in data.get("reviews") or []]
        for raw in data.get("sessions") or []:
            items = tuple(
                self._items[item_id]
                for item_id in raw.get("item_ids") or []
                if item_id in self._items
            )
            session = session_from_dict(raw, items)
            self._sessions[session.id] = session

    def _flush(self) -> None:
        document = {
            "version": STORE_VERSION,
            "parameters": {
                user_id: parameters_to_dict(params)
                for user_id, params in self._parameters.items()
            },
            "items": [item_to_dict(item) for item in self._items.values()],
            "reviews": [record_to_dict(record) for record in self._reviews],
            "sessions": [session_to_dict(session) for session in self._sessions.values()],
        }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(
            yaml.safe_dump(document, sort_keys=False, allow_unicode=True), encoding="utf-8"
        )
        tmp_path.replace(self.path)

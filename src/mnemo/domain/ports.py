"""
Ports (interfaces) for scheduler persistence and time.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone

from .models import (
    ItemFilters,
    LearningParameters,
    ReviewRecord,
    ReviewSession,
    SessionStatus,
    StudyItem,
)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware UTC now."""
    return datetime.now(timezone.utc)


class SchedulerStore(ABC):
    """
    Port for the persistent store the scheduler reads and writes.

    Implementations:
        - InMemoryStore: Process-local dictionaries (tests, embedding).
        - YamlFileStore: A single YAML document on disk (CLI).

    Any exception raised by a write is treated as a persistence failure.
    """

    # ---------- Parameters ----------

    @abstractmethod
    async def load_parameters(self, user_id: str) -> LearningParameters | None:
        """Return the stored parameters, or None if the user has none yet."""
        pass

    @abstractmethod
    async def save_parameters(self, user_id: str, params: LearningParameters) -> None:
        pass

    # ---------- Items ----------

    @abstractmethod
    async def query_due_items(
        self,
        user_id: str,
        now: datetime,
        filters: ItemFilters,
        limit: int,
    ) -> list[StudyItem]:
        """
        Items owned by the user with next_review_at <= now.

        Returns:
            At most `limit` items, ascending by next_review_at.
        """
        pass

    @abstractmethod
    async def query_upcoming_items(
        self,
        user_id: str,
        now: datetime,
        until: datetime,
        filters: ItemFilters,
        limit: int | None = None,
    ) -> list[StudyItem]:
        """Items with now < next_review_at <= until, ascending."""
        pass

    @abstractmethod
    async def get_item(self, item_id: str) -> StudyItem | None:
        pass

    @abstractmethod
    async def get_items(self, item_ids: list[str]) -> list[StudyItem]:
        """Fetch several items; unknown ids are skipped."""
        pass

    @abstractmethod
    async def count_items(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def upsert_item_state(self, item: StudyItem) -> None:
        """Create the item or replace its stored state."""
        pass

    # ---------- Review log ----------

    @abstractmethod
    async def append_review_record(self, record: ReviewRecord) -> None:
        pass

    @abstractmethod
    async def list_review_records(
        self,
        user_id: str,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[ReviewRecord]:
        """Review records for a user, newest first."""
        pass

    # ---------- Sessions ----------

    @abstractmethod
    async def create_session_record(self, session: ReviewSession) -> None:
        pass

    @abstractmethod
    async def update_session_record(self, session: ReviewSession) -> None:
        pass

    @abstractmethod
    async def list_session_records(
        self,
        user_id: str,
        status: SessionStatus | None = None,
        limit: int | None = None,
    ) -> list[ReviewSession]:
        """Session records, most recently ended (or started) first."""
        pass

"""
Due and upcoming item queries.

Selects which items are eligible for a review session:
1. Items owned by the learner
2. Matching optional source / tag filters
3. Ordered by next review time, oldest first

Pure reads against the store; calling twice with an unchanged clock and
no intervening review returns the same ordered list.
"""

import logging
from collections.abc import Iterable
from datetime import timedelta

from mnemo.domain.constants import DEFAULT_DUE_LIMIT, DEFAULT_UPCOMING_DAYS
from mnemo.domain.errors import ValidationError
from mnemo.domain.models import ItemFilters, StudyItem
from mnemo.domain.ports import Clock, SchedulerStore, utc_now

logger = logging.getLogger(__name__)


def build_filters(source: str | None = None, tags: Iterable[str] | None = None) -> ItemFilters:
    return ItemFilters(source=source or None, tags=tuple(tags or ()))


class ReviewQueue:
    """Read-only view over the store's due and upcoming items."""

    def __init__(self, store: SchedulerStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    async def get_due_items(
        self,
        user_id: str,
        limit: int = DEFAULT_DUE_LIMIT,
        source: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> list[StudyItem]:
        """
        Items whose next review time has passed.

        Args:
            user_id: Owner of the items.
            limit: Maximum items to return.
            source: Only items created by this source collaborator.
            tags: Only items carrying every one of these tags.

        Returns:
            Due items ascending by next_review_at, at most `limit`.
        """
        if limit < 0:
            raise ValidationError(f"limit must be non-negative, got {limit}")
        if limit == 0:
            return []

        filters = build_filters(source, tags)
        items = await self._store.query_due_items(user_id, self._clock(), filters, limit)
        logger.debug(f"{len(items)} due items for user={user_id} filters={filters}")
        return items

    async def get_upcoming_items(
        self,
        user_id: str,
        days_ahead: int = DEFAULT_UPCOMING_DAYS,
        source: str | None = None,
        tags: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[StudyItem]:
        """Items that become due in the window (now, now + days_ahead]."""
        if days_ahead < 0:
            raise ValidationError(f"days_ahead must be non-negative, got {days_ahead}")

        now = self._clock()
        until = now + timedelta(days=days_ahead)
        return await self._store.query_upcoming_items(
            user_id, now, until, build_filters(source, tags), limit
        )

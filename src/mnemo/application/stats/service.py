"""
Learning Stats Service — Application layer orchestrator.

Coordinates fetching review and session history from the store and
summarizing it with the metrics calculator.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from mnemo.domain.constants import RECENT_SESSIONS, RETENTION_SCORE_DAYS
from mnemo.domain.models import ItemFilters, ReviewSession, SessionStatus
from mnemo.domain.ports import Clock, SchedulerStore, utc_now

from .metrics_calculator import MetricsCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewStats:
    today: int
    this_week: int
    total: int


@dataclass(frozen=True)
class LearningStats:
    total_items: int
    due_today: int  # Due now or within the next day
    retention_score: float  # % of ratings >= 4 over the last 30 days
    streak: int
    recent_sessions: list[ReviewSession] = field(default_factory=list)


class LearningStatsService:
    """
    Application service for learner-facing statistics.

    Follows Dependency Inversion: depends on the SchedulerStore abstraction,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        store: SchedulerStore,
        clock: Clock = utc_now,
        calculator: MetricsCalculator | None = None,
    ):
        """
        Args:
            store: The store (port) for reviews, items and sessions.
            clock: Source of the current time.
            calculator: Optional custom calculator; uses default if not provided.
        """
        self._store = store
        self._clock = clock
        self._calc = calculator or MetricsCalculator()

    async def get_review_stats(self, user_id: str) -> ReviewStats:
        """Count reviews submitted today, this week (from Monday) and overall."""
        now = self._clock()
        day_start = self._calc.start_of_day(now)
        week_start = self._calc.start_of_week(now)

        records = await self._store.list_review_records(user_id)

        return ReviewStats(
            today=sum(1 for r in records if day_start <= r.reviewed_at <= now),
            this_week=sum(1 for r in records if week_start <= r.reviewed_at <= now),
            total=len(records),
        )

    async def get_learning_stats(self, user_id: str) -> LearningStats:
        """
        Summarize a learner's collection and recent study behaviour.
        """
        now = self._clock()

        total_items = await self._store.count_items(user_id)
        due_today = 0
        if total_items:
            due = await self._store.query_due_items(
                user_id, now + timedelta(days=1), ItemFilters(), total_items
            )
            due_today = len(due)

        recent_reviews = await self._store.list_review_records(
            user_id, since=now - timedelta(days=RETENTION_SCORE_DAYS)
        )
        sessions = await self._store.list_session_records(
            user_id, status=SessionStatus.COMPLETED
        )
        session_ends = [s.ended_at for s in sessions if s.ended_at is not None]

        stats = LearningStats(
            total_items=total_items,
            due_today=due_today,
            retention_score=self._calc.retention_score(recent_reviews),
            streak=self._calc.study_streak(session_ends, now.date()),
            recent_sessions=sessions[:RECENT_SESSIONS],
        )
        logger.debug(f"Learning stats for user={user_id}: {stats.total_items} items")
        return stats

"""
Review Session Manager — Application layer orchestrator.

Owns the in-memory table of active review sessions and advances each one
a single submission at a time:

    created -> in_progress -> completed

Sessions are not persisted for resumption: after a restart the caller
starts a fresh session from the current due-item query.
"""

import asyncio
import copy
import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Any

from mnemo.domain.constants import PERFECT_RATING
from mnemo.domain.errors import NotFoundError, PersistenceError, StateError, ValidationError
from mnemo.domain.models import (
    CompletedReview,
    ItemFilters,
    LearningParameters,
    LearningStage,
    ReviewSession,
    SessionMetrics,
    SessionStatus,
    StudyItem,
)
from mnemo.domain.ports import Clock, SchedulerStore, utc_now

from .ids import generate_session_id
from .parameters import ParameterService
from .review_queue import ReviewQueue
from .scheduling import ItemScheduler, ScheduleResult, validate_rating

logger = logging.getLogger(__name__)

NO_ITEMS_DUE = "No items due for review"

# Completed session ids remembered for StateError; older ids report NotFoundError.
FINISHED_SESSION_MEMORY = 1024


@dataclass(frozen=True)
class ReviewTelemetry:
    """
    Caller-supplied data about one answer.

    Attributes:
        time_spent: Seconds spent answering. When None, the time since the
            item was shown is used.
        data: Free-form client data, copied onto the CompletedReview in the
            session's local log.
    """

    time_spent: float | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Progress:
    current: int  # 1-based position of the item now shown
    total: int


@dataclass(frozen=True)
class SessionStart:
    """Result of start_session; session_id is None when nothing is due."""

    session_id: str | None
    item_count: int
    first_item: StudyItem | None = None
    message: str | None = None

    @property
    def started(self) -> bool:
        return self.session_id is not None


@dataclass(frozen=True)
class SessionSummary:
    session_id: str
    user_id: str
    metrics: SessionMetrics
    parameters: LearningParameters | None = None  # After the interval nudge


@dataclass(frozen=True)
class SubmitResult:
    """
    Outcome of submit_review: either the next item or the session summary.

    summary is None on a complete result when the completed session record
    could not be written; the review is stored and the session stays open
    for complete_session.
    """

    complete: bool
    result: ScheduleResult
    next_item: StudyItem | None = None
    progress: Progress | None = None
    summary: SessionSummary | None = None


class ReviewSessionManager:
    """
    Application service driving review sessions.

    Follows Dependency Inversion: depends on the SchedulerStore abstraction
    and an injected clock. One instance per process (or request scope).
    """

    def __init__(
        self,
        store: SchedulerStore,
        clock: Clock = utc_now,
        parameters: ParameterService | None = None,
        queue: ReviewQueue | None = None,
        scheduler: ItemScheduler | None = None,
    ):
        """
        Args:
            store: The store (port) for items, reviews, sessions and parameters.
            clock: Source of the current time.
            parameters: Optional shared parameter service.
            queue: Optional custom due-item query.
            scheduler: Optional custom item scheduler.
        """
        self._store = store
        self._clock = clock
        self._parameters = parameters or ParameterService(store, clock)
        self._queue = queue or ReviewQueue(store, clock)
        self._scheduler = scheduler or ItemScheduler()

        self._sessions: dict[str, ReviewSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._finished: OrderedDict[str, None] = OrderedDict()

    # ---------- Lifecycle ----------

    async def start_session(
        self,
        user_id: str,
        filters: ItemFilters | None = None,
        budget: int | None = None,
    ) -> SessionStart:
        """
        Snapshot the user's due items into a new session.

        Args:
            user_id: The learner.
            filters: Optional source / tag constraints.
            budget: Maximum items; defaults to the user's review_cards_per_day.

        Returns:
            SessionStart with the first item, or a "nothing due" result when
            no item is eligible (no session is created in that case).
        """
        if budget is not None and budget < 0:
            raise ValidationError(f"budget must be non-negative, got {budget}")

        params = await self._parameters.load(user_id)
        filters = filters or ItemFilters()
        limit = params.review_cards_per_day if budget is None else budget

        items = await self._select_items(user_id, filters, limit, params.new_cards_per_day)

        if not items:
            logger.info(f"No items due for user={user_id}")
            return SessionStart(session_id=None, item_count=0, message=NO_ITEMS_DUE)

        now = self._clock()
        session = ReviewSession(
            id=generate_session_id(),
            user_id=user_id,
            items=tuple(copy.deepcopy(items)),
            started_at=now,
            item_shown_at=now,
            filters=filters,
        )
        session.status = SessionStatus.IN_PROGRESS

        try:
            await self._store.create_session_record(session)
        except Exception as e:
            logger.error(f"Failed to create session record for user={user_id}: {e}")
            raise PersistenceError(f"Could not create review session: {e}") from e

        self._sessions[session.id] = session
        self._locks[session.id] = asyncio.Lock()
        logger.info(f"Started session {session.id} for user={user_id} with {session.total} items")

        return SessionStart(
            session_id=session.id,
            item_count=session.total,
            first_item=session.items[0],
        )

    def get_current_item(self, session_id: str) -> StudyItem:
        """
        Return the item at the session cursor.

        Raises:
            NotFoundError: Unknown session.
            StateError: Session completed or exhausted.
        """
        session = self._get_active(session_id)
        item = session.current_item
        if item is None:
            raise StateError(f"Session {session_id} has no item left to review")
        return item

    def get_session(self, session_id: str) -> ReviewSession:
        return self._get_active(session_id)

    def active_session_ids(self, user_id: str | None = None) -> list[str]:
        return [
            sid for sid, s in self._sessions.items() if user_id is None or s.user_id == user_id
        ]

    async def submit_review(
        self,
        session_id: str,
        rating: int,
        telemetry: ReviewTelemetry | None = None,
    ) -> SubmitResult:
        """
        Score the current item and advance the session by exactly one.

        Submissions for one session are serialized. If the item state or the
        review record cannot be written, neither is kept: a PersistenceError
        is raised and the session is left exactly as it was, so the same
        submission can be retried. A failure to record completion after the
        last item does not undo the review (see SubmitResult).

        Raises:
            ValidationError: Rating outside 1-5 or an invalid item.
            NotFoundError: Unknown session.
            StateError: Session completed or exhausted.
            PersistenceError: Item state or review record could not be written.
        """
        validate_rating(rating)
        telemetry = telemetry or ReviewTelemetry()
        if telemetry.time_spent is not None and telemetry.time_spent < 0:
            raise ValidationError(f"time_spent must be non-negative, got {telemetry.time_spent}")

        self._get_active(session_id)
        async with self._locks[session_id]:
            # Re-check: an earlier submission may have completed the session.
            session = self._get_active(session_id)
            item = session.current_item
            if item is None:
                raise StateError(f"Session {session_id} has no item left to review")
            item.validate()

            params = await self._parameters.load(session.user_id)
            now = self._clock()
            if telemetry.time_spent is not None:
                time_spent = float(telemetry.time_spent)
            else:
                time_spent = max(0.0, (now - session.item_shown_at).total_seconds())

            result = self._scheduler.review(
                item, rating, params, now, time_spent=time_spent, session_id=session.id
            )
            updated = replace(item, state=result.state)

            await self._persist_review(session_id, item, updated, result)

            session.completed.append(
                CompletedReview(
                    item_id=item.id,
                    rating=rating,
                    time_spent=time_spent,
                    reviewed_at=now,
                    item=updated,
                    data=dict(telemetry.data),
                )
            )
            session.current_index += 1
            logger.debug(
                f"Session {session_id}: item {item.id} rated {rating}, "
                f"next interval {result.interval}d"
            )

            if session.is_exhausted:
                try:
                    summary = await self._finish(session)
                except PersistenceError:
                    # The review itself is stored; the session stays active
                    # so complete_session can be retried.
                    summary = None
                return SubmitResult(
                    complete=True,
                    result=result,
                    progress=Progress(current=session.total, total=session.total),
                    summary=summary,
                )

            session.item_shown_at = now
            return SubmitResult(
                complete=False,
                result=result,
                next_item=session.current_item,
                progress=Progress(current=session.current_index + 1, total=session.total),
            )

    async def complete_session(self, session_id: str) -> SessionSummary:
        """
        Finalize a session.

        Called automatically after the last submission. A caller may also end
        a session early; the completion rate then reflects the unreviewed
        remainder.
        """
        self._get_active(session_id)
        async with self._locks[session_id]:
            session = self._get_active(session_id)
            return await self._finish(session)

    # ---------- Internals ----------

    def _get_active(self, session_id: str) -> ReviewSession:
        if session_id in self._finished:
            raise StateError(f"Session {session_id} is already completed")
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return session

    async def _select_items(
        self, user_id: str, filters: ItemFilters, limit: int, new_budget: int
    ) -> list[StudyItem]:
        """
        Up to `limit` due items with at most `new_budget` of them new.

        New items dropped by the cap are backfilled from further down the
        queue, widening the query until it runs dry.
        """
        fetch = limit
        while True:
            due = await self._queue.get_due_items(
                user_id, limit=fetch, source=filters.source, tags=filters.tags
            )
            items = self._apply_new_item_budget(due, new_budget)[:limit]
            if len(items) >= limit or len(due) < fetch:
                return items
            fetch *= 2

    def _apply_new_item_budget(self, items: list[StudyItem], new_budget: int) -> list[StudyItem]:
        """Keep queue order but admit at most `new_budget` never-reviewed items."""
        admitted: list[StudyItem] = []
        new_count = 0
        for item in items:
            if item.state.stage == LearningStage.NEW:
                if new_count >= new_budget:
                    continue
                new_count += 1
            admitted.append(item)
        return admitted

    async def _persist_review(
        self,
        session_id: str,
        before: StudyItem,
        updated: StudyItem,
        result: ScheduleResult,
    ) -> None:
        """Write the new item state and its review record, or neither."""
        try:
            await self._store.upsert_item_state(updated)
        except Exception as e:
            logger.error(f"Failed to persist review of item {before.id} in {session_id}: {e}")
            raise PersistenceError(f"Could not persist review of item {before.id}: {e}") from e

        try:
            await self._store.append_review_record(result.record)
        except Exception as e:
            logger.error(f"Failed to log review of item {before.id} in {session_id}: {e}")
            try:
                await self._store.upsert_item_state(before)
            except Exception as rollback_error:
                logger.error(
                    f"Could not restore item {before.id} after a failed review log: "
                    f"{rollback_error}"
                )
            raise PersistenceError(f"Could not persist review of item {before.id}: {e}") from e

    async def _finish(self, session: ReviewSession) -> SessionSummary:
        """Compute metrics, persist the completed record, nudge parameters."""
        now = self._clock()
        ratings = [c.rating for c in session.completed]
        average = sum(ratings) / len(ratings) if ratings else 0.0

        metrics = SessionMetrics(
            average_rating=average,
            perfect_count=sum(1 for r in ratings if r == PERFECT_RATING),
            completion_rate=len(ratings) / session.total if session.total else 0.0,
            item_count=session.total,
            duration=(now - session.started_at).total_seconds(),
        )
        finished = replace(
            session, status=SessionStatus.COMPLETED, ended_at=now, metrics=metrics
        )

        try:
            await self._store.update_session_record(finished)
        except Exception as e:
            logger.error(f"Failed to mark session {session.id} completed: {e}")
            raise PersistenceError(f"Could not complete session {session.id}: {e}") from e

        session.status = SessionStatus.COMPLETED
        session.ended_at = now
        session.metrics = metrics
        del self._sessions[session.id]
        del self._locks[session.id]
        self._finished[session.id] = None
        while len(self._finished) > FINISHED_SESSION_MEMORY:
            self._finished.popitem(last=False)

        logger.info(
            f"Completed session {session.id}: {len(ratings)}/{session.total} reviewed, "
            f"average rating {average:.2f}"
        )

        params = None
        if ratings:
            try:
                params = await self._parameters.nudge_interval_modifier(session.user_id, average)
            except Exception as e:
                # The session itself is already recorded as completed.
                logger.warning(f"Failed to adjust interval modifier for user={session.user_id}: {e}")

        return SessionSummary(
            session_id=session.id,
            user_id=session.user_id,
            metrics=metrics,
            parameters=params,
        )

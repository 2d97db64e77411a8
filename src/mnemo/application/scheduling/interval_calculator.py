"""
SM-2 family interval calculator with adaptive corrections.

State machine: new -> learning -> review. Any failing rating
(quality = rating - 1 < 3) sends the item back to learning.

This module performs no I/O: it returns a new LearningState and the
ReviewRecord to persist, leaving the input item untouched.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from mnemo.application.ids import generate_review_id
from mnemo.domain.constants import (
    EASE_CEILING,
    EASE_FLOOR,
    EASE_PENALTY,
    FIRST_INTERVAL,
    GRADUATING_INTERVAL,
    MAX_RATING,
    MIN_RATING,
    PASSING_QUALITY,
)
from mnemo.domain.errors import ValidationError
from mnemo.domain.models import (
    AdaptiveFactors,
    LearningParameters,
    LearningStage,
    LearningState,
    ReviewRecord,
    StudyItem,
)


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of scheduling one review, with the factor breakdown."""

    state: LearningState
    factors: AdaptiveFactors
    record: ReviewRecord
    expected_time: float | None = None

    @property
    def interval(self) -> int:
        return self.state.interval

    @property
    def next_review_at(self) -> datetime | None:
        return self.state.next_review_at


def validate_rating(rating: int) -> int:
    """Reject ratings outside 1-5 (bools and non-integers included)."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"Rating must be an integer, got {rating!r}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}")
    return rating


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class IntervalCalculator:
    """
    Computes the next ease factor, interval, repetitions, stage and due date.

    Total over ratings 1-5; callers validate the rating first.
    """

    def schedule(
        self,
        item: StudyItem,
        rating: int,
        params: LearningParameters,
        factors: AdaptiveFactors | None,
        now: datetime,
        time_spent: float = 0.0,
        session_id: str | None = None,
        expected_time: float | None = None,
    ) -> ScheduleResult:
        """
        Process one review of `item`.

        Args:
            item: Item being reviewed; its state is read, never mutated.
            rating: Learner rating (1-5).
            params: The user's learning parameters.
            factors: Adaptive factors; ignored (neutral) when adaptive mode is off.
            now: Review timestamp.
            time_spent: Seconds spent answering, stored on the record.
            session_id: Owning session, stored on the record.
            expected_time: Estimated answer time, reported in the result.

        Returns:
            ScheduleResult with the new state (history extended by one record).
        """
        state = item.state
        quality = rating - 1

        if params.use_adaptive_algorithm:
            applied = factors or AdaptiveFactors.neutral()
            ease = self._adaptive_ease(state.ease_factor, quality, applied, params)
        else:
            applied = AdaptiveFactors.neutral()
            ease = self._classic_ease(state.ease_factor, quality, params)

        interval, stage, repetitions = self._next_interval(state, quality, ease, params, applied)

        record = ReviewRecord(
            item_id=item.id,
            user_id=item.user_id,
            reviewed_at=now,
            rating=rating,
            interval=state.interval,
            time_spent=time_spent,
            factors=applied,
            ease_factor=ease,
            session_id=session_id,
            id=generate_review_id(),
        )

        new_state = replace(
            state,
            ease_factor=ease,
            interval=interval,
            repetitions=repetitions,
            stage=stage,
            last_review_at=now,
            next_review_at=now + timedelta(days=interval),
            history=[*state.history, record],
        )

        return ScheduleResult(
            state=new_state,
            factors=applied,
            record=record,
            expected_time=expected_time,
        )

    def _adaptive_ease(
        self,
        ease: float,
        quality: int,
        factors: AdaptiveFactors,
        params: LearningParameters,
    ) -> float:
        if quality >= PASSING_QUALITY:
            ease += 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
        else:
            ease -= EASE_PENALTY

        ease *= factors.difficulty_weight
        ease *= factors.retention_factor
        return self._clamp_ease(ease, params)

    def _classic_ease(self, ease: float, quality: int, params: LearningParameters) -> float:
        if quality >= PASSING_QUALITY:
            ease += params.ease_bonus_factor * (quality - PASSING_QUALITY)
        else:
            ease -= params.ease_penalty_factor
        return self._clamp_ease(ease, params)

    def _clamp_ease(self, ease: float, params: LearningParameters) -> float:
        floor = min(EASE_CEILING, max(EASE_FLOOR, params.min_ease_factor))
        return max(floor, min(EASE_CEILING, ease))

    def _next_interval(
        self,
        state: LearningState,
        quality: int,
        ease: float,
        params: LearningParameters,
        factors: AdaptiveFactors,
    ) -> tuple[int, LearningStage, int]:
        if quality < PASSING_QUALITY:
            return 0, LearningStage.LEARNING, 0

        repetitions = state.repetitions + 1

        if state.interval == 0:
            return FIRST_INTERVAL, LearningStage.LEARNING, repetitions

        if state.repetitions == 1:
            interval = GRADUATING_INTERVAL
        else:
            interval = round_half_up(state.interval * ease)
            interval = round_half_up(interval * params.interval_modifier / 100)
            if params.settings.adaptive_interval_scaling:
                interval = round_half_up(interval * factors.time_factor)
            interval = round_half_up(interval / factors.error_factor)

        interval = max(1, min(params.maximum_interval, interval))
        return interval, LearningStage.REVIEW, repetitions

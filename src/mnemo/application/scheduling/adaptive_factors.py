"""
Adaptive factor calculator.

Derives the four correction multipliers from an item's prior review history
and the user's settings. This is a pure computation module with no I/O.
Every factor is neutral (1.0) when there is not enough data.
"""

from mnemo.domain.constants import (
    DIFFICULTY_CEILING,
    DIFFICULTY_FLOOR,
    DIFFICULTY_STEP,
    ERROR_WINDOW,
    FAST_RATIO,
    RETENTION_MARGIN,
    RETENTION_MIN_REVIEWS,
    RETENTION_RELAX,
    RETENTION_TIGHTEN,
    SLOW_RATIO,
    TIME_FACTOR_CEILING,
    TIME_FACTOR_FLOOR,
)
from mnemo.domain.models import AdaptiveFactors, ReviewRecord, SettingsData, StudyItem

from .expected_time import estimate_expected_time


class AdaptiveFactorCalculator:
    """
    Computes time, error, difficulty and retention factors.

    Stateless and side-effect free.
    """

    def compute(
        self,
        item: StudyItem,
        actual_time: float,
        settings: SettingsData,
        expected_time: float | None = None,
    ) -> AdaptiveFactors:
        """
        Compute all four factors for a review of `item`.

        The item's history must not yet include the review being scored.
        """
        history = item.state.history
        if expected_time is None:
            expected_time = estimate_expected_time(item, history)

        return AdaptiveFactors(
            time_factor=self.time_factor(actual_time, expected_time, settings.time_weight),
            error_factor=self.error_factor(history, settings.error_weight),
            difficulty_weight=self.difficulty_weight(
                item.tags, settings.difficult_tags, settings.difficulty_weight
            ),
            retention_factor=self.retention_factor(history, settings.retention_target),
        )

    def time_factor(self, actual_time: float, expected_time: float, weight: float) -> float:
        """
        Slow answers shorten the interval, fast answers lengthen it.

        ratio > 2.0 -> max(0.7, 1 - (ratio - 2) * 0.1 * weight)
        ratio < 0.5 -> min(1.3, 1 + (0.5 - ratio) * 0.2 * weight)
        """
        if actual_time <= 0 or expected_time <= 0:
            return 1.0

        ratio = actual_time / expected_time

        if ratio > SLOW_RATIO:
            return max(TIME_FACTOR_FLOOR, 1.0 - (ratio - SLOW_RATIO) * 0.1 * weight)
        if ratio < FAST_RATIO:
            return min(TIME_FACTOR_CEILING, 1.0 + (FAST_RATIO - ratio) * 0.2 * weight)
        return 1.0

    def error_factor(self, history: list[ReviewRecord], weight: float) -> float:
        """1 + (failed / total) * weight over the last five reviews."""
        if not history:
            return 1.0

        recent = history[-ERROR_WINDOW:]
        error_rate = sum(1 for r in recent if r.failed) / len(recent)
        return 1.0 + error_rate * weight

    def difficulty_weight(
        self,
        tags: list[str],
        difficult_tags: list[str],
        weight: float,
    ) -> float:
        """Each tag the user struggles with pulls the weight down by 0.1 * weight."""
        value = 1.0
        if tags and difficult_tags:
            matches = sum(1 for tag in tags if tag in difficult_tags)
            value -= DIFFICULTY_STEP * matches * weight

        return max(DIFFICULTY_FLOOR, min(DIFFICULTY_CEILING, value))

    def retention_factor(self, history: list[ReviewRecord], target: float) -> float:
        """
        Calibrate toward the retention target.

        Below target tightens (0.9), more than 0.1 above relaxes (1.1).
        Needs at least five reviews.
        """
        if len(history) < RETENTION_MIN_REVIEWS:
            return 1.0

        actual = sum(1 for r in history if r.succeeded) / len(history)

        if actual < target:
            return RETENTION_TIGHTEN
        if actual > target + RETENTION_MARGIN:
            return RETENTION_RELAX
        return 1.0

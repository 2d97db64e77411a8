"""
Learning pattern analyzer.

Batch pass over a user's recent review history that recommends updated
learning parameters. Runs independently of review sessions.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from mnemo.application.parameters import ParameterService
from mnemo.application.scheduling.interval_calculator import round_half_up
from mnemo.domain.constants import (
    ANALYSIS_HISTORY_LIMIT,
    BASE_NEW_CARDS,
    BASE_RETENTION,
    EASE_CEILING,
    MAX_DIFFICULT_TAGS,
    MAX_OPTIMAL_HOURS,
    MIN_HOUR_OBSERVATIONS,
    MIN_TAG_OBSERVATIONS,
    MODIFIER_RECOMMEND_MAX,
    MODIFIER_RECOMMEND_MIN,
    NEW_CARDS_MAX,
    NEW_CARDS_MIN,
    RETENTION_TARGET_MAX,
    RETENTION_TARGET_MIN,
)
from mnemo.domain.models import LearningParameters, RecommendedSettings, ReviewRecord
from mnemo.domain.ports import Clock, SchedulerStore, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagPerformance:
    tag: str
    total: int
    correct: int

    @property
    def success_rate(self) -> float:
        return self.correct / self.total if self.total else 0.0


@dataclass(frozen=True)
class HourPerformance:
    hour: int  # 0-23, UTC
    reviews: int
    performance: float  # success rate


@dataclass(frozen=True)
class LearningAnalysis:
    """
    Result of analyzing a user's history.

    `recommended` is None when there was no history to learn from.
    """

    user_id: str
    review_count: int
    retention_rate: float
    average_ease_factor: float
    difficult_tags: list[str] = field(default_factory=list)
    tag_performance: dict[str, TagPerformance] = field(default_factory=dict)
    optimal_review_hours: list[HourPerformance] = field(default_factory=list)
    recommended: RecommendedSettings | None = None

    @classmethod
    def neutral(cls, user_id: str) -> "LearningAnalysis":
        return cls(user_id=user_id, review_count=0, retention_rate=0.0, average_ease_factor=0.0)


@dataclass(frozen=True)
class AppliedAnalysis:
    parameters: LearningParameters
    analysis: LearningAnalysis


class LearningPatternAnalyzer:
    """
    Derives difficult tags, retention, mean ease and recommended settings.

    Sparse history never fails: an empty history yields a neutral analysis.
    """

    def __init__(
        self,
        store: SchedulerStore,
        clock: Clock = utc_now,
        parameters: ParameterService | None = None,
        history_limit: int = ANALYSIS_HISTORY_LIMIT,
    ):
        self._store = store
        self._clock = clock
        self._parameters = parameters or ParameterService(store, clock)
        self._history_limit = history_limit

    async def analyze(self, user_id: str) -> LearningAnalysis:
        """Analyze the newest `history_limit` review records of a user."""
        records = await self._store.list_review_records(user_id, limit=self._history_limit)
        if not records:
            logger.info(f"No review history for user={user_id}; returning neutral analysis")
            return LearningAnalysis.neutral(user_id)

        items = await self._store.get_items(sorted({r.item_id for r in records}))
        tags_by_item = {item.id: list(item.tags) for item in items}
        fallback_ease = [item.state.ease_factor for item in items]

        return self.summarize(user_id, records, tags_by_item, fallback_ease)

    async def apply_analysis(self, user_id: str) -> AppliedAnalysis:
        """Merge the recommendations into the user's parameters."""
        analysis = await self.analyze(user_id)
        params = await self._parameters.merge_recommendation(
            user_id, analysis.recommended, analyzed_at=self._clock()
        )
        logger.info(
            f"Applied learning analysis for user={user_id} "
            f"({analysis.review_count} reviews, retention {analysis.retention_rate:.2f})"
        )
        return AppliedAnalysis(parameters=params, analysis=analysis)

    def summarize(
        self,
        user_id: str,
        records: list[ReviewRecord],
        tags_by_item: dict[str, list[str]],
        fallback_ease: list[float] | None = None,
    ) -> LearningAnalysis:
        """
        Pure computation over already-loaded records.

        Args:
            user_id: The learner.
            records: Review records (any order).
            tags_by_item: Tags of each reviewed item.
            fallback_ease: Ease values to average when records carry none.
        """
        if not records:
            return LearningAnalysis.neutral(user_id)

        tag_performance = self._tag_performance(records, tags_by_item)
        difficult_tags = self._difficult_tags(tag_performance)

        retention_rate = sum(1 for r in records if r.succeeded) / len(records)

        ease_values = [r.ease_factor for r in records if r.ease_factor is not None]
        if not ease_values:
            ease_values = list(fallback_ease or [EASE_CEILING])
        average_ease = sum(ease_values) / len(ease_values)

        recommended = RecommendedSettings(
            new_cards_per_day=self._clamp(
                round_half_up(BASE_NEW_CARDS * average_ease / EASE_CEILING),
                NEW_CARDS_MIN,
                NEW_CARDS_MAX,
            ),
            interval_modifier=self._clamp(
                round_half_up(100 * retention_rate / BASE_RETENTION),
                MODIFIER_RECOMMEND_MIN,
                MODIFIER_RECOMMEND_MAX,
            ),
            retention_target=self._clamp(
                retention_rate, RETENTION_TARGET_MIN, RETENTION_TARGET_MAX
            ),
            difficult_tags=difficult_tags,
            adaptive_interval_scaling=True,
        )

        return LearningAnalysis(
            user_id=user_id,
            review_count=len(records),
            retention_rate=retention_rate,
            average_ease_factor=average_ease,
            difficult_tags=difficult_tags,
            tag_performance=tag_performance,
            optimal_review_hours=self._optimal_hours(records),
            recommended=recommended,
        )

    def _tag_performance(
        self,
        records: list[ReviewRecord],
        tags_by_item: dict[str, list[str]],
    ) -> dict[str, TagPerformance]:
        totals: dict[str, int] = defaultdict(int)
        correct: dict[str, int] = defaultdict(int)

        for record in records:
            for tag in tags_by_item.get(record.item_id, []):
                totals[tag] += 1
                if record.succeeded:
                    correct[tag] += 1

        return {
            tag: TagPerformance(tag=tag, total=total, correct=correct[tag])
            for tag, total in totals.items()
        }

    def _difficult_tags(self, performance: dict[str, TagPerformance]) -> list[str]:
        """Five worst tags by success rate, ignoring tags with fewer than five reviews."""
        eligible = [p for p in performance.values() if p.total >= MIN_TAG_OBSERVATIONS]
        eligible.sort(key=lambda p: (p.success_rate, p.tag))
        return [p.tag for p in eligible[:MAX_DIFFICULT_TAGS]]

    def _optimal_hours(self, records: list[ReviewRecord]) -> list[HourPerformance]:
        """Hours of day with the best success rate (needs five reviews per hour)."""
        by_hour: dict[int, list[ReviewRecord]] = defaultdict(list)
        for record in records:
            by_hour[record.reviewed_at.hour].append(record)

        hours = [
            HourPerformance(
                hour=hour,
                reviews=len(group),
                performance=sum(1 for r in group if r.succeeded) / len(group),
            )
            for hour, group in by_hour.items()
            if len(group) >= MIN_HOUR_OBSERVATIONS
        ]
        hours.sort(key=lambda h: (-h.performance, -h.reviews, h.hour))
        return hours[:MAX_OPTIMAL_HOURS]

    @staticmethod
    def _clamp(value, low, high):
        return max(low, min(high, value))

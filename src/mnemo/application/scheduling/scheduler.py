"""
Item scheduler: wires the expected-time estimator, factor calculator and
interval calculator into one call per review.
"""

from datetime import datetime

from mnemo.domain.models import LearningParameters, StudyItem

from .adaptive_factors import AdaptiveFactorCalculator
from .expected_time import estimate_expected_time
from .interval_calculator import IntervalCalculator, ScheduleResult


class ItemScheduler:
    """Computes the post-review state of a single item. No I/O."""

    def __init__(
        self,
        factors: AdaptiveFactorCalculator | None = None,
        intervals: IntervalCalculator | None = None,
    ):
        self._factors = factors or AdaptiveFactorCalculator()
        self._intervals = intervals or IntervalCalculator()

    def review(
        self,
        item: StudyItem,
        rating: int,
        params: LearningParameters,
        now: datetime,
        time_spent: float = 0.0,
        session_id: str | None = None,
    ) -> ScheduleResult:
        expected_time = estimate_expected_time(item)

        factors = None
        if params.use_adaptive_algorithm:
            factors = self._factors.compute(
                item, time_spent, params.settings, expected_time=expected_time
            )

        return self._intervals.schedule(
            item,
            rating,
            params,
            factors,
            now,
            time_spent=time_spent,
            session_id=session_id,
            expected_time=expected_time,
        )

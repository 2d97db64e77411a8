# Application Scheduling Package
from .adaptive_factors import AdaptiveFactorCalculator
from .expected_time import estimate_expected_time
from .interval_calculator import IntervalCalculator, ScheduleResult, validate_rating
from .scheduler import ItemScheduler

__all__ = [
    "AdaptiveFactorCalculator",
    "IntervalCalculator",
    "ItemScheduler",
    "ScheduleResult",
    "estimate_expected_time",
    "validate_rating",
]

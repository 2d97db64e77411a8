# Application Stats Package
from .metrics_calculator import MetricsCalculator
from .service import LearningStats, LearningStatsService, ReviewStats

__all__ = ["MetricsCalculator", "LearningStats", "LearningStatsService", "ReviewStats"]

# Application Analysis Package
from .pattern_analyzer import (
    AppliedAnalysis,
    HourPerformance,
    LearningAnalysis,
    LearningPatternAnalyzer,
    TagPerformance,
)

__all__ = [
    "AppliedAnalysis",
    "HourPerformance",
    "LearningAnalysis",
    "LearningPatternAnalyzer",
    "TagPerformance",
]

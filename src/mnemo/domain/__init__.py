# Domain Package
from .errors import MnemoError, NotFoundError, PersistenceError, StateError, ValidationError
from .models import (
    AdaptiveFactors,
    CompletedReview,
    ContentType,
    ItemFilters,
    LearningParameters,
    LearningStage,
    LearningState,
    RecommendedSettings,
    ReviewRecord,
    ReviewSession,
    SessionMetrics,
    SessionStatus,
    SettingsData,
    StudyItem,
)
from .ports import Clock, SchedulerStore, utc_now

__all__ = [
    "AdaptiveFactors",
    "Clock",
    "CompletedReview",
    "ContentType",
    "ItemFilters",
    "LearningParameters",
    "LearningStage",
    "LearningState",
    "RecommendedSettings",
    "MnemoError",
    "NotFoundError",
    "PersistenceError",
    "ReviewRecord",
    "ReviewSession",
    "SchedulerStore",
    "SessionMetrics",
    "SessionStatus",
    "SettingsData",
    "StateError",
    "StudyItem",
    "ValidationError",
    "utc_now",
]

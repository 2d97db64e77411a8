"""
Domain models for adaptive review scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .constants import (
    DEFAULT_MAXIMUM_INTERVAL,
    EASE_CEILING,
    EASE_FLOOR,
    EASE_PENALTY,
    FAILED_RATING,
    SUCCESS_RATING,
)
from .errors import ValidationError

# Sort key for items that were never scheduled (immediately due).
NEVER_SCHEDULED = datetime.min.replace(tzinfo=timezone.utc)


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FORMULA = "formula"


class LearningStage(str, Enum):
    """new (never reviewed), learning (not graduated / recently failed), review."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"


class SessionStatus(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class AdaptiveFactors:
    """
    The four correction multipliers applied to a single review.

    Attributes:
        time_factor: Answer-time deviation (0.7-1.3), multiplies the interval.
        error_factor: 1 + recent error rate * weight, divides the interval.
        difficulty_weight: Per-tag difficulty (0.7-1.3), multiplies the ease.
        retention_factor: Retention calibration (0.9/1.0/1.1), multiplies the ease.
    """

    time_factor: float = 1.0
    error_factor: float = 1.0
    difficulty_weight: float = 1.0
    retention_factor: float = 1.0

    @classmethod
    def neutral(cls) -> "AdaptiveFactors":
        return cls()


@dataclass(frozen=True)
class ReviewRecord:
    """
    A single review log entry. Never mutated after creation.

    Attributes:
        item_id: The study item that was reviewed.
        user_id: Owner of the item.
        reviewed_at: When the review was submitted.
        rating: Learner's self-assessed recall (1-5).
        interval: Interval in days at the time of the review (before update).
        time_spent: Seconds spent answering.
        factors: Adaptive factors that were applied.
        ease_factor: Ease factor after the update.
        session_id: Session the review belonged to, if any.
        id: Record identifier assigned by the engine.
    """

    item_id: str
    user_id: str
    reviewed_at: datetime
    rating: int
    interval: int
    time_spent: float = 0.0
    factors: AdaptiveFactors = field(default_factory=AdaptiveFactors)
    ease_factor: float | None = None
    session_id: str | None = None
    id: str = ""

    @property
    def succeeded(self) -> bool:
        return self.rating >= SUCCESS_RATING

    @property
    def failed(self) -> bool:
        return self.rating < FAILED_RATING


@dataclass
class LearningState:
    """Scheduling state embedded in every StudyItem."""

    ease_factor: float = EASE_CEILING
    interval: int = 0
    repetitions: int = 0
    stage: LearningStage = LearningStage.NEW
    last_review_at: datetime | None = None
    next_review_at: datetime | None = None
    history: list[ReviewRecord] = field(default_factory=list)


@dataclass
class StudyItem:
    """
    A flashcard-like front/back pair owned by one learner.

    Created by a content collaborator; only the scheduler mutates `state`.
    """

    id: str
    user_id: str
    front: str
    back: str = ""
    content_type: ContentType = ContentType.TEXT
    tags: list[str] = field(default_factory=list)
    source: str | None = None  # Opaque reference to the creating collaborator
    state: LearningState = field(default_factory=LearningState)

    def validate(self) -> None:
        missing = [name for name in ("id", "user_id", "front") if not getattr(self, name)]
        if missing:
            raise ValidationError(f"Study item is missing required fields: {', '.join(missing)}")

    @property
    def due_key(self) -> datetime:
        return self.state.next_review_at or NEVER_SCHEDULED

    def is_due(self, now: datetime) -> bool:
        return self.due_key <= now


@dataclass(frozen=True)
class ItemFilters:
    """
    Optional constraints for due/upcoming queries.

    `tags` uses containment: an item matches when it carries every tag.
    """

    source: str | None = None
    tags: tuple[str, ...] = ()

    def matches(self, item: StudyItem) -> bool:
        if self.source is not None and item.source != self.source:
            return False
        if self.tags and not set(self.tags).issubset(item.tags):
            return False
        return True


@dataclass
class SettingsData:
    """Adaptive-mode tuning knobs (typed replacement for a loose settings map)."""

    difficulty_weight: float = 1.0
    retention_target: float = 0.9
    time_weight: float = 0.5
    error_weight: float = 1.5
    adaptive_interval_scaling: bool = True
    difficult_tags: list[str] = field(default_factory=list)


@dataclass
class LearningParameters:
    """
    Per-user scheduling configuration.

    `interval_modifier` is a percentage: 100 leaves intervals unchanged.
    """

    initial_ease_factor: float = EASE_CEILING
    min_ease_factor: float = EASE_FLOOR
    ease_bonus_factor: float = 0.15
    ease_penalty_factor: float = EASE_PENALTY
    interval_modifier: float = 100.0
    maximum_interval: int = DEFAULT_MAXIMUM_INTERVAL
    new_cards_per_day: int = 20
    review_cards_per_day: int = 100
    use_adaptive_algorithm: bool = True
    settings: SettingsData = field(default_factory=SettingsData)
    last_analysis_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class RecommendedSettings:
    """Configuration changes suggested by learning pattern analysis."""

    new_cards_per_day: int
    interval_modifier: int  # percentage
    retention_target: float
    difficult_tags: list[str] = field(default_factory=list)
    adaptive_interval_scaling: bool = True


@dataclass(frozen=True)
class CompletedReview:
    """One submission recorded in a session's local log."""

    item_id: str
    rating: int
    time_spent: float
    reviewed_at: datetime
    item: StudyItem
    data: dict[str, Any] = field(default_factory=dict)  # Client telemetry, as submitted


@dataclass(frozen=True)
class SessionMetrics:
    average_rating: float
    perfect_count: int
    completion_rate: float
    item_count: int
    duration: float  # seconds


@dataclass
class ReviewSession:
    """
    One bounded sequence of due-item reviews for a single learner.

    `items` is a snapshot taken at start time. Only the session manager
    mutates a session; it lives in process memory until completed.
    """

    id: str
    user_id: str
    items: tuple[StudyItem, ...]
    started_at: datetime
    item_shown_at: datetime
    current_index: int = 0
    status: SessionStatus = SessionStatus.CREATED
    ended_at: datetime | None = None
    completed: list[CompletedReview] = field(default_factory=list)
    filters: ItemFilters = field(default_factory=ItemFilters)
    metrics: SessionMetrics | None = None

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def is_exhausted(self) -> bool:
        return self.current_index >= len(self.items)

    @property
    def current_item(self) -> StudyItem | None:
        if self.is_exhausted:
            return None
        return self.items[self.current_index]

from datetime import datetime, timedelta, timezone

import pytest

from mnemo.domain.models import LearningStage, LearningState, ReviewRecord, StudyItem
from mnemo.infrastructure.adapters import InMemoryStore

# Wednesday morning, UTC
FROZEN_NOW = datetime(2024, 3, 6, 9, 30, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(FROZEN_NOW)


@pytest.fixture
def now(clock):
    return clock.now


@pytest.fixture
def store():
    return InMemoryStore()


def make_item(
    item_id: str = "item-1",
    user_id: str = "user-1",
    front: str = "What is the capital of France?",
    back: str = "Paris",
    tags=None,
    source=None,
    **state,
) -> StudyItem:
    """Build a study item; keyword arguments beyond the item fields go to its LearningState."""
    return StudyItem(
        id=item_id,
        user_id=user_id,
        front=front,
        back=back,
        tags=list(tags or []),
        source=source,
        state=LearningState(**state),
    )


def make_record(
    rating: int,
    reviewed_at: datetime = FROZEN_NOW,
    item_id: str = "item-1",
    user_id: str = "user-1",
    **kwargs,
) -> ReviewRecord:
    return ReviewRecord(
        item_id=item_id,
        user_id=user_id,
        reviewed_at=reviewed_at,
        rating=rating,
        interval=kwargs.pop("interval", 1),
        **kwargs,
    )


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def due_item(now):
    """An item in the review stage that fell due an hour ago."""
    return make_item(
        stage=LearningStage.REVIEW,
        interval=6,
        repetitions=2,
        next_review_at=now - timedelta(hours=1),
    )


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home

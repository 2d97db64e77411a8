"""Tests for domain models: validation, due ordering and filters."""

from datetime import timedelta

import pytest

from mnemo.domain.errors import ValidationError
from mnemo.domain.models import (
    NEVER_SCHEDULED,
    ItemFilters,
    LearningParameters,
    LearningStage,
    ReviewSession,
)


def test_new_item_defaults(item_factory):
    item = item_factory()

    assert item.state.ease_factor == 2.5
    assert item.state.interval == 0
    assert item.state.repetitions == 0
    assert item.state.stage == LearningStage.NEW
    assert item.state.history == []


@pytest.mark.parametrize("missing", ["id", "user_id", "front"])
def test_validate_rejects_missing_required_fields(item_factory, missing):
    item = item_factory()
    setattr(item, missing, "")

    with pytest.raises(ValidationError, match=missing):
        item.validate()


def test_unscheduled_item_is_always_due(item_factory, now):
    item = item_factory()

    assert item.due_key == NEVER_SCHEDULED
    assert item.is_due(now)


def test_item_due_exactly_at_next_review(item_factory, now):
    item = item_factory(next_review_at=now)

    assert item.is_due(now)
    assert not item.is_due(now - timedelta(seconds=1))


def test_record_success_and_failure_thresholds(record_factory):
    assert record_factory(2).failed
    assert not record_factory(2).succeeded
    assert record_factory(3).succeeded
    assert not record_factory(3).failed


# --- Filters ---


def test_filters_require_every_tag(item_factory):
    item = item_factory(tags=["math", "algebra"])

    assert ItemFilters(tags=("math",)).matches(item)
    assert ItemFilters(tags=("math", "algebra")).matches(item)
    assert not ItemFilters(tags=("math", "geometry")).matches(item)


def test_filters_match_source(item_factory):
    item = item_factory(source="deck-42")

    assert ItemFilters().matches(item)
    assert ItemFilters(source="deck-42").matches(item)
    assert not ItemFilters(source="deck-7").matches(item)


# --- Parameters & sessions ---


def test_interval_modifier_defaults_to_neutral_percentage():
    params = LearningParameters()

    assert params.interval_modifier == 100.0
    assert params.use_adaptive_algorithm is True
    assert params.settings.retention_target == 0.9


def test_session_cursor_properties(item_factory, now):
    items = (item_factory("a"), item_factory("b"))
    session = ReviewSession(
        id="s1", user_id="user-1", items=items, started_at=now, item_shown_at=now
    )

    assert session.total == 2
    assert session.current_item.id == "a"

    session.current_index = 2
    assert session.is_exhausted
    assert session.current_item is None

"""Tests for learning pattern analysis and recommendations."""

from datetime import timedelta

import pytest

from mnemo.application.analysis import LearningPatternAnalyzer
from mnemo.application.parameters import ParameterService


@pytest.fixture
def analyzer(store, clock):
    return LearningPatternAnalyzer(store, clock)


async def _seed(store, item_factory, record_factory, now):
    """Kanji reviewed in the morning (2/5 recalled), verbs in the evening (5/5)."""
    await store.upsert_item_state(item_factory("k1", tags=["kanji"]))
    await store.upsert_item_state(item_factory("v1", tags=["verbs"], ease_factor=1.8))

    morning = now.replace(hour=9)
    evening = now.replace(hour=20) - timedelta(days=1)
    for i, rating in enumerate([1, 2, 5, 5, 1]):
        await store.append_review_record(
            record_factory(
                rating, morning - timedelta(days=i), item_id="k1", ease_factor=2.0
            )
        )
    for i in range(5):
        await store.append_review_record(
            record_factory(5, evening - timedelta(days=i), item_id="v1", ease_factor=2.0)
        )


@pytest.mark.asyncio
async def test_empty_history_is_neutral(analyzer):
    analysis = await analyzer.analyze("user-1")

    assert analysis.review_count == 0
    assert analysis.recommended is None
    assert analysis.difficult_tags == []


@pytest.mark.asyncio
async def test_analysis_metrics(analyzer, store, item_factory, record_factory, now):
    await _seed(store, item_factory, record_factory, now)

    analysis = await analyzer.analyze("user-1")

    assert analysis.review_count == 10
    assert analysis.retention_rate == pytest.approx(0.7)
    assert analysis.average_ease_factor == pytest.approx(2.0)
    assert analysis.tag_performance["kanji"].success_rate == pytest.approx(0.4)
    assert analysis.difficult_tags == ["kanji", "verbs"]
    assert [h.hour for h in analysis.optimal_review_hours] == [20, 9]


@pytest.mark.asyncio
async def test_recommendations_are_clamped(analyzer, store, item_factory, record_factory, now):
    await _seed(store, item_factory, record_factory, now)

    rec = (await analyzer.analyze("user-1")).recommended

    assert rec.new_cards_per_day == 16  # 20 * 2.0 / 2.5
    assert rec.interval_modifier == 80  # 78 clamped up
    assert rec.retention_target == 0.8  # 0.7 clamped up
    assert rec.difficult_tags == ["kanji", "verbs"]
    assert rec.adaptive_interval_scaling is True


def test_strong_history_recommends_longer_intervals(analyzer, record_factory):
    records = [record_factory(5, ease_factor=2.5) for _ in range(10)]

    analysis = analyzer.summarize("user-1", records, {"item-1": ["easy"]})

    assert analysis.recommended.new_cards_per_day == 20
    assert analysis.recommended.interval_modifier == 111
    assert analysis.recommended.retention_target == 0.95


def test_tags_need_five_observations(analyzer, record_factory):
    records = [record_factory(1, ease_factor=1.3) for _ in range(4)]

    analysis = analyzer.summarize("user-1", records, {"item-1": ["rare"]})

    assert analysis.difficult_tags == []
    assert analysis.tag_performance["rare"].total == 4


def test_ease_falls_back_to_item_state(analyzer, record_factory):
    records = [record_factory(4) for _ in range(3)]

    analysis = analyzer.summarize("user-1", records, {}, fallback_ease=[1.5, 2.5])

    assert analysis.average_ease_factor == pytest.approx(2.0)


def test_hours_need_five_reviews(analyzer, record_factory, now):
    records = [record_factory(5, now) for _ in range(4)]

    analysis = analyzer.summarize("user-1", records, {})

    assert analysis.optimal_review_hours == []


@pytest.mark.asyncio
async def test_history_limit_uses_newest_records(store, clock, item_factory, record_factory, now):
    await store.upsert_item_state(item_factory())
    for i in range(5):
        await store.append_review_record(record_factory(1, now - timedelta(days=10 + i)))
    for i in range(3):
        await store.append_review_record(record_factory(5, now - timedelta(days=i)))

    analysis = await LearningPatternAnalyzer(store, clock, history_limit=3).analyze("user-1")

    assert analysis.review_count == 3
    assert analysis.retention_rate == 1.0


# --- Apply ---


@pytest.mark.asyncio
async def test_apply_merges_into_parameters(store, clock, item_factory, record_factory, now):
    await _seed(store, item_factory, record_factory, now)
    parameters = ParameterService(store, clock)
    analyzer = LearningPatternAnalyzer(store, clock, parameters=parameters)

    applied = await analyzer.apply_analysis("user-1")

    params = await parameters.load("user-1")
    assert params == applied.parameters
    assert params.new_cards_per_day == 16
    assert params.interval_modifier == 80.0
    assert params.settings.retention_target == 0.8
    assert params.settings.difficult_tags == ["kanji", "verbs"]
    assert params.last_analysis_at == now


@pytest.mark.asyncio
async def test_apply_with_no_history_only_stamps(analyzer, store, now):
    applied = await analyzer.apply_analysis("user-1")

    assert applied.analysis.recommended is None
    assert applied.parameters.last_analysis_at == now
    assert applied.parameters.interval_modifier == 100.0

from datetime import datetime, timedelta, timezone

import pytest

from mnemo.application.stats import MetricsCalculator


@pytest.fixture
def calculator():
    return MetricsCalculator()


def test_retention_score_counts_good_ratings(calculator, record_factory):
    records = [record_factory(r) for r in (5, 4, 3, 2)]

    assert calculator.retention_score(records) == 50.0


def test_retention_score_empty(calculator):
    assert calculator.retention_score([]) == 0.0


def test_streak_counts_consecutive_days(calculator, now):
    ends = [now, now - timedelta(days=1), now - timedelta(days=1, hours=3), now - timedelta(days=2)]

    assert calculator.study_streak(ends, now.date()) == 3


def test_streak_broken_by_gap(calculator, now):
    ends = [now, now - timedelta(days=2)]

    assert calculator.study_streak(ends, now.date()) == 1


def test_streak_zero_without_session_today(calculator, now):
    ends = [now - timedelta(days=1), now - timedelta(days=2)]

    assert calculator.study_streak(ends, now.date()) == 0


def test_start_of_week_is_monday_midnight(calculator, now):
    # FROZEN_NOW is Wednesday 2024-03-06
    assert calculator.start_of_week(now) == datetime(2024, 3, 4, tzinfo=timezone.utc)


def test_start_of_week_on_monday(calculator):
    monday = datetime(2024, 3, 4, 18, 0, tzinfo=timezone.utc)

    assert calculator.start_of_week(monday) == datetime(2024, 3, 4, tzinfo=timezone.utc)


def test_start_of_day(calculator, now):
    assert calculator.start_of_day(now) == datetime(2024, 3, 6, tzinfo=timezone.utc)

"""Expected answer time for a study item."""

from mnemo.domain.constants import (
    BASE_EXPECTED_TIME,
    EXPECTED_TIME_WINDOW,
    FORMULA_BONUS,
    IMAGE_BONUS,
    LONG_CONTENT_BONUS,
    LONG_CONTENT_CHARS,
    MEDIUM_CONTENT_BONUS,
    MEDIUM_CONTENT_CHARS,
)
from mnemo.domain.models import ContentType, ReviewRecord, StudyItem


def estimate_expected_time(item: StudyItem, history: list[ReviewRecord] | None = None) -> float:
    """
    Estimate how many seconds a normal answer to `item` should take.

    Content shape sets the baseline; when the last (up to three) reviews
    carry timing data, the baseline is averaged with their mean.

    Args:
        item: The study item being answered.
        history: Prior review records, oldest first. Defaults to the item's history.

    Returns:
        Expected answer time in seconds (always positive).
    """
    expected = BASE_EXPECTED_TIME

    content_length = len(item.front or "") + len(item.back or "")
    if content_length > LONG_CONTENT_CHARS:
        expected += LONG_CONTENT_BONUS
    elif content_length > MEDIUM_CONTENT_CHARS:
        expected += MEDIUM_CONTENT_BONUS

    if item.content_type == ContentType.IMAGE:
        expected += IMAGE_BONUS
    elif item.content_type == ContentType.FORMULA:
        expected += FORMULA_BONUS

    records = item.state.history if history is None else history
    if records:
        recent = records[-EXPECTED_TIME_WINDOW:]
        average = sum(r.time_spent or 0.0 for r in recent) / len(recent)
        if average > 0:
            expected = (expected + average) / 2

    return expected

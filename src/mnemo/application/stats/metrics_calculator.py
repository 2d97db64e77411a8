"""
Metrics calculator for learning statistics.

This is a pure computation module with no I/O.
"""

from datetime import date, datetime, timedelta

from mnemo.domain.constants import RETENTION_SCORE_RATING
from mnemo.domain.models import ReviewRecord


class MetricsCalculator:
    """
    Derives summary numbers from review records and session dates.

    Stateless and side-effect free.
    """

    def retention_score(self, records: list[ReviewRecord]) -> float:
        """
        Percentage of reviews rated 4 or better.

        Returns 0.0 when there are no reviews.
        """
        if not records:
            return 0.0
        good = sum(1 for r in records if r.rating >= RETENTION_SCORE_RATING)
        return good / len(records) * 100

    def study_streak(self, session_ends: list[datetime], today: date) -> int:
        """
        Consecutive days, ending today, with at least one completed session.

        A streak is 0 if nothing was completed today.
        """
        days = {ended.date() for ended in session_ends}
        if today not in days:
            return 0

        streak = 0
        current = today
        while current in days:
            streak += 1
            current -= timedelta(days=1)
        return streak

    def start_of_week(self, now: datetime) -> datetime:
        """Midnight on the Monday of the week containing `now`."""
        midnight = self.start_of_day(now)
        return midnight - timedelta(days=midnight.weekday())

    def start_of_day(self, now: datetime) -> datetime:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)

"""
Per-user learning parameter service.

Loads parameters (creating defaults on first use) and performs the
read-modify-write updates issued by session completion and analysis.
Updates for one user are serialized inside this process; across
processes the store's last write wins.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import fields, replace
from datetime import datetime
from typing import Any

from mnemo.domain.constants import (
    MODIFIER_CEILING,
    MODIFIER_FLOOR,
    NUDGE_DOWN,
    NUDGE_HIGH_RATING,
    NUDGE_LOW_RATING,
    NUDGE_UP,
)
from mnemo.domain.errors import ValidationError
from mnemo.domain.models import LearningParameters, RecommendedSettings, SettingsData
from mnemo.domain.ports import Clock, SchedulerStore, utc_now

logger = logging.getLogger(__name__)

_PARAMETER_FIELDS = {f.name for f in fields(LearningParameters)} - {
    "settings",
    "last_analysis_at",
    "updated_at",
}
_SETTINGS_FIELDS = {f.name for f in fields(SettingsData)}


def _check_range(name: str, value: Any) -> None:
    positive = {
        "initial_ease_factor",
        "min_ease_factor",
        "interval_modifier",
        "maximum_interval",
    }
    non_negative = {
        "ease_bonus_factor",
        "ease_penalty_factor",
        "new_cards_per_day",
        "review_cards_per_day",
        "difficulty_weight",
        "time_weight",
        "error_weight",
    }
    flags = {"use_adaptive_algorithm", "adaptive_interval_scaling"}

    if name in flags:
        if not isinstance(value, bool):
            raise ValidationError(f"{name} must be a boolean, got {value!r}")
        return

    if name == "difficult_tags":
        if not isinstance(value, (list, tuple)) or not all(isinstance(t, str) for t in value):
            raise ValidationError("difficult_tags must be a list of strings")
        return

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {value!r}")

    if name in {"maximum_interval", "new_cards_per_day", "review_cards_per_day"}:
        if not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer, got {value!r}")

    if name in positive and value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")
    if name in non_negative and value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    if name == "retention_target" and not 0 < value <= 1:
        raise ValidationError(f"retention_target must be in (0, 1], got {value}")


class ParameterService:
    """Owns reads and writes of LearningParameters."""

    def __init__(self, store: SchedulerStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def load(self, user_id: str) -> LearningParameters:
        """Return the user's parameters, persisting defaults on first use."""
        params = await self._store.load_parameters(user_id)
        if params is None:
            params = LearningParameters(updated_at=self._clock())
            await self._store.save_parameters(user_id, params)
            logger.info(f"Created default learning parameters for user={user_id}")
        return params

    async def update_settings(self, user_id: str, **changes: Any) -> LearningParameters:
        """
        Apply caller-requested changes.

        Keys may name LearningParameters fields or SettingsData fields.

        Raises:
            ValidationError: Unknown field or out-of-range value; nothing is written.
        """
        top: dict[str, Any] = {}
        nested: dict[str, Any] = {}
        for name, value in changes.items():
            if name not in _PARAMETER_FIELDS and name not in _SETTINGS_FIELDS:
                raise ValidationError(f"Unknown learning parameter: {name}")
            _check_range(name, value)

            if name in _PARAMETER_FIELDS:
                top[name] = value
            else:
                nested[name] = list(value) if name == "difficult_tags" else value

        async with self._locks[user_id]:
            params = await self.load(user_id)
            params = replace(
                params,
                **top,
                settings=replace(params.settings, **nested),
                updated_at=self._clock(),
            )
            await self._store.save_parameters(user_id, params)

        return params

    async def nudge_interval_modifier(
        self, user_id: str, average_rating: float
    ) -> LearningParameters:
        """
        Small automatic adjustment after a completed session.

        avg > 4.5 -> modifier * 1.05 (capped at 150%)
        avg < 3   -> modifier * 0.95 (floored at 50%)
        """
        async with self._locks[user_id]:
            params = await self.load(user_id)
            modifier = params.interval_modifier

            if average_rating > NUDGE_HIGH_RATING:
                modifier = min(MODIFIER_CEILING, modifier * NUDGE_UP)
            elif average_rating < NUDGE_LOW_RATING:
                modifier = max(MODIFIER_FLOOR, modifier * NUDGE_DOWN)
            else:
                return params

            params = replace(params, interval_modifier=modifier, updated_at=self._clock())
            await self._store.save_parameters(user_id, params)

        logger.info(
            f"Interval modifier for user={user_id} nudged to {modifier:.2f}% "
            f"(average rating {average_rating:.2f})"
        )
        return params

    async def merge_recommendation(
        self,
        user_id: str,
        recommendation: RecommendedSettings | None,
        analyzed_at: datetime,
    ) -> LearningParameters:
        """Merge analysis output into the stored parameters and stamp the time."""
        async with self._locks[user_id]:
            params = await self.load(user_id)

            if recommendation is not None:
                params = replace(
                    params,
                    new_cards_per_day=recommendation.new_cards_per_day,
                    interval_modifier=float(recommendation.interval_modifier),
                    settings=replace(
                        params.settings,
                        retention_target=recommendation.retention_target,
                        difficult_tags=list(recommendation.difficult_tags),
                        adaptive_interval_scaling=recommendation.adaptive_interval_scaling,
                    ),
                )

            params = replace(params, last_analysis_at=analyzed_at, updated_at=self._clock())
            await self._store.save_parameters(user_id, params)

        return params

"""Plain-dict conversion of domain objects for file-backed stores."""

from datetime import datetime, timezone
from typing import Any

from mnemo.domain.constants import EASE_CEILING
from mnemo.domain.models import (
    AdaptiveFactors,
    ContentType,
    ItemFilters,
    LearningParameters,
    LearningStage,
    LearningState,
    ReviewRecord,
    ReviewSession,
    SessionMetrics,
    SessionStatus,
    SettingsData,
    StudyItem,
)


def _dt_out(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _dt_in(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------- Review records ----------


def record_to_dict(record: ReviewRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "item_id": record.item_id,
        "user_id": record.user_id,
        "session_id": record.session_id,
        "reviewed_at": _dt_out(record.reviewed_at),
        "rating": record.rating,
        "interval": record.interval,
        "time_spent": record.time_spent,
        "ease_factor": record.ease_factor,
        "factors": {
            "time_factor": record.factors.time_factor,
            "error_factor": record.factors.error_factor,
            "difficulty_weight": record.factors.difficulty_weight,
            "retention_factor": record.factors.retention_factor,
        },
    }


def record_from_dict(data: dict[str, Any]) -> ReviewRecord:
    return ReviewRecord(
        id=data.get("id", ""),
        item_id=data["item_id"],
        user_id=data["user_id"],
        session_id=data.get("session_id"),
        reviewed_at=_dt_in(data["reviewed_at"]),
        rating=int(data["rating"]),
        interval=int(data.get("interval", 0)),
        time_spent=float(data.get("time_spent", 0.0)),
        ease_factor=data.get("ease_factor"),
        factors=AdaptiveFactors(**(data.get("factors") or {})),
    )


# ---------- Items ----------


def item_to_dict(item: StudyItem) -> dict[str, Any]:
    state = item.state
    return {
        "id": item.id,
        "user_id": item.user_id,
        "front": item.front,
        "back": item.back,
        "content_type": item.content_type.value,
        "tags": list(item.tags),
        "source": item.source,
        "state": {
            "ease_factor": state.ease_factor,
            "interval": state.interval,
            "repetitions": state.repetitions,
            "stage": state.stage.value,
            "last_review_at": _dt_out(state.last_review_at),
            "next_review_at": _dt_out(state.next_review_at),
            "history": [record_to_dict(r) for r in state.history],
        },
    }


def item_from_dict(data: dict[str, Any]) -> StudyItem:
    """Build an item; a missing `state` block means a brand-new item."""
    raw_state = data.get("state") or {}
    state = LearningState(
        ease_factor=float(raw_state.get("ease_factor", EASE_CEILING)),
        interval=int(raw_state.get("interval", 0)),
        repetitions=int(raw_state.get("repetitions", 0)),
        stage=LearningStage(raw_state.get("stage", LearningStage.NEW.value)),
        last_review_at=_dt_in(raw_state.get("last_review_at")),
        next_review_at=_dt_in(raw_state.get("next_review_at")),
        history=[record_from_dict(r) for r in raw_state.get("history") or []],
    )
    return StudyItem(
        id=str(data["id"]),
        user_id=str(data["user_id"]),
        front=data.get("front", ""),
        back=data.get("back", ""),
        content_type=ContentType(data.get("content_type", ContentType.TEXT.value)),
        tags=[str(t) for t in data.get("tags") or []],
        source=data.get("source"),
        state=state,
    )


# ---------- Parameters ----------


def parameters_to_dict(params: LearningParameters) -> dict[str, Any]:
    settings = params.settings
    return {
        "initial_ease_factor": params.initial_ease_factor,
        "min_ease_factor": params.min_ease_factor,
        "ease_bonus_factor": params.ease_bonus_factor,
        "ease_penalty_factor": params.ease_penalty_factor,
        "interval_modifier": params.interval_modifier,
        "maximum_interval": params.maximum_interval,
        "new_cards_per_day": params.new_cards_per_day,
        "review_cards_per_day": params.review_cards_per_day,
        "use_adaptive_algorithm": params.use_adaptive_algorithm,
        "last_analysis_at": _dt_out(params.last_analysis_at),
        "updated_at": _dt_out(params.updated_at),
        "settings": {
            "difficulty_weight": settings.difficulty_weight,
            "retention_target": settings.retention_target,
            "time_weight": settings.time_weight,
            "error_weight": settings.error_weight,
            "adaptive_interval_scaling": settings.adaptive_interval_scaling,
            "difficult_tags": list(settings.difficult_tags),
        },
    }


def parameters_from_dict(data: dict[str, Any]) -> LearningParameters:
    values = dict(data)
    settings = SettingsData(**(values.pop("settings", None) or {}))
    values["last_analysis_at"] = _dt_in(values.get("last_analysis_at"))
    values["updated_at"] = _dt_in(values.get("updated_at"))
    return LearningParameters(settings=settings, **values)


# ---------- Sessions ----------


def session_to_dict(session: ReviewSession) -> dict[str, Any]:
    """
    Session records keep item ids and metrics, not the item snapshot.
    """
    metrics = session.metrics
    return {
        "id": session.id,
        "user_id": session.user_id,
        "status": session.status.value,
        "item_ids": [item.id for item in session.items],
        "started_at": _dt_out(session.started_at),
        "ended_at": _dt_out(session.ended_at),
        "filters": {"source": session.filters.source, "tags": list(session.filters.tags)},
        "metrics": (
            {
                "average_rating": metrics.average_rating,
                "perfect_count": metrics.perfect_count,
                "completion_rate": metrics.completion_rate,
                "item_count": metrics.item_count,
                "duration": metrics.duration,
            }
            if metrics
            else None
        ),
    }


def session_from_dict(
    data: dict[str, Any], items: tuple[StudyItem, ...] = ()
) -> ReviewSession:
    """Rebuild a session record; `items` are resolved by the caller from `item_ids`."""
    started_at = _dt_in(data["started_at"])
    raw_filters = data.get("filters") or {}
    metrics = data.get("metrics")
    return ReviewSession(
        id=data["id"],
        user_id=data["user_id"],
        items=items,
        started_at=started_at,
        item_shown_at=started_at,
        status=SessionStatus(data.get("status", SessionStatus.IN_PROGRESS.value)),
        ended_at=_dt_in(data.get("ended_at")),
        filters=ItemFilters(
            source=raw_filters.get("source"), tags=tuple(raw_filters.get("tags") or ())
        ),
        metrics=SessionMetrics(**metrics) if metrics else None,
    )

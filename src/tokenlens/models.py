import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping


class SnapshotFormatError(ValueError):
    """
    raised when a collaborator payload can't be turned into a
    UsageSnapshot.
    """


@dataclass(frozen=True, slots=True)
class ModelUsage:
    tokens: "int"
    cost: "float"


@dataclass(frozen=True, slots=True)
class DailyUsage:
    """
    DailyUsage is a single calendar-day bucket. The per-model
    token counts are expected to sum to at most total_tokens,
    but nothing upstream enforces it.
    """

    date: "date"
    total_tokens: "int"
    total_cost: "float"
    models: "Mapping[str, ModelUsage]" = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ResetInfo:
    # milliseconds until the next reset
    time_until_reset_ms: "float | None" = None
    next_reset_time: "datetime | None" = None
    formatted_time_remaining: "str | None" = None


@dataclass(frozen=True, slots=True)
class Velocity:
    # one of increasing, decreasing, stable
    trend: "str"
    trend_percent: "float"


@dataclass(frozen=True, slots=True)
class Prediction:
    confidence: "float"


@dataclass(frozen=True, slots=True)
class SessionTracking:
    sessions_in_window: "int"
    active_window_tokens: "int"


@dataclass(frozen=True, slots=True)
class UsageSnapshot:
    """
    UsageSnapshot is one immutable usage reading handed over by
    the data-acquisition collaborator. tokens_used, token_limit
    and tokens_remaining are reported independently and are not
    assumed to be consistent with each other.
    """

    tokens_used: "int"
    token_limit: "int"
    tokens_remaining: "int"
    percentage_used: "float"
    # tokens per hour
    burn_rate: "float"
    current_plan: "str"
    today: "DailyUsage"
    this_week: "tuple[DailyUsage, ...]" = ()
    this_month: "tuple[DailyUsage, ...]" = ()
    # raw ISO timestamp, parsed lazily by the projection layer
    predicted_depleted: "str | None" = None
    # estimated reset timing, used only when actual_reset_info is absent
    reset_info: "ResetInfo | None" = None
    actual_reset_info: "ResetInfo | None" = None
    velocity: "Velocity | None" = None
    prediction: "Prediction | None" = None
    session_tracking: "SessionTracking | None" = None

    @classmethod
    def from_dict(cls, payload: "Mapping[str, Any]") -> "UsageSnapshot":
        """
        builds a snapshot from the collaborator's camelCase JSON.
        Optional structures that are missing become None and
        missing numbers become 0.
        """
        if not isinstance(payload, Mapping):
            raise SnapshotFormatError("snapshot payload must be an object")

        today_raw = payload.get("today")
        if today_raw is None:
            today = DailyUsage(date=date.today(), total_tokens=0, total_cost=0.0)
        else:
            today = _parse_daily(today_raw)

        return cls(
            tokens_used=_int(payload, "tokensUsed"),
            token_limit=_int(payload, "tokenLimit"),
            tokens_remaining=_int(payload, "tokensRemaining"),
            percentage_used=_float(payload, "percentageUsed"),
            burn_rate=_float(payload, "burnRate"),
            current_plan=str(payload.get("currentPlan") or "unknown"),
            today=today,
            this_week=tuple(_parse_daily(d) for d in payload.get("thisWeek") or []),
            this_month=tuple(_parse_daily(d) for d in payload.get("thisMonth") or []),
            predicted_depleted=payload.get("predictedDepleted") or None,
            reset_info=_parse_reset(payload.get("resetInfo")),
            actual_reset_info=_parse_reset(payload.get("actualResetInfo")),
            velocity=_parse_velocity(payload.get("velocity")),
            prediction=_parse_prediction(payload.get("prediction")),
            session_tracking=_parse_session(payload.get("sessionTracking")),
        )


def _number(value: "Any", key: "str") -> "float":
    if value is None:
        return 0.0
    # bools are ints in python but never a valid count
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise SnapshotFormatError(f"{key!r} must be a number, got {value!r}")
    try:
        return float(value)
    except ValueError as e:
        raise SnapshotFormatError(f"{key!r} must be a number, got {value!r}") from e


def _float(data: "Mapping[str, Any]", key: "str") -> "float":
    return _number(data.get(key), key)


def _int(data: "Mapping[str, Any]", key: "str") -> "int":
    value = _number(data.get(key), key)
    if not math.isfinite(value):
        return 0
    return int(value)


def _parse_date(value: "Any") -> "date":
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise SnapshotFormatError(f"invalid bucket date {value!r}")
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value).date()
    except ValueError as e:
        raise SnapshotFormatError(f"invalid bucket date {value!r}") from e


def _parse_timestamp(value: "Any") -> "datetime | None":
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _parse_daily(raw: "Any") -> "DailyUsage":
    if not isinstance(raw, Mapping):
        raise SnapshotFormatError("daily usage bucket must be an object")

    models: "dict[str, ModelUsage]" = {}
    for model_id, data in (raw.get("models") or {}).items():
        if not isinstance(data, Mapping):
            raise SnapshotFormatError(f"model entry {model_id!r} must be an object")
        models[str(model_id)] = ModelUsage(
            tokens=_int(data, "tokens"),
            cost=_float(data, "cost"),
        )

    return DailyUsage(
        date=_parse_date(raw.get("date")),
        total_tokens=_int(raw, "totalTokens"),
        total_cost=_float(raw, "totalCost"),
        models=models,
    )


def _parse_reset(raw: "Any") -> "ResetInfo | None":
    if not isinstance(raw, Mapping):
        return None

    time_until = raw.get("timeUntilReset")
    return ResetInfo(
        time_until_reset_ms=(
            None if time_until is None else _number(time_until, "timeUntilReset")
        ),
        next_reset_time=_parse_timestamp(raw.get("nextResetTime")),
        formatted_time_remaining=raw.get("formattedTimeRemaining") or None,
    )


def _parse_velocity(raw: "Any") -> "Velocity | None":
    if not isinstance(raw, Mapping):
        return None
    return Velocity(
        trend=str(raw.get("trend") or "stable"),
        trend_percent=_float(raw, "trendPercent"),
    )


def _parse_prediction(raw: "Any") -> "Prediction | None":
    if not isinstance(raw, Mapping):
        return None
    return Prediction(confidence=_float(raw, "confidence"))


def _parse_session(raw: "Any") -> "SessionTracking | None":
    if not isinstance(raw, Mapping):
        return None
    active = raw.get("activeWindow") or {}
    if not isinstance(active, Mapping):
        active = {}
    return SessionTracking(
        sessions_in_window=_int(raw, "sessionsInWindow"),
        active_window_tokens=_int(active, "totalTokens"),
    )

import math
from dataclasses import dataclass
from enum import Enum

from tokenlens.models import DailyUsage, UsageSnapshot


class TimeRange(Enum):
    WEEK = "7d"
    MONTH = "30d"


class Metric(Enum):
    TOKENS = "tokens"
    COST = "cost"


# positional colors for the model breakdown, any further model
# is drawn in NEUTRAL_COLOR
MODEL_PALETTE: "tuple[str, ...]" = ("#8B5CF6", "#3B82F6", "#10B981")
NEUTRAL_COLOR = "#6B7280"

# applied in order, first occurrence only. The generic "claude-3-"
# removal must run after the "claude-3-5-" one or it would leave a
# stray "5-" prefix behind.
DISPLAY_NAME_REPLACEMENTS: "tuple[tuple[str, str], ...]" = (
    ("claude-3-5-", ""),
    ("claude-3-", ""),
    ("sonnet-4-", "Sonnet 4-"),
    ("sonnet", "Sonnet"),
    ("opus", "Opus"),
    ("haiku", "Haiku"),
    ("20250514", ""),
)

# the weekly average always spreads over a full week, even when
# fewer buckets were reported
WEEK_DAYS = 7


@dataclass(frozen=True, slots=True)
class SeriesPoint:
    display_date: "str"
    short_date: "str"
    iso_date: "str"
    total_tokens: "int"
    total_cost: "float"
    # position in the selected window, not a calendar offset
    index: "int"

    def value(self, metric: "Metric") -> "float":
        if metric is Metric.COST:
            return self.total_cost
        return self.total_tokens


@dataclass(frozen=True, slots=True)
class ModelShare:
    model_id: "str"
    display_name: "str"
    token_value: "int"
    cost: "float"
    percentage_of_today: "float"
    color: "str"


@dataclass(frozen=True, slots=True)
class WeeklySummary:
    total_tokens: "int"
    total_cost: "float"
    avg_daily_tokens: "float"
    avg_daily_cost: "float"


def select_window(
    snapshot: "UsageSnapshot",
    time_range: "TimeRange",
) -> "tuple[DailyUsage, ...]":
    """
    returns the buckets for the given range in the order the
    collector reported them.
    """
    if time_range is TimeRange.MONTH:
        return snapshot.this_month
    return snapshot.this_week


def build_series(
    snapshot: "UsageSnapshot",
    time_range: "TimeRange",
) -> "list[SeriesPoint]":
    return [
        SeriesPoint(
            display_date=f"{day.date:%b} {day.date.day}",
            short_date=f"{day.date.month}/{day.date.day}",
            iso_date=day.date.isoformat(),
            total_tokens=day.total_tokens,
            total_cost=day.total_cost,
            index=index,
        )
        for index, day in enumerate(select_window(snapshot, time_range))
    ]


def model_display_name(model_id: "str") -> "str":
    name = model_id
    for old, new in DISPLAY_NAME_REPLACEMENTS:
        name = name.replace(old, new, 1)
    return name.strip()


def model_color(position: "int") -> "str":
    if 0 <= position < len(MODEL_PALETTE):
        return MODEL_PALETTE[position]
    return NEUTRAL_COLOR


def model_breakdown(today: "DailyUsage") -> "list[ModelShare]":
    """
    splits today's usage per model. Percentages are relative to
    today's total, clamped to [0, 100] each and scaled down when
    the per-model counts add up to more than the reported total.
    """
    total = today.total_tokens
    raw: "list[float]" = []
    for usage in today.models.values():
        if total > 0:
            raw.append(max(0.0, min(100.0, usage.tokens / total * 100)))
        else:
            raw.append(0.0)

    overall = sum(raw)
    scale = 100 / overall if overall > 100 else 1.0

    percentages: "list[float]" = []
    allotted = 0.0
    for pct in raw:
        share = max(0.0, min(pct * scale, 100.0 - allotted))
        # scaling can still overshoot 100 by a rounding error
        while share > 0 and allotted + share > 100.0:
            share = math.nextafter(share, 0.0)
        percentages.append(share)
        allotted += share

    return [
        ModelShare(
            model_id=model_id,
            display_name=model_display_name(model_id),
            token_value=usage.tokens,
            cost=usage.cost,
            percentage_of_today=pct,
            color=model_color(position),
        )
        for position, ((model_id, usage), pct) in enumerate(
            zip(today.models.items(), percentages)
        )
    ]


def weekly_summary(snapshot: "UsageSnapshot") -> "WeeklySummary":
    total_tokens = sum(day.total_tokens for day in snapshot.this_week)
    total_cost = sum(day.total_cost for day in snapshot.this_week)
    return WeeklySummary(
        total_tokens=total_tokens,
        total_cost=total_cost,
        avg_daily_tokens=total_tokens / WEEK_DAYS,
        avg_daily_cost=total_cost / WEEK_DAYS,
    )

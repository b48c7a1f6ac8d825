from datetime import date, timedelta
from typing import Any, Callable

import pytest
from prometheus_client import CollectorRegistry

from tokenlens.models import DailyUsage, ModelUsage, ResetInfo, UsageSnapshot


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


def make_day(
    day: "date",
    tokens: "int" = 0,
    cost: "float" = 0.0,
    models: "dict[str, tuple[int, float]] | None" = None,
) -> "DailyUsage":
    return DailyUsage(
        date=day,
        total_tokens=tokens,
        total_cost=cost,
        models={
            name: ModelUsage(tokens=t, cost=c) for name, (t, c) in (models or {}).items()
        },
    )


@pytest.fixture()
def make_snapshot() -> "Callable[..., UsageSnapshot]":
    """
    builds a snapshot with sensible defaults; keyword arguments
    override any field.
    """

    def _make(**overrides: "Any") -> "UsageSnapshot":
        today = date(2025, 6, 7)
        fields: "dict[str, Any]" = {
            "tokens_used": 3000,
            "token_limit": 10000,
            "tokens_remaining": 7000,
            "percentage_used": 30.0,
            "burn_rate": 200.0,
            "current_plan": "Pro",
            "today": make_day(
                today,
                tokens=3000,
                cost=1.5,
                models={
                    "claude-3-5-sonnet-20241022": (2000, 1.0),
                    "claude-3-haiku-20240307": (1000, 0.5),
                },
            ),
            "this_week": tuple(
                make_day(today - timedelta(days=6 - i), tokens=1000 * (i + 1), cost=0.5 * (i + 1))
                for i in range(7)
            ),
            "this_month": tuple(
                make_day(today - timedelta(days=29 - i), tokens=100 * i, cost=0.05 * i)
                for i in range(30)
            ),
            "reset_info": ResetInfo(time_until_reset_ms=6 * 3_600_000),
        }
        fields.update(overrides)
        return UsageSnapshot(**fields)

    return _make


@pytest.fixture()
def snapshot_payload() -> "dict[str, Any]":
    """
    a snapshot as the collector serializes it.
    """
    return {
        "tokensUsed": 9000,
        "tokenLimit": 10000,
        "tokensRemaining": 1000,
        "percentageUsed": 90,
        "burnRate": 1200,
        "currentPlan": "Max5",
        "predictedDepleted": "2025-06-07T13:00:00Z",
        "resetInfo": {"timeUntilReset": 1_800_000},
        "actualResetInfo": {
            "nextResetTime": "2025-06-07T14:00:00Z",
            "formattedTimeRemaining": "1h 0m",
        },
        "today": {
            "date": "2025-06-07",
            "totalTokens": 9000,
            "totalCost": 4.2,
            "models": {
                "claude-sonnet-4-20250514": {"tokens": 6000, "cost": 3.0},
                "claude-3-5-haiku-20241022": {"tokens": 3000, "cost": 1.2},
            },
        },
        "thisWeek": [
            {"date": "2025-06-06", "totalTokens": 5000, "totalCost": 2.0, "models": {}},
            {"date": "2025-06-07T00:00:00Z", "totalTokens": 9000, "totalCost": 4.2},
        ],
        "thisMonth": [],
        "velocity": {"trend": "increasing", "trendPercent": 12.5},
        "prediction": {"confidence": 80},
        "sessionTracking": {"sessionsInWindow": 3, "activeWindow": {"totalTokens": 4200}},
    }


@pytest.fixture()
def make_daily() -> "Callable[..., DailyUsage]":
    return make_day

import math
from datetime import datetime, timezone

import structlog

from tokenlens.config import Plan, Preferences
from tokenlens.formatters import pluralize, round_half_up
from tokenlens.models import DailyUsage, ResetInfo, UsageSnapshot

logger = structlog.get_logger()

UNLIMITED = "unlimited"
NOT_AVAILABLE = "N/A"
NO_DEPLETION = "no depletion projected"

MS_PER_DAY = 86_400_000
# single daily reset cadence
CYCLE_LENGTH_MS = MS_PER_DAY
# burn rate that fills the burn-rate gauge completely
BURN_RATE_GAUGE_MAX = 2000


def _now(now: "datetime | None") -> "datetime":
    return now if now is not None else datetime.now(timezone.utc)


def _aware(value: "datetime") -> "datetime":
    # naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def time_to_depletion_text(burn_rate: "float", tokens_remaining: "float") -> "str":
    """
    projects how long the remaining tokens last at the current
    burn rate, bucketed into minutes, hours or days.
    """
    try:
        if not (math.isfinite(burn_rate) and math.isfinite(tokens_remaining)):
            return NOT_AVAILABLE
        if burn_rate <= 0:
            return UNLIMITED

        hours_remaining = tokens_remaining / burn_rate
        if hours_remaining < 1:
            return pluralize(round_half_up(hours_remaining * 60), "minute")
        if hours_remaining < 24:
            return pluralize(round_half_up(hours_remaining), "hour")
        return pluralize(round_half_up(hours_remaining / 24), "day")
    except Exception:
        logger.warning(
            "time_to_depletion_failed",
            burn_rate=burn_rate,
            tokens_remaining=tokens_remaining,
        )
        return NOT_AVAILABLE


def depletion_text(
    predicted_depleted: "str | None",
    burn_rate: "float",
    now: "datetime | None" = None,
) -> "str":
    """
    narrates when the plan runs out given the collector's
    predicted depletion timestamp. Any parsing problem degrades
    to the no-depletion text.
    """
    if not predicted_depleted or not burn_rate > 0:
        return NO_DEPLETION

    try:
        depletion = _aware(datetime.fromisoformat(predicted_depleted))
        diff_ms = (depletion - _aware(_now(now))).total_seconds() * 1000
        diff_days = math.ceil(diff_ms / MS_PER_DAY)
    except Exception:
        logger.warning("depletion_parse_failed", predicted_depleted=predicted_depleted)
        return NO_DEPLETION

    if diff_days < 0:
        return "already depleted"
    if diff_days == 0:
        return "today"
    if diff_days == 1:
        return "tomorrow"
    if diff_days < 7:
        return f"in {pluralize(diff_days, 'day')}"
    if diff_days < 30:
        return f"in {pluralize(math.ceil(diff_days / 7), 'week')}"
    return f"in {pluralize(math.ceil(diff_days / 30), 'month')}"


def time_window_progress(reset_info: "ResetInfo | None") -> "float":
    """
    share of the current 24h usage window already elapsed, in
    percent. Linear model, assumes one reset per day.
    """
    if reset_info is None or reset_info.time_until_reset_ms is None:
        return 0.0
    remaining = reset_info.time_until_reset_ms
    if not math.isfinite(remaining):
        return 0.0

    elapsed = CYCLE_LENGTH_MS - remaining
    return max(0.0, min(100.0, elapsed / CYCLE_LENGTH_MS * 100))


def resolve_reset(snapshot: "UsageSnapshot") -> "ResetInfo | None":
    """
    picks the authoritative reset info and only falls back to the
    estimated one when it's absent. Fields are never mixed between
    the two sources.
    """
    if snapshot.actual_reset_info is not None:
        return snapshot.actual_reset_info
    return snapshot.reset_info


def reset_countdown_text(
    reset_info: "ResetInfo | None",
    now: "datetime | None" = None,
) -> "str":
    if reset_info is None:
        return "not available"

    if reset_info.next_reset_time is not None:
        delta = _aware(reset_info.next_reset_time) - _aware(_now(now))
        remaining_ms = max(0.0, delta.total_seconds() * 1000)
    elif reset_info.time_until_reset_ms is not None and math.isfinite(
        reset_info.time_until_reset_ms
    ):
        remaining_ms = max(0.0, reset_info.time_until_reset_ms)
    else:
        return "not available"

    if remaining_ms <= 0:
        return "reset available"

    hours = int(remaining_ms // 3_600_000)
    minutes = int((remaining_ms % 3_600_000) // 60_000)
    if hours > 0:
        return f"{hours}h {minutes}m left"
    if minutes > 0:
        return f"{minutes}m left"
    return "less than a minute left"


def cost_per_thousand_tokens(day: "DailyUsage") -> "float":
    if day.total_tokens > 0 and day.total_cost > 0:
        return day.total_cost / day.total_tokens * 1000
    return 0.0


def limit_progress(percentage: "float") -> "float":
    if not math.isfinite(percentage):
        return 0.0
    return max(0.0, min(percentage, 100.0))


def burn_rate_gauge(burn_rate: "float") -> "float":
    if not math.isfinite(burn_rate) or burn_rate <= 0:
        return 0.0
    return min(burn_rate / BURN_RATE_GAUGE_MAX * 100, 100.0)


def effective_token_limit(
    snapshot: "UsageSnapshot",
    preferences: "Preferences",
) -> "int":
    if preferences.plan is Plan.CUSTOM and preferences.custom_token_limit:
        return preferences.custom_token_limit
    return snapshot.token_limit

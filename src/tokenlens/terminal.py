from datetime import datetime

from tokenlens.config import PLAN_LIMIT_LABELS, Plan, Preferences
from tokenlens.formatters import (
    format_currency,
    format_duration_ms,
    format_number,
    format_percentage,
    format_trend_percent,
    progress_bar,
    round_half_up,
)
from tokenlens.geometry import max_value
from tokenlens.models import UsageSnapshot
from tokenlens.projection import (
    cost_per_thousand_tokens,
    depletion_text,
    effective_token_limit,
    limit_progress,
    time_to_depletion_text,
    time_window_progress,
)
from tokenlens.series import TimeRange, build_series, model_breakdown, weekly_summary
from tokenlens.status import (
    LIVE_THRESHOLDS,
    Status,
    burn_rate_tier,
    burn_tier_glyph,
    classify,
    status_glyph,
    trend_glyph,
)

SYSTEM_STATUS_TEXT: "dict[Status, str]" = {
    Status.CRITICAL: "CRITICAL",
    Status.WARNING: "WARNING",
    Status.SAFE: "NORMAL",
}


def plan_display(snapshot: "UsageSnapshot", preferences: "Preferences") -> "tuple[str, str]":
    """
    returns (plan text, how it was chosen) for the plan line.
    """
    if preferences.plan is Plan.AUTO:
        return f"Auto-detect ({snapshot.current_plan})", "detected"
    if preferences.plan is Plan.CUSTOM:
        limit = effective_token_limit(snapshot, preferences)
        return f"Custom ({format_number(limit)})", "selected"
    return f"Claude {preferences.plan.value} ({PLAN_LIMIT_LABELS[preferences.plan]})", "selected"


def time_until_reset_text(snapshot: "UsageSnapshot") -> "str":
    reset = snapshot.reset_info
    if reset is None or not reset.time_until_reset_ms:
        return "no reset info"
    return format_duration_ms(reset.time_until_reset_ms)


def render(
    snapshot: "UsageSnapshot",
    preferences: "Preferences | None" = None,
    now: "datetime | None" = None,
    width: "int" = 20,
) -> "str":
    """
    renders the terminal-style readout of a snapshot as plain text.
    """
    preferences = preferences or Preferences()
    now = now or datetime.now()
    status = classify(snapshot.percentage_used, LIVE_THRESHOLDS)
    tier = burn_rate_tier(snapshot.burn_rate)
    percentage = limit_progress(snapshot.percentage_used)
    window = time_window_progress(snapshot.reset_info)
    plan_text, plan_label = plan_display(snapshot, preferences)

    lines = [
        f"┌─ TOKEN USAGE MONITOR ─┐  {now:%H:%M:%S}",
        "",
        f"Token usage    {percentage:.1f}% {status_glyph(status)}",
        f"[{progress_bar(percentage, width)}] "
        f"{format_number(snapshot.tokens_used)}/{format_number(snapshot.token_limit)}",
        f"Time window    {window:.1f}%",
        f"[{progress_bar(window, width, filled='▓', empty='▒')}] "
        f"reset in {time_until_reset_text(snapshot)}",
        "",
        f"Burn rate      {format_number(snapshot.burn_rate)} tok/h "
        f"{burn_tier_glyph(tier)} {tier.value}",
        f"Remaining      {format_number(snapshot.tokens_remaining)} "
        f"({time_to_depletion_text(snapshot.burn_rate, snapshot.tokens_remaining)})",
        f"Cost today     {format_currency(snapshot.today.total_cost)}",
        f"Plan           {plan_text} [{plan_label}]",
    ]

    if snapshot.session_tracking is not None:
        tracking = snapshot.session_tracking
        lines.append(
            f"Sessions       {tracking.sessions_in_window} in window, "
            f"{format_number(tracking.active_window_tokens)} tokens active"
        )

    if snapshot.velocity is not None:
        velocity = snapshot.velocity
        lines.append(
            f"Velocity       {trend_glyph(velocity.trend)} {velocity.trend} "
            f"{format_trend_percent(velocity.trend_percent)}"
        )

    if snapshot.prediction is not None:
        lines.append(f"Confidence     {snapshot.prediction.confidence:.0f}%")

    lines.append("")
    lines.append(f"System: {SYSTEM_STATUS_TEXT[status]}")
    return "\n".join(lines)


def render_analytics(
    snapshot: "UsageSnapshot",
    time_range: "TimeRange" = TimeRange.WEEK,
    now: "datetime | None" = None,
    width: "int" = 20,
) -> "str":
    """
    renders the analytics readout: weekly totals, the per-day
    series as text bars, today's model breakdown and projections.
    """
    summary = weekly_summary(snapshot)
    series = build_series(snapshot, time_range)

    lines = [
        f"Week tokens    {format_number(summary.total_tokens)}",
        f"Week cost      {format_currency(summary.total_cost, digits=5)}",
        f"Daily average  {format_number(round_half_up(summary.avg_daily_tokens))} tokens, "
        f"{format_currency(summary.avg_daily_cost, digits=5)}",
        "",
        f"Last {'7' if time_range is TimeRange.WEEK else '30'} days",
    ]

    if not series:
        lines.append("  no usage data for this period")
    else:
        top = max_value([point.total_tokens for point in series])
        for point in series:
            lines.append(
                f"  {point.short_date:>5} "
                f"{progress_bar(point.total_tokens / top * 100, width)} "
                f"{format_number(point.total_tokens)}"
            )

    lines.append("")
    lines.append("Models today")
    shares = model_breakdown(snapshot.today)
    if not shares:
        lines.append("  no model usage today")
    for share in shares:
        lines.append(
            f"  {share.display_name:<16} {format_number(share.token_value):>7} "
            f"{format_percentage(share.percentage_of_today):>6} "
            f"{format_currency(share.cost, digits=5)}"
        )

    lines += [
        "",
        f"Burn rate      {format_number(snapshot.burn_rate)} tok/h "
        f"({burn_rate_tier(snapshot.burn_rate).value})",
        f"Depletion      {depletion_text(snapshot.predicted_depleted, snapshot.burn_rate, now)}",
        f"Cost per 1K    {format_currency(cost_per_thousand_tokens(snapshot.today), digits=5)}",
    ]
    return "\n".join(lines)

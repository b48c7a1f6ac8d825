from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge

from tokenlens.models import UsageSnapshot
from tokenlens.projection import time_window_progress
from tokenlens.series import weekly_summary
from tokenlens.status import DASHBOARD_THRESHOLDS, Status, classify

_STATUS_LEVELS: "dict[Status, int]" = {
    Status.SAFE: 0,
    Status.WARNING: 1,
    Status.CRITICAL: 2,
}


class MetricsUpdater:
    """
    publishes the derived values of each accepted snapshot as
    Prometheus gauges, plus a counter of failed acquisitions.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._tokens_used: "Gauge" = Gauge(
            "tokenlens_tokens_used",
            "Tokens consumed in the current usage window",
            ["plan"],
            registry=registry,
        )
        self._token_limit: "Gauge" = Gauge(
            "tokenlens_token_limit",
            "Token limit of the current plan",
            ["plan"],
            registry=registry,
        )
        self._percentage_used: "Gauge" = Gauge(
            "tokenlens_percentage_used",
            "Share of the token limit consumed, in percent",
            registry=registry,
        )
        self._burn_rate: "Gauge" = Gauge(
            "tokenlens_burn_rate_tokens_per_hour",
            "Current consumption velocity in tokens per hour",
            registry=registry,
        )
        self._window_progress: "Gauge" = Gauge(
            "tokenlens_time_window_progress_percent",
            "Elapsed share of the daily usage window, in percent",
            registry=registry,
        )
        self._status_level: "Gauge" = Gauge(
            "tokenlens_status_level",
            "Usage status: 0 safe, 1 warning, 2 critical",
            registry=registry,
        )
        self._today_cost: "Gauge" = Gauge(
            "tokenlens_today_cost_usd",
            "Cost accrued today in USD",
            registry=registry,
        )
        self._week_tokens: "Gauge" = Gauge(
            "tokenlens_week_tokens",
            "Tokens consumed over the reported week",
            registry=registry,
        )
        self._refresh_errors: "Counter" = Counter(
            "tokenlens_refresh_errors_total",
            "Total number of failed snapshot acquisitions by source and stage",
            ["source", "stage"],
            registry=registry,
        )
        self._last_update: "Gauge" = Gauge(
            "tokenlens_last_update_timestamp_seconds",
            "Unix timestamp of the last accepted snapshot",
            registry=registry,
        )

    def update_snapshot(self, snapshot: "UsageSnapshot") -> "None":
        """
        sets every gauge from the given snapshot.
        """
        plan = snapshot.current_plan
        # only the current plan's series stays exported
        self._tokens_used.clear()
        self._token_limit.clear()
        self._tokens_used.labels(plan=plan).set(snapshot.tokens_used)
        self._token_limit.labels(plan=plan).set(snapshot.token_limit)
        self._percentage_used.set(snapshot.percentage_used)
        self._burn_rate.set(snapshot.burn_rate)
        self._window_progress.set(time_window_progress(snapshot.reset_info))
        self._status_level.set(
            _STATUS_LEVELS[classify(snapshot.percentage_used, DASHBOARD_THRESHOLDS)]
        )
        self._today_cost.set(snapshot.today.total_cost)
        self._week_tokens.set(weekly_summary(snapshot).total_tokens)
        self._last_update.set_to_current_time()

    def inc_refresh_error(self, source: "str", stage: "str") -> "None":
        self._refresh_errors.labels(source=source, stage=stage).inc()

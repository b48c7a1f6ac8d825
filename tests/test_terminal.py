from datetime import datetime

from tokenlens.config import Plan, Preferences
from tokenlens.models import DailyUsage, Prediction, SessionTracking, Velocity
from tokenlens.series import TimeRange
from tokenlens.status import Status, status_glyph
from tokenlens.terminal import plan_display, render, render_analytics

NOW = datetime(2025, 6, 7, 12, 30, 5)


class TestRender:
    def test_default_readout(self, make_snapshot) -> "None":
        lines = render(make_snapshot(), now=NOW, width=10).splitlines()

        assert lines[0] == "┌─ TOKEN USAGE MONITOR ─┐  12:30:05"
        assert f"Token usage    30.0% {status_glyph(Status.SAFE)}" in lines
        assert "[███░░░░░░░] 3.0K/10.0K" in lines
        assert "Time window    75.0%" in lines
        assert "[▓▓▓▓▓▓▓▓▒▒] reset in 6h 0m" in lines
        assert "Remaining      7.0K (1 day)" in lines
        assert "Cost today     $1.50" in lines
        assert "Plan           Auto-detect (Pro) [detected]" in lines
        assert lines[-1] == "System: NORMAL"

    def test_critical_readout(self, make_snapshot) -> "None":
        snapshot = make_snapshot(
            tokens_used=9000,
            tokens_remaining=1000,
            percentage_used=90,
            burn_rate=1200,
        )
        text = render(snapshot, now=NOW)

        assert "Remaining      1.0K (50 minutes)" in text
        assert "1.2K tok/h" in text
        assert text.endswith("System: CRITICAL")

    def test_live_warning_threshold(self, make_snapshot) -> "None":
        assert render(make_snapshot(percentage_used=71), now=NOW).endswith("System: WARNING")

    def test_missing_reset_and_unlimited(self, make_snapshot) -> "None":
        text = render(make_snapshot(reset_info=None, burn_rate=0), now=NOW)

        assert "reset in no reset info" in text
        assert "Time window    0.0%" in text
        assert "(unlimited)" in text

    def test_optional_sections(self, make_snapshot) -> "None":
        snapshot = make_snapshot(
            session_tracking=SessionTracking(sessions_in_window=3, active_window_tokens=4200),
            velocity=Velocity(trend="increasing", trend_percent=12.5),
            prediction=Prediction(confidence=80),
        )
        text = render(snapshot, now=NOW)

        assert "Sessions       3 in window, 4.2K tokens active" in text
        assert "Velocity       📈 increasing +12.5%" in text
        assert "Confidence     80%" in text

    def test_optional_sections_absent(self, make_snapshot) -> "None":
        text = render(make_snapshot(), now=NOW)
        assert "Sessions" not in text
        assert "Velocity" not in text


class TestPlanDisplay:
    def test_manual_plans(self, make_snapshot) -> "None":
        snapshot = make_snapshot()
        assert plan_display(snapshot, Preferences(plan=Plan.PRO)) == (
            "Claude Pro (7K)",
            "selected",
        )
        assert plan_display(snapshot, Preferences(plan=Plan.MAX20)) == (
            "Claude Max20 (140K)",
            "selected",
        )

    def test_custom_plan(self, make_snapshot) -> "None":
        prefs = Preferences(plan=Plan.CUSTOM, custom_token_limit=50000)
        assert plan_display(make_snapshot(), prefs) == ("Custom (50.0K)", "selected")


class TestRenderAnalytics:
    def test_week_summary(self, make_snapshot) -> "None":
        lines = render_analytics(make_snapshot(), now=NOW).splitlines()

        assert "Week tokens    28.0K" in lines
        assert "Week cost      $14.00000" in lines
        assert "Daily average  4.0K tokens, $2.00000" in lines
        assert "Last 7 days" in lines
        assert "Depletion      no depletion projected" in lines
        assert "Cost per 1K    $0.50000" in lines
        assert "Burn rate      200 tok/h (normal)" in lines

    def test_series_bars(self, make_snapshot) -> "None":
        lines = render_analytics(make_snapshot(), now=NOW, width=7).splitlines()
        bars = [line for line in lines if line.startswith("  ") and "/" in line]

        assert len(bars) == 7
        assert bars[-1] == "    6/7 ███████ 7.0K"
        assert bars[0] == "    6/1 █░░░░░░ 1.0K"

    def test_month_range(self, make_snapshot) -> "None":
        text = render_analytics(make_snapshot(), TimeRange.MONTH, now=NOW)
        assert "Last 30 days" in text

    def test_model_breakdown(self, make_snapshot) -> "None":
        text = render_analytics(make_snapshot(), now=NOW)

        assert "Models today" in text
        assert "Sonnet-20241022" in text
        assert "66.7%" in text
        assert "33.3%" in text

    def test_empty_states(self, make_snapshot) -> "None":
        snapshot = make_snapshot(
            this_week=(),
            today=DailyUsage(date=NOW.date(), total_tokens=0, total_cost=0.0),
        )
        text = render_analytics(snapshot, now=NOW)

        assert "no usage data for this period" in text
        assert "no model usage today" in text
        assert "Cost per 1K    $0.00000" in text

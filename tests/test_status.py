import math

import pytest

from tokenlens.status import (
    DASHBOARD_THRESHOLDS,
    LIVE_THRESHOLDS,
    BurnTier,
    Status,
    burn_rate_tier,
    burn_tier_glyph,
    classify,
    status_glyph,
    trend_glyph,
)


class TestClassify:
    @pytest.mark.parametrize(
        ("percentage", "expected"),
        [
            (0, Status.SAFE),
            (74.999, Status.SAFE),
            (75, Status.WARNING),
            (89.999, Status.WARNING),
            (90, Status.CRITICAL),
            (150, Status.CRITICAL),
        ],
    )
    def test_dashboard_boundaries(self, percentage: "float", expected: "Status") -> "None":
        assert classify(percentage) is expected

    def test_live_thresholds_warn_earlier(self) -> "None":
        assert classify(72, LIVE_THRESHOLDS) is Status.WARNING
        assert classify(72, DASHBOARD_THRESHOLDS) is Status.SAFE
        assert classify(69.999, LIVE_THRESHOLDS) is Status.SAFE

    def test_thresholds_are_independent(self) -> "None":
        assert DASHBOARD_THRESHOLDS.warning == 75
        assert LIVE_THRESHOLDS.warning == 70
        assert DASHBOARD_THRESHOLDS.critical == LIVE_THRESHOLDS.critical == 90

    def test_nan_is_safe(self) -> "None":
        assert classify(math.nan) is Status.SAFE


class TestBurnRateTier:
    @pytest.mark.parametrize(
        ("rate", "expected"),
        [
            (0, BurnTier.NORMAL),
            (500, BurnTier.NORMAL),
            (500.1, BurnTier.MODERATE),
            (1000, BurnTier.MODERATE),
            (1000.1, BurnTier.HIGH),
        ],
    )
    def test_tiers(self, rate: "float", expected: "BurnTier") -> "None":
        assert burn_rate_tier(rate) is expected

    def test_independent_of_status(self) -> "None":
        # a high burn rate says nothing about the usage percentage
        assert burn_rate_tier(5000) is BurnTier.HIGH
        assert classify(10) is Status.SAFE


class TestGlyphs:
    def test_status_glyphs(self) -> "None":
        assert status_glyph(Status.CRITICAL) == "🔴"
        assert status_glyph(Status.SAFE) == "🟢"

    def test_burn_glyphs(self) -> "None":
        assert burn_tier_glyph(BurnTier.HIGH) == "🔥"
        assert burn_tier_glyph(BurnTier.NORMAL) == "💤"

    def test_unknown_trend_falls_back_to_stable(self) -> "None":
        assert trend_glyph("increasing") == "📈"
        assert trend_glyph("sideways") == trend_glyph("stable")

from dataclasses import dataclass
from enum import Enum


class Status(Enum):
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


class BurnTier(Enum):
    NORMAL = "normal"
    MODERATE = "moderate"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class StatusThresholds:
    """
    StatusThresholds holds one view's calibration of the usage
    percentage tiers. Views keep their own instance; the dashboard
    and the live monitor deliberately disagree on the warning line.
    """

    warning: "float"
    critical: "float" = 90.0


DASHBOARD_THRESHOLDS = StatusThresholds(warning=75.0)
LIVE_THRESHOLDS = StatusThresholds(warning=70.0)

# tokens per hour
HIGH_BURN_RATE = 1000
MODERATE_BURN_RATE = 500

STATUS_GLYPHS: "dict[Status, str]" = {
    Status.CRITICAL: "🔴",
    Status.WARNING: "🟡",
    Status.SAFE: "🟢",
}

BURN_TIER_GLYPHS: "dict[BurnTier, str]" = {
    BurnTier.HIGH: "🔥",
    BurnTier.MODERATE: "⚡",
    BurnTier.NORMAL: "💤",
}

TREND_GLYPHS: "dict[str, str]" = {
    "increasing": "📈",
    "decreasing": "📉",
    "stable": "➡️",
}


def classify(
    percentage: "float",
    thresholds: "StatusThresholds" = DASHBOARD_THRESHOLDS,
) -> "Status":
    """
    maps a usage percentage to a severity tier. NaN falls through
    every comparison and lands on SAFE.
    """
    if percentage >= thresholds.critical:
        return Status.CRITICAL
    if percentage >= thresholds.warning:
        return Status.WARNING
    return Status.SAFE


def burn_rate_tier(burn_rate: "float") -> "BurnTier":
    if burn_rate > HIGH_BURN_RATE:
        return BurnTier.HIGH
    if burn_rate > MODERATE_BURN_RATE:
        return BurnTier.MODERATE
    return BurnTier.NORMAL


def status_glyph(status: "Status") -> "str":
    return STATUS_GLYPHS[status]


def burn_tier_glyph(tier: "BurnTier") -> "str":
    return BURN_TIER_GLYPHS[tier]


def trend_glyph(trend: "str") -> "str":
    return TREND_GLYPHS.get(trend, TREND_GLYPHS["stable"])

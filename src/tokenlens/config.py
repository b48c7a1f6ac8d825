import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import structlog
from tzlocal import get_localzone_name

logger = structlog.get_logger()


class Plan(Enum):
    AUTO = "auto"
    PRO = "Pro"
    MAX5 = "Max5"
    MAX20 = "Max20"
    CUSTOM = "Custom"


class DisplayMode(Enum):
    PERCENTAGE = "percentage"
    COST = "cost"
    ALTERNATE = "alternate"


class CostSource(Enum):
    TODAY = "today"
    SESSION_WINDOW = "sessionWindow"


# compact limit labels shown next to a manually selected plan
PLAN_LIMIT_LABELS: "dict[Plan, str]" = {
    Plan.PRO: "7K",
    Plan.MAX5: "35K",
    Plan.MAX20: "140K",
}


def _system_timezone() -> "str":
    """
    IANA name of the host's local zone, honouring TZ.
    """
    return get_localzone_name() or "UTC"


def _enum_value(enum_cls: "type[Enum]", raw: "Any", default: "Enum") -> "Enum":
    try:
        return enum_cls(raw)
    except ValueError:
        logger.warning(
            "preference_value_invalid",
            field=enum_cls.__name__,
            value=raw,
            default=default.value,
        )
        return default


@dataclass(frozen=True)
class Preferences:
    """
    Preferences are the user settings persisted by the host
    application and handed to us as plain key-value input.
    Unknown keys are ignored and invalid values fall back to
    their defaults.
    """

    timezone: "str" = field(default_factory=_system_timezone)
    # hour of day (0-23) the usage window resets at
    reset_hour: "int" = 0
    plan: "Plan" = Plan.AUTO
    custom_token_limit: "int | None" = None
    menu_bar_display_mode: "DisplayMode" = DisplayMode.PERCENTAGE
    menu_bar_cost_source: "CostSource" = CostSource.TODAY

    @classmethod
    def from_mapping(cls, data: "Mapping[str, Any]") -> "Preferences":
        kwargs: "dict[str, Any]" = {}

        timezone = data.get("timezone")
        if isinstance(timezone, str) and timezone:
            kwargs["timezone"] = timezone

        reset_hour = data.get("resetHour")
        if isinstance(reset_hour, int) and not isinstance(reset_hour, bool):
            if 0 <= reset_hour <= 23:
                kwargs["reset_hour"] = reset_hour
            else:
                logger.warning("preference_value_invalid", field="resetHour", value=reset_hour)

        if "plan" in data:
            kwargs["plan"] = _enum_value(Plan, data["plan"], Plan.AUTO)

        limit = data.get("customTokenLimit")
        if isinstance(limit, int) and not isinstance(limit, bool) and limit > 0:
            kwargs["custom_token_limit"] = limit

        if "menuBarDisplayMode" in data:
            kwargs["menu_bar_display_mode"] = _enum_value(
                DisplayMode, data["menuBarDisplayMode"], DisplayMode.PERCENTAGE
            )
        if "menuBarCostSource" in data:
            kwargs["menu_bar_cost_source"] = _enum_value(
                CostSource, data["menuBarCostSource"], CostSource.TODAY
            )

        return cls(**kwargs)

    @classmethod
    def load(cls, path: "str | Path") -> "Preferences":
        """
        reads preferences from a JSON file. A missing or unreadable
        file yields the defaults, matching how the host application
        continues when its settings can't be loaded.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            logger.warning("preferences_load_failed", path=str(path))
            return cls()

        if not isinstance(data, dict):
            logger.warning("preferences_not_an_object", path=str(path))
            return cls()
        return cls.from_mapping(data)


@dataclass
class Config:
    # path to a collaborator-written snapshot JSON file
    snapshot_path: "str" = ""
    # base URL of a collector exposing /usage and /refresh
    source_url: "str" = ""
    # live monitor tick period in seconds
    refresh_interval: "float" = 3.0
    log_level: "str" = "info"
    # optional Prometheus exporter, format ":9186" or "0.0.0.0:9186"
    listen_address: "str" = ""
    preferences_path: "str" = ""

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            snapshot_path=os.environ.get("TOKENLENS_SNAPSHOT_PATH", ""),
            source_url=os.environ.get("TOKENLENS_SOURCE_URL", ""),
            preferences_path=os.environ.get("TOKENLENS_PREFERENCES", ""),
        )

    @property
    def source_configured(self) -> "bool":
        return bool(self.snapshot_path or self.source_url)

"""
Configuration loader for the Progress Reconciliation Engine.

Loads settings from progress_config.yaml and provides typed access
to all configuration sections.
"""
from datetime import date
from pathlib import Path
from typing import Any, Optional
from functools import lru_cache

import yaml


# Default config ships inside the package
DEFAULT_CONFIG_PATH = Path(__file__).parent / "progress_config.yaml"

WEEKDAY_NAMES = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class ProgressConfig:
    """
    Configuration manager for the Progress Reconciliation Engine.

    Loads YAML configuration and provides typed access to all sections.
    Use get_config() to obtain the singleton instance.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: dict = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            raise ConfigurationError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r') as f:
                self._config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self._config, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load()
        get_config.cache_clear()

    @property
    def version(self) -> str:
        """Configuration file version."""
        return self._config.get("version", "unknown")

    # =========================================================================
    # Working-Day Calendar
    # =========================================================================

    @property
    def calendar(self) -> dict:
        """Working-day calendar configuration."""
        return self._config.get("calendar", {})

    @property
    def weekend_days(self) -> list[int]:
        """
        Non-working weekdays as Python weekday numbers (Mon=0 ... Sun=6).

        Accepts names ('Fri', 'friday') or numbers in the YAML file.
        """
        raw = self.calendar.get("weekend_days", ["Fri", "Sat"])
        days = []
        for value in raw:
            if isinstance(value, int):
                day = value
            else:
                key = str(value).strip().lower()[:3]
                if key not in WEEKDAY_NAMES:
                    raise ConfigurationError(f"Unknown weekday in calendar.weekend_days: {value}")
                day = WEEKDAY_NAMES.index(key)
            if not 0 <= day <= 6:
                raise ConfigurationError(f"Weekday out of range in calendar.weekend_days: {value}")
            days.append(day)
        return sorted(set(days))

    @property
    def holidays(self) -> list[date]:
        """Holiday dates treated as non-working."""
        result = []
        for value in self.calendar.get("holidays", []) or []:
            if isinstance(value, date):
                result.append(value)
            else:
                try:
                    result.append(date.fromisoformat(str(value)))
                except ValueError:
                    raise ConfigurationError(f"Invalid holiday date: {value}")
        return result

    # =========================================================================
    # Matching
    # =========================================================================

    @property
    def matching(self) -> dict:
        """Matching configuration."""
        return self._config.get("matching", {})

    @property
    def sub_code_separator(self) -> str:
        """Separator between project code and sub-code."""
        return self.matching.get("sub_code_separator", "-")

    @property
    def zone_placeholders(self) -> list[str]:
        """Zone values meaning 'no zone' (compared upper-cased)."""
        values = self.matching.get("zone_placeholders", ["", "N/A", "NA", "NONE", "-", "0"])
        return [str(v).strip().upper() for v in values]

    # =========================================================================
    # Reporting
    # =========================================================================

    @property
    def reporting(self) -> dict:
        """Period report configuration."""
        return self._config.get("reporting", {})

    @property
    def recent_period_count(self) -> int:
        """How many periods the period picker offers."""
        return self.reporting.get("recent_period_count", 12)

    @property
    def combined_zone_label(self) -> str:
        return self.reporting.get("combined_zone_label", "ALL")

    @property
    def default_zone(self) -> str:
        """Group label for work items without a zone."""
        return str(self.reporting.get("default_zone", "0"))

    @property
    def default_division(self) -> str:
        """Group label for work items without a division."""
        return self.reporting.get("default_division", "Other")

    def get_range_thresholds(self) -> dict:
        """
        Get the range-length thresholds used to pick lookahead column granularity.

        Returns:
            Dict with daily_max_days and weekly_max_days
        """
        thresholds = self.reporting.get("range_granularity", {})
        return {
            "daily_max_days": thresholds.get("daily_max_days", 30),
            "weekly_max_days": thresholds.get("weekly_max_days", 90),
        }

    # =========================================================================
    # LookAhead
    # =========================================================================

    @property
    def lookahead(self) -> dict:
        """LookAhead forecast configuration."""
        return self._config.get("lookahead", {})

    @property
    def active_statuses(self) -> list[str]:
        """Project statuses included in the portfolio lookahead."""
        return self.lookahead.get("active_statuses", ["on-going", "upcoming", "site-preparation"])

    @property
    def cut_off_offset_days(self) -> int:
        """Entries are counted up to today minus this many days."""
        return self.lookahead.get("cut_off_offset_days", 1)

    @property
    def default_period_type(self) -> str:
        return self.lookahead.get("default_period_type", "months")

    @property
    def default_period_count(self) -> int:
        return self.lookahead.get("default_period_count", 3)

    # =========================================================================
    # Status Thresholds
    # =========================================================================

    @property
    def status_thresholds(self) -> dict:
        """Progress percentage thresholds for status bands."""
        return self._config.get("status_thresholds", {
            "completed": 100,
            "on_track": 80,
            "at_risk": 50,
        })

    def get_status_band(self, percent: float) -> str:
        """
        Get status band name for a progress percentage.

        Args:
            percent: Progress percentage (0-100+)

        Returns:
            Band name: 'completed', 'on_track', 'at_risk' or 'delayed'
        """
        thresholds = self.status_thresholds
        if percent >= thresholds.get("completed", 100):
            return "completed"
        elif percent >= thresholds.get("on_track", 80):
            return "on_track"
        elif percent >= thresholds.get("at_risk", 50):
            return "at_risk"
        else:
            return "delayed"

    # =========================================================================
    # Diagnostics
    # =========================================================================

    @property
    def diagnostics(self) -> dict:
        """Reconciliation diagnostics configuration."""
        return self._config.get("diagnostics", {})

    @property
    def suggestion_limit(self) -> int:
        return self.diagnostics.get("suggestion_limit", 3)

    @property
    def min_suggestion_score(self) -> float:
        """Minimum rapidfuzz score (0-100) for a suggestion to be listed."""
        return self.diagnostics.get("min_suggestion_score", 60)

    # =========================================================================
    # Raw Access
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level config value by key."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to config."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        return key in self._config


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> ProgressConfig:
    """
    Get the singleton configuration instance.

    Args:
        config_path: Optional path to config file. Only used on first call.

    Returns:
        ProgressConfig singleton instance
    """
    path = Path(config_path) if config_path else None
    return ProgressConfig(path)


def reload_config() -> ProgressConfig:
    """Reload configuration from disk and return new instance."""
    get_config.cache_clear()
    return get_config()

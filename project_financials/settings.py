"""
Engine Settings Module

Business-policy constants for the financial performance engine. Values are
read from config/financial_thresholds.yaml and can be overridden by passing
an explicit EngineSettings to any component.
"""

import logging
from dataclasses import dataclass, field, fields
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "financial_thresholds.yaml"
DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "config"

ALERT_CATEGORIES = frozenset({
    "budget",
    "cost_performance",
    "schedule_performance",
    "category_health",
    "burn_rate",
    "margin",
})


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value))


@dataclass
class AlertThresholdConfig:
    """Caller-owned alert thresholds for risk tiers and alert evaluation."""

    # Margin variance tiers (percentage points, projected - planned)
    margin_green_floor: float = -2.0
    margin_yellow_floor: float = -5.0

    # Driver detection
    driver_high_amount: Decimal = Decimal("10000")
    change_order_high_amount: Decimal = Decimal("-5000")
    burn_ratio_threshold: float = 1.15
    burn_ratio_high: float = 1.30
    sov_overrun_pct: float = -5.0
    sov_overrun_amount: Decimal = Decimal("-5000")
    unmapped_cost_amount: Decimal = Decimal("5000")
    unmapped_cost_high: Decimal = Decimal("10000")
    driver_display_limit: int = 5

    # Alert evaluation
    budget_utilization_warning: float = 90.0
    budget_utilization_exceeded: float = 100.0
    cpi_warning: float = 0.95
    spi_warning: float = 0.95
    runway_warning_days: float = 30.0
    enabled_categories: frozenset[str] = ALERT_CATEGORIES

    def __post_init__(self) -> None:
        if self.margin_yellow_floor > self.margin_green_floor:
            raise ValueError(
                f"margin_yellow_floor ({self.margin_yellow_floor}) must not exceed "
                f"margin_green_floor ({self.margin_green_floor})"
            )
        unknown = set(self.enabled_categories) - ALERT_CATEGORIES
        if unknown:
            raise ValueError(f"Unknown alert categories: {sorted(unknown)}")
        self.enabled_categories = frozenset(self.enabled_categories)

    def is_enabled(self, category: str) -> bool:
        return category in self.enabled_categories

    @classmethod
    def from_dict(cls, data: dict | None) -> "AlertThresholdConfig":
        """Build from a free-form config blob, ignoring unknown keys."""
        data = data or {}
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data or data[f.name] is None:
                continue
            value = data[f.name]
            if f.name == "enabled_categories":
                kwargs[f.name] = frozenset(value)
            elif f.type is Decimal or f.type == "Decimal":
                kwargs[f.name] = _decimal(value)
            elif f.type is int or f.type == "int":
                kwargs[f.name] = int(value)
            else:
                kwargs[f.name] = float(value)
        return cls(**kwargs)


@dataclass
class EngineSettings:
    """Tunable policy parameters shared by the engine components."""

    # Change orders
    default_cost_ratio: Decimal = Decimal("0.70")
    negative_impact_threshold: Decimal = Decimal("-1000")

    # Budget variance
    health_under_budget_pct: float = 5.0
    health_warning_pct: float = -5.0
    health_critical_pct: float = -10.0
    variance_display_limit: int = 5
    overrun_driver_min_amount: Decimal = Decimal("1000")
    severe_overrun_pct: float = -20.0

    # Burn rate
    burn_trend_window_days: int = 30
    burn_trend_increase_factor: Decimal = Decimal("1.10")
    burn_trend_decrease_factor: Decimal = Decimal("0.90")
    burn_history_days: int = 90

    # Earned value
    performance_floor: float = 0.95

    # Cost risk
    default_planned_margin_percent: float = 15.0

    alerts: AlertThresholdConfig = field(default_factory=AlertThresholdConfig)

    @classmethod
    def from_dict(cls, config: dict | None) -> "EngineSettings":
        """Build settings from the parsed YAML layout."""
        config = config or {}
        change_orders = config.get("change_orders", {})
        variance = config.get("budget_variance", {})
        health = variance.get("health", {})
        burn = config.get("burn_rate", {})
        defaults = cls()

        return cls(
            default_cost_ratio=_decimal(
                change_orders.get("default_cost_ratio", defaults.default_cost_ratio)
            ),
            negative_impact_threshold=_decimal(
                change_orders.get("negative_impact_threshold", defaults.negative_impact_threshold)
            ),
            health_under_budget_pct=float(
                health.get("under_budget_pct", defaults.health_under_budget_pct)
            ),
            health_warning_pct=float(health.get("warning_pct", defaults.health_warning_pct)),
            health_critical_pct=float(health.get("critical_pct", defaults.health_critical_pct)),
            variance_display_limit=int(
                variance.get("display_limit", defaults.variance_display_limit)
            ),
            overrun_driver_min_amount=_decimal(
                variance.get("overrun_driver_min_amount", defaults.overrun_driver_min_amount)
            ),
            severe_overrun_pct=float(
                variance.get("severe_overrun_pct", defaults.severe_overrun_pct)
            ),
            burn_trend_window_days=int(
                burn.get("trend_window_days", defaults.burn_trend_window_days)
            ),
            burn_trend_increase_factor=_decimal(
                burn.get("increase_factor", defaults.burn_trend_increase_factor)
            ),
            burn_trend_decrease_factor=_decimal(
                burn.get("decrease_factor", defaults.burn_trend_decrease_factor)
            ),
            burn_history_days=int(burn.get("history_days", defaults.burn_history_days)),
            performance_floor=float(
                config.get("earned_value", {}).get("performance_floor", defaults.performance_floor)
            ),
            default_planned_margin_percent=float(
                config.get("cost_risk", {}).get(
                    "default_planned_margin_percent", defaults.default_planned_margin_percent
                )
            ),
            alerts=AlertThresholdConfig.from_dict(config.get("alerts")),
        )


def load_settings(config_dir: Path | str | None = None) -> EngineSettings:
    """Load engine settings from the configuration directory.

    Args:
        config_dir: Path to configuration directory

    Returns:
        EngineSettings (defaults when the file is missing)
    """
    config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
    config_file = config_dir / CONFIG_FILENAME

    if not config_file.exists():
        logger.warning(f"Config file not found: {config_file}, using defaults")
        return EngineSettings()

    with open(config_file) as f:
        config = yaml.safe_load(f) or {}

    return EngineSettings.from_dict(config)


def resolve_settings(
    config_dir: Path | str | None = None,
    settings: EngineSettings | None = None,
) -> EngineSettings:
    """Prefer injected settings, otherwise load from disk."""
    if settings is not None:
        return settings
    return load_settings(config_dir)

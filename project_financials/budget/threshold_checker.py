"""
Budget Threshold Checker Module

Evaluates computed financial metrics against caller-supplied alert
thresholds and produces alerts.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from ..settings import AlertThresholdConfig, EngineSettings
from .variance_calculator import VarianceReport

if TYPE_CHECKING:
    from ..cashflow.burn_rate import BurnRateAnalysis
    from ..earned_value.calculator import EarnedValueMetrics
    from ..risk.cost_risk import CostRiskSignal

logger = logging.getLogger(__name__)


@dataclass
class ThresholdAlert:
    """Alert triggered when a threshold is breached."""

    category: str  # 'budget', 'cost_performance', 'schedule_performance', ...
    subject: str
    threshold_type: str  # 'warning', 'critical', 'exceeded'
    threshold_value: float
    actual_value: float
    message: str = ""
    triggered_at: datetime = field(default_factory=datetime.now)

    @property
    def severity(self) -> str:
        """Get alert severity."""
        if self.threshold_type == "exceeded":
            return "high"
        elif self.threshold_type == "critical":
            return "medium"
        return "low"

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "subject": self.subject,
            "threshold_type": self.threshold_type,
            "threshold_value": self.threshold_value,
            "actual_value": self.actual_value,
            "severity": self.severity,
            "message": self.message,
            "triggered_at": self.triggered_at.isoformat(),
        }


@dataclass
class ThresholdCheckResult:
    """Result of threshold checking."""

    alerts: list[ThresholdAlert] = field(default_factory=list)
    checked_count: int = 0
    alert_count: int = 0
    by_severity: dict = field(default_factory=dict)

    @property
    def has_critical_alerts(self) -> bool:
        return any(a.severity in ["high", "medium"] for a in self.alerts)

    def to_dict(self) -> dict:
        return {
            "alerts": [a.to_dict() for a in self.alerts],
            "checked_count": self.checked_count,
            "alert_count": self.alert_count,
            "by_severity": {
                severity: [a.to_dict() for a in alerts]
                for severity, alerts in self.by_severity.items()
            },
        }


class ThresholdChecker:
    """Checks financial metrics against alert thresholds."""

    def __init__(
        self,
        config: AlertThresholdConfig | None = None,
        settings: EngineSettings | None = None,
    ):
        """Initialize the threshold checker.

        Args:
            config: Alert thresholds owned by the caller
            settings: Engine settings supplying the category health cutoffs
        """
        self.config = config or AlertThresholdConfig()
        self.settings = settings or EngineSettings()

    def check_budget_utilization(self, metrics: "EarnedValueMetrics") -> ThresholdAlert | None:
        """Check percent of budget spent."""
        spent = metrics.percent_spent

        if spent >= self.config.budget_utilization_exceeded:
            threshold_type = "exceeded"
            threshold = self.config.budget_utilization_exceeded
        elif spent >= self.config.budget_utilization_warning:
            threshold_type = "warning"
            threshold = self.config.budget_utilization_warning
        else:
            return None

        if threshold_type == "exceeded":
            message = (
                f"🔴 Budget Exceeded: spent ${metrics.actual_cost:,.2f} of "
                f"${metrics.planned_value:,.2f} ({spent:.1f}%)"
            )
        else:
            message = (
                f"⚠️ Budget Warning: spent ${metrics.actual_cost:,.2f} of "
                f"${metrics.planned_value:,.2f} ({spent:.1f}%)"
            )

        return ThresholdAlert(
            category="budget",
            subject="budget_utilization",
            threshold_type=threshold_type,
            threshold_value=threshold,
            actual_value=spent,
            message=message,
        )

    def check_performance_indices(self, metrics: "EarnedValueMetrics") -> list[ThresholdAlert]:
        """Check CPI and SPI against their floors."""
        alerts = []

        if self.config.is_enabled("cost_performance") and metrics.cpi < self.config.cpi_warning:
            alerts.append(ThresholdAlert(
                category="cost_performance",
                subject="CPI",
                threshold_type="warning",
                threshold_value=self.config.cpi_warning,
                actual_value=metrics.cpi,
                message=f"🟠 Cost performance index {metrics.cpi:.2f} below {self.config.cpi_warning:.2f}",
            ))

        if self.config.is_enabled("schedule_performance") and metrics.spi < self.config.spi_warning:
            alerts.append(ThresholdAlert(
                category="schedule_performance",
                subject="SPI",
                threshold_type="warning",
                threshold_value=self.config.spi_warning,
                actual_value=metrics.spi,
                message=f"🟠 Schedule performance index {metrics.spi:.2f} below {self.config.spi_warning:.2f}",
            ))

        return alerts

    def check_category_health(self, report: VarianceReport) -> list[ThresholdAlert]:
        """Alert on categories in Warning or Critical health."""
        alerts = []
        for category in report.warning_categories:
            if category.health == "Critical":
                threshold_type = "critical"
                threshold = self.settings.health_critical_pct
            else:
                threshold_type = "warning"
                threshold = self.settings.health_warning_pct
            alerts.append(ThresholdAlert(
                category="category_health",
                subject=category.category,
                threshold_type=threshold_type,
                threshold_value=threshold,
                actual_value=category.variance_percent,
                message=(
                    f"{category.category.title()}: forecast ${category.forecast:,.2f} vs "
                    f"budget ${category.budgeted_amount:,.2f} ({category.variance_percent:.1f}%)"
                ),
            ))
        return alerts

    def check_burn_rate(self, analysis: "BurnRateAnalysis") -> list[ThresholdAlert]:
        """Alert on short runway or accelerating spend."""
        alerts = []
        days = analysis.days_remaining

        if analysis.daily_burn_rate > 0 and not math.isinf(days) and days < self.config.runway_warning_days:
            alerts.append(ThresholdAlert(
                category="burn_rate",
                subject="runway",
                threshold_type="exceeded" if days <= 0 else "critical",
                threshold_value=self.config.runway_warning_days,
                actual_value=days,
                message=f"🔴 Budget runway {max(days, 0):.0f} days at ${analysis.daily_burn_rate:,.2f}/day",
            ))

        if analysis.trend == "increasing":
            alerts.append(ThresholdAlert(
                category="burn_rate",
                subject="trend",
                threshold_type="warning",
                threshold_value=0.0,
                actual_value=float(analysis.daily_burn_rate),
                message="⚠️ Spending is accelerating versus the previous period",
            ))

        return alerts

    def check_margin(self, signal: "CostRiskSignal") -> ThresholdAlert | None:
        """Alert when the cost risk tier is yellow or red."""
        if signal.risk_level == "green":
            return None

        threshold_type = "critical" if signal.risk_level == "red" else "warning"
        threshold = (
            self.config.margin_yellow_floor
            if signal.risk_level == "red"
            else self.config.margin_green_floor
        )
        return ThresholdAlert(
            category="margin",
            subject="margin_variance",
            threshold_type=threshold_type,
            threshold_value=threshold,
            actual_value=signal.margin_variance,
            message=(
                f"{signal.status_label}: projected margin {signal.projected_margin_percent:.1f}% "
                f"vs planned {signal.planned_margin_percent:.1f}%"
            ),
        )

    def evaluate(
        self,
        metrics: "EarnedValueMetrics | None" = None,
        variance_report: VarianceReport | None = None,
        burn_rate: "BurnRateAnalysis | None" = None,
        risk_signal: "CostRiskSignal | None" = None,
    ) -> ThresholdCheckResult:
        """Check every supplied metric set against enabled thresholds.

        Args:
            metrics: Earned value metrics
            variance_report: Budget variance report
            burn_rate: Burn rate analysis
            risk_signal: Cost risk signal

        Returns:
            ThresholdCheckResult
        """
        result = ThresholdCheckResult()

        if metrics is not None:
            if self.config.is_enabled("budget"):
                result.checked_count += 1
                alert = self.check_budget_utilization(metrics)
                if alert:
                    result.alerts.append(alert)
            result.checked_count += sum(
                1 for c in ("cost_performance", "schedule_performance") if self.config.is_enabled(c)
            )
            result.alerts.extend(self.check_performance_indices(metrics))

        if variance_report is not None and self.config.is_enabled("category_health"):
            result.checked_count += len(variance_report.categories)
            result.alerts.extend(self.check_category_health(variance_report))

        if burn_rate is not None and self.config.is_enabled("burn_rate"):
            result.checked_count += 1
            result.alerts.extend(self.check_burn_rate(burn_rate))

        if risk_signal is not None and self.config.is_enabled("margin"):
            result.checked_count += 1
            alert = self.check_margin(risk_signal)
            if alert:
                result.alerts.append(alert)

        result.alert_count = len(result.alerts)

        # Group by severity
        result.by_severity = {
            "high": [a for a in result.alerts if a.severity == "high"],
            "medium": [a for a in result.alerts if a.severity == "medium"],
            "low": [a for a in result.alerts if a.severity == "low"]
        }

        if result.alert_count:
            logger.info(
                f"{result.alert_count} alerts raised "
                f"({len(result.by_severity['high'])} high, {len(result.by_severity['medium'])} medium)"
            )
        return result

"""
Cost Risk Classifier Module

Turns planned vs projected margin into a green/yellow/red risk tier and
ranks the cost drivers behind it (category overruns, change orders with
negative margin, SOV lines burning faster than they earn, unmapped cost).
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from ..budget.variance_calculator import CategoryVariance, VarianceCalculator
from ..change_orders.waterfall import ChangeOrderWaterfall, WaterfallResult
from ..records import (
    BudgetLineItem,
    ChangeOrder,
    EstimatedRemainingCost,
    ExpenseRecord,
    SOVLineItem,
    coerce_records,
    filter_by_project,
    money_sum,
    realized_expenses,
)
from ..settings import AlertThresholdConfig, EngineSettings, resolve_settings

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class CostDriver:
    """A single contributor to margin erosion."""

    driver_type: str  # 'category_overrun', 'change_order_risk', 'cost_overrun', 'burn_rate', 'unmapped_costs'
    description: str
    severity: str  # 'high', 'moderate'
    variance_amount: Decimal
    affected_sov: str | None = None

    def to_dict(self) -> dict:
        return {
            "driver_type": self.driver_type,
            "description": self.description,
            "severity": self.severity,
            "variance_amount": float(self.variance_amount),
            "affected_sov": self.affected_sov,
        }


@dataclass
class CostRiskSignal:
    """Risk tier with the ranked drivers behind it."""

    risk_level: str  # 'green', 'yellow', 'red'
    status_label: str
    message: str
    planned_margin_percent: float
    projected_margin_percent: float
    margin_variance: float
    drivers: list[CostDriver] = field(default_factory=list)
    total_contract: Decimal | None = None
    actual_cost: Decimal | None = None
    estimated_cost_at_completion: Decimal | None = None
    display_limit: int = 5

    @property
    def projected_margin(self) -> Decimal | None:
        if self.total_contract is None or self.estimated_cost_at_completion is None:
            return None
        return self.total_contract - self.estimated_cost_at_completion

    @property
    def top_drivers(self) -> list[CostDriver]:
        return self.drivers[:self.display_limit]

    @property
    def high_severity_count(self) -> int:
        return sum(1 for d in self.drivers if d.severity == "high")

    def to_dict(self) -> dict:
        def _money(value: Decimal | None) -> float | None:
            return float(value) if value is not None else None

        return {
            "risk_level": self.risk_level,
            "status_label": self.status_label,
            "message": self.message,
            "planned_margin_percent": self.planned_margin_percent,
            "projected_margin_percent": self.projected_margin_percent,
            "margin_variance": self.margin_variance,
            "projected_margin": _money(self.projected_margin),
            "total_contract": _money(self.total_contract),
            "actual_cost": _money(self.actual_cost),
            "estimated_cost_at_completion": _money(self.estimated_cost_at_completion),
            "drivers": [d.to_dict() for d in self.drivers],
            "top_drivers": [d.to_dict() for d in self.top_drivers],
        }


def rank_drivers(drivers: list[CostDriver]) -> list[CostDriver]:
    """High severity first, then by absolute variance (largest first)."""
    return sorted(
        drivers,
        key=lambda d: (d.severity != "high", -abs(d.variance_amount)),
    )


class CostRiskClassifier:
    """Classifies project cost risk."""

    def __init__(
        self,
        config_dir: Path | str | None = None,
        settings: EngineSettings | None = None,
        alert_config: AlertThresholdConfig | None = None,
    ):
        """Initialize the classifier.

        Args:
            config_dir: Path to configuration directory
            settings: Explicit settings (takes precedence over config_dir)
            alert_config: Caller-owned thresholds (defaults to settings.alerts)
        """
        self.settings = resolve_settings(config_dir, settings)
        self.alerts = alert_config or self.settings.alerts

    def tier(self, margin_variance: float, driver_count: int) -> tuple[str, str, str]:
        """Map margin variance to (risk_level, status_label, message)."""
        if margin_variance >= self.alerts.margin_green_floor:
            message = "Monitoring emerging risks" if driver_count else "Cost performance on track"
            return "green", "On Track", message
        elif margin_variance >= self.alerts.margin_yellow_floor:
            message = f"{driver_count} cost drivers detected" if driver_count else "Cost risk emerging"
            return "yellow", "Watch Closely", message
        else:
            message = f"{driver_count} critical drivers" if driver_count else "Overrun projected"
            return "red", "Overrun Likely", message

    def classify(
        self,
        planned_margin_percent: float,
        projected_margin_percent: float,
        drivers: list[CostDriver] | None = None,
        total_contract: Decimal | None = None,
        actual_cost: Decimal | None = None,
        estimated_cost_at_completion: Decimal | None = None,
    ) -> CostRiskSignal:
        """Classify risk from planned and projected margins.

        Args:
            planned_margin_percent: Margin percent the project was planned at
            projected_margin_percent: Current projected margin percent
            drivers: Cost drivers (ranked here)
            total_contract: Current contract value, for reporting
            actual_cost: Realized cost to date, for reporting
            estimated_cost_at_completion: Current EAC, for reporting

        Returns:
            CostRiskSignal
        """
        ranked = rank_drivers(drivers or [])
        margin_variance = projected_margin_percent - planned_margin_percent
        risk_level, status_label, message = self.tier(margin_variance, len(ranked))

        return CostRiskSignal(
            risk_level=risk_level,
            status_label=status_label,
            message=message,
            planned_margin_percent=planned_margin_percent,
            projected_margin_percent=projected_margin_percent,
            margin_variance=margin_variance,
            drivers=ranked,
            total_contract=total_contract,
            actual_cost=actual_cost,
            estimated_cost_at_completion=estimated_cost_at_completion,
            display_limit=self.alerts.driver_display_limit,
        )

    def category_drivers(self, categories: list[CategoryVariance]) -> list[CostDriver]:
        """Categories forecast to finish over their budget."""
        drivers = []
        for category in categories:
            if category.budgeted_amount <= 0 or category.budget_variance >= 0:
                continue

            overrun = abs(category.budget_variance)
            severity = (
                "high"
                if category.health == "Critical" or overrun > self.alerts.driver_high_amount
                else "moderate"
            )
            drivers.append(CostDriver(
                driver_type="category_overrun",
                description=(
                    f"{category.category.title()} forecast exceeds budget by ${overrun:,.0f} "
                    f"({category.variance_percent:.1f}%)"
                ),
                severity=severity,
                variance_amount=category.budget_variance,
            ))
        return drivers

    def change_order_drivers(self, waterfall: WaterfallResult) -> list[CostDriver]:
        """Approved change orders that eroded margin."""
        drivers = []
        for entry in waterfall.approved_entries:
            impact = entry.net_margin_impact
            if impact >= self.settings.negative_impact_threshold:
                continue
            drivers.append(CostDriver(
                driver_type="change_order_risk",
                description=(
                    f"{entry.change_order.label} approved with negative margin "
                    f"(${abs(impact):,.0f})"
                ),
                severity="high" if impact < self.alerts.change_order_high_amount else "moderate",
                variance_amount=impact,
            ))
        return drivers

    def sov_drivers(
        self,
        sov_items: list[SOVLineItem],
        expenses: list[ExpenseRecord],
    ) -> list[CostDriver]:
        """SOV lines whose attributed cost outruns their earned value.

        Expenses are attributed to SOV lines through their sov_code.
        """
        spent = realized_expenses(expenses)
        drivers = []

        for sov in sov_items:
            earned = sov.earned_to_date
            if earned <= 0 or not sov.sov_code:
                continue

            actual = money_sum((e for e in spent if e.sov_code == sov.sov_code), "amount")
            variance = earned - actual
            variance_pct = float(variance / earned * 100)
            name = sov.description or sov.sov_code

            if variance_pct < self.alerts.sov_overrun_pct or variance < self.alerts.sov_overrun_amount:
                drivers.append(CostDriver(
                    driver_type="cost_overrun",
                    description=f"{name} exceeding allocation by ${abs(variance):,.0f}",
                    severity="high" if variance < -self.alerts.driver_high_amount else "moderate",
                    variance_amount=variance,
                    affected_sov=sov.sov_code,
                ))

            burn_ratio = float(actual / earned)
            if burn_ratio > self.alerts.burn_ratio_threshold:
                drivers.append(CostDriver(
                    driver_type="burn_rate",
                    description=(
                        f"{name} burn rate {burn_ratio:.2f}x "
                        f"({(burn_ratio - 1) * 100:.0f}% over)"
                    ),
                    severity="high" if burn_ratio > self.alerts.burn_ratio_high else "moderate",
                    variance_amount=actual - earned,
                    affected_sov=sov.sov_code,
                ))

        return drivers

    def unmapped_cost_driver(
        self,
        sov_items: list[SOVLineItem],
        expenses: list[ExpenseRecord],
    ) -> CostDriver | None:
        """Realized cost not attributed to any SOV line.

        Only meaningful once expenses carry SOV codes at all.
        """
        spent = realized_expenses(expenses)
        if not any(e.sov_code for e in spent):
            return None

        sov_codes = {s.sov_code for s in sov_items if s.sov_code}
        unmapped = money_sum((e for e in spent if e.sov_code not in sov_codes), "amount")

        if unmapped <= self.alerts.unmapped_cost_amount:
            return None

        return CostDriver(
            driver_type="unmapped_costs",
            description=f"${unmapped:,.0f} in expenses not mapped to SOV",
            severity="high" if unmapped > self.alerts.unmapped_cost_high else "moderate",
            variance_amount=unmapped,
        )

    def assess(
        self,
        sov_items: Iterable[SOVLineItem | dict[str, Any]],
        change_orders: Iterable[ChangeOrder | dict[str, Any]] | None,
        expenses: Iterable[ExpenseRecord | dict[str, Any]] | None,
        etc_records: Iterable[EstimatedRemainingCost | dict[str, Any]] | None,
        line_items: Iterable[BudgetLineItem | dict[str, Any]] | None = None,
        planned_margin_percent: float | None = None,
        project_id: str | None = None,
        waterfall: WaterfallResult | None = None,
    ) -> CostRiskSignal:
        """Run the full cost risk assessment from raw records.

        Args:
            sov_items: Schedule of values
            change_orders: Change orders
            expenses: Expenses
            etc_records: Estimated remaining cost records
            line_items: Budget line items (for category overrun drivers)
            planned_margin_percent: Planned margin; defaults to the original
                SOV margin, or the configured default when there is no SOV
            project_id: Optional project filter
            waterfall: Precomputed waterfall for the same records

        Returns:
            CostRiskSignal
        """
        sov = filter_by_project(coerce_records(SOVLineItem, sov_items), project_id)
        cos = filter_by_project(coerce_records(ChangeOrder, change_orders), project_id)
        spent = filter_by_project(coerce_records(ExpenseRecord, expenses), project_id)
        etc = filter_by_project(coerce_records(EstimatedRemainingCost, etc_records), project_id)
        items = filter_by_project(coerce_records(BudgetLineItem, line_items), project_id)

        if waterfall is None:
            waterfall = ChangeOrderWaterfall(settings=self.settings).build(sov, cos, spent, etc)
        summary = waterfall.summary

        if planned_margin_percent is None:
            if summary.original_contract > 0:
                planned_margin_percent = summary.original_margin_percent
            else:
                planned_margin_percent = self.settings.default_planned_margin_percent

        categories = VarianceCalculator(settings=self.settings).analyze_categories(spent, etc, items)

        drivers = self.category_drivers(categories)
        drivers.extend(self.change_order_drivers(waterfall))
        drivers.extend(self.sov_drivers(sov, spent))
        unmapped = self.unmapped_cost_driver(sov, spent)
        if unmapped:
            drivers.append(unmapped)

        signal = self.classify(
            planned_margin_percent=planned_margin_percent,
            projected_margin_percent=summary.final_margin_percent,
            drivers=drivers,
            total_contract=summary.final_contract,
            actual_cost=money_sum(realized_expenses(spent), "amount"),
            estimated_cost_at_completion=summary.final_eac,
        )

        logger.info(
            f"Cost risk for {project_id or 'all projects'}: {signal.risk_level} "
            f"(margin variance {signal.margin_variance:+.2f} pts, {len(signal.drivers)} drivers)"
        )
        return signal

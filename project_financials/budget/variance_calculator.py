"""
Budget Variance Calculator Module

Calculates per-category actual/remaining/forecast figures and ranks
line-item budget variances (largest overruns and savings).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from ..records import (
    COST_CATEGORIES,
    BudgetLineItem,
    EstimatedRemainingCost,
    ExpenseRecord,
    coerce_records,
    filter_by_project,
    money_sum,
    realized_expenses,
)
from ..settings import EngineSettings, resolve_settings

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def variance_percent(variance: Decimal, budgeted: Decimal) -> float:
    return float(variance / budgeted * 100) if budgeted > 0 else 0.0


@dataclass
class CategoryVariance:
    """Actual, remaining and forecast cost for one cost category."""

    category: str
    actual: Decimal
    remaining: Decimal
    budgeted_amount: Decimal = ZERO
    health: str = "On Track"

    @property
    def forecast(self) -> Decimal:
        return self.actual + self.remaining

    @property
    def forecast_amount(self) -> Decimal:
        return self.forecast

    @property
    def variance(self) -> Decimal:
        """Forecast less its components; zero by construction."""
        return self.forecast - (self.actual + self.remaining)

    @property
    def budget_variance(self) -> Decimal:
        """Budgeted less forecast; negative means overrun."""
        return self.budgeted_amount - self.forecast

    @property
    def variance_percent(self) -> float:
        return variance_percent(self.budget_variance, self.budgeted_amount)

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "actual": float(self.actual),
            "remaining": float(self.remaining),
            "forecast": float(self.forecast),
            "variance": float(self.variance),
            "budgeted_amount": float(self.budgeted_amount),
            "forecast_amount": float(self.forecast_amount),
            "budget_variance": float(self.budget_variance),
            "variance_percent": self.variance_percent,
            "health": self.health,
        }


@dataclass
class LineItemVariance:
    """Budget vs forecast for one budget line item."""

    item: BudgetLineItem
    variance: Decimal
    variance_pct: float

    @property
    def budgeted_amount(self) -> Decimal:
        return self.item.budgeted_amount

    @property
    def forecast_amount(self) -> Decimal:
        return self.item.forecast_amount

    @property
    def is_over_budget(self) -> bool:
        return self.variance < 0

    def to_dict(self) -> dict:
        return {
            "id": self.item.id,
            "name": self.item.name,
            "category": self.item.category,
            "budgeted_amount": float(self.budgeted_amount),
            "forecast_amount": float(self.forecast_amount),
            "variance": float(self.variance),
            "variancePct": self.variance_pct,
            "is_over_budget": self.is_over_budget,
        }


@dataclass
class VarianceReport:
    """Complete variance report for a project."""

    project_id: str | None
    generated_at: datetime
    categories: list[CategoryVariance] = field(default_factory=list)
    line_items: list[LineItemVariance] = field(default_factory=list)
    top_overruns: list[LineItemVariance] = field(default_factory=list)
    top_savings: list[LineItemVariance] = field(default_factory=list)
    overrun_drivers: list[dict] = field(default_factory=list)
    summary: dict = field(default_factory=dict)

    @property
    def over_budget_categories(self) -> list[CategoryVariance]:
        return [c for c in self.categories if c.budget_variance < 0]

    @property
    def warning_categories(self) -> list[CategoryVariance]:
        return [c for c in self.categories if c.health in ["Warning", "Critical"]]

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "generated_at": self.generated_at.isoformat(),
            "categories": [c.to_dict() for c in self.categories],
            "line_items": [i.to_dict() for i in self.line_items],
            "top_overruns": [i.to_dict() for i in self.top_overruns],
            "top_savings": [i.to_dict() for i in self.top_savings],
            "overrun_drivers": self.overrun_drivers,
            "summary": self.summary,
        }


class VarianceCalculator:
    """Calculates budget variances."""

    def __init__(
        self,
        config_dir: Path | str | None = None,
        settings: EngineSettings | None = None,
    ):
        """Initialize the calculator.

        Args:
            config_dir: Path to configuration directory
            settings: Explicit settings (takes precedence over config_dir)
        """
        self.settings = resolve_settings(config_dir, settings)

    def health_status(self, pct: float) -> str:
        """Bucket a budget variance percentage."""
        if pct > self.settings.health_under_budget_pct:
            return "Under Budget"
        elif pct < self.settings.health_critical_pct:
            return "Critical"
        elif pct < self.settings.health_warning_pct:
            return "Warning"
        else:
            return "On Track"

    def analyze_categories(
        self,
        expenses: Iterable[ExpenseRecord | dict[str, Any]] | None,
        etc_records: Iterable[EstimatedRemainingCost | dict[str, Any]] | None,
        line_items: Iterable[BudgetLineItem | dict[str, Any]] | None = None,
        include_empty: bool = False,
    ) -> list[CategoryVariance]:
        """Build the per-category breakdown.

        Args:
            expenses: Expenses (only paid/approved are counted)
            etc_records: Estimated remaining cost records
            line_items: Budget line items supplying budgeted amounts
            include_empty: Keep categories with no forecast

        Returns:
            List of CategoryVariance in fixed category order
        """
        spent = realized_expenses(coerce_records(ExpenseRecord, expenses))
        etc = coerce_records(EstimatedRemainingCost, etc_records)
        items = coerce_records(BudgetLineItem, line_items)

        categories = []
        for category in COST_CATEGORIES:
            entry = CategoryVariance(
                category=category,
                actual=money_sum((e for e in spent if e.category == category), "amount"),
                remaining=money_sum(
                    (r for r in etc if r.category == category), "estimated_remaining_cost"
                ),
                budgeted_amount=money_sum(
                    (i for i in items if i.category == category), "budgeted_amount"
                ),
            )
            entry.health = self.health_status(entry.variance_percent)

            if entry.forecast > 0 or include_empty:
                categories.append(entry)

        return categories

    def analyze_line_items(
        self,
        line_items: Iterable[BudgetLineItem | dict[str, Any]] | None,
    ) -> list[LineItemVariance]:
        """Calculate line-item variances sorted ascending by variance.

        The most negative variances (largest overruns) come first; ties keep
        their input order.
        """
        items = coerce_records(BudgetLineItem, line_items)

        variances = []
        for item in items:
            variance = item.budgeted_amount - item.forecast_amount
            variances.append(LineItemVariance(
                item=item,
                variance=variance,
                variance_pct=variance_percent(variance, item.budgeted_amount),
            ))

        return sorted(variances, key=lambda v: v.variance)

    def get_top_overruns(
        self,
        ranked: list[LineItemVariance],
        limit: int | None = None,
    ) -> list[LineItemVariance]:
        """First items of the ascending ranking (largest overruns)."""
        limit = self.settings.variance_display_limit if limit is None else limit
        return ranked[:limit]

    def get_top_savings(
        self,
        ranked: list[LineItemVariance],
        limit: int | None = None,
    ) -> list[LineItemVariance]:
        """Last items of the ascending ranking, largest saving first."""
        limit = self.settings.variance_display_limit if limit is None else limit
        if limit <= 0:
            return []
        return list(reversed(ranked[-limit:]))

    def get_overrun_drivers(self, ranked: list[LineItemVariance]) -> list[dict]:
        """Line items overrunning by more than the configured minimum."""
        drivers = []
        for entry in ranked:
            if entry.variance >= 0 or abs(entry.variance) <= self.settings.overrun_driver_min_amount:
                continue
            drivers.append({
                "id": entry.item.id,
                "name": entry.item.name,
                "category": entry.item.category,
                "overrun": float(abs(entry.variance)),
                "reason": (
                    "Severe overrun"
                    if entry.variance_pct < self.settings.severe_overrun_pct
                    else "Moderate overrun"
                ),
            })
        return drivers[:self.settings.variance_display_limit]

    def calculate_report(
        self,
        expenses: Iterable[ExpenseRecord | dict[str, Any]] | None,
        etc_records: Iterable[EstimatedRemainingCost | dict[str, Any]] | None,
        line_items: Iterable[BudgetLineItem | dict[str, Any]] | None = None,
        project_id: str | None = None,
    ) -> VarianceReport:
        """Calculate a complete variance report.

        Args:
            expenses: Expense records
            etc_records: Estimated remaining cost records
            line_items: Budget line items
            project_id: Optional project filter (None for all projects)

        Returns:
            VarianceReport
        """
        spent = filter_by_project(coerce_records(ExpenseRecord, expenses), project_id)
        etc = filter_by_project(coerce_records(EstimatedRemainingCost, etc_records), project_id)
        items = filter_by_project(coerce_records(BudgetLineItem, line_items), project_id)

        all_categories = self.analyze_categories(spent, etc, items, include_empty=True)
        ranked = self.analyze_line_items(items)

        report = VarianceReport(
            project_id=project_id,
            generated_at=datetime.now(),
            categories=[c for c in all_categories if c.forecast > 0],
            line_items=ranked,
            top_overruns=self.get_top_overruns(ranked),
            top_savings=self.get_top_savings(ranked),
            overrun_drivers=self.get_overrun_drivers(ranked),
        )

        total_budgeted = sum((c.budgeted_amount for c in all_categories), ZERO)
        total_actual = sum((c.actual for c in all_categories), ZERO)
        total_forecast = sum((c.forecast for c in all_categories), ZERO)
        total_variance = total_budgeted - total_forecast

        report.summary = {
            "total_budgeted": float(total_budgeted),
            "total_actual": float(total_actual),
            "total_forecast": float(total_forecast),
            "variance": float(total_variance),
            "variance_percent": variance_percent(total_variance, total_budgeted),
            "line_item_variance": float(money_sum(ranked, "variance")),
            "categories_over_budget": len(report.over_budget_categories),
            "categories_warning": len(report.warning_categories),
        }

        logger.info(
            f"Variance report for {project_id or 'all projects'}: "
            f"{len(report.categories)} categories, {len(ranked)} line items, "
            f"forecast {total_forecast:,.2f} vs budget {total_budgeted:,.2f}"
        )
        return report

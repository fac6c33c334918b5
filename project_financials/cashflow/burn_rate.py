"""
Burn Rate Estimator Module

Tracks spending velocity, projects budget runway and classifies the recent
spending trend.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from ..records import (
    BudgetLine,
    ExpenseRecord,
    coerce_records,
    filter_by_project,
    money_sum,
    realized_expenses,
)
from ..settings import EngineSettings, resolve_settings

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class BurnRateAnalysis:
    """Spending velocity and runway projection."""

    daily_burn_rate: Decimal = ZERO
    weekly_burn_rate: Decimal = ZERO
    monthly_burn_rate: Decimal = ZERO
    remaining_budget: Decimal = ZERO
    days_remaining: float = 0.0
    projected_completion_date: date | None = None
    trend: str = "stable"  # 'increasing', 'decreasing', 'stable'
    total_budget: Decimal = ZERO
    total_spent: Decimal = ZERO
    daily_spending: list[dict] = field(default_factory=list)

    @property
    def has_runway_limit(self) -> bool:
        return not math.isinf(self.days_remaining)

    def to_dict(self) -> dict:
        return {
            "dailyBurnRate": float(self.daily_burn_rate),
            "weeklyBurnRate": float(self.weekly_burn_rate),
            "monthlyBurnRate": float(self.monthly_burn_rate),
            "remainingBudget": float(self.remaining_budget),
            "daysRemaining": self.days_remaining,
            "projectedCompletionDate": (
                self.projected_completion_date.isoformat()
                if self.projected_completion_date else None
            ),
            "trend": self.trend,
            "totalBudget": float(self.total_budget),
            "totalSpent": float(self.total_spent),
            "dailySpending": self.daily_spending,
        }


class BurnRateEstimator:
    """Estimates burn rate and runway from dated expenses."""

    def __init__(
        self,
        config_dir: Path | str | None = None,
        settings: EngineSettings | None = None,
    ):
        """Initialize the estimator.

        Args:
            config_dir: Path to configuration directory
            settings: Explicit settings (takes precedence over config_dir)
        """
        self.settings = resolve_settings(config_dir, settings)

    def estimate(
        self,
        expenses: Iterable[ExpenseRecord | dict[str, Any]] | None,
        total_budget: Decimal | float | int,
        total_spent: Decimal | float | int,
        as_of: date | None = None,
    ) -> BurnRateAnalysis:
        """Estimate burn rate and runway.

        Args:
            expenses: Expense records (only paid/approved with a date count)
            total_budget: Total project budget
            total_spent: Total spent to date
            as_of: Reference date for runway and trend (defaults to today)

        Returns:
            BurnRateAnalysis
        """
        as_of = as_of or date.today()
        total_budget = Decimal(str(total_budget))
        total_spent = Decimal(str(total_spent))

        realized = realized_expenses(coerce_records(ExpenseRecord, expenses))
        dated = sorted(
            (e for e in realized if e.expense_date is not None),
            key=lambda e: e.expense_date,
        )

        dropped = len(realized) - len(dated)
        if dropped:
            logger.warning(f"Ignoring {dropped} realized expenses without an expense date")

        if not dated:
            return BurnRateAnalysis()

        days_passed = max(1, (dated[-1].expense_date - dated[0].expense_date).days)

        daily = total_spent / days_passed
        remaining_budget = total_budget - total_spent

        if daily > 0:
            days_remaining = float(remaining_budget / daily)
            projected = self._project_date(as_of, days_remaining)
        else:
            days_remaining = math.inf
            projected = None

        analysis = BurnRateAnalysis(
            daily_burn_rate=daily,
            weekly_burn_rate=daily * 7,
            monthly_burn_rate=daily * 30,
            remaining_budget=remaining_budget,
            days_remaining=days_remaining,
            projected_completion_date=projected,
            trend=self.classify_trend(dated, as_of),
            total_budget=total_budget,
            total_spent=total_spent,
            daily_spending=self.daily_spending_series(dated),
        )

        logger.info(
            f"Burn rate {daily:,.2f}/day over {days_passed} days, "
            f"runway {days_remaining:.1f} days, trend {analysis.trend}"
        )
        return analysis

    def estimate_from_budget_lines(
        self,
        expenses: Iterable[ExpenseRecord | dict[str, Any]] | None,
        budget_lines: Iterable[BudgetLine | dict[str, Any]] | None,
        project_id: str | None = None,
        as_of: date | None = None,
    ) -> BurnRateAnalysis:
        """Estimate using budget and actual totals from budget lines."""
        lines = filter_by_project(coerce_records(BudgetLine, budget_lines), project_id)
        spent = filter_by_project(coerce_records(ExpenseRecord, expenses), project_id)

        return self.estimate(
            spent,
            total_budget=money_sum(lines, "budget_amount"),
            total_spent=money_sum(lines, "actual_amount"),
            as_of=as_of,
        )

    def classify_trend(self, expenses: list[ExpenseRecord], as_of: date) -> str:
        """Compare the trailing window's spend with the window before it."""
        window = timedelta(days=self.settings.burn_trend_window_days)
        recent_start = as_of - window
        previous_start = recent_start - window

        recent_total = money_sum(
            (e for e in expenses if e.expense_date >= recent_start), "amount"
        )
        previous_total = money_sum(
            (e for e in expenses if previous_start <= e.expense_date < recent_start), "amount"
        )

        if recent_total > previous_total * self.settings.burn_trend_increase_factor:
            return "increasing"
        elif recent_total < previous_total * self.settings.burn_trend_decrease_factor:
            return "decreasing"
        return "stable"

    def daily_spending_series(self, expenses: list[ExpenseRecord]) -> list[dict]:
        """Spending per date with a running cumulative total."""
        by_date: dict[date, Decimal] = {}
        for expense in expenses:
            by_date[expense.expense_date] = by_date.get(expense.expense_date, ZERO) + expense.amount

        series = []
        cumulative = ZERO
        for day in sorted(by_date)[-self.settings.burn_history_days:]:
            cumulative += by_date[day]
            series.append({
                "date": day.isoformat(),
                "spending": float(by_date[day]),
                "cumulative": float(cumulative),
            })
        return series

    def _project_date(self, as_of: date, days_remaining: float) -> date | None:
        try:
            return as_of + timedelta(days=int(days_remaining))
        except OverflowError:
            logger.warning(f"Projected runway of {days_remaining:.0f} days is out of date range")
            return None

"""
Earned Value Calculator Module

Calculates earned value management (EVM) metrics from budget lines and
task progress.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from ..records import BudgetLine, TaskProgress, coerce_records, filter_by_project, money_sum
from ..settings import EngineSettings, resolve_settings

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass
class EarnedValueMetrics:
    """EVM snapshot for a project (or a set of projects)."""

    planned_value: Decimal
    actual_cost: Decimal
    earned_value: Decimal
    cost_variance: Decimal
    schedule_variance: Decimal
    cpi: float
    spi: float
    budget_at_completion: Decimal
    estimate_at_completion: Decimal
    variance_at_completion: Decimal
    tcpi: float
    percent_complete: float
    percent_spent: float
    on_budget: bool = True
    on_schedule: bool = True

    def to_dict(self) -> dict:
        return {
            "PV": float(self.planned_value),
            "AC": float(self.actual_cost),
            "EV": float(self.earned_value),
            "CV": float(self.cost_variance),
            "SV": float(self.schedule_variance),
            "CPI": self.cpi,
            "SPI": self.spi,
            "BAC": float(self.budget_at_completion),
            "EAC": float(self.estimate_at_completion),
            "VAC": float(self.variance_at_completion),
            "TCPI": self.tcpi,
            "percentComplete": self.percent_complete,
            "percentSpent": self.percent_spent,
            "onBudget": self.on_budget,
            "onSchedule": self.on_schedule,
        }


class EarnedValueCalculator:
    """Calculates EVM metrics."""

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

    def calculate(
        self,
        budget_lines: Iterable[BudgetLine | dict[str, Any]],
        tasks: Iterable[TaskProgress | dict[str, Any]] | None = None,
        project_id: str | None = None,
    ) -> EarnedValueMetrics:
        """Calculate EVM metrics.

        Args:
            budget_lines: Budget lines (PV and AC source)
            tasks: Task progress records (EV source)
            project_id: Optional project filter (None for all projects)

        Returns:
            EarnedValueMetrics
        """
        lines = filter_by_project(coerce_records(BudgetLine, budget_lines), project_id)
        task_records = filter_by_project(coerce_records(TaskProgress, tasks), project_id)

        pv = money_sum(lines, "budget_amount")
        ac = money_sum(lines, "actual_amount")
        ev = pv * self.progress_ratio(task_records)

        cv = ev - ac
        sv = ev - pv

        cpi = ev / ac if ac > 0 else Decimal("1")
        spi = ev / pv if pv > 0 else Decimal("1")

        bac = pv
        eac = bac / cpi if cpi > 0 else bac
        vac = bac - eac

        remaining_budget = bac - ac
        tcpi = (bac - ev) / remaining_budget if remaining_budget > 0 else Decimal("1")

        percent_complete = float(ev / pv * HUNDRED) if pv > 0 else 0.0
        percent_spent = float(ac / pv * HUNDRED) if pv > 0 else 0.0

        floor = self.settings.performance_floor
        metrics = EarnedValueMetrics(
            planned_value=pv,
            actual_cost=ac,
            earned_value=ev,
            cost_variance=cv,
            schedule_variance=sv,
            cpi=float(cpi),
            spi=float(spi),
            budget_at_completion=bac,
            estimate_at_completion=eac,
            variance_at_completion=vac,
            tcpi=float(tcpi),
            percent_complete=percent_complete,
            percent_spent=percent_spent,
            on_budget=float(cpi) >= floor,
            on_schedule=float(spi) >= floor,
        )

        logger.info(
            f"EVM for {project_id or 'all projects'}: PV={pv:,.2f} EV={ev:,.2f} "
            f"AC={ac:,.2f} CPI={metrics.cpi:.3f} SPI={metrics.spi:.3f}"
        )
        return metrics

    @staticmethod
    def progress_ratio(tasks: list[TaskProgress]) -> Decimal:
        """Overall completion as a 0-1 ratio.

        Hours-weighted when estimated hours exist, otherwise the plain
        average of task progress.
        """
        if not tasks:
            return ZERO

        total_hours = money_sum(tasks, "estimated_hours")
        if total_hours > 0:
            earned_hours = sum(
                (t.estimated_hours * t.progress_percent / HUNDRED for t in tasks),
                ZERO,
            )
            return earned_hours / total_hours

        avg_progress = money_sum(tasks, "progress_percent") / len(tasks)
        return avg_progress / HUNDRED

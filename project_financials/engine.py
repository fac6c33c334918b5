"""
Financial Performance Engine

Runs every calculator for one project against an in-memory snapshot of
ledger records and bundles the results.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .budget import ThresholdChecker, ThresholdCheckResult, VarianceCalculator, VarianceReport
from .cashflow import BurnRateAnalysis, BurnRateEstimator
from .change_orders import ChangeOrderWaterfall, WaterfallResult
from .earned_value import EarnedValueCalculator, EarnedValueMetrics
from .records import (
    BudgetLine,
    BudgetLineItem,
    ChangeOrder,
    EstimatedRemainingCost,
    ExpenseRecord,
    SOVLineItem,
    TaskProgress,
    coerce_records,
    filter_by_project,
)
from .risk import CostRiskClassifier, CostRiskSignal
from .settings import AlertThresholdConfig, EngineSettings, resolve_settings

logger = logging.getLogger(__name__)


@dataclass
class ProjectSnapshot:
    """Validated ledger collections for one or more projects."""

    budget_lines: list[BudgetLine] = field(default_factory=list)
    line_items: list[BudgetLineItem] = field(default_factory=list)
    tasks: list[TaskProgress] = field(default_factory=list)
    expenses: list[ExpenseRecord] = field(default_factory=list)
    etc_records: list[EstimatedRemainingCost] = field(default_factory=list)
    sov_items: list[SOVLineItem] = field(default_factory=list)
    change_orders: list[ChangeOrder] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectSnapshot":
        """Validate raw collections keyed by snapshot field name.

        Raises:
            RecordValidationError: If any row is invalid
        """
        return cls(
            budget_lines=coerce_records(BudgetLine, data.get("budget_lines"), "budget_lines"),
            line_items=coerce_records(BudgetLineItem, data.get("line_items"), "line_items"),
            tasks=coerce_records(TaskProgress, data.get("tasks"), "tasks"),
            expenses=coerce_records(ExpenseRecord, data.get("expenses"), "expenses"),
            etc_records=coerce_records(
                EstimatedRemainingCost, data.get("etc_records"), "etc_records"
            ),
            sov_items=coerce_records(SOVLineItem, data.get("sov_items"), "sov_items"),
            change_orders=coerce_records(ChangeOrder, data.get("change_orders"), "change_orders"),
        )

    def for_project(self, project_id: str | None) -> "ProjectSnapshot":
        if project_id is None:
            return self
        return ProjectSnapshot(
            budget_lines=filter_by_project(self.budget_lines, project_id),
            line_items=filter_by_project(self.line_items, project_id),
            tasks=filter_by_project(self.tasks, project_id),
            expenses=filter_by_project(self.expenses, project_id),
            etc_records=filter_by_project(self.etc_records, project_id),
            sov_items=filter_by_project(self.sov_items, project_id),
            change_orders=filter_by_project(self.change_orders, project_id),
        )


@dataclass
class ProjectFinancialReport:
    """All engine outputs for one project."""

    project_id: str | None
    generated_at: datetime
    earned_value: EarnedValueMetrics
    waterfall: WaterfallResult
    variance: VarianceReport
    burn_rate: BurnRateAnalysis
    cost_risk: CostRiskSignal
    alerts: ThresholdCheckResult

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "generated_at": self.generated_at.isoformat(),
            "earned_value": self.earned_value.to_dict(),
            "waterfall": self.waterfall.to_dict(),
            "variance": self.variance.to_dict(),
            "burn_rate": self.burn_rate.to_dict(),
            "cost_risk": self.cost_risk.to_dict(),
            "alerts": self.alerts.to_dict(),
        }


class FinancialPerformanceEngine:
    """Facade over the earned value, waterfall, variance, burn rate and risk calculators."""

    def __init__(
        self,
        config_dir: Path | str | None = None,
        settings: EngineSettings | None = None,
        alert_config: AlertThresholdConfig | None = None,
    ):
        """Initialize the engine.

        Args:
            config_dir: Path to configuration directory
            settings: Explicit settings (takes precedence over config_dir)
            alert_config: Caller-owned alert thresholds (defaults to settings.alerts)
        """
        self.settings = resolve_settings(config_dir, settings)
        self.alert_config = alert_config or self.settings.alerts

        self.earned_value = EarnedValueCalculator(settings=self.settings)
        self.waterfall = ChangeOrderWaterfall(settings=self.settings)
        self.variance = VarianceCalculator(settings=self.settings)
        self.burn_rate = BurnRateEstimator(settings=self.settings)
        self.cost_risk = CostRiskClassifier(settings=self.settings, alert_config=self.alert_config)
        self.threshold_checker = ThresholdChecker(self.alert_config, self.settings)

    def analyze_project(
        self,
        snapshot: ProjectSnapshot | dict[str, Any],
        project_id: str | None = None,
        planned_margin_percent: float | None = None,
        as_of: date | None = None,
    ) -> ProjectFinancialReport:
        """Compute every metric for a project.

        Args:
            snapshot: ProjectSnapshot or raw collections dict
            project_id: Project to analyze (None uses every record)
            planned_margin_percent: Planned margin for the risk tier
            as_of: Reference date for burn rate runway and trend

        Returns:
            ProjectFinancialReport
        """
        if not isinstance(snapshot, ProjectSnapshot):
            snapshot = ProjectSnapshot.from_dict(snapshot)
        data = snapshot.for_project(project_id)

        metrics = self.earned_value.calculate(data.budget_lines, data.tasks)
        waterfall = self.waterfall.build(
            data.sov_items, data.change_orders, data.expenses, data.etc_records,
            project_id=project_id,
        )
        variance = self.variance.calculate_report(
            data.expenses, data.etc_records, data.line_items, project_id=project_id
        )
        burn_rate = self.burn_rate.estimate_from_budget_lines(
            data.expenses, data.budget_lines, as_of=as_of
        )
        cost_risk = self.cost_risk.assess(
            data.sov_items,
            data.change_orders,
            data.expenses,
            data.etc_records,
            line_items=data.line_items,
            planned_margin_percent=planned_margin_percent,
            waterfall=waterfall,
        )
        alerts = self.threshold_checker.evaluate(
            metrics=metrics,
            variance_report=variance,
            burn_rate=burn_rate,
            risk_signal=cost_risk,
        )

        logger.info(
            f"Analyzed project {project_id or 'all'}: risk {cost_risk.risk_level}, "
            f"{alerts.alert_count} alerts"
        )
        return ProjectFinancialReport(
            project_id=project_id,
            generated_at=datetime.now(),
            earned_value=metrics,
            waterfall=waterfall,
            variance=variance,
            burn_rate=burn_rate,
            cost_risk=cost_risk,
            alerts=alerts,
        )

"""
Financial Performance Engine Tests

End-to-end tests for the engine facade over a multi-project snapshot.
"""

import json
from decimal import Decimal

import pytest

from project_financials import (
    AlertThresholdConfig,
    FinancialPerformanceEngine,
    ProjectFinancialReport,
    ProjectSnapshot,
    RecordValidationError,
)


@pytest.fixture
def snapshot_data(
    sample_budget_lines,
    sample_tasks,
    sample_expenses,
    sample_etc_records,
    sample_sov_items,
    sample_change_orders,
) -> dict:
    return {
        "budget_lines": sample_budget_lines,
        "tasks": sample_tasks,
        "expenses": sample_expenses,
        "etc_records": sample_etc_records,
        "sov_items": sample_sov_items,
        "change_orders": sample_change_orders,
    }


@pytest.fixture
def engine(config_dir) -> FinancialPerformanceEngine:
    return FinancialPerformanceEngine(config_dir)


class TestProjectSnapshot:
    """Tests for ProjectSnapshot class."""

    def test_from_dict(self, snapshot_data):
        snapshot = ProjectSnapshot.from_dict(snapshot_data)

        assert len(snapshot.budget_lines) == 3
        assert len(snapshot.change_orders) == 2
        assert snapshot.line_items == []

    def test_for_project(self, snapshot_data):
        snapshot = ProjectSnapshot.from_dict(snapshot_data).for_project("p2")

        assert len(snapshot.budget_lines) == 1
        assert len(snapshot.tasks) == 1
        assert snapshot.expenses == []

    def test_invalid_row_names_collection(self, snapshot_data):
        snapshot_data["expenses"] = [*snapshot_data["expenses"], {"amount": -10}]

        with pytest.raises(RecordValidationError) as exc_info:
            ProjectSnapshot.from_dict(snapshot_data)

        assert exc_info.value.entity == "expenses"
        assert exc_info.value.index == 4


class TestFinancialPerformanceEngine:
    """Tests for FinancialPerformanceEngine class."""

    def test_analyze_project(self, engine, snapshot_data, as_of):
        report = engine.analyze_project(snapshot_data, project_id="p1", as_of=as_of)

        assert isinstance(report, ProjectFinancialReport)
        assert report.project_id == "p1"
        assert report.earned_value.planned_value == Decimal("100000")
        assert report.earned_value.earned_value == Decimal("60000")
        assert report.waterfall.summary.final_contract == Decimal("550000")
        assert report.waterfall.summary.final_eac == Decimal("435000")
        assert [c.category for c in report.variance.categories] == ["labor", "material", "equipment"]
        assert report.burn_rate.total_budget == Decimal("100000")
        assert report.burn_rate.trend == "decreasing"
        assert report.cost_risk.risk_level == "green"

    def test_alerts(self, engine, snapshot_data, as_of):
        """Schedule slip (SPI 0.6) is the only breached threshold."""
        report = engine.analyze_project(snapshot_data, project_id="p1", as_of=as_of)

        assert [a.subject for a in report.alerts.alerts] == ["SPI"]
        assert report.alerts.has_critical_alerts is False

    def test_other_project_isolated(self, engine, snapshot_data, as_of):
        report = engine.analyze_project(snapshot_data, project_id="p2", as_of=as_of)

        assert report.earned_value.planned_value == Decimal("25000")
        assert report.waterfall.entries == []
        assert report.variance.categories == []
        assert report.burn_rate.daily_burn_rate == Decimal("0")

    def test_all_projects(self, engine, snapshot_data, as_of):
        report = engine.analyze_project(snapshot_data, as_of=as_of)

        assert report.project_id is None
        assert report.earned_value.planned_value == Decimal("125000")

    def test_accepts_snapshot_instance(self, engine, snapshot_data, as_of):
        snapshot = ProjectSnapshot.from_dict(snapshot_data)

        report = engine.analyze_project(snapshot, project_id="p1", as_of=as_of)

        assert report.waterfall.summary.approved_count == 1

    def test_planned_margin_override(self, engine, snapshot_data, as_of):
        report = engine.analyze_project(
            snapshot_data, project_id="p1", planned_margin_percent=30.0, as_of=as_of
        )

        assert report.cost_risk.risk_level == "red"
        assert "margin" in [a.category for a in report.alerts.alerts]

    def test_caller_owned_alert_config(self, snapshot_data, as_of):
        config = AlertThresholdConfig(enabled_categories=frozenset({"budget", "margin"}))
        engine = FinancialPerformanceEngine(alert_config=config)

        report = engine.analyze_project(snapshot_data, project_id="p1", as_of=as_of)

        assert engine.threshold_checker.config is config
        assert report.alerts.alerts == []

    def test_invalid_snapshot_propagates(self, engine, snapshot_data):
        snapshot_data["change_orders"] = [{"status": "maybe"}]

        with pytest.raises(RecordValidationError) as exc_info:
            engine.analyze_project(snapshot_data)

        assert exc_info.value.entity == "change_orders"

    def test_to_dict_is_json_serializable(self, engine, snapshot_data, as_of):
        report = engine.analyze_project(snapshot_data, project_id="p1", as_of=as_of)

        d = json.loads(json.dumps(report.to_dict()))

        assert d["earned_value"]["CPI"] == pytest.approx(1.2)
        assert d["waterfall"]["summary"]["finalContract"] == 550000.0
        assert d["burn_rate"]["trend"] == "decreasing"
        assert d["cost_risk"]["risk_level"] == "green"
        assert d["alerts"]["alert_count"] == 1

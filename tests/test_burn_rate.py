"""
Burn Rate Estimator Tests

Tests for spending velocity, runway projection and trend classification.
"""

import math
from datetime import date
from decimal import Decimal

import pytest

from project_financials.cashflow import BurnRateAnalysis, BurnRateEstimator
from project_financials.settings import EngineSettings


@pytest.fixture
def estimator(settings: EngineSettings) -> BurnRateEstimator:
    return BurnRateEstimator(settings=settings)


def _expense(day: str, amount, status: str = "paid") -> dict:
    return {"amount": amount, "payment_status": status, "expense_date": day}


class TestBurnRateEstimator:
    """Tests for BurnRateEstimator class."""

    def test_no_expenses(self, estimator, as_of):
        """Empty input yields an all-zero analysis."""
        analysis = estimator.estimate([], total_budget=30000, total_spent=0, as_of=as_of)

        assert analysis.daily_burn_rate == Decimal("0")
        assert analysis.days_remaining == 0
        assert analysis.projected_completion_date is None
        assert analysis.trend == "stable"
        assert analysis.daily_spending == []

    def test_basic_runway(self, estimator, as_of):
        """10,000 spent across ten days against a 30,000 budget."""
        expenses = [_expense("2025-03-01", 4000), _expense("2025-03-11", 6000)]

        analysis = estimator.estimate(expenses, total_budget=30000, total_spent=10000, as_of=as_of)

        assert analysis.daily_burn_rate == Decimal("1000")
        assert analysis.weekly_burn_rate == Decimal("7000")
        assert analysis.monthly_burn_rate == Decimal("30000")
        assert analysis.remaining_budget == Decimal("20000")
        assert analysis.days_remaining == pytest.approx(20.0)
        assert analysis.projected_completion_date == date(2025, 4, 20)

    def test_weekly_and_monthly_scale_exactly(self, estimator, as_of):
        expenses = [_expense("2025-03-01", 1), _expense("2025-03-04", 1)]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=100, as_of=as_of)

        assert analysis.weekly_burn_rate == analysis.daily_burn_rate * 7
        assert analysis.monthly_burn_rate == analysis.daily_burn_rate * 30

    def test_same_day_expenses_use_one_day(self, estimator, as_of):
        """A single spending day counts as one day elapsed."""
        expenses = [_expense("2025-03-10", 500), _expense("2025-03-10", 700)]

        analysis = estimator.estimate(expenses, total_budget=5000, total_spent=1200, as_of=as_of)

        assert analysis.daily_burn_rate == Decimal("1200")

    def test_zero_spend_has_unbounded_runway(self, estimator, as_of):
        analysis = estimator.estimate(
            [_expense("2025-03-10", 0)], total_budget=5000, total_spent=0, as_of=as_of
        )

        assert math.isinf(analysis.days_remaining)
        assert analysis.has_runway_limit is False
        assert analysis.projected_completion_date is None

    def test_overspent_budget_has_negative_runway(self, estimator, as_of):
        expenses = [_expense("2025-03-01", 1), _expense("2025-03-11", 1)]

        analysis = estimator.estimate(expenses, total_budget=5000, total_spent=10000, as_of=as_of)

        assert analysis.remaining_budget == Decimal("-5000")
        assert analysis.days_remaining == pytest.approx(-5.0)
        assert analysis.projected_completion_date == date(2025, 3, 26)

    def test_runway_overflow_returns_no_date(self, estimator, as_of):
        """Runway beyond the calendar range gives no projected date."""
        expenses = [_expense("2025-03-01", 1), _expense("2025-03-02", 1)]

        analysis = estimator.estimate(
            expenses, total_budget=Decimal("1e12"), total_spent=Decimal("0.01"), as_of=as_of
        )

        assert analysis.days_remaining > 1e12
        assert analysis.projected_completion_date is None

    def test_only_realized_dated_expenses_count(self, estimator, as_of):
        """Pending, rejected and undated expenses do not set the date span."""
        expenses = [
            _expense("2025-03-01", 100),
            _expense("2025-03-06", 100, "approved"),
            _expense("2025-01-01", 100, "pending"),
            _expense("2025-01-02", 100, "rejected"),
            {"amount": 100, "payment_status": "paid"},
        ]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=500, as_of=as_of)

        assert analysis.daily_burn_rate == Decimal("100")
        assert [d["date"] for d in analysis.daily_spending] == ["2025-03-01", "2025-03-06"]

    def test_only_pending_expenses_is_empty(self, estimator, as_of):
        analysis = estimator.estimate(
            [_expense("2025-03-01", 100, "pending")], total_budget=1000, total_spent=100, as_of=as_of
        )

        assert analysis.daily_burn_rate == Decimal("0")
        assert analysis.days_remaining == 0

    def test_daily_spending_series(self, estimator, as_of):
        """Spending grouped per date with a running total."""
        expenses = [
            _expense("2025-03-05", 300),
            _expense("2025-03-01", 100),
            _expense("2025-03-05", 200),
        ]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=600, as_of=as_of)

        assert analysis.daily_spending == [
            {"date": "2025-03-01", "spending": 100.0, "cumulative": 100.0},
            {"date": "2025-03-05", "spending": 500.0, "cumulative": 600.0},
        ]

    def test_daily_spending_history_limit(self, as_of):
        estimator = BurnRateEstimator(settings=EngineSettings(burn_history_days=2))
        expenses = [_expense(f"2025-03-0{d}", 10) for d in (1, 2, 3)]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=30, as_of=as_of)

        assert [d["date"] for d in analysis.daily_spending] == ["2025-03-02", "2025-03-03"]

    def test_datetime_strings_accepted(self, estimator, as_of):
        expenses = [_expense("2025-03-01T08:30:00", 100), _expense("2025-03-03T17:00:00", 100)]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=200, as_of=as_of)

        assert analysis.daily_burn_rate == Decimal("100")

    def test_space_separated_timestamps_accepted(self, estimator, as_of):
        expenses = [_expense("2025-03-01 10:30:00", 100), _expense("2025-03-03 17:00:00", 100)]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=200, as_of=as_of)

        assert analysis.daily_burn_rate == Decimal("100")

    def test_estimate_from_budget_lines(self, estimator, sample_budget_lines, as_of):
        """Budget and spent totals come from the project's budget lines."""
        expenses = [
            {"project_id": "p1", **_expense("2025-03-01", 1)},
            {"project_id": "p1", **_expense("2025-03-11", 1)},
            {"project_id": "p2", **_expense("2024-01-01", 1)},
        ]

        analysis = estimator.estimate_from_budget_lines(
            expenses, sample_budget_lines, project_id="p1", as_of=as_of
        )

        assert analysis.total_budget == Decimal("100000")
        assert analysis.total_spent == Decimal("50000")
        assert analysis.daily_burn_rate == Decimal("5000")
        assert analysis.days_remaining == pytest.approx(10.0)

    def test_to_dict(self, estimator, as_of):
        expenses = [_expense("2025-03-01", 4000), _expense("2025-03-11", 6000)]

        d = estimator.estimate(expenses, total_budget=30000, total_spent=10000, as_of=as_of).to_dict()

        assert d["dailyBurnRate"] == 1000.0
        assert d["projectedCompletionDate"] == "2025-04-20"
        assert d["trend"] == "increasing"

    def test_empty_analysis_defaults(self):
        analysis = BurnRateAnalysis()

        assert analysis.to_dict()["projectedCompletionDate"] is None
        assert analysis.has_runway_limit is True


class TestBurnTrend:
    """Tests for trend classification over trailing windows."""

    def test_increasing(self, estimator, as_of):
        expenses = [_expense("2025-02-15", 100), _expense("2025-03-15", 200)]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=300, as_of=as_of)

        assert analysis.trend == "increasing"

    def test_decreasing(self, estimator, as_of):
        expenses = [_expense("2025-02-15", 200), _expense("2025-03-15", 100)]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=300, as_of=as_of)

        assert analysis.trend == "decreasing"

    def test_stable_within_band(self, estimator, as_of):
        """A 10% change either way is still stable."""
        expenses = [_expense("2025-02-15", 1000), _expense("2025-03-15", 1100)]

        analysis = estimator.estimate(expenses, total_budget=5000, total_spent=2100, as_of=as_of)

        assert analysis.trend == "stable"

    def test_stable_with_no_spend_in_either_window(self, estimator, as_of):
        expenses = [_expense("2024-06-01", 100), _expense("2024-07-01", 100)]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=200, as_of=as_of)

        assert analysis.trend == "stable"

    def test_window_boundaries(self, estimator):
        """Recent window starts exactly window-days before the reference date."""
        as_of = date(2025, 3, 31)
        expenses = [
            _expense("2025-03-01", 100),  # first day of recent window
            _expense("2025-01-30", 100),  # first day of previous window
            _expense("2025-01-29", 5000),  # outside both windows
        ]

        analysis = estimator.estimate(expenses, total_budget=10000, total_spent=5200, as_of=as_of)

        assert analysis.trend == "stable"

    def test_custom_window(self, as_of):
        estimator = BurnRateEstimator(settings=EngineSettings(burn_trend_window_days=7))
        expenses = [_expense("2025-03-20", 100), _expense("2025-03-28", 100)]

        analysis = estimator.estimate(expenses, total_budget=1000, total_spent=200, as_of=as_of)

        assert analysis.trend == "stable"

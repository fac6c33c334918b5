"""
Pytest configuration and fixtures for financial engine tests.
"""

from datetime import date
from pathlib import Path

import pytest

from project_financials.settings import EngineSettings

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def config_dir() -> Path:
    """Return the config directory path."""
    return PROJECT_ROOT / "config"


@pytest.fixture
def settings() -> EngineSettings:
    """Return default engine settings."""
    return EngineSettings()


@pytest.fixture
def as_of() -> date:
    """Fixed reference date for date-relative calculations."""
    return date(2025, 3, 31)


@pytest.fixture
def sample_budget_lines() -> list[dict]:
    """Budget lines totalling PV=100,000 and AC=50,000 for project p1."""
    return [
        {"project_id": "p1", "category": "labor", "budget_amount": 60000, "actual_amount": 30000},
        {"project_id": "p1", "category": "material", "budget_amount": 40000, "actual_amount": 20000},
        {"project_id": "p2", "category": "labor", "budget_amount": 25000, "actual_amount": 5000},
    ]


@pytest.fixture
def sample_tasks() -> list[dict]:
    """Tasks with 200 estimated hours, 120 earned, for project p1."""
    return [
        {"project_id": "p1", "estimated_hours": 100, "progress_percent": 100},
        {"project_id": "p1", "estimated_hours": 100, "progress_percent": 20},
        {"project_id": "p2", "estimated_hours": 50, "progress_percent": 10},
    ]


@pytest.fixture
def sample_sov_items() -> list[dict]:
    """Schedule of values worth 500,000 for project p1."""
    return [
        {"id": "sov1", "project_id": "p1", "sov_code": "01", "description": "Sitework",
         "scheduled_value": 200000, "percent_complete": 50},
        {"id": "sov2", "project_id": "p1", "sov_code": "02", "description": "Structural Steel",
         "scheduled_value": 300000, "percent_complete": 40},
    ]


@pytest.fixture
def sample_expenses() -> list[dict]:
    """Expenses with 300,000 realized for project p1."""
    return [
        {"id": "e1", "project_id": "p1", "amount": 100000, "category": "labor",
         "payment_status": "paid", "expense_date": "2025-01-15", "sov_code": "01"},
        {"id": "e2", "project_id": "p1", "amount": 150000, "category": "material",
         "payment_status": "approved", "expense_date": "2025-02-20", "sov_code": "02"},
        {"id": "e3", "project_id": "p1", "amount": 50000, "category": "equipment",
         "payment_status": "paid", "expense_date": "2025-03-20", "sov_code": "02"},
        {"id": "e4", "project_id": "p1", "amount": 25000, "category": "labor",
         "payment_status": "pending", "expense_date": "2025-03-25"},
    ]


@pytest.fixture
def sample_etc_records() -> list[dict]:
    """Estimated remaining cost of 100,000 for project p1."""
    return [
        {"project_id": "p1", "category": "labor", "estimated_remaining_cost": 60000},
        {"project_id": "p1", "category": "material", "estimated_remaining_cost": 40000},
    ]


@pytest.fixture
def sample_change_orders() -> list[dict]:
    """One approved and one pending change order."""
    return [
        {"id": "co1", "project_id": "p1", "co_number": "001", "cost_impact": 50000,
         "status": "approved", "approved_date": "2025-01-10", "created_date": "2025-01-02"},
        {"id": "co2", "project_id": "p1", "co_number": "002", "cost_impact": 20000,
         "status": "pending", "created_date": "2025-02-01"},
    ]

"""
Project Financial Performance Engine

Stateless calculations that turn construction ledger data (budgets, actual
costs, task progress, change orders) into earned value indices, a change
order margin waterfall, budget variance rankings, burn rate projections and
a cost risk signal.
"""

from .engine import FinancialPerformanceEngine, ProjectFinancialReport, ProjectSnapshot
from .records import RecordValidationError
from .settings import AlertThresholdConfig, EngineSettings, load_settings

__version__ = "1.0.0"

__all__ = [
    "FinancialPerformanceEngine",
    "ProjectFinancialReport",
    "ProjectSnapshot",
    "RecordValidationError",
    "AlertThresholdConfig",
    "EngineSettings",
    "load_settings",
]

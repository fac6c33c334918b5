"""
Ledger Records Module

Typed input records and ingestion-time validation.
"""

from .models import (
    COST_CATEGORIES,
    BudgetLine,
    BudgetLineItem,
    ChangeOrder,
    CostBreakdownItem,
    EstimatedRemainingCost,
    ExpenseRecord,
    SOVLineItem,
    TaskProgress,
)
from .loader import (
    RecordValidationError,
    coerce_records,
    filter_by_project,
    money_sum,
    realized_expenses,
)

__all__ = [
    # Records
    "COST_CATEGORIES",
    "BudgetLine",
    "BudgetLineItem",
    "ChangeOrder",
    "CostBreakdownItem",
    "EstimatedRemainingCost",
    "ExpenseRecord",
    "SOVLineItem",
    "TaskProgress",
    # Ingestion
    "RecordValidationError",
    "coerce_records",
    "filter_by_project",
    "money_sum",
    "realized_expenses",
]

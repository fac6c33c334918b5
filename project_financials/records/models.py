"""
Ledger Record Models

Typed input records consumed by the financial performance engine. Records
are validated once at ingestion so the calculators never have to guard
against missing or malformed values.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)

CostCategory = Literal["labor", "material", "equipment", "subcontract", "other"]
PaymentStatus = Literal["paid", "approved", "pending", "rejected"]
ChangeOrderStatus = Literal[
    "draft", "submitted", "pending", "under_review", "approved", "rejected"
]

COST_CATEGORIES: tuple[str, ...] = ("labor", "material", "equipment", "subcontract", "other")
REALIZED_PAYMENT_STATUSES = frozenset({"paid", "approved"})
PENDING_CO_STATUSES = frozenset({"pending", "submitted"})
UNRESOLVED_CO_STATUSES = frozenset({"draft", "under_review"})


def _zero_if_missing(value: Any) -> Any:
    """Coerce null numerics to zero and floats to exact decimals."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, float):
        return Decimal(str(value))
    return value


# JSON dumps render decimals as floats, matching the result to_dict() methods.
AsFloat = PlainSerializer(float, return_type=float, when_used="json")

Money = Annotated[Decimal, BeforeValidator(_zero_if_missing), Field(ge=0), AsFloat]
SignedMoney = Annotated[Decimal, BeforeValidator(_zero_if_missing), AsFloat]
Hours = Annotated[Decimal, BeforeValidator(_zero_if_missing), Field(ge=0), AsFloat]
Percent = Annotated[Decimal, BeforeValidator(_zero_if_missing), Field(ge=0, le=100), AsFloat]


class LedgerRecord(BaseModel):
    """Common fields for all ledger-like records."""

    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    id: str | None = None
    project_id: str | None = None


class BudgetLine(LedgerRecord):
    """Budget vs actual for one financial line (PV/AC source)."""

    category: CostCategory | None = None
    budget_amount: Money = Decimal("0")
    actual_amount: Money = Decimal("0")


class BudgetLineItem(LedgerRecord):
    """Line-item budget with a forecast at completion."""

    name: str | None = None
    category: CostCategory | None = None
    budgeted_amount: Money = Decimal("0")
    forecast_amount: Money = Decimal("0")


class TaskProgress(LedgerRecord):
    """Task hours and completion used for earned-hours weighting."""

    estimated_hours: Hours = Decimal("0")
    progress_percent: Percent = Decimal("0")


class ExpenseRecord(LedgerRecord):
    """A single project expense."""

    amount: Money = Decimal("0")
    category: CostCategory | None = None
    payment_status: PaymentStatus | None = None
    expense_date: date | None = None
    sov_code: str | None = None

    @field_validator("expense_date", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            # "2025-03-01T10:00:00" and "2025-03-01 10:00:00" keep the date part
            return re.split(r"[T ]", value, maxsplit=1)[0]
        return value

    @property
    def is_realized(self) -> bool:
        return self.payment_status in REALIZED_PAYMENT_STATUSES


class EstimatedRemainingCost(LedgerRecord):
    """Estimated cost to complete (ETC) for one category."""

    category: CostCategory | None = None
    estimated_remaining_cost: Money = Decimal("0")


class SOVLineItem(LedgerRecord):
    """Schedule of values line; the contract baseline."""

    sov_code: str | None = None
    description: str | None = None
    scheduled_value: Money = Decimal("0")
    percent_complete: Percent = Decimal("0")

    @property
    def earned_to_date(self) -> Decimal:
        return self.scheduled_value * self.percent_complete / Decimal("100")


class CostBreakdownItem(BaseModel):
    """Estimated cost component of a change order."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    description: str | None = None
    amount: Money = Decimal("0")


class ChangeOrder(LedgerRecord):
    """Change order; `cost_impact` is the signed revenue delta."""

    co_number: str | None = None
    title: str | None = None
    cost_impact: SignedMoney = Decimal("0")
    cost_breakdown: list[CostBreakdownItem] | None = None
    status: ChangeOrderStatus = "draft"
    # Raw ISO strings; ordering is a plain string comparison.
    approved_date: str | None = None
    created_date: str | None = None

    @field_validator("approved_date", "created_date", mode="before")
    @classmethod
    def _isoformat_dates(cls, value: Any) -> Any:
        if value == "":
            return None
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return value

    @property
    def effective_date(self) -> str | None:
        """Date used for waterfall ordering."""
        return self.approved_date or self.created_date

    @property
    def label(self) -> str:
        if self.co_number:
            return f"CO-{self.co_number}"
        return self.title or self.id or "CO"

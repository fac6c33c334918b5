"""
Change Order Waterfall Module

Sequences change orders chronologically and tracks the before/after contract
value, estimated cost at completion and margin for each one. Only approved
change orders move the running baseline; all others are forecast-only.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from ..records import (
    ChangeOrder,
    EstimatedRemainingCost,
    ExpenseRecord,
    SOVLineItem,
    coerce_records,
    filter_by_project,
    money_sum,
    realized_expenses,
)
from ..records.models import PENDING_CO_STATUSES, UNRESOLVED_CO_STATUSES
from ..settings import EngineSettings, resolve_settings

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def margin_percent(contract: Decimal, eac: Decimal) -> float:
    """Margin as a percentage of contract value (0 when no contract)."""
    if contract > 0:
        return float((contract - eac) / contract * 100)
    return 0.0


def estimate_change_order_cost(change_order: ChangeOrder, default_cost_ratio: Decimal) -> Decimal:
    """Estimated cost of a change order.

    The cost breakdown total wins when one is present; otherwise the
    default share of revenue is assumed.
    """
    if change_order.cost_breakdown:
        return money_sum(change_order.cost_breakdown, "amount")
    return change_order.cost_impact * default_cost_ratio


def sequence_change_orders(change_orders: list[ChangeOrder]) -> list[ChangeOrder]:
    """Order change orders by approved (or created) date.

    Ties keep their original order. Undated change orders go last, also in
    original order.
    """
    indexed = list(enumerate(change_orders))
    indexed.sort(
        key=lambda pair: (
            pair[1].effective_date is None,
            pair[1].effective_date or "",
            pair[0],
        )
    )
    return [co for _, co in indexed]


@dataclass(frozen=True)
class WaterfallSnapshot:
    """Contract value and EAC at one point of the waterfall."""

    contract: Decimal
    eac: Decimal

    @property
    def margin(self) -> Decimal:
        return self.contract - self.eac

    @property
    def margin_percent(self) -> float:
        return margin_percent(self.contract, self.eac)

    def to_dict(self) -> dict:
        return {
            "contract": float(self.contract),
            "eac": float(self.eac),
            "margin": float(self.margin),
            "marginPercent": self.margin_percent,
        }


@dataclass
class WaterfallEntry:
    """Margin impact of a single change order."""

    change_order: ChangeOrder
    revenue: Decimal
    estimated_cost: Decimal
    before: WaterfallSnapshot
    after: WaterfallSnapshot
    committed: bool
    net_margin_impact: Decimal
    margin_percent_delta: float
    impact_status: str  # 'positive', 'negative', 'neutral'

    @property
    def status(self) -> str:
        return self.change_order.status

    def to_dict(self) -> dict:
        return {
            **self.change_order.model_dump(mode="json"),
            "revenue": float(self.revenue),
            "estimatedCost": float(self.estimated_cost),
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
            "committed": self.committed,
            "netMarginImpact": float(self.net_margin_impact),
            "marginPercentDelta": self.margin_percent_delta,
            "impactStatus": self.impact_status,
        }


@dataclass
class WaterfallSummary:
    """Totals after all change orders have been sequenced."""

    original_contract: Decimal
    base_eac: Decimal
    final_contract: Decimal
    final_eac: Decimal
    approved_count: int = 0
    pending_count: int = 0
    rejected_count: int = 0
    unresolved_count: int = 0
    approved_revenue: Decimal = ZERO
    pending_revenue: Decimal = ZERO

    @property
    def original_margin(self) -> Decimal:
        return self.original_contract - self.base_eac

    @property
    def original_margin_percent(self) -> float:
        return margin_percent(self.original_contract, self.base_eac)

    @property
    def final_margin(self) -> Decimal:
        return self.final_contract - self.final_eac

    @property
    def final_margin_percent(self) -> float:
        return margin_percent(self.final_contract, self.final_eac)

    @property
    def total_margin_delta(self) -> Decimal:
        return self.final_margin - self.original_margin

    @property
    def with_pending_contract(self) -> Decimal:
        """What-if contract value if pending change orders were approved."""
        return self.final_contract + self.pending_revenue

    @property
    def with_pending_margin(self) -> Decimal:
        return self.with_pending_contract - self.final_eac

    @property
    def with_pending_margin_percent(self) -> float:
        return margin_percent(self.with_pending_contract, self.final_eac)

    def to_dict(self) -> dict:
        return {
            "originalContract": float(self.original_contract),
            "baseEAC": float(self.base_eac),
            "originalMargin": float(self.original_margin),
            "originalMarginPercent": self.original_margin_percent,
            "finalContract": float(self.final_contract),
            "finalEAC": float(self.final_eac),
            "finalMargin": float(self.final_margin),
            "finalMarginPercent": self.final_margin_percent,
            "totalMarginDelta": float(self.total_margin_delta),
            "approvedCount": self.approved_count,
            "pendingCount": self.pending_count,
            "rejectedCount": self.rejected_count,
            "unresolvedCount": self.unresolved_count,
            "approvedRevenue": float(self.approved_revenue),
            "pendingRevenue": float(self.pending_revenue),
            "withPending": {
                "contract": float(self.with_pending_contract),
                "margin": float(self.with_pending_margin),
                "marginPercent": self.with_pending_margin_percent,
            },
        }


@dataclass
class WaterfallResult:
    """Ordered waterfall entries plus summary totals."""

    entries: list[WaterfallEntry] = field(default_factory=list)
    summary: WaterfallSummary | None = None

    @property
    def approved_entries(self) -> list[WaterfallEntry]:
        return [e for e in self.entries if e.committed]

    def to_dict(self) -> dict:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "summary": self.summary.to_dict() if self.summary else None,
        }


class ChangeOrderWaterfall:
    """Builds the change order margin waterfall."""

    def __init__(
        self,
        config_dir: Path | str | None = None,
        settings: EngineSettings | None = None,
    ):
        """Initialize the sequencer.

        Args:
            config_dir: Path to configuration directory
            settings: Explicit settings (takes precedence over config_dir)
        """
        self.settings = resolve_settings(config_dir, settings)

    @property
    def default_cost_ratio(self) -> Decimal:
        return self.settings.default_cost_ratio

    def build(
        self,
        sov_items: Iterable[SOVLineItem | dict[str, Any]],
        change_orders: Iterable[ChangeOrder | dict[str, Any]] | None,
        expenses: Iterable[ExpenseRecord | dict[str, Any]] | None = None,
        etc_records: Iterable[EstimatedRemainingCost | dict[str, Any]] | None = None,
        project_id: str | None = None,
    ) -> WaterfallResult:
        """Sequence change orders and compute per-CO margin impact.

        Args:
            sov_items: Schedule of values (original contract baseline)
            change_orders: Change orders in collection order
            expenses: Expenses (only paid/approved are counted)
            etc_records: Estimated remaining cost per category
            project_id: Optional project filter (None for all projects)

        Returns:
            WaterfallResult
        """
        sov = filter_by_project(coerce_records(SOVLineItem, sov_items), project_id)
        cos = filter_by_project(coerce_records(ChangeOrder, change_orders), project_id)
        spent = realized_expenses(
            filter_by_project(coerce_records(ExpenseRecord, expenses), project_id)
        )
        etc = filter_by_project(coerce_records(EstimatedRemainingCost, etc_records), project_id)

        original_contract = money_sum(sov, "scheduled_value")
        actual_cost = money_sum(spent, "amount")
        base_eac = actual_cost + money_sum(etc, "estimated_remaining_cost")

        running = WaterfallSnapshot(contract=original_contract, eac=base_eac)
        result = WaterfallResult()

        for co in sequence_change_orders(cos):
            entry = self._apply(co, running)
            if entry.committed:
                running = entry.after
            result.entries.append(entry)

        result.summary = WaterfallSummary(
            original_contract=original_contract,
            base_eac=base_eac,
            final_contract=running.contract,
            final_eac=running.eac,
            approved_count=sum(1 for co in cos if co.status == "approved"),
            pending_count=sum(1 for co in cos if co.status in PENDING_CO_STATUSES),
            rejected_count=sum(1 for co in cos if co.status == "rejected"),
            unresolved_count=sum(1 for co in cos if co.status in UNRESOLVED_CO_STATUSES),
            approved_revenue=money_sum(
                (co for co in cos if co.status == "approved"), "cost_impact"
            ),
            pending_revenue=money_sum(
                (co for co in cos if co.status in PENDING_CO_STATUSES), "cost_impact"
            ),
        )

        logger.info(
            f"Change order waterfall for {project_id or 'all projects'}: {len(cos)} COs, contract "
            f"{original_contract:,.2f} -> {running.contract:,.2f}, "
            f"margin delta {result.summary.total_margin_delta:,.2f}"
        )
        return result

    def _apply(self, co: ChangeOrder, before: WaterfallSnapshot) -> WaterfallEntry:
        """Compute one waterfall step against the running baseline."""
        revenue = co.cost_impact
        estimated_cost = estimate_change_order_cost(co, self.default_cost_ratio)

        after = WaterfallSnapshot(
            contract=before.contract + revenue,
            eac=before.eac + estimated_cost,
        )

        net_margin_impact = after.margin - before.margin
        margin_percent_delta = after.margin_percent - before.margin_percent

        return WaterfallEntry(
            change_order=co,
            revenue=revenue,
            estimated_cost=estimated_cost,
            before=before,
            after=after,
            committed=co.status == "approved",
            net_margin_impact=net_margin_impact,
            margin_percent_delta=margin_percent_delta,
            impact_status=self.classify_impact(net_margin_impact),
        )

    def classify_impact(self, net_margin_impact: Decimal) -> str:
        if net_margin_impact > 0:
            return "positive"
        if net_margin_impact < self.settings.negative_impact_threshold:
            return "negative"
        return "neutral"

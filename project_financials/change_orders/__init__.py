"""
Change Orders Module

Chronological margin waterfall for change orders.
"""

from .waterfall import (
    ChangeOrderWaterfall,
    WaterfallEntry,
    WaterfallResult,
    WaterfallSnapshot,
    WaterfallSummary,
    estimate_change_order_cost,
    sequence_change_orders,
)

__all__ = [
    "ChangeOrderWaterfall",
    "WaterfallEntry",
    "WaterfallResult",
    "WaterfallSnapshot",
    "WaterfallSummary",
    "estimate_change_order_cost",
    "sequence_change_orders",
]

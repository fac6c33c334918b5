"""
Cost Risk Module

Margin-based risk tiering with ranked cost drivers.
"""

from .cost_risk import CostDriver, CostRiskClassifier, CostRiskSignal, rank_drivers

__all__ = [
    "CostDriver",
    "CostRiskClassifier",
    "CostRiskSignal",
    "rank_drivers",
]

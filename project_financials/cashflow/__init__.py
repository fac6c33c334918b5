"""
Cashflow Module

Burn rate, runway and spending trend.
"""

from .burn_rate import BurnRateAnalysis, BurnRateEstimator

__all__ = [
    "BurnRateAnalysis",
    "BurnRateEstimator",
]

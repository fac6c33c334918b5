"""
Budget Management Module

Handles budget variance calculation and alert threshold checking.
"""

from .variance_calculator import (
    CategoryVariance,
    LineItemVariance,
    VarianceCalculator,
    VarianceReport,
)
from .threshold_checker import ThresholdAlert, ThresholdChecker, ThresholdCheckResult

__all__ = [
    # Variance Calculation
    "CategoryVariance",
    "LineItemVariance",
    "VarianceCalculator",
    "VarianceReport",
    # Threshold Checking
    "ThresholdAlert",
    "ThresholdChecker",
    "ThresholdCheckResult",
]

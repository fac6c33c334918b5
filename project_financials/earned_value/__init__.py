"""
Earned Value Module

Planned/earned/actual value and derived performance indices.
"""

from .calculator import EarnedValueCalculator, EarnedValueMetrics

__all__ = [
    "EarnedValueCalculator",
    "EarnedValueMetrics",
]

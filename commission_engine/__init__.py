"""
COMMISSION CALCULATION ENGINE
Rule pipeline and approval workflow
"""

from .calculator import CommissionCalculator
from .engine import CommissionEngine
from .models import CalculationContext, CalculationResult, CommissionRecord, CommissionRule, Deal

__all__ = [
    'CommissionEngine',
    'CommissionCalculator',
    'CalculationContext',
    'CalculationResult',
    'CommissionRecord',
    'CommissionRule',
    'Deal',
]

"""Labor rates, pricing and import totals."""

from .models import EstimateLineItem, ImportSummary, LaborRates
from .calculator import FinancialCalculator

__all__ = ["EstimateLineItem", "ImportSummary", "LaborRates", "FinancialCalculator"]

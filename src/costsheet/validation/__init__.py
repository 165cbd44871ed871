"""Validation and repair of classification output."""

from .models import CandidateValidation, CostEntry, ImportedLineItem, ItemCategory, Unit
from .validator import LineItemValidator
from .reconciler import SplitReconciler, component_description, default_category

__all__ = [
    "CandidateValidation",
    "CostEntry",
    "ImportedLineItem",
    "ItemCategory",
    "Unit",
    "LineItemValidator",
    "SplitReconciler",
    "component_description",
    "default_category",
]

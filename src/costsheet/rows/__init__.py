"""Row truncation and compound row analysis."""

from .models import (
    COMPONENT_ORDER,
    CostComponent,
    INTERNAL_VENDOR,
    RowAnalysis,
    StopCode,
    TruncationResult,
)
from .preprocessor import RowPreprocessor
from .analyzer import CompoundRowAnalyzer

__all__ = [
    "COMPONENT_ORDER",
    "CostComponent",
    "INTERNAL_VENDOR",
    "RowAnalysis",
    "StopCode",
    "TruncationResult",
    "RowPreprocessor",
    "CompoundRowAnalyzer",
]

"""Header detection and column mapping for budget sheets."""

from .models import (
    ColumnMapping,
    DetectedFormat,
    FormatDetectionResult,
    REQUIRED_COLUMNS,
    SemanticColumn,
)
from .detector import ColumnDetector, HEADER_ALIASES, normalize_header

__all__ = [
    "ColumnMapping",
    "DetectedFormat",
    "FormatDetectionResult",
    "REQUIRED_COLUMNS",
    "SemanticColumn",
    "ColumnDetector",
    "HEADER_ALIASES",
    "normalize_header",
]

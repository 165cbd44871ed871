"""Data models for header detection and column mapping."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..sheets.models import RawRow


class SemanticColumn(str, Enum):
    """Budget sheet columns the pipeline knows how to read."""

    ITEM = "item"
    SUBCONTRACTOR = "subcontractor"
    LABOR = "labor"
    MATERIAL = "material"
    SUB = "sub"
    TOTAL = "total"
    MARKUP = "markup"
    TOTAL_WITH_MARKUP = "total_with_markup"


# Order matters: missing columns are reported in this order.
REQUIRED_COLUMNS = [
    SemanticColumn.ITEM,
    SemanticColumn.LABOR,
    SemanticColumn.MATERIAL,
    SemanticColumn.SUB,
    SemanticColumn.MARKUP,
]


class DetectedFormat(str, Enum):
    """What the uploaded sheet appears to be."""

    BUDGET_SHEET = "budget_sheet"
    NARRATIVE_PROPOSAL = "narrative_proposal"
    UNKNOWN = "unknown"


class ColumnMapping(BaseModel):
    """Zero-based column index for each semantic column of a budget sheet."""

    item: int
    labor: int
    material: int
    sub: int
    markup: int
    subcontractor: Optional[int] = None
    total: Optional[int] = None
    total_with_markup: Optional[int] = None

    def index_of(self, column: str) -> Optional[int]:
        return getattr(self, SemanticColumn(column).value)

    def cell(self, row: RawRow, column: str) -> str:
        """Return the stripped cell for a column, or "" if the row is short."""
        index = self.index_of(column)
        if index is None or index >= len(row):
            return ""
        return (row[index] or "").strip()


class FormatDetectionResult(BaseModel):
    """Outcome of looking for a budget sheet header."""

    recognized: bool
    confidence: float = Field(ge=0.0, le=1.0)
    header_row_index: Optional[int] = None
    column_mapping: Optional[ColumnMapping] = None
    detected_format: DetectedFormat = DetectedFormat.UNKNOWN
    matched_columns: list[SemanticColumn] = Field(default_factory=list)
    missing_columns: list[str] = Field(default_factory=list)
    reason: Optional[str] = None

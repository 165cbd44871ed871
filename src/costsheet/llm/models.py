"""Request and response shapes of the classification call."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from ..mapping.models import ColumnMapping, DetectedFormat
from ..rows.models import RowAnalysis
from ..sheets.models import RawRow


class BoundedRow(BaseModel):
    """A data row that survived truncation, addressed by its sheet index."""

    row_index: int
    cells: RawRow


class CompoundRowHint(BaseModel):
    """Analyzer output for one row, sent alongside the raw cells."""

    row_index: int
    description: str
    subcontractor: str = ""
    amounts: dict[str, float] = Field(default_factory=dict)
    markup_percent: Optional[float] = None
    needs_split: bool = False
    split_categories: list[str] = Field(default_factory=list)
    skip_reason: Optional[str] = None

    @classmethod
    def from_analysis(cls, analysis: RowAnalysis) -> "CompoundRowHint":
        return cls(
            row_index=analysis.row_index,
            description=analysis.description,
            subcontractor=analysis.subcontractor,
            amounts={c.value: float(v) for c, v in analysis.amounts_by_category.items()},
            markup_percent=(
                float(analysis.markup_percent) if analysis.markup_percent is not None else None
            ),
            needs_split=analysis.needs_split,
            split_categories=[c.value for c in analysis.split_categories],
            skip_reason=analysis.skip_reason,
        )


class OracleRequest(BaseModel):
    """Everything the classification service is allowed to see."""

    bounded_rows: list[BoundedRow]
    column_mapping: ColumnMapping
    compound_row_hints: list[CompoundRowHint] = Field(default_factory=list)
    detected_format: DetectedFormat = DetectedFormat.BUDGET_SHEET


class OracleResponse(BaseModel):
    """Raw classification output. Nothing in it is trusted yet."""

    line_items: list[Any] = Field(default_factory=list)
    raw_text: str = ""

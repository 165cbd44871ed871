"""Data models for truncated and analyzed budget rows."""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..sheets.models import RawRow

INTERNAL_VENDOR = "RCG"


class CostComponent(str, Enum):
    """Cost columns a budget row can carry amounts in."""

    LABOR = "labor"
    MATERIAL = "material"
    SUB = "sub"


COMPONENT_ORDER = [CostComponent.LABOR, CostComponent.MATERIAL, CostComponent.SUB]


class StopCode(str, Enum):
    """Why the row scan ended before the end of the sheet."""

    STOP_MARKER = "stop_marker"
    EMPTY_RUN = "empty_run"
    ROW_LIMIT = "row_limit"


class TruncationResult(BaseModel):
    """Data rows between the header and the first end-of-items signal."""

    rows: list[RawRow] = Field(default_factory=list)
    start_row: int  # Absolute index of rows[0]
    stopped_at_row: Optional[int] = None
    stop_reason: Optional[str] = None
    stop_code: Optional[StopCode] = None

    @property
    def row_indices(self) -> list[int]:
        return list(range(self.start_row, self.start_row + len(self.rows)))


class RowAnalysis(BaseModel):
    """Cost breakdown of a single data row."""

    row_index: int  # Absolute, 0-based
    description: str
    subcontractor: str = ""
    amounts_by_category: dict[CostComponent, Decimal] = Field(default_factory=dict)
    markup_percent: Optional[Decimal] = None
    needs_split: bool = False
    split_categories: list[CostComponent] = Field(default_factory=list)
    skip_reason: Optional[str] = None

    @property
    def positive_components(self) -> list[CostComponent]:
        return [
            component
            for component in COMPONENT_ORDER
            if self.amounts_by_category.get(component, Decimal("0")) > 0
        ]

    @property
    def aggregate_amount(self) -> Decimal:
        """Sum of the positive cost amounts on the row."""
        return sum(
            (self.amounts_by_category[c] for c in self.positive_components),
            Decimal("0"),
        )

    @property
    def is_internal(self) -> bool:
        """True when the row is own work (blank vendor or the internal crew)."""
        vendor = self.subcontractor.strip().upper()
        return vendor in ("", INTERNAL_VENDOR)

    @property
    def is_importable(self) -> bool:
        return self.skip_reason is None and bool(self.positive_components)

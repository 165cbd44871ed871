"""Line item schema shared by validation, pricing and review."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ItemCategory(str, Enum):
    """Closed set of estimate categories."""

    LABOR_INTERNAL = "labor_internal"
    SUBCONTRACTOR = "subcontractor"
    MATERIALS = "materials"
    MANAGEMENT = "management"


class Unit(str, Enum):
    """Units an imported line item can be priced in."""

    HR = "HR"
    LS = "LS"
    EA = "EA"


class ImportedLineItem(BaseModel):
    """A validated line item ready for review."""

    description: str
    category: ItemCategory
    quantity: float = Field(ge=0)
    unit: Unit = Unit.LS
    cost_per_unit: float = Field(ge=0)
    markup_percent: float = 0.0
    price_per_unit: float
    total: float
    total_cost: float = 0.0
    labor_hours: Optional[float] = None
    source_row: Optional[int] = None
    was_split: bool = False
    split_from: Optional[str] = None


class CandidateValidation(BaseModel):
    """Result of checking one candidate from the classification service."""

    index: int
    valid: bool
    errors: list[str] = Field(default_factory=list)
    repairs: list[str] = Field(default_factory=list)
    fixed: Optional[ImportedLineItem] = None

    def warning(self) -> Optional[str]:
        """Single warning line for a rejected candidate."""
        if self.valid:
            return None
        return f"Item {self.index}: " + "; ".join(self.errors)


@dataclass
class CostEntry:
    """A reconciled cost amount waiting to be priced."""

    description: str
    category: ItemCategory
    amount: Decimal
    markup_percent: Decimal = Decimal("0")
    source_row: Optional[int] = None
    was_split: bool = False
    split_from: Optional[str] = None

"""Rates, estimate line items and the import summary."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..validation.models import ItemCategory, Unit


class LaborRates(BaseModel):
    """Company labor rates, fixed for the duration of one import."""

    model_config = ConfigDict(frozen=True)

    billing_rate_per_hour: float = Field(gt=0)
    actual_cost_rate_per_hour: float = Field(gt=0)

    @property
    def cushion_per_hour(self) -> Decimal:
        return Decimal(str(self.billing_rate_per_hour)) - Decimal(str(self.actual_cost_rate_per_hour))


class ImportSummary(BaseModel):
    """Totals over a set of imported line items."""

    total_line_items: int = 0
    total_cost: float = 0.0
    total_price: float = 0.0
    labor_items_count: int = 0
    subcontractor_items_count: int = 0
    materials_items_count: int = 0
    management_items_count: int = 0
    total_labor_hours: float = 0.0
    estimated_labor_cushion: float = 0.0
    compound_rows_split: int = 0
    warnings: list[str] = Field(default_factory=list)


class EstimateLineItem(BaseModel):
    """Line item in the shape the estimate flow consumes on confirm."""

    description: str
    category: ItemCategory
    quantity: float
    unit: Unit
    cost_per_unit: float
    markup_percent: float
    price_per_unit: float
    total: float
    total_cost: float
    total_markup: float
    labor_hours: Optional[float] = None
    billing_rate_per_hour: Optional[float] = None
    actual_cost_rate_per_hour: Optional[float] = None
    labor_cushion_amount: Optional[float] = None
    notes: Optional[str] = None
    source_row: Optional[int] = None

"""Pricing of reconciled cost entries."""

import logging
from decimal import Decimal
from typing import Optional

from ..sheets.values import HUNDRED, ZERO, round_money
from ..validation.models import CostEntry, ImportedLineItem, ItemCategory, Unit
from .models import EstimateLineItem, ImportSummary, LaborRates

logger = logging.getLogger(__name__)

_PRICE_PLACES = Decimal("0.0001")

_COUNT_FIELDS = {
    ItemCategory.LABOR_INTERNAL: "labor_items_count",
    ItemCategory.SUBCONTRACTOR: "subcontractor_items_count",
    ItemCategory.MATERIALS: "materials_items_count",
    ItemCategory.MANAGEMENT: "management_items_count",
}


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


class FinancialCalculator:
    """
    Computes quantities, prices and totals for imported items.

    Internal labor is converted to hours at the billing rate, so an item's
    cost equals the labor amount on the sheet and the labor cushion
    (billing minus actual cost, per hour) is carried by the hours.
    """

    def __init__(self, rates: LaborRates, markup_inversion_ratio: float = 0.9):
        self.rates = rates
        self.billing_rate = _dec(rates.billing_rate_per_hour)
        self.markup_inversion_ratio = _dec(markup_inversion_ratio)

    def price(self, entry: CostEntry) -> ImportedLineItem:
        """Price one reconciled entry."""
        amount = entry.amount
        markup = entry.markup_percent
        labor_hours = None

        if entry.category == ItemCategory.LABOR_INTERNAL:
            quantity = amount / self.billing_rate
            unit = Unit.HR
            cost_per_unit = self.billing_rate
            labor_hours = quantity
        else:
            if entry.category == ItemCategory.MANAGEMENT:
                markup = ZERO
            quantity = Decimal("1")
            unit = Unit.LS
            cost_per_unit = amount

        factor = 1 + markup / HUNDRED
        return ImportedLineItem(
            description=entry.description,
            category=entry.category,
            quantity=float(quantity),
            unit=unit,
            cost_per_unit=float(cost_per_unit),
            markup_percent=float(markup),
            price_per_unit=float((cost_per_unit * factor).quantize(_PRICE_PLACES)),
            total=float(round_money(amount * factor)),
            total_cost=float(round_money(amount)),
            labor_hours=float(labor_hours) if labor_hours is not None else None,
            source_row=entry.source_row,
            was_split=entry.was_split,
            split_from=entry.split_from,
        )

    def calculate(self, entries: list[CostEntry]) -> list[ImportedLineItem]:
        """Price every entry, keeping order."""
        items = [self.price(entry) for entry in entries]
        logger.debug(f"Priced {len(items)} line items")
        return items

    def summarize(
        self,
        items: list[ImportedLineItem],
        warnings: Optional[list[str]] = None,
        compound_rows_split: int = 0,
    ) -> ImportSummary:
        """
        Build totals for a set of items.

        A total price below ``markup_inversion_ratio`` times the total cost
        adds a warning but never blocks the import.
        """
        summary = ImportSummary(
            total_line_items=len(items),
            compound_rows_split=compound_rows_split,
            warnings=list(warnings or []),
        )

        total_cost = ZERO
        total_price = ZERO
        hours = ZERO
        for item in items:
            total_cost += _dec(item.total_cost)
            total_price += _dec(item.total)
            if item.labor_hours is not None:
                hours += _dec(item.labor_hours)
            field = _COUNT_FIELDS[item.category]
            setattr(summary, field, getattr(summary, field) + 1)

        summary.total_cost = float(round_money(total_cost))
        summary.total_price = float(round_money(total_price))
        summary.total_labor_hours = float(hours.quantize(Decimal("0.01")))
        summary.estimated_labor_cushion = float(round_money(hours * self.rates.cushion_per_hour))

        if total_price > 0 and total_price < total_cost * self.markup_inversion_ratio:
            summary.warnings.append(
                f"Total price (${round_money(total_price):,.2f}) is less than total cost "
                f"(${round_money(total_cost):,.2f}); check the markup column"
            )
        return summary

    def to_estimate_line_item(self, item: ImportedLineItem) -> EstimateLineItem:
        """Convert a reviewed item into the shape the estimate flow takes."""
        is_labor = item.category == ItemCategory.LABOR_INTERNAL
        cushion = None
        if is_labor and item.labor_hours is not None:
            cushion = float(round_money(_dec(item.labor_hours) * self.rates.cushion_per_hour))

        return EstimateLineItem(
            description=item.description,
            category=item.category,
            quantity=item.quantity,
            unit=item.unit,
            cost_per_unit=item.cost_per_unit,
            markup_percent=item.markup_percent,
            price_per_unit=item.price_per_unit,
            total=item.total,
            total_cost=item.total_cost,
            total_markup=float(round_money(_dec(item.total) - _dec(item.total_cost))),
            labor_hours=item.labor_hours,
            billing_rate_per_hour=self.rates.billing_rate_per_hour if is_labor else None,
            actual_cost_rate_per_hour=self.rates.actual_cost_rate_per_hour if is_labor else None,
            labor_cushion_amount=cushion,
            notes=f"Split from: {item.split_from}" if item.was_split and item.split_from else None,
            source_row=item.source_row,
        )

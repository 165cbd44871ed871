"""Tests for reconciling classified items with their source rows."""

from decimal import Decimal
from typing import Optional

from costsheet.rows import CostComponent, RowAnalysis
from costsheet.validation import (
    ImportedLineItem,
    ItemCategory,
    SplitReconciler,
    component_description,
    default_category,
)


def _analysis(
    row_index: int,
    description: str,
    labor: int = 0,
    material: int = 0,
    sub: int = 0,
    markup: Optional[int] = 20,
    vendor: str = "RCG",
    skip_reason: Optional[str] = None,
) -> RowAnalysis:
    amounts = {
        CostComponent.LABOR: Decimal(labor),
        CostComponent.MATERIAL: Decimal(material),
        CostComponent.SUB: Decimal(sub),
    }
    positive = [c for c, v in amounts.items() if v > 0]
    return RowAnalysis(
        row_index=row_index,
        description=description,
        subcontractor=vendor,
        amounts_by_category=amounts,
        markup_percent=Decimal(markup) if markup is not None else None,
        needs_split=len(positive) > 1,
        split_categories=positive if len(positive) > 1 else [],
        skip_reason=skip_reason,
    )


def _item(
    category: ItemCategory,
    source_row: Optional[int],
    description: str = "Item",
    cost: float = 100.0,
    markup: float = 0.0,
) -> ImportedLineItem:
    return ImportedLineItem(
        description=description,
        category=category,
        quantity=1,
        cost_per_unit=cost,
        markup_percent=markup,
        price_per_unit=cost,
        total=cost,
        source_row=source_row,
    )


class TestDefaultCategory:
    """Test the rule-based category choice."""

    def test_material_and_sub(self):
        analysis = _analysis(2, "Demo", labor=1, material=1, sub=1)
        assert default_category(analysis, CostComponent.MATERIAL) == ItemCategory.MATERIALS
        assert default_category(analysis, CostComponent.SUB) == ItemCategory.SUBCONTRACTOR

    def test_internal_labor(self):
        analysis = _analysis(2, "Framing", labor=8000, markup=25)
        assert default_category(analysis, CostComponent.LABOR) == ItemCategory.LABOR_INTERNAL

    def test_internal_labor_at_zero_markup_is_management(self):
        analysis = _analysis(2, "Site visits", labor=3000, markup=0)
        assert default_category(analysis, CostComponent.LABOR) == ItemCategory.MANAGEMENT

    def test_management_keyword_without_markup(self):
        analysis = _analysis(2, "Supervision", labor=3000, markup=None)
        assert default_category(analysis, CostComponent.LABOR) == ItemCategory.MANAGEMENT

    def test_outside_vendor_labor_is_subcontractor(self):
        analysis = _analysis(2, "Drywall", labor=5000, vendor="Walls Inc")
        assert default_category(analysis, CostComponent.LABOR) == ItemCategory.SUBCONTRACTOR


class TestComponentDescription:
    """Test naming of split items."""

    def test_first_component_keeps_row_description(self):
        analysis = _analysis(2, "Demo", labor=100, material=50, sub=25)
        assert component_description(analysis, CostComponent.LABOR) == "Demo"
        assert component_description(analysis, CostComponent.MATERIAL) == "Demo - Materials"
        assert component_description(analysis, CostComponent.SUB) == "Demo - Subcontractor"

    def test_single_component(self):
        analysis = _analysis(2, "Tile", material=50)
        assert component_description(analysis, CostComponent.MATERIAL) == "Tile"


class TestReconcile:
    """Test SplitReconciler.reconcile."""

    def test_compound_row_is_split_from_row_amounts(self):
        """Test amounts, names and split flags come from the row."""
        analysis = _analysis(2, "Demo", labor=15000, material=6000, markup=20)
        items = [
            _item(ItemCategory.MATERIALS, 2, description="Stuff", cost=1),
            _item(ItemCategory.LABOR_INTERNAL, 2, description="Labor", cost=99999),
        ]
        entries, warnings = SplitReconciler().reconcile(items, [analysis])

        assert warnings == []
        assert [e.description for e in entries] == ["Demo", "Demo - Materials"]
        assert [e.category for e in entries] == [
            ItemCategory.LABOR_INTERNAL,
            ItemCategory.MATERIALS,
        ]
        assert [e.amount for e in entries] == [Decimal("15000"), Decimal("6000")]
        assert all(e.markup_percent == Decimal("20") for e in entries)
        assert all(e.was_split and e.split_from == "Demo" for e in entries)
        assert sum(e.amount for e in entries) == analysis.aggregate_amount

    def test_missing_split_is_rederived(self):
        """Test one item for a two-amount row still yields both amounts."""
        analysis = _analysis(2, "Demo", labor=15000, material=6000)
        items = [_item(ItemCategory.LABOR_INTERNAL, 2, cost=21000)]
        entries, warnings = SplitReconciler().reconcile(items, [analysis])

        assert [e.amount for e in entries] == [Decimal("15000"), Decimal("6000")]
        assert [e.category for e in entries] == [
            ItemCategory.LABOR_INTERNAL,
            ItemCategory.MATERIALS,
        ]
        assert len(warnings) == 1
        assert "split re-derived" in warnings[0]

    def test_incompatible_category_is_rederived(self):
        """Test a materials item cannot take a labor amount."""
        analysis = _analysis(3, "Framing", labor=8000, markup=25)
        entries, warnings = SplitReconciler().reconcile(
            [_item(ItemCategory.MATERIALS, 3)], [analysis]
        )
        assert entries[0].category == ItemCategory.LABOR_INTERNAL
        assert entries[0].was_split is False
        assert len(warnings) == 1

    def test_subcontractor_may_take_labor(self):
        """Test labor classified as subcontracted work is kept."""
        analysis = _analysis(4, "Drywall", labor=5000, vendor="Walls Inc")
        entries, warnings = SplitReconciler().reconcile(
            [_item(ItemCategory.SUBCONTRACTOR, 4)], [analysis]
        )
        assert entries[0].category == ItemCategory.SUBCONTRACTOR
        assert warnings == []

    def test_management_with_markup_becomes_labor(self):
        """Test management is only kept at zero markup."""
        analysis = _analysis(5, "Supervision", labor=3000, markup=10)
        entries, warnings = SplitReconciler().reconcile(
            [_item(ItemCategory.MANAGEMENT, 5)], [analysis]
        )
        assert entries[0].category == ItemCategory.LABOR_INTERNAL
        assert "management items carry no markup" in warnings[0]

    def test_row_without_markup_ignores_item_markup(self):
        """Test a blank markup cell prices at 0% and is reported."""
        analysis = _analysis(3, "Paint", labor=500, markup=None)
        entries, warnings = SplitReconciler().reconcile(
            [_item(ItemCategory.LABOR_INTERNAL, 3, markup=900)], [analysis]
        )
        assert entries[0].markup_percent == Decimal("0")
        assert warnings == ['Markup missing for "Paint", using 0%']

    def test_unclassified_row_is_reported(self):
        """Test omitted rows are reported and not invented."""
        analyses = [_analysis(2, "Demo", labor=100), _analysis(3, "Tile", material=50)]
        entries, warnings = SplitReconciler().reconcile(
            [_item(ItemCategory.LABOR_INTERNAL, 2)], analyses
        )
        assert len(entries) == 1
        assert warnings == ['Row 4 "Tile" was not classified and was not imported']

    def test_items_for_skipped_rows_are_dropped(self):
        """Test items anchored to summary rows are discarded."""
        analysis = _analysis(6, "Subtotal", labor=26000, skip_reason="summary row")
        entries, warnings = SplitReconciler().reconcile(
            [_item(ItemCategory.LABOR_INTERNAL, 6)], [analysis]
        )
        assert entries == []
        assert "skipped row (summary row)" in warnings[0]

    def test_skipped_rows_without_items_are_silent(self):
        analysis = _analysis(6, "Subtotal", labor=26000, skip_reason="summary row")
        assert SplitReconciler().reconcile([], [analysis]) == ([], [])

    def test_items_for_unknown_rows_are_dropped(self):
        """Test items pointing past the imported rows are discarded."""
        entries, warnings = SplitReconciler().reconcile(
            [_item(ItemCategory.LABOR_INTERNAL, 40)], []
        )
        assert entries == []
        assert warnings == ["Row 41: dropped 1 item(s) that do not match an imported row"]

    def test_unanchored_items_are_dropped(self):
        """Test items without a source row cannot add cost."""
        analysis = _analysis(3, "Tile", material=500)
        items = [
            _item(ItemCategory.MATERIALS, 3),
            _item(ItemCategory.SUBCONTRACTOR, None, description="Permit", cost=99999),
        ]
        entries, warnings = SplitReconciler().reconcile(items, [analysis])

        assert [e.amount for e in entries] == [Decimal("500")]
        assert warnings == ['Item "Permit" does not reference an imported row and was dropped']

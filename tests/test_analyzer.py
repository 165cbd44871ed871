"""Tests for compound row analysis."""

from decimal import Decimal

import pytest

from costsheet.mapping import ColumnMapping
from costsheet.rows import CompoundRowAnalyzer, CostComponent


@pytest.fixture
def mapping() -> ColumnMapping:
    return ColumnMapping(item=0, subcontractor=1, labor=2, material=3, sub=4, total=5, markup=6)


class TestAnalyzeRow:
    """Test CompoundRowAnalyzer.analyze_row."""

    def test_compound_row(self, mapping):
        """Test a row with labor and material amounts needs a split."""
        row = ["Demo", "RCG", "$15,000", "$6,000", "", "$21,000", "20%", "$25,200"]
        analysis = CompoundRowAnalyzer().analyze_row(row, mapping, 2)

        assert analysis.row_index == 2
        assert analysis.description == "Demo"
        assert analysis.subcontractor == "RCG"
        assert analysis.amounts_by_category[CostComponent.LABOR] == Decimal("15000")
        assert analysis.amounts_by_category[CostComponent.MATERIAL] == Decimal("6000")
        assert analysis.amounts_by_category[CostComponent.SUB] == Decimal("0")
        assert analysis.markup_percent == Decimal("20")
        assert analysis.needs_split is True
        assert analysis.split_categories == [CostComponent.LABOR, CostComponent.MATERIAL]
        assert analysis.aggregate_amount == Decimal("21000")
        assert analysis.is_internal is True
        assert analysis.is_importable is True

    def test_single_amount_row(self, mapping):
        """Test a single-category row is not split."""
        row = ["Electrical", "Sparky LLC", "", "", "$12,000", "", "15%"]
        analysis = CompoundRowAnalyzer().analyze_row(row, mapping, 4)

        assert analysis.needs_split is False
        assert analysis.split_categories == []
        assert analysis.positive_components == [CostComponent.SUB]
        assert analysis.is_internal is False

    def test_unparseable_amounts_are_zero(self, mapping):
        """Test that text in an amount column counts as zero."""
        row = ["Tile", "", "TBD", "$400", "n/a", "", ""]
        analysis = CompoundRowAnalyzer().analyze_row(row, mapping, 3)

        assert analysis.needs_split is False
        assert analysis.positive_components == [CostComponent.MATERIAL]
        assert analysis.markup_percent is None

    def test_negative_amounts_are_not_positive(self, mapping):
        """Test credits do not trigger a split."""
        row = ["Credit", "", "($500)", "$200", "", "", ""]
        analysis = CompoundRowAnalyzer().analyze_row(row, mapping, 3)
        assert analysis.needs_split is False

    def test_short_row(self, mapping):
        """Test rows shorter than the mapping read missing cells as blank."""
        analysis = CompoundRowAnalyzer().analyze_row(["Paint", "", "$300"], mapping, 5)
        assert analysis.positive_components == [CostComponent.LABOR]

    @pytest.mark.parametrize("name", ["Subtotal", "Sub total", "TOTAL", "Grand Total", "Summary"])
    def test_summary_rows_are_skipped(self, mapping, name):
        """Test totals rows are kept but marked skipped."""
        row = [name, "", "$26,000", "$6,000", "", "", ""]
        analysis = CompoundRowAnalyzer().analyze_row(row, mapping, 6)

        assert analysis.skip_reason == "summary row"
        assert analysis.is_importable is False

    def test_amounts_without_description(self, mapping):
        """Test a row with amounts and no description is skipped."""
        analysis = CompoundRowAnalyzer().analyze_row(["", "", "$100"], mapping, 3)
        assert analysis.skip_reason == "row has amounts but no description"

    def test_description_without_amounts(self, mapping):
        """Test section headings inside the table are skipped."""
        analysis = CompoundRowAnalyzer().analyze_row(["KITCHEN", "", "", "", ""], mapping, 3)
        assert analysis.skip_reason == "row has no cost amounts"

    @pytest.mark.parametrize(
        "row",
        [
            ["Framing", "", "", "1E+30", "", "", "10%"],
            ["Framing", "", "$1,000", "", "", "", "1E+20%"],
        ],
    )
    def test_out_of_range_values_are_skipped(self, mapping, row):
        """Test huge amounts or markup mark the row skipped."""
        analysis = CompoundRowAnalyzer().analyze_row(row, mapping, 2)

        assert analysis.skip_reason == "amount or markup above 1000000000000"
        assert analysis.is_importable is False

    def test_blank_row(self, mapping):
        """Test blank rows produce nothing."""
        assert CompoundRowAnalyzer().analyze_row(["", "", "$0"], mapping, 3) is None


class TestAnalyze:
    """Test CompoundRowAnalyzer.analyze."""

    def test_absolute_row_indices(self, mapping):
        """Test row indices are offset by start_row and blank rows are omitted."""
        rows = [
            ["Demo", "RCG", "$100", "$50", "", "", "10%"],
            ["", "", "", "", "", "", ""],
            ["Paint", "RCG", "$300", "", "", "", "10%"],
        ]
        analyses = CompoundRowAnalyzer().analyze(rows, mapping, start_row=5)

        assert [a.row_index for a in analyses] == [5, 7]
        assert [a.needs_split for a in analyses] == [True, False]

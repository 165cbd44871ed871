"""Compound row detection for budget sheet rows."""

import logging
import re
from typing import Optional

from ..mapping.models import ColumnMapping, SemanticColumn
from ..sheets.models import RawRow, is_blank_row
from ..sheets.values import MAX_AMOUNT, amount_or_zero, is_out_of_range, parse_percent
from .models import COMPONENT_ORDER, CostComponent, RowAnalysis

logger = logging.getLogger(__name__)

SUMMARY_PATTERN = re.compile(r"^\s*(sub\s?total|grand\s+total|total|summary)\b", re.IGNORECASE)

OUT_OF_RANGE_REASON = f"amount or markup above {MAX_AMOUNT}"

_COMPONENT_COLUMNS = {
    CostComponent.LABOR: SemanticColumn.LABOR,
    CostComponent.MATERIAL: SemanticColumn.MATERIAL,
    CostComponent.SUB: SemanticColumn.SUB,
}


class CompoundRowAnalyzer:
    """Reads the cost columns of each data row and flags rows needing a split."""

    def analyze(
        self,
        rows: list[RawRow],
        mapping: ColumnMapping,
        start_row: int = 0,
    ) -> list[RowAnalysis]:
        """
        Analyze data rows.

        Args:
            rows: Truncated data rows
            mapping: Resolved column mapping
            start_row: Absolute index of ``rows[0]`` in the sheet

        Returns:
            One RowAnalysis per non-blank row, in sheet order
        """
        analyses = []
        for offset, row in enumerate(rows):
            if is_blank_row(row):
                continue
            analysis = self.analyze_row(row, mapping, start_row + offset)
            if analysis is not None:
                analyses.append(analysis)

        compound = sum(1 for a in analyses if a.needs_split and a.skip_reason is None)
        logger.info(f"Analyzed {len(analyses)} rows, {compound} compound rows need splitting")
        return analyses

    def analyze_row(
        self, row: RawRow, mapping: ColumnMapping, row_index: int
    ) -> Optional[RowAnalysis]:
        """Analyze one row; blank rows give None."""
        description = mapping.cell(row, SemanticColumn.ITEM)
        amounts = {
            component: amount_or_zero(mapping.cell(row, column))
            for component, column in _COMPONENT_COLUMNS.items()
        }
        positive = [c for c in COMPONENT_ORDER if amounts[c] > 0]

        if not description and not positive:
            return None

        markup = parse_percent(mapping.cell(row, SemanticColumn.MARKUP))

        skip_reason = None
        if not description:
            skip_reason = "row has amounts but no description"
        elif any(is_out_of_range(v) for v in amounts.values()) or is_out_of_range(markup):
            skip_reason = OUT_OF_RANGE_REASON
        elif SUMMARY_PATTERN.match(description):
            skip_reason = "summary row"
        elif not positive:
            skip_reason = "row has no cost amounts"

        return RowAnalysis(
            row_index=row_index,
            description=description,
            subcontractor=mapping.cell(row, SemanticColumn.SUBCONTRACTOR),
            amounts_by_category=amounts,
            markup_percent=markup,
            needs_split=len(positive) > 1,
            split_categories=positive if len(positive) > 1 else [],
            skip_reason=skip_reason,
        )

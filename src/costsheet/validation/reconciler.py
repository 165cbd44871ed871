"""Reconciles classified items against the analyzed source rows."""

import logging
import re
from itertools import permutations
from typing import Optional

from ..rows.models import CostComponent, RowAnalysis
from ..sheets.values import ZERO
from .models import CostEntry, ImportedLineItem, ItemCategory

logger = logging.getLogger(__name__)

MANAGEMENT_KEYWORDS = re.compile(
    r"\b(supervision|management|project manager|pm)\b", re.IGNORECASE
)

SPLIT_SUFFIXES = {
    CostComponent.MATERIAL: " - Materials",
    CostComponent.SUB: " - Subcontractor",
}

# Which row column each category may take its amount from.
_COMPATIBLE = {
    ItemCategory.LABOR_INTERNAL: {CostComponent.LABOR},
    ItemCategory.MANAGEMENT: {CostComponent.LABOR},
    ItemCategory.MATERIALS: {CostComponent.MATERIAL},
    ItemCategory.SUBCONTRACTOR: {CostComponent.SUB, CostComponent.LABOR},
}


def default_category(analysis: RowAnalysis, component: CostComponent) -> ItemCategory:
    """Deterministic category for one cost component of a row."""
    if component == CostComponent.MATERIAL:
        return ItemCategory.MATERIALS
    if component == CostComponent.SUB:
        return ItemCategory.SUBCONTRACTOR

    if not analysis.is_internal:
        return ItemCategory.SUBCONTRACTOR
    # Internal work billed at 0% markup is overhead
    if analysis.markup_percent == ZERO:
        return ItemCategory.MANAGEMENT
    if analysis.markup_percent is None and MANAGEMENT_KEYWORDS.search(analysis.description):
        return ItemCategory.MANAGEMENT
    return ItemCategory.LABOR_INTERNAL


def component_description(analysis: RowAnalysis, component: CostComponent) -> str:
    """Name of the item carrying ``component`` of the row."""
    components = analysis.positive_components
    if len(components) < 2 or component == components[0]:
        return analysis.description
    return analysis.description + SPLIT_SUFFIXES.get(component, "")


class SplitReconciler:
    """
    Makes the analyzed rows the authority over classified items.

    The classification service only chooses categories. Amounts, markup,
    naming and split flags always come from the source row, so a wrong or
    hostile response cannot change what a row costs or is priced at. A
    blank markup cell is priced at 0%.
    """

    def reconcile(
        self,
        items: list[ImportedLineItem],
        analyses: list[RowAnalysis],
    ) -> tuple[list[CostEntry], list[str]]:
        """
        Turn validated items into cost entries anchored to their rows.

        Args:
            items: Validated items, in response order
            analyses: Row analyses for the bounded rows

        Returns:
            (entries, warnings)
        """
        by_row: dict[int, list[ImportedLineItem]] = {}
        unanchored: list[ImportedLineItem] = []
        for item in items:
            if item.source_row is None:
                unanchored.append(item)
            else:
                by_row.setdefault(item.source_row, []).append(item)

        entries: list[CostEntry] = []
        warnings: list[str] = []
        known_rows = set()

        for analysis in analyses:
            known_rows.add(analysis.row_index)
            row_items = by_row.get(analysis.row_index, [])
            label = f'Row {analysis.row_index + 1} "{analysis.description}"'

            if analysis.skip_reason is not None:
                if row_items:
                    warnings.append(
                        f"Row {analysis.row_index + 1}: dropped {len(row_items)} item(s) "
                        f"anchored to a skipped row ({analysis.skip_reason})"
                    )
                continue

            if not row_items:
                warnings.append(f"{label} was not classified and was not imported")
                continue

            entries.extend(self._reconcile_row(analysis, row_items, label, warnings))

        for row_index, row_items in by_row.items():
            if row_index not in known_rows:
                warnings.append(
                    f"Row {row_index + 1}: dropped {len(row_items)} item(s) "
                    "that do not match an imported row"
                )

        for item in unanchored:
            warnings.append(
                f'Item "{item.description}" does not reference an imported row and was dropped'
            )

        logger.info(f"Reconciled {len(items)} items into {len(entries)} entries")
        return entries, warnings

    def _reconcile_row(
        self,
        analysis: RowAnalysis,
        row_items: list[ImportedLineItem],
        label: str,
        warnings: list[str],
    ) -> list[CostEntry]:
        components = analysis.positive_components
        assignment = self.match_components(row_items, components)

        if assignment is None:
            warnings.append(
                f"{label}: classified items did not match the row's cost columns; "
                "split re-derived from the row"
            )
            categories = [default_category(analysis, c) for c in components]
        else:
            categories = [item.category for item in assignment]

        markup = analysis.markup_percent
        if markup is None:
            warnings.append(f'Markup missing for "{analysis.description}", using 0%')
            markup = ZERO

        split = len(components) > 1
        entries = []
        for component, category in zip(components, categories):
            description = component_description(analysis, component)
            if category == ItemCategory.MANAGEMENT and markup != ZERO:
                warnings.append(
                    f'"{description}" has {markup}% markup; management items carry no '
                    "markup, imported as internal labor"
                )
                category = ItemCategory.LABOR_INTERNAL

            entries.append(
                CostEntry(
                    description=description,
                    category=category,
                    amount=analysis.amounts_by_category[component],
                    markup_percent=markup,
                    source_row=analysis.row_index,
                    was_split=split,
                    split_from=analysis.description if split else None,
                )
            )
        return entries

    @staticmethod
    def match_components(
        items: list[ImportedLineItem],
        components: list[CostComponent],
    ) -> Optional[list[ImportedLineItem]]:
        """
        Pair items one-to-one with the row's positive components.

        Returns the items reordered to line up with ``components``, or None
        when no compatible one-to-one pairing exists.
        """
        if len(items) != len(components):
            return None
        for ordering in permutations(items):
            if all(
                component in _COMPATIBLE[item.category]
                for item, component in zip(ordering, components)
            ):
                return list(ordering)
        return None

"""Rule-based classification for offline imports."""

import logging
from decimal import Decimal

from ..rows.models import CostComponent, RowAnalysis
from ..validation.reconciler import component_description, default_category
from .models import CompoundRowHint, OracleRequest, OracleResponse
from .oracle import ClassificationOracle

logger = logging.getLogger(__name__)


def _analysis_from_hint(hint: CompoundRowHint) -> RowAnalysis:
    return RowAnalysis(
        row_index=hint.row_index,
        description=hint.description,
        subcontractor=hint.subcontractor,
        amounts_by_category={
            CostComponent(name): Decimal(str(amount)) for name, amount in hint.amounts.items()
        },
        markup_percent=(
            Decimal(str(hint.markup_percent)) if hint.markup_percent is not None else None
        ),
        needs_split=hint.needs_split,
        skip_reason=hint.skip_reason,
    )


class DeterministicOracle(ClassificationOracle):
    """
    Classifies rows from the analyzer hints alone, without a network call.

    Internal labor at 0% markup (or named as supervision or management)
    becomes management, other internal labor becomes labor_internal, labor
    from an outside vendor and sub amounts become subcontractor, and
    material amounts become materials.
    """

    async def classify(self, request: OracleRequest) -> OracleResponse:
        line_items = []
        for hint in request.compound_row_hints:
            if hint.skip_reason is not None:
                continue
            analysis = _analysis_from_hint(hint)
            markup = float(analysis.markup_percent) if analysis.markup_percent is not None else 0.0
            for component in analysis.positive_components:
                line_items.append(
                    {
                        "description": component_description(analysis, component),
                        "category": default_category(analysis, component).value,
                        "quantity": 1,
                        "unit": "LS",
                        "costPerUnit": float(analysis.amounts_by_category[component]),
                        "markupPercent": markup,
                        "sourceRow": analysis.row_index,
                    }
                )

        logger.info(f"Classified {len(line_items)} items offline")
        return OracleResponse(line_items=line_items)

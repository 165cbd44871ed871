"""End-to-end run of one cost sheet import."""

import logging
from typing import Any, Iterable, Optional

from ..config import Settings, settings as default_settings
from ..errors import EmptyInputError, FormatNotRecognizedError
from ..finance.calculator import FinancialCalculator
from ..finance.models import LaborRates
from ..llm.models import BoundedRow, CompoundRowHint, OracleRequest
from ..llm.oracle import ClassificationOracle
from ..mapping.detector import ColumnDetector
from ..rows.analyzer import OUT_OF_RANGE_REASON, CompoundRowAnalyzer
from ..rows.models import StopCode
from ..rows.preprocessor import RowPreprocessor
from ..sheets.models import is_blank_row, normalize_rows
from ..validation.reconciler import SplitReconciler
from ..validation.validator import LineItemValidator
from .models import ImportResult

logger = logging.getLogger(__name__)


class ImportPipeline:
    """
    Detect, truncate, analyze, classify, validate and price.

    Every step except classification is synchronous and deterministic, so
    the same rows and the same classifier output always give the same
    result.
    """

    def __init__(
        self,
        oracle: ClassificationOracle,
        rates: LaborRates,
        settings: Optional[Settings] = None,
    ):
        self.oracle = oracle
        self.rates = rates
        self.settings = settings or default_settings

        self.detector = ColumnDetector(
            scan_rows=self.settings.header_scan_rows,
            min_signals=self.settings.min_header_signals,
        )
        self.preprocessor = RowPreprocessor(
            stop_markers=self.settings.stop_markers,
            empty_run=self.settings.empty_row_run,
            max_rows=self.settings.max_import_rows,
        )
        self.analyzer = CompoundRowAnalyzer()
        self.reconciler = SplitReconciler()
        self.calculator = FinancialCalculator(
            rates, markup_inversion_ratio=self.settings.markup_inversion_ratio
        )

    async def run(self, rows: Iterable[Iterable[Any]]) -> ImportResult:
        """
        Import one sheet.

        Args:
            rows: Raw rows of the sheet, header included

        Returns:
            ImportResult with priced items and a summary

        Raises:
            EmptyInputError: If there is no header and data to import
            FormatNotRecognizedError: If the budget sheet columns are not found
            OracleUnavailableError: If classification failed
            OracleMalformedError: If the classification output is unreadable
        """
        rows = normalize_rows(rows)
        if sum(1 for row in rows if not is_blank_row(row)) < 2:
            raise EmptyInputError(
                "The file is empty. A budget sheet needs a header row and at least one line item."
            )

        detection = self.detector.detect(rows)
        if not detection.recognized:
            raise FormatNotRecognizedError(
                detection.reason or "The file is not a recognized budget sheet.",
                missing_columns=detection.missing_columns,
                detected_format=detection.detected_format.value,
            )

        header_row = detection.header_row_index
        mapping = detection.column_mapping
        truncation = self.preprocessor.truncate(rows, header_row)
        analyses = self.analyzer.analyze(truncation.rows, mapping, truncation.start_row)

        if not any(analysis.is_importable for analysis in analyses):
            raise EmptyInputError(
                f"No line items with cost amounts were found below the header on row {header_row + 1}."
            )

        warnings = []
        if truncation.stop_code == StopCode.ROW_LIMIT:
            warnings.append(truncation.stop_reason)
        for analysis in analyses:
            if analysis.skip_reason and not analysis.description:
                warnings.append(
                    f"Row {analysis.row_index + 1} has cost amounts but no description and was skipped"
                )
            elif analysis.skip_reason == OUT_OF_RANGE_REASON:
                warnings.append(
                    f'Row {analysis.row_index + 1} "{analysis.description}" has an '
                    f"{OUT_OF_RANGE_REASON} and was skipped; check the cell values"
                )

        request = OracleRequest(
            bounded_rows=[
                BoundedRow(row_index=truncation.start_row + offset, cells=row)
                for offset, row in enumerate(truncation.rows)
                if not is_blank_row(row)
            ],
            column_mapping=mapping,
            compound_row_hints=[CompoundRowHint.from_analysis(a) for a in analyses],
            detected_format=detection.detected_format,
        )
        response = await self.oracle.classify(request)

        candidates = response.line_items
        limit = self.settings.max_oracle_items
        if len(candidates) > limit:
            warnings.append(
                f"The classifier returned {len(candidates)} items; only the first {limit} were checked"
            )
            candidates = candidates[:limit]

        validator = LineItemValidator(
            max_description_chars=self.settings.max_description_chars,
            price_tolerance=self.settings.price_tolerance,
            total_tolerance=self.settings.total_tolerance,
            valid_rows=truncation.row_indices,
        )
        items, item_warnings = validator.validate_all(candidates)
        warnings.extend(item_warnings)

        entries, reconcile_warnings = self.reconciler.reconcile(items, analyses)
        warnings.extend(reconcile_warnings)

        priced = self.calculator.calculate(entries)
        compound_rows = len({e.source_row for e in entries if e.was_split})
        summary = self.calculator.summarize(priced, warnings, compound_rows_split=compound_rows)

        logger.info(
            f"Imported {len(priced)} line items from {len(analyses)} rows "
            f"({compound_rows} split, {len(summary.warnings)} warnings)"
        )
        return ImportResult(
            items=priced,
            summary=summary,
            detection=detection,
            rows_considered=len(truncation.rows),
            stopped_at_row=truncation.stopped_at_row,
            stop_reason=truncation.stop_reason,
        )

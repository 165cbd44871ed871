"""Header row detection and column mapping for budget sheets."""

import logging
import re
from typing import Optional

from rapidfuzz.distance import Levenshtein

from ..sheets.models import RawRow, is_blank_row
from .models import (
    ColumnMapping,
    DetectedFormat,
    FormatDetectionResult,
    REQUIRED_COLUMNS,
    SemanticColumn,
)

logger = logging.getLogger(__name__)

HEADER_ALIASES: dict[SemanticColumn, list[str]] = {
    SemanticColumn.ITEM: [
        "item", "items", "scope", "description", "desc", "line item", "task", "work item",
    ],
    SemanticColumn.SUBCONTRACTOR: [
        "subcontractor", "sub contractor", "vendor", "trade", "company", "contractor",
    ],
    SemanticColumn.LABOR: [
        "labor", "labour", "labor cost", "labor $", "labor amt", "labor amount", "labor total",
    ],
    SemanticColumn.MATERIAL: [
        "material", "materials", "mat", "material cost", "material $", "mat cost",
    ],
    SemanticColumn.SUB: [
        "sub", "subs", "sub cost", "sub $", "sub amount", "subcontract", "subcontract cost",
    ],
    SemanticColumn.MARKUP: ["markup", "mark up", "mu", "markup %", "margin %"],
    SemanticColumn.TOTAL: ["total", "cost total", "total cost", "ext", "extended"],
    SemanticColumn.TOTAL_WITH_MARKUP: [
        "total with mark up", "total with markup", "total w markup", "total w/ mark up",
        "sell", "sell price", "price", "total price",
    ],
}

PROPOSAL_MARKERS = ["proposal", "scope of work", "we propose", "dear", "this agreement", "sincerely"]

# Substring matches covering less of the cell than this are ignored.
MIN_CONTAINS_SCORE = 0.2

# Misspelled headers ("Materail", "Mark-upp") match aliases of 5+ characters
# within an edit distance of 2, at a discounted score.
FUZZY_MIN_ALIAS_CHARS = 5
FUZZY_MAX_DISTANCE = 2
FUZZY_WEIGHT = 0.8
MIN_FUZZY_SCORE = 0.6


def normalize_header(text: str) -> str:
    """Lowercase, trim and collapse separators so aliases compare cleanly."""
    text = re.sub(r"[:\-_]", " ", (text or "").lower())
    return re.sub(r"\s+", " ", text).strip()


def _word_pattern(phrase: str) -> re.Pattern:
    return re.compile(r"(?<![a-z0-9])" + re.escape(phrase) + r"(?![a-z0-9])")


class ColumnDetector:
    """Locates the budget sheet header and resolves each semantic column."""

    def __init__(
        self,
        scan_rows: int = 20,
        min_signals: int = 3,
        aliases: Optional[dict[SemanticColumn, list[str]]] = None,
    ):
        self.scan_rows = scan_rows
        self.min_signals = min_signals
        self._aliases = [
            (column, normalize_header(alias), _word_pattern(normalize_header(alias)))
            for column, names in (aliases or HEADER_ALIASES).items()
            for alias in names
        ]
        self._proposal_patterns = [_word_pattern(marker) for marker in PROPOSAL_MARKERS]

    def detect(self, rows: list[RawRow]) -> FormatDetectionResult:
        """
        Find the header row and map every semantic column to an index.

        The first of the leading non-empty rows that matches at least
        ``min_signals`` distinct columns is the header. Detection fails
        closed when any required column is absent from it.
        """
        scanned = 0
        scanned_text = []

        for index, row in enumerate(rows):
            if is_blank_row(row):
                continue
            scanned += 1
            if scanned > self.scan_rows:
                break
            scanned_text.append(normalize_header(" ".join(row)))

            matches = self.match_header_row(row)
            if len(matches) < self.min_signals:
                continue

            matched = [column for column in SemanticColumn if column in matches]
            confidence = round(len(matched) / len(SemanticColumn), 4)
            missing = [column.value for column in REQUIRED_COLUMNS if column not in matches]

            if missing:
                reason = (
                    f"Found a budget sheet header on row {index + 1}, but required "
                    f"column(s) are missing: {', '.join(missing)}."
                )
                logger.warning(reason)
                return FormatDetectionResult(
                    recognized=False,
                    confidence=confidence,
                    header_row_index=index,
                    detected_format=DetectedFormat.BUDGET_SHEET,
                    matched_columns=matched,
                    missing_columns=missing,
                    reason=reason,
                )

            mapping = ColumnMapping(**{column.value: matches[column] for column in matched})
            logger.info(
                f"Header detected on row {index + 1} with {len(matched)} columns "
                f"(confidence {confidence:.2f})"
            )
            return FormatDetectionResult(
                recognized=True,
                confidence=confidence,
                header_row_index=index,
                column_mapping=mapping,
                detected_format=DetectedFormat.BUDGET_SHEET,
                matched_columns=matched,
            )

        return self._no_header_result(scanned_text)

    def match_header_row(self, row: RawRow) -> dict[SemanticColumn, int]:
        """
        Resolve semantic columns for one candidate header row.

        Each cell counts toward its best-scoring column only. Each column
        keeps its best-scoring cell, with ties going to the leftmost cell.
        """
        best: dict[SemanticColumn, tuple[int, float]] = {}
        for col_index, cell in enumerate(row):
            scored = self.score_cell(cell)
            if scored is None:
                continue
            column, score = scored
            if column not in best or score > best[column][1]:
                best[column] = (col_index, score)
        return {column: col_index for column, (col_index, _) in best.items()}

    def score_cell(self, cell: str) -> Optional[tuple[SemanticColumn, float]]:
        """Score a header cell against the alias table."""
        text = normalize_header(cell)
        if not text:
            return None

        best: Optional[tuple[SemanticColumn, float]] = None
        for column, alias, pattern in self._aliases:
            if text == alias:
                score = 1.0
            elif pattern.search(text):
                score = 0.9 * len(alias) / len(text)
                if score < MIN_CONTAINS_SCORE:
                    continue
            else:
                continue
            if best is None or score > best[1]:
                best = (column, score)
        if best is not None:
            return best

        # Typo tolerance, only when nothing matched exactly or by containment
        for column, alias, _ in self._aliases:
            if len(alias) < FUZZY_MIN_ALIAS_CHARS:
                continue
            distance = Levenshtein.distance(text, alias, score_cutoff=FUZZY_MAX_DISTANCE)
            if distance > FUZZY_MAX_DISTANCE:
                continue
            score = FUZZY_WEIGHT * (1 - distance / len(alias))
            if score < MIN_FUZZY_SCORE:
                continue
            if best is None or score > best[1]:
                best = (column, score)
        return best

    def _no_header_result(self, scanned_text: list[str]) -> FormatDetectionResult:
        missing = [column.value for column in REQUIRED_COLUMNS]
        looks_like_proposal = any(
            pattern.search(text)
            for text in scanned_text
            for pattern in self._proposal_patterns
        )

        if looks_like_proposal:
            reason = (
                "This file looks like a narrative proposal. Only budget sheets with "
                "Item, Labor, Material, Sub and Markup columns can be imported."
            )
            detected = DetectedFormat.NARRATIVE_PROPOSAL
        else:
            reason = (
                f"No budget sheet header found in the first {self.scan_rows} non-empty rows. "
                "Expected columns: Item, Labor, Material, Sub and Markup."
            )
            detected = DetectedFormat.UNKNOWN

        logger.warning(reason)
        return FormatDetectionResult(
            recognized=False,
            confidence=0.0,
            detected_format=detected,
            missing_columns=missing,
            reason=reason,
        )

"""Row truncation at the end of the line item table."""

import logging
import re
from typing import Optional

from ..config import DEFAULT_STOP_MARKERS
from ..sheets.models import RawRow
from ..sheets.values import is_effectively_empty
from .models import StopCode, TruncationResult

logger = logging.getLogger(__name__)


class RowPreprocessor:
    """
    Cuts the row set down to the line item table.

    Everything from the first stop marker, or from the start of a run of
    empty rows, onward is dropped. Nothing after that point reaches the
    analyzer or the classification service.
    """

    def __init__(
        self,
        stop_markers: Optional[list[str]] = None,
        empty_run: int = 3,
        max_rows: Optional[int] = None,
    ):
        markers = stop_markers if stop_markers is not None else DEFAULT_STOP_MARKERS
        self.stop_markers = [m.strip().lower() for m in markers if m.strip()]
        self.empty_run = max(1, empty_run)
        self.max_rows = max_rows
        self._patterns = [
            (marker, re.compile(r"(?<![a-z0-9])" + re.escape(marker) + r"(?![a-z0-9])"))
            for marker in self.stop_markers
        ]

    def truncate(self, rows: list[RawRow], header_row_index: int) -> TruncationResult:
        """
        Return the data rows after the header, up to the first stop point.

        Args:
            rows: All rows of the sheet
            header_row_index: Index of the detected header row

        Returns:
            TruncationResult with the kept rows and where/why scanning stopped
        """
        start = header_row_index + 1
        empty_streak = 0

        for index in range(start, len(rows)):
            row = rows[index]

            marker = self.find_stop_marker(row)
            if marker is not None:
                return self._stop(
                    rows, start, index, StopCode.STOP_MARKER,
                    f'Stop marker "{marker}" found on row {index + 1}',
                )

            if self.is_empty_row(row):
                empty_streak += 1
                if empty_streak >= self.empty_run:
                    run_start = index - empty_streak + 1
                    return self._stop(
                        rows, start, run_start, StopCode.EMPTY_RUN,
                        f"Stopped at {self.empty_run} consecutive empty rows starting on row {run_start + 1}",
                    )
            else:
                empty_streak = 0

            if self.max_rows is not None and index - start + 1 >= self.max_rows and index + 1 < len(rows):
                return self._stop(
                    rows, start, index + 1, StopCode.ROW_LIMIT,
                    f"Row limit of {self.max_rows} line item rows reached; rows from {index + 2} on were not imported",
                )

        return TruncationResult(rows=list(rows[start:]), start_row=start)

    def find_stop_marker(self, row: RawRow) -> Optional[str]:
        """Return the first stop marker appearing in the row's text, if any."""
        text = re.sub(r"\s+", " ", " ".join(cell or "" for cell in row).lower())
        for marker, pattern in self._patterns:
            if pattern.search(text):
                return marker
        return None

    @staticmethod
    def is_empty_row(row: RawRow) -> bool:
        return all(is_effectively_empty(cell) for cell in row)

    def _stop(
        self,
        rows: list[RawRow],
        start: int,
        stop_index: int,
        code: StopCode,
        reason: str,
    ) -> TruncationResult:
        logger.info(f"{reason} (kept {stop_index - start} rows)")
        return TruncationResult(
            rows=list(rows[start:stop_index]),
            start_row=start,
            stopped_at_row=stop_index,
            stop_reason=reason,
            stop_code=code,
        )

"""Upload, review and confirm flow around the import pipeline."""

import logging
import uuid
from typing import Any, Iterable, Optional

from ..config import Settings
from ..errors import ImportPipelineError, InvalidTransitionError
from ..finance.models import EstimateLineItem, ImportSummary, LaborRates
from ..llm.oracle import ClassificationOracle
from ..sheets.models import RawRow, normalize_rows
from ..sheets.reader import UnsupportedFileError, read_rows
from ..validation.models import ImportedLineItem
from .models import ImportResult, ImportStep
from .pipeline import ImportPipeline

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "The import failed unexpectedly. Check the file and try again."


class ImportOrchestrator:
    """
    State machine for one import: upload -> processing -> review -> confirm.

    A failure during processing returns to upload with a message; review is
    only entered with a complete result. Selection changes never modify the
    imported values.
    """

    def __init__(
        self,
        oracle: ClassificationOracle,
        rates: LaborRates,
        settings: Optional[Settings] = None,
    ):
        self.import_id = str(uuid.uuid4())
        self.pipeline = ImportPipeline(oracle, rates, settings)
        self.rates = rates

        self.step = ImportStep.UPLOAD
        self.filename: Optional[str] = None
        self.rows: Optional[list[RawRow]] = None
        self.error: Optional[str] = None
        self.error_code: Optional[str] = None
        self.failure: Optional[ImportPipelineError] = None
        self.result: Optional[ImportResult] = None
        self.selected: set[int] = set()

    def _require(self, step: ImportStep, action: str):
        if self.step != step:
            raise InvalidTransitionError(
                f"Cannot {action} while the import is in the '{self.step.value}' step"
            )

    @property
    def items(self) -> list[ImportedLineItem]:
        return self.result.items if self.result else []

    @property
    def warnings(self) -> list[str]:
        return self.result.warnings if self.result else []

    def upload_rows(self, rows: Iterable[Iterable[Any]], filename: Optional[str] = None):
        """Accept already parsed rows."""
        self._require(ImportStep.UPLOAD, "upload")
        self.rows = normalize_rows(rows)
        self.filename = filename
        self.error = None
        self.error_code = None

    def upload_file(self, content: bytes, filename: str) -> bool:
        """
        Read an uploaded file.

        Returns:
            True if the file was read; otherwise ``error`` says why
        """
        self._require(ImportStep.UPLOAD, "upload")
        try:
            grid = read_rows(content, filename)
        except UnsupportedFileError as e:
            logger.warning(f"Could not read {filename}: {e}")
            self.rows = None
            self.error = str(e)
            self.error_code = "unsupported_file"
            return False

        self.upload_rows(grid.rows, filename=filename)
        return True

    async def process(self) -> bool:
        """
        Run the pipeline over the uploaded rows.

        Returns:
            True when the import reached review
        """
        self._require(ImportStep.UPLOAD, "process")
        if self.rows is None:
            raise InvalidTransitionError("Upload a file before processing")

        self.step = ImportStep.PROCESSING
        self.error = None
        self.error_code = None
        try:
            result = await self.pipeline.run(self.rows)
        except ImportPipelineError as e:
            logger.warning(f"Import {self.import_id} failed: {e.code}: {e.message}")
            return self._fail(e.message, e.code, e)
        except Exception:
            logger.exception(f"Import {self.import_id} failed unexpectedly")
            return self._fail(UNEXPECTED_ERROR_MESSAGE, "unexpected_error")

        self.result = result
        self.selected = set(range(len(result.items)))
        self.step = ImportStep.REVIEW
        return True

    def _fail(
        self, message: str, code: str, failure: Optional[ImportPipelineError] = None
    ) -> bool:
        self.failure = failure
        self.result = None
        self.selected = set()
        self.error = message
        self.error_code = code
        self.step = ImportStep.UPLOAD
        return False

    def set_selected(self, index: int, selected: bool = True):
        """Select or deselect one item by position."""
        self._require(ImportStep.REVIEW, "change the selection")
        if not 0 <= index < len(self.items):
            raise IndexError(f"No line item at position {index}")
        if selected:
            self.selected.add(index)
        else:
            self.selected.discard(index)

    def set_selection(self, indices: Iterable[int]):
        """Replace the selection with exactly ``indices``."""
        self._require(ImportStep.REVIEW, "change the selection")
        indices = set(indices)
        invalid = sorted(i for i in indices if not 0 <= i < len(self.items))
        if invalid:
            raise IndexError(f"No line item at position(s) {invalid}")
        self.selected = indices

    def select_all(self):
        self._require(ImportStep.REVIEW, "change the selection")
        self.selected = set(range(len(self.items)))

    def deselect_all(self):
        self._require(ImportStep.REVIEW, "change the selection")
        self.selected = set()

    def selected_items(self) -> list[ImportedLineItem]:
        """Selected items in their original order."""
        return [item for index, item in enumerate(self.items) if index in self.selected]

    def selected_summary(self) -> ImportSummary:
        """Totals over the current selection."""
        if self.step not in (ImportStep.REVIEW, ImportStep.CONFIRM):
            raise InvalidTransitionError("Nothing has been imported yet")
        selected = self.selected_items()
        compound_rows = len({i.source_row for i in selected if i.was_split})
        return self.pipeline.calculator.summarize(selected, compound_rows_split=compound_rows)

    def confirm(self) -> list[EstimateLineItem]:
        """
        Finish the import.

        Returns:
            The selected items in the shape the estimate flow consumes

        Raises:
            InvalidTransitionError: Outside review, or with nothing selected
        """
        self._require(ImportStep.REVIEW, "confirm")
        if not self.selected:
            raise InvalidTransitionError("Select at least one line item to import")

        confirmed = [
            self.pipeline.calculator.to_estimate_line_item(item)
            for item in self.selected_items()
        ]
        self.step = ImportStep.CONFIRM
        logger.info(f"Import {self.import_id} confirmed with {len(confirmed)} line items")
        return confirmed

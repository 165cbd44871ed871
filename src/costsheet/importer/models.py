"""Import steps and pipeline results."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..finance.models import ImportSummary
from ..mapping.models import FormatDetectionResult
from ..validation.models import ImportedLineItem


class ImportStep(str, Enum):
    """Steps of an import, in order."""

    UPLOAD = "upload"
    PROCESSING = "processing"
    REVIEW = "review"
    CONFIRM = "confirm"


class ImportResult(BaseModel):
    """Everything one pipeline run produced."""

    items: list[ImportedLineItem] = Field(default_factory=list)
    summary: ImportSummary
    detection: FormatDetectionResult
    rows_considered: int = 0
    stopped_at_row: Optional[int] = None
    stop_reason: Optional[str] = None

    @property
    def warnings(self) -> list[str]:
        return self.summary.warnings

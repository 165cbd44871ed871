"""Data models for raw sheet content."""

from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

# An uploaded row: ordered string cells with no schema of their own.
RawRow = list[str]


class SheetGrid(BaseModel):
    """Rows read from an uploaded file."""

    filename: str
    sheet_name: Optional[str] = None
    rows: list[RawRow] = Field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def col_count(self) -> int:
        return max((len(row) for row in self.rows), default=0)


def normalize_rows(rows: Iterable[Iterable[Any]]) -> list[RawRow]:
    """Stringify every cell, mapping None to an empty string."""
    normalized = []
    for row in rows:
        normalized.append(["" if cell is None else str(cell) for cell in row])
    return normalized


def is_blank_row(row: RawRow) -> bool:
    return all(not cell.strip() for cell in row)

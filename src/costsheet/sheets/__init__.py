"""Raw sheet content: reading uploads and parsing cell values."""

from .models import RawRow, SheetGrid, normalize_rows, is_blank_row
from .reader import read_rows, UnsupportedFileError
from .values import (
    parse_currency,
    parse_percent,
    amount_or_zero,
    coerce_number,
    round_money,
    is_effectively_empty,
)

__all__ = [
    "RawRow",
    "SheetGrid",
    "normalize_rows",
    "is_blank_row",
    "read_rows",
    "UnsupportedFileError",
    "parse_currency",
    "parse_percent",
    "amount_or_zero",
    "coerce_number",
    "round_money",
    "is_effectively_empty",
]

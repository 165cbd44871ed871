"""Convert uploaded tabular files into raw string rows."""

import csv
import io
import logging
import zipfile
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import chardet
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .models import RawRow, SheetGrid

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".csv", ".tsv", ".txt"}
EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
LEGACY_SUFFIXES = {".xls"}

# Used when chardet cannot name an encoding
FALLBACK_ENCODING = "cp1252"


class UnsupportedFileError(ValueError):
    """The uploaded file cannot be turned into rows."""

    pass


def read_rows(content: bytes, filename: str) -> SheetGrid:
    """
    Read an uploaded file into a grid of string cells.

    Delimited text is read with the csv module; workbooks are read with
    openpyxl, first worksheet only.

    Raises:
        UnsupportedFileError: If the file type is unsupported or unreadable
    """
    suffix = Path(filename).suffix.lower()

    if suffix in TEXT_SUFFIXES:
        rows = _read_delimited(content, suffix)
        sheet_name = None
    elif suffix in EXCEL_SUFFIXES:
        sheet_name, rows = _read_workbook(content)
    elif suffix in LEGACY_SUFFIXES:
        raise UnsupportedFileError(
            "Legacy .xls workbooks are not supported. Save the sheet as .xlsx or .csv and upload it again."
        )
    else:
        raise UnsupportedFileError(
            f"Unsupported file type '{suffix or filename}'. Use .csv, .tsv or .xlsx."
        )

    grid = SheetGrid(filename=filename, sheet_name=sheet_name, rows=rows)
    logger.info(f"Read {grid.row_count} rows x {grid.col_count} columns from {filename}")
    return grid


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(content)
    encoding = detected.get("encoding") or FALLBACK_ENCODING
    confidence = detected.get("confidence") or 0.0
    logger.warning(f"File is not valid UTF-8, decoding as {encoding} (confidence {confidence:.2f})")
    try:
        return content.decode(encoding, errors="replace")
    except LookupError:
        return content.decode(FALLBACK_ENCODING, errors="replace")


def _read_delimited(content: bytes, suffix: str) -> list[RawRow]:
    text = _decode(content)
    if suffix == ".tsv":
        delimiter = "\t"
    else:
        try:
            delimiter = csv.Sniffer().sniff(text[:4096], delimiters=",;\t|").delimiter
        except csv.Error:
            delimiter = ","

    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    return [[cell.strip() for cell in row] for row in reader]


def _read_workbook(content: bytes) -> tuple[str, list[RawRow]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise UnsupportedFileError(f"Could not read the workbook: {e}") from e

    try:
        if not workbook.worksheets:
            raise UnsupportedFileError("The workbook has no worksheets.")
        sheet = workbook.worksheets[0]
        rows = [[_format_cell(cell) for cell in row] for row in sheet.iter_rows()]
        return sheet.title, rows
    finally:
        workbook.close()


def _format_cell(cell: Any) -> str:
    """Render a cell the way it reads on screen, closely enough for parsing."""
    value = getattr(cell, "value", None)
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, (int, float)):
        number_format = getattr(cell, "number_format", None) or ""
        if "%" in number_format:
            percent = (Decimal(str(value)) * 100).normalize()
            return f"{percent:f}%"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()

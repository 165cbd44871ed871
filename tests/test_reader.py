"""Tests for reading uploaded files into rows."""

import io

import pytest
from openpyxl import Workbook

from costsheet.sheets.reader import UnsupportedFileError, read_rows


def _workbook_bytes(build) -> bytes:
    workbook = Workbook()
    build(workbook.active)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestDelimitedFiles:
    """Test CSV and TSV reading."""

    def test_reads_csv(self):
        """Test a comma separated file with quoted amounts."""
        content = b'Item,Labor,Material\nDemo,"$15,000",$6000\n'
        grid = read_rows(content, "budget.csv")

        assert grid.filename == "budget.csv"
        assert grid.sheet_name is None
        assert grid.rows == [["Item", "Labor", "Material"], ["Demo", "$15,000", "$6000"]]
        assert grid.col_count == 3

    def test_reads_tsv(self):
        """Test a tab separated file."""
        grid = read_rows(b"Item\tLabor\nDemo\t100\n", "budget.tsv")
        assert grid.rows[1] == ["Demo", "100"]

    def test_sniffs_semicolons(self):
        """Test that the delimiter is detected."""
        grid = read_rows(b"Item;Labor;Sub\nDemo;100;200\nTile;50;0\n", "budget.csv")
        assert grid.rows[0] == ["Item", "Labor", "Sub"]

    def test_utf8_bom(self):
        """Test the BOM is stripped."""
        grid = read_rows("\ufeffItem,Labor\n".encode("utf-8"), "a.csv")
        assert grid.rows[0][0] == "Item"

    def test_detects_legacy_encoding(self):
        """Test a Windows-1252 export is decoded with the detected encoding."""
        text = (
            "Item,Labor,Material\n"
            "Démolition de la façade,1000,500\n"
            "Fenêtres et portes vitrées,2000,1500\n"
            "Réparation du plâtre au deuxième étage,800,200\n"
            "Électricité générale,1200,300\n"
        )
        grid = read_rows(text.encode("cp1252"), "b.csv")

        assert grid.rows[1][0] == "Démolition de la façade"
        assert grid.rows[4][0] == "Électricité générale"

    def test_detects_utf16_text_export(self):
        """Test a UTF-16 'Unicode text' export with a byte order mark."""
        text = "Item\tLabor\tMarkup\r\nDémolition\t$1,000\t10%\r\n"
        grid = read_rows(text.encode("utf-16"), "budget.tsv")

        assert grid.rows[0] == ["Item", "Labor", "Markup"]
        assert grid.rows[1] == ["Démolition", "$1,000", "10%"]


class TestWorkbooks:
    """Test .xlsx reading with openpyxl."""

    def test_reads_first_sheet(self):
        """Test values are rendered as text, percents as NN%."""

        def build(sheet):
            sheet.title = "Budget"
            sheet.append(["Item", "Labor", "Markup"])
            sheet.append(["Demo", 15000, 0.2])
            sheet["C2"].number_format = "0%"
            sheet.append(["Tile", 1250.5, None])

        grid = read_rows(_workbook_bytes(build), "budget.xlsx")

        assert grid.sheet_name == "Budget"
        assert grid.rows[0] == ["Item", "Labor", "Markup"]
        assert grid.rows[1] == ["Demo", "15000", "20%"]
        assert grid.rows[2] == ["Tile", "1250.5", ""]

    def test_corrupt_workbook(self):
        """Test that unreadable workbooks raise UnsupportedFileError."""
        with pytest.raises(UnsupportedFileError, match="Could not read the workbook"):
            read_rows(b"not a zip file", "budget.xlsx")


class TestUnsupportedFiles:
    """Test rejected file types."""

    def test_legacy_xls(self):
        """Test that .xls gets a conversion hint."""
        with pytest.raises(UnsupportedFileError, match=r"\.xlsx or \.csv"):
            read_rows(b"\xd0\xcf\x11\xe0", "old.xls")

    def test_unknown_suffix(self):
        """Test other file types are rejected."""
        with pytest.raises(UnsupportedFileError, match="Unsupported file type"):
            read_rows(b"%PDF-1.4", "proposal.pdf")

"""Currency and percentage parsing for spreadsheet cells."""

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

# Largest amount, quantity or markup accepted from a sheet cell or a classified item
MAX_AMOUNT = Decimal("1000000000000")

_CURRENCY_NOISE = re.compile(r"[$,\s]")
_PERCENT_NOISE = re.compile(r"[%,\s]")
_BLANK_AMOUNTS = {"", "-", "--"}


def _to_decimal(text: str) -> Optional[Decimal]:
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    # Decimal accepts "NaN" and "Infinity"
    if not value.is_finite():
        return None
    return value


def parse_currency(value: Any) -> Optional[Decimal]:
    """
    Parse a currency cell such as ``"$15,000.00"`` or ``"(1,200)"``.

    Blank cells and bare dashes are zero. Parentheses mark a negative amount.
    Returns None when the text is not a number.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, Decimal)):
        return _to_decimal(str(value))
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Decimal(str(value))

    text = str(value).strip()
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    text = _CURRENCY_NOISE.sub("", text)
    if text in _BLANK_AMOUNTS:
        return ZERO

    amount = _to_decimal(text)
    if amount is None:
        return None
    return -abs(amount) if negative else amount


def amount_or_zero(value: Any) -> Decimal:
    """Parse a currency cell, treating unparseable text as zero."""
    amount = parse_currency(value)
    return amount if amount is not None else ZERO


def parse_percent(value: Any) -> Optional[Decimal]:
    """
    Parse a markup cell into percentage points.

    ``"20%"`` and ``"20"`` both give 20. Values strictly between -1 and 1
    without a percent sign are read as fractions, so ``"0.2"`` also gives 20.
    Blank or non-numeric text returns None.
    """
    if value is None or isinstance(value, bool):
        return None

    text = str(value).strip()
    if not text:
        return None

    has_sign = "%" in text
    text = _PERCENT_NOISE.sub("", text)
    if not text:
        return None

    percent = _to_decimal(text)
    if percent is None:
        return None
    if not has_sign and percent != 0 and -1 < percent < 1:
        percent = percent * HUNDRED
    return percent


def coerce_number(value: Any) -> Optional[Decimal]:
    """Coerce an untrusted JSON value to a Decimal, or None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("%"):
            text = text[:-1]
        return parse_currency(text)
    if isinstance(value, (int, float, Decimal)):
        return parse_currency(value)
    return None


def is_out_of_range(value: Optional[Decimal]) -> bool:
    """True when ``value`` is larger in magnitude than MAX_AMOUNT."""
    return value is not None and abs(value) > MAX_AMOUNT


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def is_effectively_empty(cell: Any) -> bool:
    """True for blank cells and cells holding a zero amount like ``$0.00``."""
    if cell is None:
        return True
    text = str(cell).strip()
    if not text:
        return True
    amount = parse_currency(text)
    return amount is not None and amount == 0

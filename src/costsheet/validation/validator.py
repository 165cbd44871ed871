"""Schema validation and repair of untrusted line item candidates."""

import logging
import re
from decimal import Decimal
from typing import Any, Iterable, Optional

from ..sheets.values import HUNDRED, MAX_AMOUNT, coerce_number, is_out_of_range, round_money
from .models import CandidateValidation, ImportedLineItem, ItemCategory, Unit

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# Candidate keys are read in camelCase first, then snake_case.
_KEYS = {
    "description": ("description",),
    "category": ("category",),
    "quantity": ("quantity",),
    "unit": ("unit",),
    "costPerUnit": ("costPerUnit", "cost_per_unit"),
    "markupPercent": ("markupPercent", "markup_percent"),
    "pricePerUnit": ("pricePerUnit", "price_per_unit"),
    "total": ("total",),
    "sourceRow": ("sourceRow", "source_row"),
}

_MISSING = object()


def _get(candidate: dict, field: str) -> Any:
    for key in _KEYS[field]:
        if key in candidate:
            return candidate[key]
    return _MISSING


def _shorten(value: Any, limit: int = 40) -> str:
    text = repr(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


class LineItemValidator:
    """
    Enforces the line item schema on classification output.

    Every candidate is either repaired into a consistent ImportedLineItem or
    rejected with a reason. Numbers supplied by the candidate are never
    trusted for totals: price per unit and total are always recomputed from
    cost, markup and quantity.
    """

    def __init__(
        self,
        max_description_chars: int = 200,
        price_tolerance: float = 0.01,
        total_tolerance: float = 1.0,
        valid_rows: Optional[Iterable[int]] = None,
    ):
        self.max_description_chars = max_description_chars
        self.price_tolerance = Decimal(str(price_tolerance))
        self.total_tolerance = Decimal(str(total_tolerance))
        self.valid_rows = set(valid_rows) if valid_rows is not None else None

    def validate(self, candidate: Any, index: int) -> CandidateValidation:
        """
        Validate one candidate.

        Args:
            candidate: Parsed JSON value proposed by the classification service
            index: 0-based position of the candidate in the response

        Returns:
            CandidateValidation with either ``fixed`` set or ``errors`` filled
        """
        if not isinstance(candidate, dict):
            return CandidateValidation(
                index=index,
                valid=False,
                errors=[f"expected an object, got {type(candidate).__name__}"],
            )

        errors: list[str] = []
        repairs: list[str] = []

        description = self._description(_get(candidate, "description"), errors, repairs)
        category = self._category(_get(candidate, "category"), errors)
        quantity = self._non_negative(candidate, "quantity", errors)
        cost = self._non_negative(candidate, "costPerUnit", errors)
        markup = self._markup(_get(candidate, "markupPercent"), errors, repairs)

        if errors:
            return CandidateValidation(index=index, valid=False, errors=errors, repairs=repairs)

        unit = self._unit(_get(candidate, "unit"), repairs)
        source_row = self._source_row(_get(candidate, "sourceRow"), repairs)

        price_per_unit = cost * (1 + markup / HUNDRED)
        self._check_supplied(
            candidate, "pricePerUnit", price_per_unit, self.price_tolerance, repairs
        )
        total = quantity * price_per_unit
        if is_out_of_range(total):
            return CandidateValidation(
                index=index,
                valid=False,
                errors=[f"total exceeds {MAX_AMOUNT}"],
                repairs=repairs,
            )
        self._check_supplied(candidate, "total", total, self.total_tolerance, repairs)

        fixed = ImportedLineItem(
            description=description,
            category=category,
            quantity=float(quantity),
            unit=unit,
            cost_per_unit=float(cost),
            markup_percent=float(markup),
            price_per_unit=float(price_per_unit.quantize(Decimal("0.0001"))),
            total=float(round_money(total)),
            total_cost=float(round_money(quantity * cost)),
            labor_hours=float(quantity) if category == ItemCategory.LABOR_INTERNAL else None,
            source_row=source_row,
        )
        return CandidateValidation(index=index, valid=True, repairs=repairs, fixed=fixed)

    def validate_all(self, candidates: list[Any]) -> tuple[list[ImportedLineItem], list[str]]:
        """
        Validate every candidate, keeping valid ones in order.

        Returns:
            (items, warnings) - one warning per rejected candidate, plus one
            per candidate whose supplied values had to be corrected
        """
        items = []
        warnings = []
        for index, candidate in enumerate(candidates):
            result = self.validate(candidate, index)
            if result.valid:
                items.append(result.fixed)
                if result.repairs:
                    warnings.append(f"Item {index}: corrected " + "; ".join(result.repairs))
            else:
                warnings.append(result.warning())

        rejected = len(candidates) - len(items)
        if rejected:
            logger.warning(f"Rejected {rejected} of {len(candidates)} classified items")
        return items, warnings

    def _description(self, value: Any, errors: list[str], repairs: list[str]) -> str:
        if value is _MISSING or value is None:
            errors.append("missing description")
            return ""
        if not isinstance(value, str):
            errors.append("description must be text")
            return ""

        text = re.sub(r"\s+", " ", _CONTROL_CHARS.sub(" ", value)).strip()
        if not text:
            errors.append("missing description")
            return ""
        if len(text) > self.max_description_chars:
            text = text[: self.max_description_chars].rstrip()
            repairs.append(f"description truncated to {self.max_description_chars} characters")
        return text

    @staticmethod
    def _category(value: Any, errors: list[str]) -> Optional[ItemCategory]:
        if value is _MISSING or value is None:
            errors.append("missing category")
            return None
        if isinstance(value, str):
            try:
                return ItemCategory(value.strip().lower())
            except ValueError:
                pass
        allowed = ", ".join(c.value for c in ItemCategory)
        errors.append(f"category {_shorten(value)} is not one of {allowed}")
        return None

    @staticmethod
    def _non_negative(candidate: dict, field: str, errors: list[str]) -> Decimal:
        value = _get(candidate, field)
        if value is _MISSING or value is None:
            errors.append(f"missing {field}")
            return Decimal("0")
        number = coerce_number(value)
        if number is None:
            errors.append(f"{field} {_shorten(value)} is not numeric")
            return Decimal("0")
        if number < 0:
            errors.append(f"{field} cannot be negative")
            return Decimal("0")
        if is_out_of_range(number):
            errors.append(f"{field} exceeds {MAX_AMOUNT}")
            return Decimal("0")
        return number

    @staticmethod
    def _markup(value: Any, errors: list[str], repairs: list[str]) -> Decimal:
        if value is _MISSING or value is None:
            repairs.append("markupPercent missing, using 0")
            return Decimal("0")
        number = coerce_number(value)
        if number is None:
            errors.append(f"markupPercent {_shorten(value)} is not numeric")
            return Decimal("0")
        if number < -HUNDRED:
            errors.append("markupPercent cannot be below -100")
            return Decimal("0")
        if is_out_of_range(number):
            errors.append(f"markupPercent exceeds {MAX_AMOUNT}")
            return Decimal("0")
        return number

    @staticmethod
    def _unit(value: Any, repairs: list[str]) -> Unit:
        if value is _MISSING or value is None or value == "":
            return Unit.LS
        if isinstance(value, str):
            try:
                return Unit(value.strip().upper())
            except ValueError:
                pass
        repairs.append(f"unit {_shorten(value)} replaced with LS")
        return Unit.LS

    def _source_row(self, value: Any, repairs: list[str]) -> Optional[int]:
        if value is _MISSING or value is None:
            return None

        row = None
        if isinstance(value, int) and not isinstance(value, bool):
            row = value
        elif isinstance(value, float) and value.is_integer():
            row = int(value)
        elif isinstance(value, str) and value.strip().isdigit():
            row = int(value.strip())

        if row is None or (self.valid_rows is not None and row not in self.valid_rows):
            repairs.append(f"sourceRow {_shorten(value)} is not an imported row and was ignored")
            return None
        return row

    @staticmethod
    def _check_supplied(
        candidate: dict,
        field: str,
        expected: Decimal,
        tolerance: Decimal,
        repairs: list[str],
    ):
        value = _get(candidate, field)
        if value is _MISSING or value is None:
            return
        supplied = coerce_number(value)
        if supplied is None:
            repairs.append(f"{field} {_shorten(value)} was not numeric and was recomputed")
        elif abs(supplied - expected) > tolerance:
            repairs.append(f"{field} {supplied} recomputed as {round_money(expected)}")

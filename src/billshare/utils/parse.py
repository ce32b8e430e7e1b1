from __future__ import annotations

import re
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from billshare.errors import ValidationError


CENT = Decimal("0.01")

# Symbols recognised next to a price, both in OCR text and in user input.
CURRENCY_SYMBOLS = "$€£¥"

_AMOUNT_CLEAN_RE = re.compile(r"[\s" + re.escape(CURRENCY_SYMBOLS) + r"]")


def new_id() -> str:
    return str(uuid.uuid4())


def quantize_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_price(value: Any, field: str = "price") -> Decimal:
    """
    Normalise a user supplied price into a non-negative cent amount.

    Accepts Decimal, int, float and numeric strings (optionally carrying a
    currency symbol). Booleans, NaN, infinities and negatives are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number", details={"field": field, "value": value})

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = _AMOUNT_CLEAN_RE.sub("", value)
        try:
            amount = Decimal(cleaned)
        except InvalidOperation as exc:
            raise ValidationError(f"{field} must be a number", details={"field": field, "value": value}) from exc
    else:
        raise ValidationError(f"{field} must be a number", details={"field": field, "value": repr(value)})

    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite", details={"field": field, "value": str(value)})
    if amount < 0:
        raise ValidationError(f"{field} must not be negative", details={"field": field, "value": str(value)})
    try:
        return quantize_cents(amount)
    except InvalidOperation as exc:
        raise ValidationError(f"{field} is out of range", details={"field": field, "value": str(value)}) from exc


def parse_name(value: Any, field: str = "name") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={"field": field})
    return value.strip()

"""Best-effort extraction of priced line items from recognised receipt text.

Every non-blank line is tried against ``LINE_PATTERNS`` in order and the
first pattern that matches decides the line. A match is then screened by
``check_candidate``: bill-level aggregates (totals, tax, tip), names that are
too short and non-positive prices are dropped. Nothing here raises on noisy
input; a receipt nobody can read simply yields no items.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterator, Optional, Sequence, Union

from billshare.db.models import BillItem
from billshare.logging import get_logger
from billshare.utils.parse import CURRENCY_SYMBOLS, new_id, quantize_cents


MIN_NAME_LENGTH = 3
RESERVED_WORDS = ("total", "tax", "subtotal", "tip")

_SYMBOL = "[" + re.escape(CURRENCY_SYMBOLS) + "]"
_PRICE = r"(?P<price>\d*\.\d+)"

# Order matters: the first pattern that matches a line wins.
LINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Caesar Salad 12.99 / Iced Tea $3.50
    re.compile(rf"^(?P<name>.+)\s+{_SYMBOL}?{_PRICE}\s*$"),
    # Lemonade 8.50$ / Lemonade 8.50 €
    re.compile(rf"^(?P<name>.+)\s+{_PRICE}\s*{_SYMBOL}?\s*$"),
    # Nachos$7.25
    re.compile(rf"^(?P<name>.+){_SYMBOL}{_PRICE}\s*$"),
)


class RejectReason(str, Enum):
    NAME_TOO_SHORT = "name_too_short"
    NON_POSITIVE_PRICE = "non_positive_price"
    RESERVED_WORD = "reserved_word"


@dataclass(frozen=True, slots=True)
class Matched:
    name: str
    price: Decimal


@dataclass(frozen=True, slots=True)
class Rejected:
    name: str
    price: Decimal
    reason: RejectReason


@dataclass(frozen=True, slots=True)
class NoMatch:
    line: str


LineParseResult = Union[Matched, Rejected, NoMatch]


@dataclass(frozen=True, slots=True)
class ExtractedItem:
    name: str
    price: Decimal


def check_candidate(name: str, price: Decimal) -> Optional[RejectReason]:
    if len(name) < MIN_NAME_LENGTH:
        return RejectReason.NAME_TOO_SHORT
    if price <= 0:
        return RejectReason.NON_POSITIVE_PRICE
    lowered = name.lower()
    if any(word in lowered for word in RESERVED_WORDS):
        return RejectReason.RESERVED_WORD
    return None


def parse_line(line: str, patterns: Sequence[re.Pattern[str]] = LINE_PATTERNS) -> LineParseResult:
    text = line.strip()
    for pattern in patterns:
        match = pattern.match(text)
        if match is None:
            continue
        name = match.group("name").strip()
        try:
            price = quantize_cents(Decimal(match.group("price")))
        except InvalidOperation:
            return NoMatch(line=line)
        reason = check_candidate(name, price)
        if reason is not None:
            return Rejected(name=name, price=price, reason=reason)
        return Matched(name=name, price=price)
    return NoMatch(line=line)


def iter_lines(raw_text: str) -> Iterator[str]:
    for line in raw_text.splitlines():
        if line.strip():
            yield line


def extract_items(raw_text: str) -> list[ExtractedItem]:
    log = get_logger(__name__)
    items: list[ExtractedItem] = []
    rejected = 0
    unmatched = 0

    for line in iter_lines(raw_text or ""):
        result = parse_line(line)
        if isinstance(result, Matched):
            items.append(ExtractedItem(name=result.name, price=result.price))
        elif isinstance(result, Rejected):
            rejected += 1
        else:
            unmatched += 1

    log.info("extract.done", items=len(items), rejected=rejected, unmatched=unmatched)
    return items


def extract(raw_text: str) -> list[BillItem]:
    """Return candidate bill items with fresh ids and nobody assigned."""
    return [BillItem(id=new_id(), name=item.name, price=item.price) for item in extract_items(raw_text)]

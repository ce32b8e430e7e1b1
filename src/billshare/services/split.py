from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, localcontext
from fractions import Fraction
from typing import Mapping, Sequence

from billshare.db.models import BillItem, Participant
from billshare.utils.parse import CENT


# Enough significant digits that converting an exact share back to Decimal
# never loses a visible cent, even over thousands of items.
SHARE_PRECISION = 34


@dataclass(frozen=True, slots=True)
class SplitResult:
    per_participant: Mapping[str, Decimal]
    total: Decimal

    @property
    def assigned_total(self) -> Decimal:
        return sum(self.per_participant.values(), Decimal(0))


def _to_decimal(value: Fraction) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = SHARE_PRECISION
        result = Decimal(value.numerator) / Decimal(value.denominator)
    return result


def calculate_total(items: Sequence[BillItem]) -> Decimal:
    return sum((item.price for item in items), Decimal(0))


def compute_split(items: Sequence[BillItem], participants: Sequence[Participant]) -> SplitResult:
    shares: dict[str, Fraction] = {participant.id: Fraction(0) for participant in participants}

    for item in items:
        if not item.participant_ids:
            continue
        share = Fraction(item.price) / len(item.participant_ids)
        for participant_id in item.participant_ids:
            if participant_id in shares:
                shares[participant_id] += share

    return SplitResult(
        per_participant={participant_id: _to_decimal(amount) for participant_id, amount in shares.items()},
        total=calculate_total(items),
    )


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)

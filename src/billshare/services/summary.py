from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from billshare.db.models import Bill
from billshare.services.split import round_money


CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


@dataclass(slots=True)
class SplitLine:
    participant_id: str
    participant_name: str
    amount: Decimal
    formatted_amount: str


def format_currency(amount: Decimal, currency: str = "USD") -> str:
    rounded = round_money(amount)
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{rounded:,.2f} {currency.upper()}"
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"


def build_split_lines(bill: Bill, currency: str = "USD") -> list[SplitLine]:
    lines: list[SplitLine] = []
    for participant in bill.participants:
        amount = bill.splits.get(participant.id, Decimal(0))
        lines.append(
            SplitLine(
                participant_id=participant.id,
                participant_name=participant.name,
                amount=round_money(amount),
                formatted_amount=format_currency(amount, currency),
            )
        )
    return lines


def build_bill_summary(bill: Bill, currency: str = "USD") -> dict[str, Any]:
    return {
        "totalBill": round_money(bill.total_amount),
        "formattedTotalBill": format_currency(bill.total_amount, currency),
        "splits": [
            {
                "participantId": line.participant_id,
                "participantName": line.participant_name,
                "amount": line.amount,
                "formattedAmount": line.formatted_amount,
            }
            for line in build_split_lines(bill, currency)
        ],
        "itemCount": len(bill.items),
        "participantCount": len(bill.participants),
    }

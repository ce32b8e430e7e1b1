from decimal import Decimal

from billshare.services.session import build_direct_bill
from billshare.services.summary import build_bill_summary, format_currency


def test_format_currency():
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(Decimal("3.333"), "eur") == "€3.33"
    assert format_currency(Decimal("7"), "CHF") == "7.00 CHF"


def test_build_bill_summary():
    bill = build_direct_bill(
        [
            {"name": "Pizza", "price": 10, "participantIds": ["a", "b", "c"]},
            {"name": "Bread", "price": 2},
        ],
        [{"id": "a", "name": "Ann"}, {"id": "b", "name": "Ben"}, {"id": "c", "name": "Cy"}],
    )

    summary = build_bill_summary(bill)

    assert summary["totalBill"] == Decimal("12.00")
    assert summary["formattedTotalBill"] == "$12.00"
    assert summary["itemCount"] == 2
    assert summary["participantCount"] == 3
    assert [line["participantName"] for line in summary["splits"]] == ["Ann", "Ben", "Cy"]
    assert [line["formattedAmount"] for line in summary["splits"]] == ["$3.33", "$3.33", "$3.33"]

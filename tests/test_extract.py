from decimal import Decimal

import pytest

from billshare.services.extract import (
    ExtractedItem,
    Matched,
    NoMatch,
    RejectReason,
    Rejected,
    extract,
    extract_items,
    parse_line,
)


RECEIPT = "Caesar Salad 12.99\nIced Tea $3.50\nSubtotal 16.49\nTax 1.32\nTotal 17.81"


def test_extract_restaurant_receipt():
    items = extract_items(RECEIPT)

    assert items == [
        ExtractedItem(name="Caesar Salad", price=Decimal("12.99")),
        ExtractedItem(name="Iced Tea", price=Decimal("3.50")),
    ]


def test_extract_assigns_fresh_ids_and_nobody():
    first = extract(RECEIPT)
    second = extract(RECEIPT)

    assert [item.name for item in first] == ["Caesar Salad", "Iced Tea"]
    assert all(item.participant_ids == () for item in first)
    assert len({item.id for item in first + second}) == 4


@pytest.mark.parametrize(
    "line",
    ["TOTAL 42.00", "Sales Tax 3.10", "subTotal $9.99", "Tip 5.00", "Grand total 120.50", "Service tip 4.00$"],
)
def test_aggregate_lines_are_rejected(line):
    result = parse_line(line)

    assert isinstance(result, Rejected)
    assert result.reason == RejectReason.RESERVED_WORD
    assert extract_items(line) == []


@pytest.mark.parametrize(
    "line, name, price",
    [
        ("Burger 12.99", "Burger", "12.99"),
        ("Pancakes $8.50", "Pancakes", "8.50"),
        ("Lemonade 8.50$", "Lemonade", "8.50"),
        ("Espresso 2.75 €", "Espresso", "2.75"),
        ("Nachos$7.25", "Nachos", "7.25"),
        ("Side of fries .99", "Side of fries", "0.99"),
        ("2 x Club Sandwich 21.00", "2 x Club Sandwich", "21.00"),
        ("  Soup of the day   6.5  ", "Soup of the day", "6.50"),
    ],
)
def test_accepted_line_shapes(line, name, price):
    assert parse_line(line) == Matched(name=name, price=Decimal(price))


@pytest.mark.parametrize("line", ["Free refill 0.00", "Water $0.0"])
def test_non_positive_price_is_rejected(line):
    result = parse_line(line)

    assert isinstance(result, Rejected)
    assert result.reason == RejectReason.NON_POSITIVE_PRICE


def test_short_name_is_rejected():
    result = parse_line("Ab 4.00")

    assert result == Rejected(name="Ab", price=Decimal("4.00"), reason=RejectReason.NAME_TOO_SHORT)


@pytest.mark.parametrize("line", ["THANK YOU FOR DINING", "Table 12", "Coffee 3", "04/05/2024 19:32", "$4.50"])
def test_lines_without_price_token_do_not_match(line):
    assert isinstance(parse_line(line), NoMatch)


def test_prices_are_normalised_to_cents():
    assert parse_line("Olive oil 4.999") == Matched(name="Olive oil", price=Decimal("5.00"))


def test_blank_and_garbage_text_yields_nothing():
    assert extract_items("") == []
    assert extract_items("\n   \n\t\n") == []
    assert extract_items("~~ ## ||| \n ?? ") == []


def test_items_keep_line_order_and_skip_noise():
    text = "\r\n".join(["PIZZERIA NAPOLI", "Margherita 11.00", "", "Tip 3.00", "Tiramisu 6.50", "Cash 20.00"])

    assert [item.name for item in extract_items(text)] == ["Margherita", "Tiramisu", "Cash"]

from decimal import Decimal

from billshare.db.models import BillItem, Participant
from billshare.services.split import calculate_total, compute_split, round_money


A = Participant(id="a", name="Alice")
B = Participant(id="b", name="Bob")
C = Participant(id="c", name="Cara")


def item(price: str, *ids: str, name: str = "Item") -> BillItem:
    return BillItem(id=f"{name}-{price}", name=name, price=Decimal(price), participant_ids=ids)


def test_compute_split_mixed_assignment():
    result = compute_split([item("10", "a", "b"), item("5", "a")], [A, B])

    assert result.per_participant == {"a": Decimal(10), "b": Decimal(5)}
    assert result.total == Decimal(15)


def test_participant_without_items_is_present_with_zero():
    result = compute_split([item("12.00", "a")], [A, B, C])

    assert set(result.per_participant) == {"a", "b", "c"}
    assert result.per_participant["b"] == 0
    assert result.per_participant["c"] == 0


def test_unassigned_item_counts_toward_total_only():
    result = compute_split([item("9.99", "a"), item("20.00")], [A, B])

    assert result.total == Decimal("29.99")
    assert result.per_participant == {"a": Decimal("9.99"), "b": Decimal(0)}
    assert result.assigned_total == Decimal("9.99")


def test_three_way_split_sums_back_to_total():
    items = [item("10.00", "a", "b", "c", name=f"Dish {i}") for i in range(50)]

    result = compute_split(items, [A, B, C])

    tolerance = Decimal("0.01") * len(items)
    assert abs(result.assigned_total - result.total) <= tolerance
    assert round_money(result.per_participant["a"]) == Decimal("166.67")
    # exact accumulation: 500 / 3 rounded once at the end, not 50 x 3.33
    assert round_money(sum(result.per_participant.values(), Decimal(0))) == Decimal("500.00")


def test_unknown_participant_ids_are_ignored():
    result = compute_split([item("6.00", "a", "ghost")], [A])

    assert result.per_participant == {"a": Decimal(3)}
    assert result.total == Decimal("6.00")


def test_no_items():
    result = compute_split([], [A])

    assert result.per_participant == {"a": Decimal(0)}
    assert result.total == 0
    assert calculate_total([]) == 0


def test_round_money_half_up():
    assert round_money(Decimal("2.005")) == Decimal("2.01")
    assert round_money(Decimal("3.3333333")) == Decimal("3.33")

import asyncio
from decimal import Decimal

import pytest

from billshare.db.models import SessionStatus
from billshare.errors import InvalidState, NotFound, ValidationError
from billshare.services.bills import BillService
from billshare.state import MemoryBillStore, MemorySessionStore, Pagination


def make_service() -> BillService:
    sessions = MemorySessionStore()
    return BillService(sessions, MemoryBillStore(sessions))


@pytest.mark.asyncio
async def test_get_returns_private_copy():
    store = MemorySessionStore()
    session = await store.create()

    copy = await store.get(session.id)
    copy.set_participants([{"name": "Alice"}])

    stored = await store.get(session.id)
    assert stored.participants == []


@pytest.mark.asyncio
async def test_unknown_session():
    store = MemorySessionStore()

    with pytest.raises(NotFound):
        await store.get("missing")
    with pytest.raises(NotFound):
        await store.delete("missing")


@pytest.mark.asyncio
async def test_service_flow_and_finalize():
    service = make_service()
    session = await service.create_session()

    await service.set_participants(session.id, [{"id": "a", "name": "Alice"}, {"id": "b", "name": "Bob"}])
    await service.set_items(
        session.id,
        [
            {"name": "Pizza", "price": "10.00", "participantIds": ["a", "b"]},
            {"name": "Wine", "price": "5.00", "participantIds": ["a"]},
        ],
    )
    calculated = await service.calculate(session.id)
    assert calculated.splits == {"a": Decimal(10), "b": Decimal(5)}

    bill = await service.finalize(session.id)

    assert bill.total_amount == Decimal(15)
    assert (await service.get_session(session.id)).status == SessionStatus.COMPLETED
    assert await service.get_bill(bill.id) == bill

    with pytest.raises(InvalidState):
        await service.set_items(session.id, [])
    with pytest.raises(InvalidState):
        await service.finalize(session.id)


@pytest.mark.asyncio
async def test_finalize_requires_calculation():
    service = make_service()
    session = await service.create_session()

    with pytest.raises(InvalidState):
        await service.finalize(session.id)

    assert await service.list_bills() == ([], Pagination(1, 0, 0, 10))


@pytest.mark.asyncio
async def test_failed_write_is_not_saved():
    service = make_service()
    session = await service.create_session()
    await service.set_participants(session.id, [{"id": "a", "name": "Alice"}])

    with pytest.raises(ValidationError):
        await service.set_items(session.id, [{"name": "Soup", "price": -3}])

    assert (await service.get_session(session.id)).items == []


@pytest.mark.asyncio
async def test_concurrent_adds_are_not_lost():
    service = make_service()
    session = await service.create_session()

    await asyncio.gather(*(service.add_participant(session.id, f"Guest {i}") for i in range(20)))

    stored = await service.get_session(session.id)
    assert len(stored.participants) == 20


@pytest.mark.asyncio
async def test_bill_pagination_and_delete():
    service = make_service()
    for price in range(1, 6):
        await service.save_bill([{"name": f"Item {price}", "price": price}], [{"name": "Solo"}])

    page, pagination = await service.list_bills(page=2, page_size=2)

    assert [bill.items[0].name for bill in page] == ["Item 3", "Item 4"]
    assert pagination == Pagination(current_page=2, total_pages=3, total_items=5, items_per_page=2)

    await service.delete_bill(page[0].id)
    with pytest.raises(NotFound):
        await service.get_bill(page[0].id)
    with pytest.raises(NotFound):
        await service.delete_bill(page[0].id)


@pytest.mark.asyncio
async def test_unknown_session_ids_leave_no_locks():
    service = make_service()

    for i in range(200):
        with pytest.raises(NotFound):
            await service.calculate(f"missing-{i}")
        with pytest.raises(NotFound):
            await service.finalize(f"missing-{i}")

    assert service._locks == {}
    assert not service._lock_users


@pytest.mark.asyncio
async def test_locks_released_after_concurrent_writes():
    service = make_service()
    session = await service.create_session()

    await asyncio.gather(*(service.add_participant(session.id, f"Guest {i}") for i in range(10)))

    assert len((await service.get_session(session.id)).participants) == 10
    assert service._locks == {}

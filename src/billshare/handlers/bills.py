from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from billshare.errors import ValidationError
from billshare.handlers.envelope import (
    serialize_bill,
    serialize_calculation,
    serialize_item,
    serialize_pagination,
    serialize_participant,
    serialize_session,
    success,
)
from billshare.handlers.schemas import (
    ExtractRequest,
    ItemsUpdate,
    ParticipantAdd,
    ParticipantsUpdate,
    SaveBillRequest,
)
from billshare.services.bills import BillService, get_global_service
from billshare.services.summary import build_bill_summary

bills_router = APIRouter(prefix="/bills", tags=["bills"])


@bills_router.post("/session", status_code=status.HTTP_201_CREATED)
async def create_session(service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    session = await service.create_session()
    return success(serialize_session(session))


@bills_router.get("/session/{session_id}")
async def get_session(session_id: str, service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    session = await service.get_session(session_id)
    return success(serialize_session(session))


@bills_router.put("/session/{session_id}/items")
async def update_items(
    session_id: str,
    body: ItemsUpdate,
    service: BillService = Depends(get_global_service),
) -> dict[str, Any]:
    session = await service.set_items(session_id, [item.to_item() for item in body.items])
    return success(serialize_session(session))


@bills_router.put("/session/{session_id}/participants")
async def update_participants(
    session_id: str,
    body: ParticipantsUpdate,
    service: BillService = Depends(get_global_service),
) -> dict[str, Any]:
    session = await service.set_participants(session_id, [p.to_participant() for p in body.participants])
    return success(serialize_session(session))


@bills_router.post("/session/{session_id}/participants", status_code=status.HTTP_201_CREATED)
async def add_participant(
    session_id: str,
    body: ParticipantAdd,
    service: BillService = Depends(get_global_service),
) -> dict[str, Any]:
    session, participant = await service.add_participant(session_id, body.name, body.display_tag)
    return success({"session": serialize_session(session), "participant": serialize_participant(participant)})


@bills_router.delete("/session/{session_id}/participants/{participant_id}")
async def remove_participant(
    session_id: str,
    participant_id: str,
    service: BillService = Depends(get_global_service),
) -> dict[str, Any]:
    session = await service.remove_participant(session_id, participant_id)
    return success(serialize_session(session))


@bills_router.post("/session/{session_id}/calculate")
async def calculate(session_id: str, service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    session = await service.calculate(session_id)
    return success({"session": serialize_session(session), "calculation": serialize_calculation(session)})


@bills_router.post("/extract")
async def extract_items(body: ExtractRequest, service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    items = service.extract(body.text)
    message = f"Found {len(items)} items." if items else "No items found, add them manually."
    return success([serialize_item(item) for item in items], message=message)


@bills_router.post("", status_code=status.HTTP_201_CREATED)
async def save_bill(body: SaveBillRequest, service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    if body.session_id:
        bill = await service.finalize(body.session_id)
    elif body.items is not None and body.participants is not None:
        bill = await service.save_bill(
            [item.to_item() for item in body.items],
            [p.to_participant() for p in body.participants],
        )
    else:
        raise ValidationError("Provide a sessionId, or items and participants.")
    return success(serialize_bill(bill))


@bills_router.get("")
async def list_bills(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: BillService = Depends(get_global_service),
) -> dict[str, Any]:
    bills, pagination = await service.list_bills(page, limit)
    return success([serialize_bill(bill) for bill in bills], pagination=serialize_pagination(pagination))


@bills_router.get("/{bill_id}")
async def get_bill(bill_id: str, service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    bill = await service.get_bill(bill_id)
    return success(serialize_bill(bill))


@bills_router.get("/{bill_id}/summary")
async def get_bill_summary(
    bill_id: str,
    currency: str = Query("USD", min_length=3, max_length=3),
    service: BillService = Depends(get_global_service),
) -> dict[str, Any]:
    bill = await service.get_bill(bill_id)
    return success(build_bill_summary(bill, currency))


@bills_router.delete("/{bill_id}")
async def delete_bill(bill_id: str, service: BillService = Depends(get_global_service)) -> dict[str, Any]:
    await service.delete_bill(bill_id)
    return success(message="Bill deleted successfully")

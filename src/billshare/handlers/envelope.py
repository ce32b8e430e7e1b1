"""Response envelope and wire serialisation.

Every response body is ``{success, data?, error?, message?, details?}``.
Amounts derived from a split are rounded to cents here and nowhere earlier;
Decimals leave as JSON numbers.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from fastapi.encoders import jsonable_encoder

from billshare.db.models import Bill, BillItem, Participant
from billshare.services.session import BillSession
from billshare.services.split import round_money
from billshare.services.uploads import StoredFile
from billshare.state import Pagination


def success(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    body.update(extra)
    return jsonable_encoder(body)


def failure(error: str, message: Optional[str] = None, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": error}
    if message is not None:
        body["message"] = message
    if details is not None:
        body["details"] = details
    return jsonable_encoder(body)


def _timestamp(value: datetime) -> str:
    return value.isoformat()


def _splits(splits: Optional[Mapping[str, Decimal]]) -> Optional[dict[str, Decimal]]:
    if splits is None:
        return None
    return {participant_id: round_money(amount) for participant_id, amount in splits.items()}


def serialize_item(item: BillItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "price": item.price,
        "participantIds": list(item.participant_ids),
    }


def serialize_participant(participant: Participant) -> dict[str, Any]:
    return {"id": participant.id, "name": participant.name, "displayTag": participant.display_tag}


def serialize_session(session: BillSession) -> dict[str, Any]:
    return {
        "id": session.id,
        "status": session.status.value,
        "items": [serialize_item(item) for item in session.items],
        "participants": [serialize_participant(p) for p in session.participants],
        "splits": _splits(session.splits),
        "totalAmount": round_money(session.total_amount) if session.total_amount is not None else None,
        "createdAt": _timestamp(session.created_at),
        "updatedAt": _timestamp(session.updated_at),
    }


def serialize_calculation(session: BillSession) -> dict[str, Any]:
    splits = session.splits or {}
    return {
        "totalBill": round_money(session.total_amount or Decimal(0)),
        "splits": [
            {
                "participantId": participant.id,
                "participantName": participant.name,
                "amount": round_money(splits.get(participant.id, Decimal(0))),
            }
            for participant in session.participants
        ],
        "calculatedAt": _timestamp(session.updated_at),
    }


def serialize_bill(bill: Bill) -> dict[str, Any]:
    return {
        "id": bill.id,
        "sessionId": bill.session_id,
        "items": [serialize_item(item) for item in bill.items],
        "participants": [serialize_participant(p) for p in bill.participants],
        "splits": _splits(bill.splits),
        "totalAmount": round_money(bill.total_amount),
        "createdAt": _timestamp(bill.created_at),
    }


def serialize_pagination(pagination: Pagination) -> dict[str, int]:
    return {
        "currentPage": pagination.current_page,
        "totalPages": pagination.total_pages,
        "totalItems": pagination.total_items,
        "itemsPerPage": pagination.items_per_page,
    }


def serialize_file(stored: StoredFile) -> dict[str, Any]:
    data = {
        "id": stored.id,
        "fileName": stored.file_name,
        "filePath": stored.file_path,
        "size": stored.size,
        "mimeType": stored.mime_type,
        "createdAt": _timestamp(stored.created_at),
        "modifiedAt": _timestamp(stored.modified_at),
    }
    if stored.original_name is not None:
        data["originalName"] = stored.original_name
    return data

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    DRAFT = "draft"
    CALCULATED = "calculated"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class Participant:
    id: str
    name: str
    display_tag: str = ""


@dataclass(frozen=True, slots=True)
class BillItem:
    id: str
    name: str
    price: Decimal
    participant_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Bill:
    id: str
    items: tuple[BillItem, ...]
    participants: tuple[Participant, ...]
    splits: Mapping[str, Decimal]
    total_amount: Decimal
    session_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


# Records keep full decimal precision as strings so JSONB round trips are exact.


def participant_to_record(participant: Participant) -> dict[str, Any]:
    return {"id": participant.id, "name": participant.name, "displayTag": participant.display_tag}


def participant_from_record(row: Mapping[str, Any]) -> Participant:
    return Participant(id=row["id"], name=row["name"], display_tag=row.get("displayTag", ""))


def item_to_record(item: BillItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "price": str(item.price),
        "participantIds": list(item.participant_ids),
    }


def item_from_record(row: Mapping[str, Any]) -> BillItem:
    return BillItem(
        id=row["id"],
        name=row["name"],
        price=Decimal(row["price"]),
        participant_ids=tuple(row.get("participantIds", ())),
    )


def bill_to_record(bill: Bill) -> dict[str, Any]:
    return {
        "id": bill.id,
        "sessionId": bill.session_id,
        "items": [item_to_record(item) for item in bill.items],
        "participants": [participant_to_record(p) for p in bill.participants],
        "splits": {key: str(value) for key, value in bill.splits.items()},
        "totalAmount": str(bill.total_amount),
        "createdAt": bill.created_at.isoformat(),
    }


def bill_from_record(row: Mapping[str, Any]) -> Bill:
    return Bill(
        id=row["id"],
        session_id=row.get("sessionId"),
        items=tuple(item_from_record(item) for item in row["items"]),
        participants=tuple(participant_from_record(p) for p in row["participants"]),
        splits={key: Decimal(value) for key, value in row["splits"].items()},
        total_amount=Decimal(row["totalAmount"]),
        created_at=datetime.fromisoformat(row["createdAt"]),
    )

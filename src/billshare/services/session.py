"""Bill session entity and its lifecycle transitions.

A session moves ``draft -> calculated -> completed``. Any write to items or
participants while ``calculated`` drops the split results and returns the
session to ``draft``; a ``completed`` session accepts no writes at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from billshare.db.models import (
    Bill,
    BillItem,
    Participant,
    SessionStatus,
    item_from_record,
    item_to_record,
    participant_from_record,
    participant_to_record,
    utcnow,
)
from billshare.errors import InvalidState, NotFound, ValidationError
from billshare.services.split import compute_split
from billshare.utils.parse import new_id, parse_name, parse_price


def build_item(data: Mapping[str, Any], index: int = 0) -> BillItem:
    """Validate one raw item mapping. Accepts ``participantIds`` or ``sharedWith``."""
    try:
        name = parse_name(data.get("name"), field=f"items[{index}].name")
        price = parse_price(data.get("price"), field=f"items[{index}].price")
    except AttributeError as exc:
        raise ValidationError("Each item must be an object", details={"index": index}) from exc

    raw_ids = data.get("participantIds", data.get("sharedWith")) or ()
    if isinstance(raw_ids, (str, bytes)) or not isinstance(raw_ids, Iterable):
        raise ValidationError(
            "participantIds must be an array", details={"field": f"items[{index}].participantIds"}
        )
    participant_ids = tuple(dict.fromkeys(str(pid) for pid in raw_ids))
    return BillItem(id=data.get("id") or new_id(), name=name, price=price, participant_ids=participant_ids)


def build_participant(data: Mapping[str, Any], index: int = 0) -> Participant:
    """Validate one raw participant mapping. Accepts ``displayTag`` or ``color``."""
    try:
        name = parse_name(data.get("name"), field=f"participants[{index}].name")
    except AttributeError as exc:
        raise ValidationError("Each participant must be an object", details={"index": index}) from exc
    tag = data.get("displayTag", data.get("color")) or ""
    return Participant(id=data.get("id") or new_id(), name=name, display_tag=str(tag))


def _ensure_item(item: BillItem | Mapping[str, Any], index: int) -> BillItem:
    if isinstance(item, BillItem):
        if not item.name.strip():
            raise ValidationError("Item name is required", details={"field": f"items[{index}].name"})
        price = parse_price(item.price, field=f"items[{index}].price")
        return replace(item, id=item.id or new_id(), name=item.name.strip(), price=price)
    return build_item(item, index)


def _ensure_participant(participant: Participant | Mapping[str, Any], index: int) -> Participant:
    if isinstance(participant, Participant):
        if not participant.name.strip():
            raise ValidationError(
                "Participant name is required", details={"field": f"participants[{index}].name"}
            )
        return replace(participant, id=participant.id or new_id(), name=participant.name.strip())
    return build_participant(participant, index)


def _unique_ids(entities: Iterable[Any], kind: str) -> None:
    seen: set[str] = set()
    for entity in entities:
        if entity.id in seen:
            raise ValidationError(f"Duplicate {kind} id", details={"id": entity.id})
        seen.add(entity.id)


@dataclass(slots=True)
class BillSession:
    id: str
    items: list[BillItem] = field(default_factory=list)
    participants: list[Participant] = field(default_factory=list)
    splits: Optional[Mapping[str, Decimal]] = None
    total_amount: Optional[Decimal] = None
    status: SessionStatus = SessionStatus.DRAFT
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls, session_id: Optional[str] = None) -> "BillSession":
        return cls(id=session_id or new_id())

    def copy(self) -> "BillSession":
        # Items and participants are frozen, so copying the containers is enough.
        return replace(
            self,
            items=list(self.items),
            participants=list(self.participants),
            splits=dict(self.splits) if self.splits is not None else None,
        )

    @property
    def participant_ids(self) -> set[str]:
        return {participant.id for participant in self.participants}

    def _ensure_writable(self) -> None:
        if self.status == SessionStatus.COMPLETED:
            raise InvalidState("Session is completed and can no longer be changed.")

    def _begin_write(self) -> None:
        self._ensure_writable()
        if self.status == SessionStatus.CALCULATED:
            self.status = SessionStatus.DRAFT
            self.splits = None
            self.total_amount = None

    def _touch(self) -> None:
        self.updated_at = utcnow()

    def _prune(self, items: Iterable[BillItem]) -> list[BillItem]:
        known = self.participant_ids
        pruned = []
        for item in items:
            kept = tuple(pid for pid in item.participant_ids if pid in known)
            pruned.append(item if kept == item.participant_ids else replace(item, participant_ids=kept))
        return pruned

    def set_items(self, items: Iterable[BillItem | Mapping[str, Any]]) -> None:
        self._ensure_writable()
        validated = [_ensure_item(item, index) for index, item in enumerate(items)]
        _unique_ids(validated, "item")
        known = self.participant_ids
        for item in validated:
            unknown = [pid for pid in item.participant_ids if pid not in known]
            if unknown:
                raise ValidationError(
                    "Item references unknown participants",
                    details={"itemId": item.id, "participantIds": unknown},
                )

        self._begin_write()
        self.items = validated
        self._touch()

    def set_participants(self, participants: Iterable[Participant | Mapping[str, Any]]) -> None:
        self._ensure_writable()
        validated = [_ensure_participant(p, index) for index, p in enumerate(participants)]
        _unique_ids(validated, "participant")

        self._begin_write()
        self.participants = validated
        self.items = self._prune(self.items)
        self._touch()

    def add_participant(self, name: str, display_tag: Optional[str] = None) -> Participant:
        self._ensure_writable()
        participant = build_participant({"name": name, "displayTag": display_tag}, len(self.participants))

        self._begin_write()
        self.participants.append(participant)
        self._touch()
        return participant

    def remove_participant(self, participant_id: str) -> Participant:
        self._ensure_writable()
        removed = next((p for p in self.participants if p.id == participant_id), None)
        if removed is None:
            raise NotFound("Participant", participant_id)

        self._begin_write()
        self.participants = [p for p in self.participants if p.id != participant_id]
        self.items = self._prune(self.items)
        self._touch()
        return removed

    def calculate(self) -> None:
        if self.status == SessionStatus.COMPLETED:
            raise InvalidState("Session is completed and can no longer be recalculated.")
        if not self.participants:
            raise InvalidState("Add at least one participant before calculating.")

        result = compute_split(self.items, self.participants)
        self.splits = result.per_participant
        self.total_amount = result.total
        self.status = SessionStatus.CALCULATED
        self._touch()

    def complete(self) -> Bill:
        """Snapshot into an immutable bill. Called by the bill store on finalize."""
        if self.status != SessionStatus.CALCULATED or self.splits is None or self.total_amount is None:
            raise InvalidState("Session must be calculated before it can be saved as a bill.")

        bill = Bill(
            id=new_id(),
            session_id=self.id,
            items=tuple(self.items),
            participants=tuple(self.participants),
            splits=MappingProxyType(dict(self.splits)),
            total_amount=self.total_amount,
        )
        self.status = SessionStatus.COMPLETED
        self._touch()
        return bill


def build_direct_bill(
    items: Iterable[BillItem | Mapping[str, Any]],
    participants: Iterable[Participant | Mapping[str, Any]],
) -> Bill:
    """Compute and snapshot a bill that never went through a session."""
    session = BillSession.create()
    session.set_participants(participants)
    session.set_items(items)
    session.calculate()
    assert session.splits is not None and session.total_amount is not None
    return Bill(
        id=new_id(),
        items=tuple(session.items),
        participants=tuple(session.participants),
        splits=MappingProxyType(dict(session.splits)),
        total_amount=session.total_amount,
    )


def session_to_record(session: BillSession) -> dict[str, Any]:
    return {
        "id": session.id,
        "items": [item_to_record(item) for item in session.items],
        "participants": [participant_to_record(p) for p in session.participants],
        "splits": {key: str(value) for key, value in session.splits.items()} if session.splits is not None else None,
        "totalAmount": str(session.total_amount) if session.total_amount is not None else None,
        "status": session.status.value,
        "createdAt": session.created_at.isoformat(),
        "updatedAt": session.updated_at.isoformat(),
    }


def session_from_record(row: Mapping[str, Any]) -> BillSession:
    splits = row.get("splits")
    total = row.get("totalAmount")
    return BillSession(
        id=row["id"],
        items=[item_from_record(item) for item in row.get("items", ())],
        participants=[participant_from_record(p) for p in row.get("participants", ())],
        splits={key: Decimal(value) for key, value in splits.items()} if splits is not None else None,
        total_amount=Decimal(total) if total is not None else None,
        status=SessionStatus(row["status"]),
        created_at=datetime.fromisoformat(row["createdAt"]),
        updated_at=datetime.fromisoformat(row["updatedAt"]),
    )

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from billshare.db.models import BillItem, Participant
from billshare.utils.parse import new_id


class ItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    participant_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("participantIds", "sharedWith", "participant_ids"),
    )

    def to_item(self) -> BillItem:
        return BillItem(
            id=self.id or new_id(),
            name=self.name,
            price=self.price,
            participant_ids=tuple(dict.fromkeys(self.participant_ids)),
        )


class ParticipantIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    display_tag: str = Field("", validation_alias=AliasChoices("displayTag", "color", "display_tag"))

    def to_participant(self) -> Participant:
        return Participant(id=self.id or new_id(), name=self.name, display_tag=self.display_tag)


class ItemsUpdate(BaseModel):
    items: list[ItemIn]


class ParticipantsUpdate(BaseModel):
    participants: list[ParticipantIn] = Field(..., validation_alias=AliasChoices("participants", "friends"))


class ParticipantAdd(BaseModel):
    name: str = Field(..., min_length=1)
    display_tag: Optional[str] = Field(None, validation_alias=AliasChoices("displayTag", "color", "display_tag"))


class ExtractRequest(BaseModel):
    text: str


class SaveBillRequest(BaseModel):
    session_id: Optional[str] = Field(None, validation_alias=AliasChoices("sessionId", "session_id"))
    items: Optional[list[ItemIn]] = None
    participants: Optional[list[ParticipantIn]] = Field(
        None, validation_alias=AliasChoices("participants", "friends")
    )


class CleanupRequest(BaseModel):
    older_than_days: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("olderThanDays", "older_than_days")
    )

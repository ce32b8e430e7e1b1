"""Session and bill stores.

Both stores are async so the in-memory versions here and the PostgreSQL
versions in ``billshare.db.repo`` are interchangeable. Stores never hand out
their own objects: ``get`` returns a copy and ``save`` replaces the stored
record, so a reader never observes a session halfway through a write.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol

from billshare.db.models import Bill
from billshare.errors import NotFound
from billshare.logging import get_logger
from billshare.services.session import BillSession


@dataclass(frozen=True, slots=True)
class Pagination:
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    @classmethod
    def build(cls, page: int, page_size: int, total_items: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total_items / page_size) if page_size else 0,
            total_items=total_items,
            items_per_page=page_size,
        )


class SessionStore(Protocol):
    async def create(self) -> BillSession: ...

    async def get(self, session_id: str) -> BillSession: ...

    async def save(self, session: BillSession) -> None: ...

    async def delete(self, session_id: str) -> None: ...


class BillStore(Protocol):
    async def save(self, bill: Bill) -> Bill: ...

    async def finalize(self, session: BillSession) -> Bill: ...

    async def list(self, page: int = 1, page_size: int = 10) -> tuple[list[Bill], Pagination]: ...

    async def get(self, bill_id: str) -> Bill: ...

    async def delete(self, bill_id: str) -> None: ...


class MemorySessionStore:
    def __init__(self) -> None:
        self._sessions: dict[str, BillSession] = {}
        self._log = get_logger(__name__)

    async def create(self) -> BillSession:
        session = BillSession.create()
        self._sessions[session.id] = session.copy()
        self._log.info("session.created", session_id=session.id)
        return session

    async def get(self, session_id: str) -> BillSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFound("Session", session_id)
        return session.copy()

    async def save(self, session: BillSession) -> None:
        self._sessions[session.id] = session.copy()

    async def delete(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise NotFound("Session", session_id)

    def __len__(self) -> int:
        return len(self._sessions)


class MemoryBillStore:
    """Bills kept in insertion order. Bills are frozen so no copies are needed."""

    def __init__(self, sessions: SessionStore) -> None:
        self._bills: dict[str, Bill] = {}
        self._sessions = sessions
        self._log = get_logger(__name__)

    async def save(self, bill: Bill) -> Bill:
        self._bills[bill.id] = bill
        self._log.info("bill.saved", bill_id=bill.id, session_id=bill.session_id)
        return bill

    async def finalize(self, session: BillSession) -> Bill:
        bill = session.complete()
        await self.save(bill)
        await self._sessions.save(session)
        return bill

    async def list(self, page: int = 1, page_size: int = 10) -> tuple[list[Bill], Pagination]:
        bills = list(self._bills.values())
        start = (page - 1) * page_size
        return bills[start : start + page_size], Pagination.build(page, page_size, len(bills))

    async def get(self, bill_id: str) -> Bill:
        bill = self._bills.get(bill_id)
        if bill is None:
            raise NotFound("Bill", bill_id)
        return bill

    async def delete(self, bill_id: str) -> None:
        if self._bills.pop(bill_id, None) is None:
            raise NotFound("Bill", bill_id)
        self._log.info("bill.deleted", bill_id=bill_id)

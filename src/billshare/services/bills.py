"""Operations behind the request surface.

Writes to one session are serialised through a per-session lock: each write
reads the whole session, applies one transition and saves the whole session
back. Reads go straight to the store.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Iterable, Mapping, Optional, TypeVar

from billshare.db.models import Bill, BillItem, Participant
from billshare.logging import get_logger
from billshare.services import extract as extractor
from billshare.services.ocr import OcrProvider
from billshare.services.session import BillSession, build_direct_bill
from billshare.services.uploads import ReceiptStorage
from billshare.state import BillStore, Pagination, SessionStore


T = TypeVar("T")


class BillService:
    def __init__(
        self,
        sessions: SessionStore,
        bills: BillStore,
        storage: Optional[ReceiptStorage] = None,
        ocr: Optional[OcrProvider] = None,
    ) -> None:
        self.sessions = sessions
        self.bills = bills
        self.storage = storage
        self.ocr = ocr
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()
        self._log = get_logger(__name__)

    @asynccontextmanager
    async def _session_lock(self, session_id: str) -> AsyncIterator[None]:
        # Entries live only while some coroutine holds or awaits the lock.
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._lock_users[session_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
                del self._locks[session_id]

    async def _write(self, session_id: str, action: Callable[[BillSession], T]) -> tuple[BillSession, T]:
        async with self._session_lock(session_id):
            session = await self.sessions.get(session_id)
            result = action(session)
            await self.sessions.save(session)
            return session, result

    async def create_session(self) -> BillSession:
        return await self.sessions.create()

    async def get_session(self, session_id: str) -> BillSession:
        return await self.sessions.get(session_id)

    async def set_items(self, session_id: str, items: Iterable[BillItem | Mapping[str, Any]]) -> BillSession:
        items = list(items)
        session, _ = await self._write(session_id, lambda s: s.set_items(items))
        self._log.info("session.items.updated", session_id=session_id, items=len(session.items))
        return session

    async def set_participants(
        self, session_id: str, participants: Iterable[Participant | Mapping[str, Any]]
    ) -> BillSession:
        participants = list(participants)
        session, _ = await self._write(session_id, lambda s: s.set_participants(participants))
        self._log.info(
            "session.participants.updated", session_id=session_id, participants=len(session.participants)
        )
        return session

    async def add_participant(
        self, session_id: str, name: str, display_tag: Optional[str] = None
    ) -> tuple[BillSession, Participant]:
        session, participant = await self._write(session_id, lambda s: s.add_participant(name, display_tag))
        self._log.info("session.participant.added", session_id=session_id, participant_id=participant.id)
        return session, participant

    async def remove_participant(self, session_id: str, participant_id: str) -> BillSession:
        session, _ = await self._write(session_id, lambda s: s.remove_participant(participant_id))
        self._log.info("session.participant.removed", session_id=session_id, participant_id=participant_id)
        return session

    async def calculate(self, session_id: str) -> BillSession:
        session, _ = await self._write(session_id, lambda s: s.calculate())
        self._log.info("session.calculated", session_id=session_id, total=str(session.total_amount))
        return session

    async def finalize(self, session_id: str) -> Bill:
        async with self._session_lock(session_id):
            session = await self.sessions.get(session_id)
            bill = await self.bills.finalize(session)
        self._log.info("session.completed", session_id=session_id, bill_id=bill.id)
        return bill

    async def save_bill(
        self,
        items: Iterable[BillItem | Mapping[str, Any]],
        participants: Iterable[Participant | Mapping[str, Any]],
    ) -> Bill:
        return await self.bills.save(build_direct_bill(items, participants))

    async def list_bills(self, page: int = 1, page_size: int = 10) -> tuple[list[Bill], Pagination]:
        return await self.bills.list(page, page_size)

    async def get_bill(self, bill_id: str) -> Bill:
        return await self.bills.get(bill_id)

    async def delete_bill(self, bill_id: str) -> None:
        await self.bills.delete(bill_id)

    def extract(self, text: str) -> list[BillItem]:
        return extractor.extract(text)

    async def scan_receipt(self, file_id: str) -> tuple[str, list[BillItem]]:
        if self.storage is None or self.ocr is None:
            raise RuntimeError("receipt scanning is not configured")
        image = await asyncio.to_thread(self.storage.read, file_id)
        text = await asyncio.to_thread(self.ocr.recognize, image)
        items = extractor.extract(text)
        self._log.info("receipt.scanned", file_id=file_id, items=len(items))
        return text, items


_global_service: BillService | None = None


def set_global_service(service: BillService) -> None:
    global _global_service
    _global_service = service


def get_global_service() -> BillService:
    if _global_service is None:
        raise RuntimeError("BillService is not initialised")
    return _global_service

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import asyncpg

from billshare.db.models import Bill, bill_from_record, bill_to_record
from billshare.errors import NotFound
from billshare.logging import get_logger, sql_logger
from billshare.services.session import BillSession, session_from_record, session_to_record
from billshare.state import Pagination


class Database:
    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._pool: asyncpg.Pool | None = None
        self._log = get_logger(__name__)

    async def connect(self) -> None:
        if self._pool is None:
            # asyncpg expects a plain postgresql:// scheme, without "+asyncpg"
            dsn = self._dsn.replace("+asyncpg", "")
            self._pool = await asyncpg.create_pool(dsn)
            self._log.info("db.pool.created")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            self._log.info("db.pool.closed")

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetch", query=query, args=args)
        return await self._pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetchrow", query=query, args=args)
        return await self._pool.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.fetchval", query=query, args=args)
        return await self._pool.fetchval(query, *args)

    async def execute(self, query: str, *args: Any) -> str:
        await self._ensure_pool()
        assert self._pool
        sql_logger.info("sql.execute", query=query, args=args)
        return await self._pool.execute(query, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        await self._ensure_pool()
        assert self._pool
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                sql_logger.info("sql.transaction")
                yield conn

    async def _ensure_pool(self) -> None:
        if self._pool is None:
            await self.connect()


def _load(payload: Any) -> dict[str, Any]:
    # asyncpg hands jsonb back as text unless a codec is registered
    return json.loads(payload) if isinstance(payload, str) else dict(payload)


_UPSERT_SESSION = """
    INSERT INTO bill_sessions (id, status, payload, created_at, updated_at)
    VALUES ($1, $2, $3::jsonb, $4, $5)
    ON CONFLICT (id) DO UPDATE
        SET status = EXCLUDED.status,
            payload = EXCLUDED.payload,
            updated_at = EXCLUDED.updated_at
"""

_INSERT_BILL = """
    INSERT INTO bills (id, session_id, payload, total_amount, created_at)
    VALUES ($1, $2, $3::jsonb, $4, $5)
"""


class PgSessionStore:
    def __init__(self, db: Database) -> None:
        self.db = db
        self._log = get_logger(__name__)

    async def create(self) -> BillSession:
        session = BillSession.create()
        await self.save(session)
        self._log.info("session.created", session_id=session.id)
        return session

    async def get(self, session_id: str) -> BillSession:
        row = await self.db.fetchrow("SELECT payload FROM bill_sessions WHERE id = $1", session_id)
        if row is None:
            raise NotFound("Session", session_id)
        return session_from_record(_load(row["payload"]))

    async def save(self, session: BillSession) -> None:
        await self.db.execute(_UPSERT_SESSION, *self._args(session))

    async def delete(self, session_id: str) -> None:
        result = await self.db.execute("DELETE FROM bill_sessions WHERE id = $1", session_id)
        if result.endswith(" 0"):
            raise NotFound("Session", session_id)

    @staticmethod
    def _args(session: BillSession) -> tuple[Any, ...]:
        return (
            session.id,
            session.status.value,
            json.dumps(session_to_record(session)),
            session.created_at,
            session.updated_at,
        )


class PgBillStore:
    def __init__(self, db: Database) -> None:
        self.db = db
        self._log = get_logger(__name__)

    async def save(self, bill: Bill) -> Bill:
        await self.db.execute(_INSERT_BILL, *self._args(bill))
        self._log.info("bill.saved", bill_id=bill.id, session_id=bill.session_id)
        return bill

    async def finalize(self, session: BillSession) -> Bill:
        bill = session.complete()
        async with self.db.transaction() as conn:
            await conn.execute(_INSERT_BILL, *self._args(bill))
            await conn.execute(_UPSERT_SESSION, *PgSessionStore._args(session))
        self._log.info("bill.saved", bill_id=bill.id, session_id=bill.session_id)
        return bill

    async def list(self, page: int = 1, page_size: int = 10) -> tuple[list[Bill], Pagination]:
        total = await self.db.fetchval("SELECT count(*) FROM bills")
        rows = await self.db.fetch(
            "SELECT payload FROM bills ORDER BY created_at, id LIMIT $1 OFFSET $2",
            page_size,
            (page - 1) * page_size,
        )
        bills = [bill_from_record(_load(row["payload"])) for row in rows]
        return bills, Pagination.build(page, page_size, int(total or 0))

    async def get(self, bill_id: str) -> Bill:
        row = await self.db.fetchrow("SELECT payload FROM bills WHERE id = $1", bill_id)
        if row is None:
            raise NotFound("Bill", bill_id)
        return bill_from_record(_load(row["payload"]))

    async def delete(self, bill_id: str) -> None:
        result = await self.db.execute("DELETE FROM bills WHERE id = $1", bill_id)
        if result.endswith(" 0"):
            raise NotFound("Bill", bill_id)
        self._log.info("bill.deleted", bill_id=bill_id)

    @staticmethod
    def _args(bill: Bill) -> tuple[Any, ...]:
        return (
            bill.id,
            bill.session_id,
            json.dumps(bill_to_record(bill)),
            bill.total_amount,
            bill.created_at,
        )

"""
ormsql SQLite connection via aiosqlite.

    connection = SQLiteConnection("sqlite:///app.db")
    await connection.connect()

    async with connection.transaction():
        await connection.insert(User, [user_a, user_b])

Statements outside ``transaction()`` are committed immediately.
Nested ``transaction()`` blocks use savepoints.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import aiosqlite

from ..config import ConnectionConfig
from ..faults import ConnectionStateFault
from ..sql.sqlite import SQLiteQueryGenerator
from .base import QueryResult, SQLConnectionBase

logger = logging.getLogger("ormsql.connection.sqlite")

__all__ = ["SQLiteConnection"]


class SQLiteConnection(SQLConnectionBase):
    """
    SQLite connection.

    Parameters:
        database – ``":memory:"``, a file path or a ``sqlite:///path`` URL
                   (defaults to ``config.database``)
        config   – ConnectionConfig
    """

    dialect = "sqlite"
    query_generator_class = SQLiteQueryGenerator

    def __init__(self, database: Optional[str] = None, config: Optional[ConnectionConfig] = None):
        super().__init__(config)
        self.database = self._parse_url(database or self.config.database)
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self._transaction_depth = 0

    @staticmethod
    def _parse_url(url: str) -> str:
        for prefix in ("sqlite:///", "sqlite://"):
            if url.startswith(prefix):
                return url[len(prefix):] or ":memory:"
        return url or ":memory:"

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        if self._connection is not None:
            return
        async with self._lock:
            if self._connection is not None:
                return
            self._connection = await aiosqlite.connect(self.database, timeout=self.config.timeout)
            if self.config.foreign_keys:
                await self._connection.execute("PRAGMA foreign_keys=ON")
            logger.info(f"SQLite connected: {self.database}")

    async def disconnect(self) -> None:
        if self._connection is None:
            return
        async with self._lock:
            if self._connection is not None:
                await self._connection.close()
                self._connection = None
            self._transaction_depth = 0
            logger.info("SQLite disconnected")

    async def query(self, sql: str, **options: Any) -> QueryResult:
        if self._connection is None:
            raise ConnectionStateFault("sqlite", "not connected")

        self._log_sql(sql)
        try:
            async with self._connection.execute(sql) as cursor:
                if cursor.description:
                    columns = [description[0] for description in cursor.description]
                    rows = [list(row) for row in await cursor.fetchall()]
                    result = QueryResult(columns=columns, rows=rows, changes=max(cursor.rowcount, 0))
                else:
                    result = QueryResult(changes=max(cursor.rowcount, 0))
        except aiosqlite.Error:
            logger.debug(f"SQLite error while running: {sql}")
            raise

        if self._transaction_depth == 0:
            await self._connection.commit()

        return result

    # ── Transactions ─────────────────────────────────────────────────

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLiteConnection]:
        """BEGIN/COMMIT, or ROLLBACK when the block raises."""
        if self._connection is None:
            raise ConnectionStateFault("sqlite", "not connected")

        depth = self._transaction_depth
        savepoint = f"ormsql_sp_{depth}"

        if depth == 0:
            await self._connection.execute("BEGIN")
        else:
            await self._connection.execute(f'SAVEPOINT "{savepoint}"')
        self._transaction_depth += 1

        try:
            yield self
        except BaseException:
            self._transaction_depth -= 1
            if depth == 0:
                await self._connection.rollback()
            else:
                await self._connection.execute(f'ROLLBACK TO SAVEPOINT "{savepoint}"')
            raise
        else:
            self._transaction_depth -= 1
            if depth == 0:
                await self._connection.commit()
            else:
                await self._connection.execute(f'RELEASE SAVEPOINT "{savepoint}"')

    async def enable_foreign_key_constraints(self, enable: bool) -> None:
        await self.query(f"PRAGMA foreign_keys = {'ON' if enable else 'OFF'}")

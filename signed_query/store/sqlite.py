from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol, Sequence, Union, runtime_checkable

import aiosqlite

from signed_query.errors import StoreError
from signed_query.query_docs.models import Rowset

logger = logging.getLogger(__name__)


@runtime_checkable
class Store(Protocol):
    # The only capability the exchange needs from a data store
    def execute(self, query: str) -> Rowset: ...


# --- SQLite store ------------------------------------

class SqliteStore:
    """
    Store backed by one SQLite database file.

    fetch() / apply_script() are coroutines; execute() / run_script() are
    blocking wrappers meant for the party threads (no running event loop).
    """
    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)

    async def fetch(self, query: str) -> Rowset:
        async with aiosqlite.connect(str(self.db_path)) as db:
            async with db.execute(query) as cur:
                rows = await cur.fetchall()
                columns = tuple(d[0] for d in (cur.description or ()))
        return Rowset(columns=columns, rows=tuple(tuple(r) for r in rows))

    def execute(self, query: str) -> Rowset:
        try:
            rowset = asyncio.run(self.fetch(query))
        except sqlite3.Error as e:
            raise StoreError(f"query failed: {e}") from e
        logger.info("store returned %d rows for query", len(rowset))
        return rowset

    async def apply_script(self, script: str) -> int:
        """Run each ';'-separated statement; returns how many were executed."""
        statements = [s.strip() for s in script.split(";")]
        statements = [s for s in statements if s]
        async with aiosqlite.connect(str(self.db_path)) as db:
            for stmt in statements:
                await db.execute(stmt)
            await db.commit()
        return len(statements)

    def run_script(self, script: Union[str, Path]) -> int:
        """
        Initialize the database from a SQL script (text or path to a .sql file).
        """
        text = script.read_text(encoding="utf-8") if isinstance(script, Path) else script
        try:
            n = asyncio.run(self.apply_script(text))
        except sqlite3.Error as e:
            raise StoreError(f"schema script failed: {e}") from e
        logger.info("applied %d statements to %s", n, self.db_path)
        return n


# --- Static store ------------------------------------

class StaticStore:
    """
    Store that answers every query with the same rowset and records the
    queries it received.
    """
    def __init__(
        self,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]],
        *,
        error: Optional[Exception] = None,
    ):
        self.rowset = Rowset(columns=tuple(columns), rows=tuple(tuple(r) for r in rows))
        self.queries: list[str] = []
        self._error = error

    def execute(self, query: str) -> Rowset:
        self.queries.append(query)
        if self._error is not None:
            raise StoreError(str(self._error)) from self._error
        return self.rowset

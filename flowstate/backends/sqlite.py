"""SQLite implementation of the item store."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Mapping, Optional

from ..errors import BackendError, ConditionFailedError
from .base import (
    INDEXES,
    Index,
    Item,
    KeyValueBackend,
    apply_changes,
    dump_item,
    matches,
    strip_none,
)

logger = logging.getLogger(__name__)

# attribute -> column holding a copy of it for indexed lookups
INDEX_COLUMNS = {
    "entityType": "entity_type",
    "workflowName": "workflow_name",
    "status": "status",
    "createdAt": "created_at",
    "hookId": "hook_id",
    "token": "token",
    "correlationId": "correlation_id",
}


def _row_values(item: Mapping[str, Any]) -> tuple:
    return (
        item["PK"],
        item["SK"],
        *(item.get(attr) for attr in INDEX_COLUMNS),
        dump_item(item),
    )


class SQLiteBackend(KeyValueBackend):
    """Persist items in a single SQLite table.

    Attributes backing secondary indexes are copied into their own columns;
    the full item is kept as JSON in ``data``.
    """

    name = "sqlite"

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._create_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _create_schema(self) -> None:
        columns = ",\n".join(
            f"{column} {'INTEGER' if attr == 'createdAt' else 'TEXT'}"
            for attr, column in INDEX_COLUMNS.items()
        )
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS items (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    {columns},
                    data TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )
            for index in INDEXES:
                indexed = [INDEX_COLUMNS[index.hash_attr]]
                if index.range_attr:
                    indexed.append(INDEX_COLUMNS[index.range_attr])
                cur.execute(
                    f"CREATE INDEX IF NOT EXISTS ix_{index.name} ON items ({', '.join(indexed)})"
                )

    async def ensure_schema(self) -> None:
        await asyncio.to_thread(self._create_schema)
        logger.info(f"SQLite schema ready at {self.db_path}")

    async def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Helper methods
    def _run(self, fn, *args: Any) -> Any:
        with self._lock:
            try:
                return fn(self._conn.cursor(), *args)
            except sqlite3.Error as exc:
                raise BackendError(f"SQLite operation failed: {exc}") from exc
            finally:
                # never leave a transaction open for later autocommit writes
                if self._conn.in_transaction:
                    self._conn.rollback()

    def _get(self, cur: sqlite3.Cursor, pk: str, sk: str) -> Optional[Item]:
        cur.execute("SELECT data FROM items WHERE pk = ? AND sk = ?", (pk, sk))
        row = cur.fetchone()
        return json.loads(row["data"]) if row else None

    def _put(self, cur: sqlite3.Cursor, row: tuple, if_absent: bool) -> None:
        placeholders = ", ".join("?" for _ in range(len(INDEX_COLUMNS) + 3))
        columns = ", ".join(("pk", "sk", *INDEX_COLUMNS.values(), "data"))
        verb = "INSERT" if if_absent else "INSERT OR REPLACE"
        try:
            cur.execute(
                f"{verb} INTO items ({columns}) VALUES ({placeholders})",
                row,
            )
        except sqlite3.IntegrityError as exc:
            raise ConditionFailedError(f"Item already exists: {row[:2]}") from exc

    def _update(
        self,
        cur: sqlite3.Cursor,
        pk: str,
        sk: str,
        changes: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]],
    ) -> Item:
        # stored items are valid JSON; only the changes can fail to encode
        dump_item(changes)
        cur.execute("BEGIN IMMEDIATE")
        current = self._get(cur, pk, sk)
        if current is None or not matches(current, expected):
            cur.execute("ROLLBACK")
            raise ConditionFailedError(f"Condition failed for item: {(pk, sk)}")
        updated = apply_changes(current, changes)
        self._put(cur, _row_values(updated), if_absent=False)
        cur.execute("COMMIT")
        return updated

    def _delete(self, cur: sqlite3.Cursor, pk: str, sk: str) -> Optional[Item]:
        cur.execute("BEGIN IMMEDIATE")
        current = self._get(cur, pk, sk)
        if current is not None:
            cur.execute("DELETE FROM items WHERE pk = ? AND sk = ?", (pk, sk))
        cur.execute("COMMIT")
        return current

    def _select(self, cur: sqlite3.Cursor, query: str, params: list[Any]) -> list[Item]:
        cur.execute(query, params)
        return [json.loads(row["data"]) for row in cur.fetchall()]

    # ------------------------------------------------------------------
    # Backend API
    async def get_item(self, pk: str, sk: str) -> Optional[Item]:
        return await asyncio.to_thread(self._run, self._get, pk, sk)

    async def put_item(self, item: Mapping[str, Any], *, if_absent: bool = False) -> None:
        row = _row_values(strip_none(item))
        await asyncio.to_thread(self._run, self._put, row, if_absent)

    async def update_item(
        self,
        pk: str,
        sk: str,
        changes: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Item:
        return await asyncio.to_thread(self._run, self._update, pk, sk, changes, expected)

    async def delete_item(self, pk: str, sk: str) -> Optional[Item]:
        return await asyncio.to_thread(self._run, self._delete, pk, sk)

    async def query(
        self,
        pk: str,
        *,
        sk_prefix: str,
        after: Optional[str] = None,
        descending: bool = False,
        limit: int,
    ) -> list[Item]:
        query = "SELECT data FROM items WHERE pk = ? AND substr(sk, 1, ?) = ?"
        params: list[Any] = [pk, len(sk_prefix), sk_prefix]
        if after is not None:
            query += f" AND sk {'<' if descending else '>'} ?"
            params.append(after)
        query += f" ORDER BY sk {'DESC' if descending else 'ASC'} LIMIT ?"
        params.append(limit)
        return await asyncio.to_thread(self._run, self._select, query, params)

    async def query_index(
        self,
        index: Index,
        value: Any,
        *,
        after: Any = None,
        descending: bool = False,
        limit: int,
        entity_type: Optional[str] = None,
    ) -> list[Item]:
        direction = "DESC" if descending else "ASC"
        query = f"SELECT data FROM items WHERE {INDEX_COLUMNS[index.hash_attr]} = ?"
        params: list[Any] = [value]
        if entity_type is not None:
            query += " AND entity_type = ?"
            params.append(entity_type)
        order = []
        if index.range_attr is not None:
            range_column = INDEX_COLUMNS[index.range_attr]
            query += f" AND {range_column} IS NOT NULL"
            if after is not None:
                query += f" AND {range_column} {'<' if descending else '>'} ?"
                params.append(after)
            order.append(f"{range_column} {direction}")
        order.extend((f"pk {direction}", f"sk {direction}"))
        query += f" ORDER BY {', '.join(order)} LIMIT ?"
        params.append(limit)
        return await asyncio.to_thread(self._run, self._select, query, params)

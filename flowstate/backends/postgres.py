"""PostgreSQL implementation of the item store."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

import asyncpg

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
from .sqlite import INDEX_COLUMNS

logger = logging.getLogger(__name__)

_COLUMNS = ("pk", "sk", *INDEX_COLUMNS.values(), "data")


def _row_values(item: Mapping[str, Any]) -> list[Any]:
    return [
        item["PK"],
        item["SK"],
        *(item.get(attr) for attr in INDEX_COLUMNS),
        dump_item(item),
    ]


class PostgresBackend(KeyValueBackend):
    """Persist items in a single PostgreSQL table."""

    name = "postgres"

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        try:
            conn = await asyncpg.connect(self._dsn)
            if not self._initialized:
                await self._create_schema(conn)
                self._initialized = True
        except (asyncpg.PostgresError, OSError) as exc:
            raise BackendError(f"PostgreSQL connection failed: {exc}") from exc
        return conn

    async def _create_schema(self, conn: asyncpg.Connection) -> None:
        columns = ",\n".join(
            f"{column} {'BIGINT' if attr == 'createdAt' else 'TEXT'}"
            for attr, column in INDEX_COLUMNS.items()
        )
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS items (
                pk TEXT COLLATE "C" NOT NULL,
                sk TEXT COLLATE "C" NOT NULL,
                {columns},
                data JSONB NOT NULL,
                PRIMARY KEY (pk, sk)
            )
            """
        )
        for index in INDEXES:
            indexed = [INDEX_COLUMNS[index.hash_attr]]
            if index.range_attr:
                indexed.append(INDEX_COLUMNS[index.range_attr])
            await conn.execute(
                f"CREATE INDEX IF NOT EXISTS ix_{index.name.lower()} ON items ({', '.join(indexed)})"
            )

    async def ensure_schema(self) -> None:
        conn = await self._connect()
        await conn.close()
        logger.info("PostgreSQL schema ready")

    # ------------------------------------------------------------------
    # Helper methods
    async def _write(self, conn: asyncpg.Connection, row: list[Any], if_absent: bool) -> str:
        count = len(_COLUMNS)
        placeholders = ", ".join(f"${i}" for i in range(1, count)) + f", ${count}::jsonb"
        statement = f"INSERT INTO items ({', '.join(_COLUMNS)}) VALUES ({placeholders})"
        if if_absent:
            statement += " ON CONFLICT (pk, sk) DO NOTHING"
        else:
            assignments = ", ".join(f"{col} = EXCLUDED.{col}" for col in _COLUMNS[2:])
            statement += f" ON CONFLICT (pk, sk) DO UPDATE SET {assignments}"
        return await conn.execute(statement, *row)

    async def _fetch(self, query: str, *params: Any) -> list[Item]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(query, *params)
        except asyncpg.PostgresError as exc:
            raise BackendError(f"PostgreSQL query failed: {exc}") from exc
        finally:
            await conn.close()
        return [json.loads(row["data"]) for row in rows]

    # ------------------------------------------------------------------
    # Backend API
    async def get_item(self, pk: str, sk: str) -> Optional[Item]:
        rows = await self._fetch("SELECT data FROM items WHERE pk = $1 AND sk = $2", pk, sk)
        return rows[0] if rows else None

    async def put_item(self, item: Mapping[str, Any], *, if_absent: bool = False) -> None:
        row = _row_values(strip_none(item))
        conn = await self._connect()
        try:
            status = await self._write(conn, row, if_absent)
        except asyncpg.PostgresError as exc:
            raise BackendError(f"PostgreSQL insert failed: {exc}") from exc
        finally:
            await conn.close()
        if if_absent and status.endswith(" 0"):
            raise ConditionFailedError(f"Item already exists: {(item['PK'], item['SK'])}")

    async def update_item(
        self,
        pk: str,
        sk: str,
        changes: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Item:
        dump_item(changes)
        conn = await self._connect()
        try:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "SELECT data FROM items WHERE pk = $1 AND sk = $2 FOR UPDATE", pk, sk
                )
                current = json.loads(row["data"]) if row else None
                if current is None or not matches(current, expected):
                    raise ConditionFailedError(f"Condition failed for item: {(pk, sk)}")
                updated = apply_changes(current, changes)
                await self._write(conn, _row_values(updated), if_absent=False)
        except asyncpg.PostgresError as exc:
            raise BackendError(f"PostgreSQL update failed: {exc}") from exc
        finally:
            await conn.close()
        return updated

    async def delete_item(self, pk: str, sk: str) -> Optional[Item]:
        rows = await self._fetch(
            "DELETE FROM items WHERE pk = $1 AND sk = $2 RETURNING data", pk, sk
        )
        return rows[0] if rows else None

    async def query(
        self,
        pk: str,
        *,
        sk_prefix: str,
        after: Optional[str] = None,
        descending: bool = False,
        limit: int,
    ) -> list[Item]:
        query = "SELECT data FROM items WHERE pk = $1 AND left(sk, $2) = $3"
        params: list[Any] = [pk, len(sk_prefix), sk_prefix]
        if after is not None:
            params.append(after)
            query += f" AND sk {'<' if descending else '>'} ${len(params)}"
        params.append(limit)
        query += f" ORDER BY sk {'DESC' if descending else 'ASC'} LIMIT ${len(params)}"
        return await self._fetch(query, *params)

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
        params: list[Any] = [value]
        query = f"SELECT data FROM items WHERE {INDEX_COLUMNS[index.hash_attr]} = $1"
        if entity_type is not None:
            params.append(entity_type)
            query += f" AND entity_type = ${len(params)}"
        order = []
        if index.range_attr is not None:
            range_column = INDEX_COLUMNS[index.range_attr]
            query += f" AND {range_column} IS NOT NULL"
            if after is not None:
                params.append(int(after))
                query += f" AND {range_column} {'<' if descending else '>'} ${len(params)}"
            order.append(f"{range_column} {direction}")
        order.extend((f"pk {direction}", f"sk {direction}"))
        params.append(limit)
        query += f" ORDER BY {', '.join(order)} LIMIT ${len(params)}"
        return await self._fetch(query, *params)

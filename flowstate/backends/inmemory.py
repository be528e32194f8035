"""In-memory implementation of the item store."""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Mapping, Optional

from ..errors import ConditionFailedError
from .base import (
    Index,
    Item,
    KeyValueBackend,
    apply_changes,
    matches,
    past_cursor,
    strip_none,
)


class InMemoryBackend(KeyValueBackend):
    """Store items in local memory.

    Useful for tests or when no backend is configured. Data is not
    persisted across process restarts.
    """

    name = "inmemory"

    def __init__(self) -> None:
        self._items: dict[tuple[str, str], Item] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    async def get_item(self, pk: str, sk: str) -> Optional[Item]:
        item = self._items.get((pk, sk))
        return copy.deepcopy(item) if item is not None else None

    async def put_item(self, item: Mapping[str, Any], *, if_absent: bool = False) -> None:
        key = (item["PK"], item["SK"])
        async with self._lock:
            if if_absent and key in self._items:
                raise ConditionFailedError(f"Item already exists: {key}")
            self._items[key] = copy.deepcopy(strip_none(item))

    async def update_item(
        self,
        pk: str,
        sk: str,
        changes: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Item:
        async with self._lock:
            current = self._items.get((pk, sk))
            if current is None or not matches(current, expected):
                raise ConditionFailedError(f"Condition failed for item: {(pk, sk)}")
            updated = apply_changes(current, copy.deepcopy(dict(changes)))
            self._items[(pk, sk)] = updated
            return copy.deepcopy(updated)

    async def delete_item(self, pk: str, sk: str) -> Optional[Item]:
        async with self._lock:
            return self._items.pop((pk, sk), None)

    async def query(
        self,
        pk: str,
        *,
        sk_prefix: str,
        after: Optional[str] = None,
        descending: bool = False,
        limit: int,
    ) -> list[Item]:
        found = [
            item
            for (item_pk, item_sk), item in self._items.items()
            if item_pk == pk
            and item_sk.startswith(sk_prefix)
            and past_cursor(item_sk, after, descending)
        ]
        found.sort(key=lambda item: item["SK"], reverse=descending)
        return copy.deepcopy(found[:limit])

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
        found = []
        for item in self._items.values():
            if item.get(index.hash_attr) != value:
                continue
            if entity_type is not None and item.get("entityType") != entity_type:
                continue
            if index.range_attr is not None:
                # sparse index: items without the range attribute are not indexed
                if item.get(index.range_attr) is None:
                    continue
                if not past_cursor(item[index.range_attr], after, descending):
                    continue
            found.append(item)

        def sort_key(item: Item) -> tuple:
            rank = item[index.range_attr] if index.range_attr else 0
            return (rank, item["PK"], item["SK"])

        found.sort(key=sort_key, reverse=descending)
        return copy.deepcopy(found[:limit])

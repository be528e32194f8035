"""Keyed item store contract shared by all storage backends."""

from __future__ import annotations

import abc
import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..errors import BackendError

Item = dict[str, Any]


@dataclass(frozen=True)
class Index:
    """A secondary index: items keyed by ``hash_attr`` ordered by ``range_attr``."""

    name: str
    hash_attr: str
    range_attr: Optional[str] = None


WORKFLOW_NAME_INDEX = Index("workflowNameIndex", "workflowName", "createdAt")
STATUS_INDEX = Index("statusIndex", "status", "createdAt")
ENTITY_TYPE_INDEX = Index("entityTypeIndex", "entityType", "createdAt")
HOOK_ID_INDEX = Index("hookIdIndex", "hookId")
TOKEN_INDEX = Index("tokenIndex", "token")
CORRELATION_INDEX = Index("correlationIndex", "correlationId", "createdAt")

INDEXES = (
    WORKFLOW_NAME_INDEX,
    STATUS_INDEX,
    ENTITY_TYPE_INDEX,
    HOOK_ID_INDEX,
    TOKEN_INDEX,
    CORRELATION_INDEX,
)


def strip_none(item: Mapping[str, Any]) -> Item:
    """Drop ``None`` attributes; a stored null and a missing attribute are equal."""
    return {key: value for key, value in item.items() if value is not None}


def dump_item(item: Mapping[str, Any]) -> str:
    """Encode an item as JSON; unencodable values are a backend failure."""
    try:
        return json.dumps(item)
    except (TypeError, ValueError) as exc:
        key = (item.get("PK"), item.get("SK"))
        raise BackendError(f"Item {key} is not JSON serializable: {exc}") from exc


def apply_changes(item: Mapping[str, Any], changes: Mapping[str, Any]) -> Item:
    """Return ``item`` with ``changes`` set; ``None`` values remove the attribute."""
    updated = dict(item)
    for key, value in changes.items():
        if value is None:
            updated.pop(key, None)
        else:
            updated[key] = value
    return updated


def matches(item: Mapping[str, Any], expected: Optional[Mapping[str, Any]]) -> bool:
    if not expected:
        return True
    return all(item.get(key) == value for key, value in expected.items())


def past_cursor(value: Any, after: Any, descending: bool) -> bool:
    """Whether ``value`` lies strictly beyond ``after`` in scan direction."""
    if after is None:
        return True
    return value < after if descending else value > after


class KeyValueBackend(metaclass=abc.ABCMeta):
    """Abstract ordered key-value store addressed by ``(PK, SK)``.

    Items are plain dicts holding their own ``PK`` and ``SK`` attributes.
    Failures unrelated to application preconditions must surface as
    :class:`~flowstate.errors.BackendError`; rejected conditional writes as
    :class:`~flowstate.errors.ConditionFailedError`.
    """

    name = "abstract"

    async def ensure_schema(self) -> None:
        """Create tables and indexes if missing (no-op by default)."""
        pass

    async def close(self) -> None:
        """Release connections (no-op by default)."""
        pass

    @abc.abstractmethod
    async def get_item(self, pk: str, sk: str) -> Optional[Item]:
        """Return the item at ``(pk, sk)`` or ``None``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def put_item(self, item: Mapping[str, Any], *, if_absent: bool = False) -> None:
        """Write ``item``; with ``if_absent`` reject it if the key is taken."""
        raise NotImplementedError

    @abc.abstractmethod
    async def update_item(
        self,
        pk: str,
        sk: str,
        changes: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Item:
        """Apply ``changes`` to an existing item and return its new state.

        ``None`` values remove the attribute. Raises ``ConditionFailedError``
        when the item is missing or an ``expected`` attribute differs.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def delete_item(self, pk: str, sk: str) -> Optional[Item]:
        """Delete the item and return its previous state, if any."""
        raise NotImplementedError

    @abc.abstractmethod
    async def query(
        self,
        pk: str,
        *,
        sk_prefix: str,
        after: Optional[str] = None,
        descending: bool = False,
        limit: int,
    ) -> list[Item]:
        """Range query within a partition ordered by ``SK``.

        Only items whose ``SK`` starts with ``sk_prefix`` are returned, and
        only those strictly past ``after`` in scan direction.
        """
        raise NotImplementedError

    @abc.abstractmethod
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
        """Query a secondary index for ``hash_attr == value``.

        Results are ordered by the index range attribute, restricted to
        ``entity_type`` when given and to values strictly past ``after``.
        """
        raise NotImplementedError

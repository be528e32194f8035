"""Hook persistence."""

from __future__ import annotations

from typing import Callable, Optional

from ..backends.base import (
    ENTITY_TYPE_INDEX,
    HOOK_ID_INDEX,
    TOKEN_INDEX,
    Index,
    Item,
    KeyValueBackend,
)
from ..errors import ConditionFailedError, ConflictError, NotFoundError
from ..ids import now_ms
from ..keys import HOOK_ENTITY, HOOK_PREFIX, hook_sk, run_pk
from ..models import CreateHookRequest, Hook, ListHooksParams, PaginatedResponse
from ..projection import project_hook
from .base import page_limit, paginate, timestamp_cursor


class HookStore:
    """Persist hooks under their run's partition as ``HOOK#<hookId>`` items.

    Hooks are looked up globally through the ``hookIdIndex`` and
    ``tokenIndex`` secondary indexes, since callers usually know only the
    hook id or its token.
    """

    default_limit = 100

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._backend = backend
        self._clock = clock or now_ms

    async def create(self, run_id: str, data: CreateHookRequest) -> Hook:
        item = {
            "PK": run_pk(run_id),
            "SK": hook_sk(data.hook_id),
            "entityType": HOOK_ENTITY,
            "runId": run_id,
            "hookId": data.hook_id,
            "token": data.token,
            "ownerId": "",
            "projectId": "",
            "environment": "",
            "createdAt": self._clock(),
        }
        try:
            await self._backend.put_item(item, if_absent=True)
        except ConditionFailedError as exc:
            raise ConflictError(f"Hook {data.hook_id} already exists") from exc
        return project_hook(item)

    async def get(self, hook_id: str) -> Hook:
        item = await self._find(HOOK_ID_INDEX, hook_id)
        if item is None:
            raise NotFoundError(f"Hook not found: {hook_id}")
        return project_hook(item)

    async def get_by_token(self, token: str) -> Hook:
        item = await self._find(TOKEN_INDEX, token)
        if item is None:
            raise NotFoundError("Hook not found for token")
        return project_hook(item)

    async def dispose(self, hook_id: str) -> Hook:
        item = await self._find(HOOK_ID_INDEX, hook_id)
        if item is None:
            raise NotFoundError(f"Hook not found: {hook_id}")
        deleted = await self._backend.delete_item(item["PK"], item["SK"])
        if deleted is None:
            raise NotFoundError(f"Hook not found: {hook_id}")
        return project_hook(deleted)

    async def list(
        self, params: Optional[ListHooksParams] = None
    ) -> PaginatedResponse[Hook]:
        """List hooks of one run, or of all runs when no run id is given.

        Per-run listing pages by ``hookId``; the global listing goes through
        the entity type index newest first and pages by ``createdAt``.
        """
        params = params or ListHooksParams()
        limit = page_limit(params.pagination, self.default_limit)
        cursor = params.pagination.cursor

        if params.run_id:
            items = await self._backend.query(
                run_pk(params.run_id),
                sk_prefix=HOOK_PREFIX,
                after=hook_sk(cursor) if cursor else None,
                descending=True,
                limit=limit + 1,
            )
            return paginate(items, limit, project_hook, "hookId")

        items = await self._backend.query_index(
            ENTITY_TYPE_INDEX,
            HOOK_ENTITY,
            after=timestamp_cursor(cursor),
            descending=True,
            limit=limit + 1,
            entity_type=HOOK_ENTITY,
        )
        return paginate(items, limit, project_hook, "createdAt")

    # ------------------------------------------------------------------
    async def _find(self, index: Index, value: str) -> Optional[Item]:
        # backend errors propagate; only an empty result means "not found"
        items = await self._backend.query_index(
            index, value, limit=1, entity_type=HOOK_ENTITY
        )
        return items[0] if items else None

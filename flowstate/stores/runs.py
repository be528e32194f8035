"""Run persistence."""

from __future__ import annotations

from typing import Any, Callable, Optional

from ..backends.base import (
    ENTITY_TYPE_INDEX,
    STATUS_INDEX,
    WORKFLOW_NAME_INDEX,
    KeyValueBackend,
)
from ..errors import ConditionFailedError, ConflictError, NotFoundError
from ..ids import RUN_ID_PREFIX, IdGenerator, now_ms
from ..keys import RUN_ENTITY, run_meta_sk, run_pk
from ..models import (
    RUN_TERMINAL_STATUSES,
    CreateRunRequest,
    ListRunsParams,
    PaginatedResponse,
    UpdateRunRequest,
    WorkflowRun,
)
from ..projection import project_run
from .base import page_limit, paginate, timestamp_cursor

UPDATABLE_FIELDS = (
    "status",
    "output",
    "error",
    "errorCode",
    "deploymentId",
    "executionContext",
)
# may be changed but never removed
REQUIRED_FIELDS = ("status", "deploymentId")


class RunStore:
    """Persist workflow runs as ``RUN#<runId>`` / ``RUN#METADATA`` items."""

    default_limit = 20

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._backend = backend
        self._clock = clock or now_ms
        self._new_id = IdGenerator(RUN_ID_PREFIX, self._clock)

    async def create(self, data: CreateRunRequest) -> WorkflowRun:
        run_id = self._new_id()
        now = self._clock()
        item = {
            "PK": run_pk(run_id),
            "SK": run_meta_sk(),
            "entityType": RUN_ENTITY,
            "runId": run_id,
            "workflowName": data.workflow_name,
            "input": data.input,
            "executionContext": data.execution_context,
            "deploymentId": data.deployment_id,
            "status": "pending",
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            await self._backend.put_item(item, if_absent=True)
        except ConditionFailedError as exc:
            raise ConflictError(f"Run {run_id} already exists") from exc
        return project_run(item)

    async def get(self, run_id: str) -> WorkflowRun:
        item = await self._backend.get_item(run_pk(run_id), run_meta_sk())
        if item is None:
            raise NotFoundError(f"Run not found: {run_id}")
        return project_run(item)

    async def cancel(self, run_id: str) -> WorkflowRun:
        now = self._clock()
        return await self._transition(
            run_id, {"status": "cancelled", "completedAt": now, "updatedAt": now}
        )

    async def pause(self, run_id: str) -> WorkflowRun:
        return await self._transition(
            run_id, {"status": "paused", "updatedAt": self._clock()}
        )

    async def resume(self, run_id: str) -> WorkflowRun:
        """Move a paused run back to ``running``.

        Fails with :class:`NotFoundError` both when the run is missing and
        when it exists but is not paused.
        """
        try:
            item = await self._backend.update_item(
                run_pk(run_id),
                run_meta_sk(),
                {"status": "running", "updatedAt": self._clock()},
                expected={"status": "paused"},
            )
        except ConditionFailedError as exc:
            raise NotFoundError(f"Paused run not found: {run_id}") from exc
        return project_run(item)

    async def update(self, run_id: str, data: UpdateRunRequest) -> WorkflowRun:
        pk, sk = run_pk(run_id), run_meta_sk()
        current = await self._backend.get_item(pk, sk)
        if current is None:
            raise NotFoundError(f"Run not found: {run_id}")

        fields = data.model_dump(by_alias=True, exclude_unset=True)
        changes: dict[str, Any] = {
            name: fields[name]
            for name in UPDATABLE_FIELDS
            if name in fields
            and not (name in REQUIRED_FIELDS and fields[name] is None)
        }
        if not changes:
            return project_run(current)

        now = self._clock()
        status = changes.get("status")
        if status == "running" and not current.get("startedAt"):
            changes["startedAt"] = now
        if status in RUN_TERMINAL_STATUSES:
            changes["completedAt"] = now
        changes["updatedAt"] = now

        try:
            item = await self._backend.update_item(pk, sk, changes)
        except ConditionFailedError as exc:
            raise NotFoundError(f"Run not found: {run_id}") from exc
        return project_run(item)

    async def list(
        self, params: Optional[ListRunsParams] = None
    ) -> PaginatedResponse[WorkflowRun]:
        """List runs newest first.

        Filters by workflow name if given, else by status, else returns all
        runs. The cursor is the ``createdAt`` of the last run on the page.
        """
        params = params or ListRunsParams()
        limit = page_limit(params.pagination, self.default_limit)

        if params.workflow_name:
            index, value = WORKFLOW_NAME_INDEX, params.workflow_name
        elif params.status:
            index, value = STATUS_INDEX, params.status
        else:
            index, value = ENTITY_TYPE_INDEX, RUN_ENTITY

        items = await self._backend.query_index(
            index,
            value,
            after=timestamp_cursor(params.pagination.cursor),
            descending=True,
            limit=limit + 1,
            entity_type=RUN_ENTITY,
        )
        return paginate(items, limit, project_run, "createdAt")

    # ------------------------------------------------------------------
    async def _transition(self, run_id: str, changes: dict[str, Any]) -> WorkflowRun:
        try:
            item = await self._backend.update_item(run_pk(run_id), run_meta_sk(), changes)
        except ConditionFailedError as exc:
            raise NotFoundError(f"Run not found: {run_id}") from exc
        return project_run(item)

"""Step persistence."""

from __future__ import annotations

from typing import Any, Callable, Optional

from ..backends.base import KeyValueBackend
from ..errors import ConditionFailedError, ConflictError, NotFoundError
from ..ids import STEP_ID_PREFIX, IdGenerator, now_ms
from ..keys import STEP_ENTITY, STEP_PREFIX, run_pk, step_sk
from ..models import (
    STEP_TERMINAL_STATUSES,
    CreateStepRequest,
    ListStepsParams,
    PaginatedResponse,
    Step,
    UpdateStepRequest,
)
from ..projection import project_step
from .base import page_limit, paginate

UPDATABLE_FIELDS = ("status", "output", "error", "errorCode", "attempt")
REQUIRED_FIELDS = ("status", "attempt")


class StepStore:
    """Persist steps under their run's partition as ``STEP#<stepId>`` items."""

    default_limit = 20

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._backend = backend
        self._clock = clock or now_ms
        self._new_id = IdGenerator(STEP_ID_PREFIX, self._clock)

    async def create(self, run_id: str, data: CreateStepRequest) -> Step:
        step_id = self._new_id() if data.step_id is None else data.step_id
        now = self._clock()
        item = {
            "PK": run_pk(run_id),
            "SK": step_sk(step_id),
            "entityType": STEP_ENTITY,
            "runId": run_id,
            "stepId": step_id,
            "stepName": data.step_name,
            "input": data.input,
            "status": "pending",
            "attempt": 1,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            await self._backend.put_item(item, if_absent=True)
        except ConditionFailedError as exc:
            raise ConflictError(f"Step {step_id} already exists") from exc
        return project_step(item)

    async def get(self, run_id: str, step_id: str) -> Step:
        if not run_id:
            raise NotFoundError(f"Run not found: {run_id}")
        item = await self._backend.get_item(run_pk(run_id), step_sk(step_id))
        if item is None:
            raise NotFoundError(f"Step not found: {step_id}")
        return project_step(item)

    async def update(self, run_id: str, step_id: str, data: UpdateStepRequest) -> Step:
        pk, sk = run_pk(run_id), step_sk(step_id)
        current = await self._backend.get_item(pk, sk)
        if current is None:
            raise NotFoundError(f"Step not found: {step_id}")

        fields = data.model_dump(by_alias=True, exclude_unset=True)
        changes: dict[str, Any] = {
            name: fields[name]
            for name in UPDATABLE_FIELDS
            if name in fields
            and not (name in REQUIRED_FIELDS and fields[name] is None)
        }

        now = self._clock()
        status = changes.get("status")
        if status == "running" and not current.get("startedAt"):
            changes["startedAt"] = now
        # cancelled steps keep completedAt unset
        if status in STEP_TERMINAL_STATUSES:
            changes["completedAt"] = now
        changes["updatedAt"] = now

        try:
            item = await self._backend.update_item(pk, sk, changes)
        except ConditionFailedError as exc:
            raise NotFoundError(f"Step not found: {step_id}") from exc
        return project_step(item)

    async def list(self, params: ListStepsParams) -> PaginatedResponse[Step]:
        """List a run's steps newest first; the cursor is the last ``stepId``."""
        limit = page_limit(params.pagination, self.default_limit)
        cursor = params.pagination.cursor
        items = await self._backend.query(
            run_pk(params.run_id),
            sk_prefix=STEP_PREFIX,
            after=step_sk(cursor) if cursor else None,
            descending=True,
            limit=limit + 1,
        )
        return paginate(items, limit, project_step, "stepId")

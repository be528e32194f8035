"""Call logging around the entity stores.

Each wrapper mirrors its store's methods explicitly and delegates to the
wrapped instance, logging the call, its result and any storage error.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Optional, TypeVar

from .errors import BackendError, ConflictError, NotFoundError
from .models import (
    CreateEventRequest,
    CreateHookRequest,
    CreateRunRequest,
    CreateStepRequest,
    Event,
    Hook,
    ListEventsByCorrelationIdParams,
    ListEventsParams,
    ListHooksParams,
    ListRunsParams,
    ListStepsParams,
    PaginatedResponse,
    Step,
    UpdateRunRequest,
    UpdateStepRequest,
    WorkflowRun,
)
from .repository import EventStorage, HookStorage, RunStorage, StepStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _redact(token: str) -> str:
    return f"<token len={len(token)}>"


async def _logged(label: str, call: Awaitable[T], *args: Any) -> T:
    logger.debug(f"Calling {label} with args: {args!r}")
    try:
        result = await call
    except (NotFoundError, ConflictError) as exc:
        logger.info(f"{label} failed ({exc.status}): {exc.message}")
        raise
    except BackendError as exc:
        logger.warning(f"{label} backend failure: {exc.message}")
        raise
    logger.debug(f"{label} result: {result!r}")
    return result


class LoggedRunStore:
    def __init__(self, inner: RunStorage) -> None:
        self.inner = inner

    async def create(self, data: CreateRunRequest) -> WorkflowRun:
        return await _logged("runs.create", self.inner.create(data), data)

    async def get(self, run_id: str) -> WorkflowRun:
        return await _logged("runs.get", self.inner.get(run_id), run_id)

    async def cancel(self, run_id: str) -> WorkflowRun:
        return await _logged("runs.cancel", self.inner.cancel(run_id), run_id)

    async def pause(self, run_id: str) -> WorkflowRun:
        return await _logged("runs.pause", self.inner.pause(run_id), run_id)

    async def resume(self, run_id: str) -> WorkflowRun:
        return await _logged("runs.resume", self.inner.resume(run_id), run_id)

    async def update(self, run_id: str, data: UpdateRunRequest) -> WorkflowRun:
        return await _logged("runs.update", self.inner.update(run_id, data), run_id, data)

    async def list(
        self, params: Optional[ListRunsParams] = None
    ) -> PaginatedResponse[WorkflowRun]:
        return await _logged("runs.list", self.inner.list(params), params)


class LoggedStepStore:
    def __init__(self, inner: StepStorage) -> None:
        self.inner = inner

    async def create(self, run_id: str, data: CreateStepRequest) -> Step:
        return await _logged("steps.create", self.inner.create(run_id, data), run_id, data)

    async def get(self, run_id: str, step_id: str) -> Step:
        return await _logged("steps.get", self.inner.get(run_id, step_id), run_id, step_id)

    async def update(self, run_id: str, step_id: str, data: UpdateStepRequest) -> Step:
        return await _logged(
            "steps.update", self.inner.update(run_id, step_id, data), run_id, step_id, data
        )

    async def list(self, params: ListStepsParams) -> PaginatedResponse[Step]:
        return await _logged("steps.list", self.inner.list(params), params)


class LoggedHookStore:
    def __init__(self, inner: HookStorage) -> None:
        self.inner = inner

    async def create(self, run_id: str, data: CreateHookRequest) -> Hook:
        return await _logged("hooks.create", self.inner.create(run_id, data), run_id, data)

    async def get(self, hook_id: str) -> Hook:
        return await _logged("hooks.get", self.inner.get(hook_id), hook_id)

    async def get_by_token(self, token: str) -> Hook:
        return await _logged(
            "hooks.get_by_token", self.inner.get_by_token(token), _redact(token)
        )

    async def dispose(self, hook_id: str) -> Hook:
        return await _logged("hooks.dispose", self.inner.dispose(hook_id), hook_id)

    async def list(
        self, params: Optional[ListHooksParams] = None
    ) -> PaginatedResponse[Hook]:
        return await _logged("hooks.list", self.inner.list(params), params)


class LoggedEventStore:
    def __init__(self, inner: EventStorage) -> None:
        self.inner = inner

    async def create(self, run_id: str, data: CreateEventRequest) -> Event:
        return await _logged("events.create", self.inner.create(run_id, data), run_id, data)

    async def list(self, params: ListEventsParams) -> PaginatedResponse[Event]:
        return await _logged("events.list", self.inner.list(params), params)

    async def list_by_correlation_id(
        self, params: ListEventsByCorrelationIdParams
    ) -> PaginatedResponse[Event]:
        return await _logged(
            "events.list_by_correlation_id",
            self.inner.list_by_correlation_id(params),
            params,
        )

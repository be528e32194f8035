"""Protocols describing the per-entity storage interfaces."""

from __future__ import annotations

from typing import Optional, Protocol

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


class RunStorage(Protocol):
    """Persistence of workflow runs."""

    async def create(self, data: CreateRunRequest) -> WorkflowRun:
        """Create a pending run with a generated id."""

    async def get(self, run_id: str) -> WorkflowRun:
        """Return the run or raise ``NotFoundError``."""

    async def cancel(self, run_id: str) -> WorkflowRun:
        """Mark the run cancelled."""

    async def pause(self, run_id: str) -> WorkflowRun:
        """Mark the run paused."""

    async def resume(self, run_id: str) -> WorkflowRun:
        """Move a paused run back to running."""

    async def update(self, run_id: str, data: UpdateRunRequest) -> WorkflowRun:
        """Merge a partial update into the run."""

    async def list(
        self, params: Optional[ListRunsParams] = None
    ) -> PaginatedResponse[WorkflowRun]:
        """Page through runs newest first."""


class StepStorage(Protocol):
    """Persistence of steps within a run."""

    async def create(self, run_id: str, data: CreateStepRequest) -> Step:
        """Create a pending step."""

    async def get(self, run_id: str, step_id: str) -> Step:
        """Return the step or raise ``NotFoundError``."""

    async def update(self, run_id: str, step_id: str, data: UpdateStepRequest) -> Step:
        """Merge a partial update into the step."""

    async def list(self, params: ListStepsParams) -> PaginatedResponse[Step]:
        """Page through a run's steps newest first."""


class HookStorage(Protocol):
    """Persistence of callback hooks."""

    async def create(self, run_id: str, data: CreateHookRequest) -> Hook:
        """Register a hook for a run."""

    async def get(self, hook_id: str) -> Hook:
        """Return the hook or raise ``NotFoundError``."""

    async def get_by_token(self, token: str) -> Hook:
        """Return the hook owning ``token`` or raise ``NotFoundError``."""

    async def dispose(self, hook_id: str) -> Hook:
        """Delete the hook and return it."""

    async def list(
        self, params: Optional[ListHooksParams] = None
    ) -> PaginatedResponse[Hook]:
        """Page through hooks of a run or of all runs."""


class EventStorage(Protocol):
    """Persistence of the append-only event log."""

    async def create(self, run_id: str, data: CreateEventRequest) -> Event:
        """Append an event to the run's log."""

    async def list(self, params: ListEventsParams) -> PaginatedResponse[Event]:
        """Page through a run's events."""

    async def list_by_correlation_id(
        self, params: ListEventsByCorrelationIdParams
    ) -> PaginatedResponse[Event]:
        """Page through events sharing a correlation id."""

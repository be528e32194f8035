"""Entity, request and pagination models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RunStatus = Literal["pending", "running", "paused", "completed", "failed", "cancelled"]
StepStatus = Literal["pending", "running", "completed", "failed", "cancelled"]
SortOrder = Literal["asc", "desc"]

RUN_TERMINAL_STATUSES = ("completed", "failed", "cancelled")
STEP_TERMINAL_STATUSES = ("completed", "failed")

T = TypeVar("T")


class FlowstateModel(BaseModel):
    """Base model using camelCase aliases for the stored/wire shape."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire shape, omitting fields that were never set."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


# ----------------------------------------------------------------------
# Entities


class WorkflowRun(FlowstateModel):
    """A single execution of a workflow."""

    run_id: str
    workflow_name: str
    input: Any = None
    execution_context: Optional[dict[str, Any]] = None
    deployment_id: str
    status: RunStatus
    output: Any = None
    error: Any = None
    error_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Step(FlowstateModel):
    """A step executed as part of a run."""

    run_id: str
    step_id: str
    step_name: str
    input: Any = None
    status: StepStatus
    attempt: int = 1
    output: Any = None
    error: Any = None
    error_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Hook(FlowstateModel):
    """A callback hook registered by a run, addressable by token."""

    run_id: str
    hook_id: str
    token: str = Field(repr=False)
    owner_id: str = ""
    project_id: str = ""
    environment: str = ""
    created_at: datetime


class Event(FlowstateModel):
    """An immutable entry in a run's event log."""

    run_id: str
    event_id: str
    event_type: str
    correlation_id: Optional[str] = None
    event_data: Any = None
    created_at: datetime


# ----------------------------------------------------------------------
# Requests


class CreateRunRequest(FlowstateModel):
    workflow_name: str
    input: Any = None
    deployment_id: str
    execution_context: Optional[dict[str, Any]] = None


class UpdateRunRequest(FlowstateModel):
    """Partial run update; only explicitly set fields are applied."""

    status: Optional[RunStatus] = None
    output: Any = None
    error: Any = None
    error_code: Optional[str] = None
    deployment_id: Optional[str] = None
    execution_context: Optional[dict[str, Any]] = None


class CreateStepRequest(FlowstateModel):
    step_name: str
    input: Any = None
    step_id: Optional[str] = None


class UpdateStepRequest(FlowstateModel):
    """Partial step update; only explicitly set fields are applied."""

    status: Optional[StepStatus] = None
    output: Any = None
    error: Any = None
    error_code: Optional[str] = None
    attempt: Optional[int] = Field(default=None, ge=1)


class CreateHookRequest(FlowstateModel):
    hook_id: str
    token: str = Field(repr=False)


class CreateEventRequest(FlowstateModel):
    """New event; ``event_data`` is stored only when it was passed."""

    event_type: str
    event_data: Any = None
    correlation_id: Optional[str] = None


# ----------------------------------------------------------------------
# Pagination


class PaginationOptions(FlowstateModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True
    )

    limit: Optional[int] = Field(default=None, ge=1)
    cursor: Optional[str] = None
    sort_order: SortOrder = "asc"


class ListRunsParams(FlowstateModel):
    workflow_name: Optional[str] = None
    status: Optional[RunStatus] = None
    pagination: PaginationOptions = Field(default_factory=PaginationOptions)


class ListStepsParams(FlowstateModel):
    run_id: str
    pagination: PaginationOptions = Field(default_factory=PaginationOptions)


class ListHooksParams(FlowstateModel):
    run_id: Optional[str] = None
    pagination: PaginationOptions = Field(default_factory=PaginationOptions)


class ListEventsParams(FlowstateModel):
    run_id: str
    pagination: PaginationOptions = Field(default_factory=PaginationOptions)


class ListEventsByCorrelationIdParams(FlowstateModel):
    correlation_id: str
    pagination: PaginationOptions = Field(default_factory=PaginationOptions)


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of results plus the cursor to fetch the next one."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data: list[T] = Field(default_factory=list)
    cursor: Optional[str] = None
    has_more: bool = False

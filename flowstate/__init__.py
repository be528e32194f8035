"""Flowstate: keyed-store persistence for workflow runs, steps, hooks and events."""

from .backends import KeyValueBackend, get_backend
from .errors import (
    BackendError,
    ConditionFailedError,
    ConflictError,
    NotFoundError,
    WorkflowStoreError,
)
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
    PaginationOptions,
    Step,
    UpdateRunRequest,
    UpdateStepRequest,
    WorkflowRun,
)
from .storage import Storage, create_storage, with_logging

__version__ = "0.1.0"
__all__ = [
    "BackendError",
    "ConditionFailedError",
    "ConflictError",
    "CreateEventRequest",
    "CreateHookRequest",
    "CreateRunRequest",
    "CreateStepRequest",
    "Event",
    "Hook",
    "KeyValueBackend",
    "ListEventsByCorrelationIdParams",
    "ListEventsParams",
    "ListHooksParams",
    "ListRunsParams",
    "ListStepsParams",
    "NotFoundError",
    "PaginatedResponse",
    "PaginationOptions",
    "Step",
    "Storage",
    "UpdateRunRequest",
    "UpdateStepRequest",
    "WorkflowRun",
    "WorkflowStoreError",
    "create_storage",
    "get_backend",
    "with_logging",
]

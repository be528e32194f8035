"""Project raw stored items into public entities.

Each entity has its own projection so the set of optional fields is explicit.
A stored ``None`` and a missing attribute are treated the same way: the field
is left unset on the model, and :meth:`FlowstateModel.to_dict` omits it.
Timestamps are stored as epoch milliseconds and returned as UTC datetimes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping

from .models import Event, Hook, Step, WorkflowRun

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_instant(value: int | float | datetime) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    if isinstance(value, datetime):
        return value
    return EPOCH + timedelta(milliseconds=int(value))


def _present(item: Mapping[str, Any], names: Iterable[str]) -> dict[str, Any]:
    return {name: item[name] for name in names if item.get(name) is not None}


def _instants(item: Mapping[str, Any], names: Iterable[str]) -> dict[str, datetime]:
    return {name: to_instant(item[name]) for name in names if item.get(name) is not None}


def project_run(item: Mapping[str, Any]) -> WorkflowRun:
    fields = _present(
        item,
        (
            "runId",
            "workflowName",
            "input",
            "executionContext",
            "deploymentId",
            "status",
            "output",
            "error",
            "errorCode",
        ),
    )
    fields.update(_instants(item, ("createdAt", "updatedAt", "startedAt", "completedAt")))
    return WorkflowRun.model_validate(fields)


def project_step(item: Mapping[str, Any]) -> Step:
    fields = _present(
        item,
        (
            "runId",
            "stepId",
            "stepName",
            "input",
            "status",
            "attempt",
            "output",
            "error",
            "errorCode",
        ),
    )
    fields.update(_instants(item, ("createdAt", "updatedAt", "startedAt", "completedAt")))
    return Step.model_validate(fields)


def project_hook(item: Mapping[str, Any]) -> Hook:
    fields = _present(
        item, ("runId", "hookId", "token", "ownerId", "projectId", "environment")
    )
    fields.update(_instants(item, ("createdAt",)))
    return Hook.model_validate(fields)


def project_event(item: Mapping[str, Any]) -> Event:
    fields = _present(item, ("runId", "eventId", "eventType", "correlationId", "eventData"))
    fields.update(_instants(item, ("createdAt",)))
    return Event.model_validate(fields)

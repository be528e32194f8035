"""Event log persistence."""

from __future__ import annotations

from typing import Callable, Optional

from ..backends.base import CORRELATION_INDEX, KeyValueBackend
from ..errors import ConditionFailedError, ConflictError
from ..ids import EVENT_ID_PREFIX, IdGenerator, now_ms
from ..keys import EVENT_ENTITY, EVENT_PREFIX, event_sk, run_pk
from ..models import (
    CreateEventRequest,
    Event,
    ListEventsByCorrelationIdParams,
    ListEventsParams,
    PaginatedResponse,
)
from ..projection import project_event
from .base import page_limit, paginate, timestamp_cursor


class EventStore:
    """Append-only event log stored as ``EVENT#<eventId>`` items.

    Event ids are monotonic ULIDs, so ordering by ``SK`` within a run is
    creation order.
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
        self._new_id = IdGenerator(EVENT_ID_PREFIX, self._clock)

    async def create(self, run_id: str, data: CreateEventRequest) -> Event:
        event_id = self._new_id()
        item = {
            "PK": run_pk(run_id),
            "SK": event_sk(event_id),
            "entityType": EVENT_ENTITY,
            "runId": run_id,
            "eventId": event_id,
            "correlationId": data.correlation_id,
            "eventType": data.event_type,
            "createdAt": self._clock(),
        }
        if "event_data" in data.model_fields_set:
            item["eventData"] = data.event_data
        try:
            await self._backend.put_item(item, if_absent=True)
        except ConditionFailedError as exc:
            raise ConflictError(f"Event {event_id} could not be created") from exc
        return project_event(item)

    async def list(self, params: ListEventsParams) -> PaginatedResponse[Event]:
        """List a run's events in ``sort_order`` (ascending by default)."""
        pagination = params.pagination
        limit = page_limit(pagination, self.default_limit)
        items = await self._backend.query(
            run_pk(params.run_id),
            sk_prefix=EVENT_PREFIX,
            after=event_sk(pagination.cursor) if pagination.cursor else None,
            descending=pagination.sort_order == "desc",
            limit=limit + 1,
        )
        return paginate(items, limit, project_event, "eventId")

    async def list_by_correlation_id(
        self, params: ListEventsByCorrelationIdParams
    ) -> PaginatedResponse[Event]:
        """List events sharing a correlation id, ordered by ``createdAt``."""
        pagination = params.pagination
        limit = page_limit(pagination, self.default_limit)
        items = await self._backend.query_index(
            CORRELATION_INDEX,
            params.correlation_id,
            after=timestamp_cursor(pagination.cursor),
            descending=pagination.sort_order == "desc",
            limit=limit + 1,
            entity_type=EVENT_ENTITY,
        )
        return paginate(items, limit, project_event, "createdAt")

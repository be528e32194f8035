"""Tests for the run event log."""

import pytest

from flowstate import (
    CreateEventRequest,
    ListEventsByCorrelationIdParams,
    ListEventsParams,
    PaginationOptions,
)


async def _append(storage, run_id, count, **fields):
    return [
        await storage.events.create(
            run_id, CreateEventRequest(event_type=f"event_{n}", **fields)
        )
        for n in range(count)
    ]


@pytest.mark.asyncio
async def test_create_keeps_event_data_and_correlation(storage):
    event = await storage.events.create(
        "wrun_1",
        CreateEventRequest(
            event_type="step_completed", event_data={"out": 1}, correlation_id="wstep_1"
        ),
    )
    assert event.event_id.startswith("wevt_")
    assert event.event_data == {"out": 1}
    assert event.correlation_id == "wstep_1"


@pytest.mark.asyncio
async def test_event_data_absent_when_not_given(storage):
    event = await storage.events.create("wrun_1", CreateEventRequest(event_type="run_started"))
    assert "eventData" not in event.to_dict()

    page = await storage.events.list(ListEventsParams(run_id="wrun_1"))
    assert "eventData" not in page.data[0].to_dict()
    assert "correlationId" not in page.data[0].to_dict()


@pytest.mark.asyncio
async def test_list_ascending_by_default_and_pages(storage):
    created = await _append(storage, "wrun_1", 5)
    await _append(storage, "wrun_2", 2)

    first = await storage.events.list(
        ListEventsParams(run_id="wrun_1", pagination=PaginationOptions(limit=2))
    )
    assert [e.event_id for e in first.data] == [e.event_id for e in created[:2]]
    assert first.has_more is True
    assert first.cursor == created[1].event_id

    seen = [e.event_id for e in first.data]
    cursor = first.cursor
    while cursor is not None:
        page = await storage.events.list(
            ListEventsParams(run_id="wrun_1", pagination=PaginationOptions(limit=2, cursor=cursor))
        )
        seen.extend(e.event_id for e in page.data)
        cursor = page.cursor if page.has_more else None

    assert seen == [e.event_id for e in created]


@pytest.mark.asyncio
async def test_list_descending(storage):
    created = await _append(storage, "wrun_1", 3)
    page = await storage.events.list(
        ListEventsParams(
            run_id="wrun_1", pagination=PaginationOptions(limit=2, sort_order="desc")
        )
    )
    assert [e.event_id for e in page.data] == [created[2].event_id, created[1].event_id]

    rest = await storage.events.list(
        ListEventsParams(
            run_id="wrun_1",
            pagination=PaginationOptions(limit=2, sort_order="desc", cursor=page.cursor),
        )
    )
    assert [e.event_id for e in rest.data] == [created[0].event_id]
    assert rest.has_more is False


@pytest.mark.asyncio
async def test_list_by_correlation_id_across_runs(storage):
    first = await storage.events.create(
        "wrun_1", CreateEventRequest(event_type="hook_created", correlation_id="hook_a")
    )
    await storage.events.create(
        "wrun_1", CreateEventRequest(event_type="other", correlation_id="hook_b")
    )
    second = await storage.events.create(
        "wrun_2", CreateEventRequest(event_type="hook_received", correlation_id="hook_a")
    )
    third = await storage.events.create(
        "wrun_2", CreateEventRequest(event_type="hook_disposed", correlation_id="hook_a")
    )

    ascending = await storage.events.list_by_correlation_id(
        ListEventsByCorrelationIdParams(
            correlation_id="hook_a", pagination=PaginationOptions(limit=2)
        )
    )
    assert [e.event_id for e in ascending.data] == [first.event_id, second.event_id]
    assert ascending.has_more is True

    rest = await storage.events.list_by_correlation_id(
        ListEventsByCorrelationIdParams(
            correlation_id="hook_a",
            pagination=PaginationOptions(limit=2, cursor=ascending.cursor),
        )
    )
    assert [e.event_id for e in rest.data] == [third.event_id]
    assert rest.has_more is False

    descending = await storage.events.list_by_correlation_id(
        ListEventsByCorrelationIdParams(
            correlation_id="hook_a", pagination=PaginationOptions(sort_order="desc")
        )
    )
    assert [e.event_id for e in descending.data] == [
        third.event_id,
        second.event_id,
        first.event_id,
    ]


@pytest.mark.asyncio
async def test_list_by_unknown_correlation_id(storage):
    page = await storage.events.list_by_correlation_id(
        ListEventsByCorrelationIdParams(correlation_id="nothing")
    )
    assert page.data == []
    assert page.cursor is None
    assert page.has_more is False

"""Contract tests shared by the in-memory and SQLite backends."""

from datetime import date, datetime, timezone

import pytest

from flowstate import BackendError, CreateRunRequest, UpdateRunRequest, create_storage
from flowstate.backends import SQLiteBackend
from flowstate.backends.base import (
    ENTITY_TYPE_INDEX,
    HOOK_ID_INDEX,
    STATUS_INDEX,
)
from flowstate.errors import ConditionFailedError


def _item(pk, sk, **attrs):
    return {"PK": pk, "SK": sk, **attrs}


@pytest.mark.asyncio
async def test_put_get_and_conditional_put(backend):
    await backend.put_item(_item("RUN#1", "RUN#METADATA", status="pending", note=None))

    stored = await backend.get_item("RUN#1", "RUN#METADATA")
    assert stored == {"PK": "RUN#1", "SK": "RUN#METADATA", "status": "pending"}

    with pytest.raises(ConditionFailedError):
        await backend.put_item(_item("RUN#1", "RUN#METADATA", status="running"), if_absent=True)
    assert (await backend.get_item("RUN#1", "RUN#METADATA"))["status"] == "pending"

    assert await backend.get_item("RUN#1", "STEP#missing") is None


@pytest.mark.asyncio
async def test_update_sets_removes_and_checks_expected(backend):
    await backend.put_item(_item("RUN#1", "RUN#METADATA", status="paused", error="boom"))

    with pytest.raises(ConditionFailedError):
        await backend.update_item(
            "RUN#1", "RUN#METADATA", {"status": "running"}, expected={"status": "pending"}
        )

    updated = await backend.update_item(
        "RUN#1",
        "RUN#METADATA",
        {"status": "running", "error": None},
        expected={"status": "paused"},
    )
    assert updated["status"] == "running"
    assert "error" not in updated
    assert await backend.get_item("RUN#1", "RUN#METADATA") == updated


@pytest.mark.asyncio
async def test_update_missing_item_fails_without_creating_it(backend):
    with pytest.raises(ConditionFailedError):
        await backend.update_item("RUN#nope", "RUN#METADATA", {"status": "paused"})
    assert await backend.get_item("RUN#nope", "RUN#METADATA") is None


@pytest.mark.asyncio
async def test_delete_returns_previous_item(backend):
    await backend.put_item(_item("RUN#1", "HOOK#h1", hookId="h1"))
    deleted = await backend.delete_item("RUN#1", "HOOK#h1")
    assert deleted["hookId"] == "h1"
    assert await backend.delete_item("RUN#1", "HOOK#h1") is None


@pytest.mark.asyncio
async def test_query_respects_prefix_cursor_and_direction(backend):
    await backend.put_item(_item("RUN#1", "RUN#METADATA", entityType="Run"))
    await backend.put_item(_item("RUN#1", "HOOK#h1", entityType="Hook"))
    for n in range(1, 5):
        await backend.put_item(_item("RUN#1", f"STEP#s{n}", entityType="Step"))
    await backend.put_item(_item("RUN#2", "STEP#s9", entityType="Step"))

    ascending = await backend.query("RUN#1", sk_prefix="STEP#", limit=10)
    assert [item["SK"] for item in ascending] == ["STEP#s1", "STEP#s2", "STEP#s3", "STEP#s4"]

    descending = await backend.query(
        "RUN#1", sk_prefix="STEP#", after="STEP#s3", descending=True, limit=10
    )
    assert [item["SK"] for item in descending] == ["STEP#s2", "STEP#s1"]

    after = await backend.query("RUN#1", sk_prefix="STEP#", after="STEP#s2", limit=1)
    assert [item["SK"] for item in after] == ["STEP#s3"]


@pytest.mark.asyncio
async def test_query_index_orders_filters_and_pages(backend):
    await backend.put_item(
        _item("RUN#a", "RUN#METADATA", entityType="Run", status="running", createdAt=100)
    )
    await backend.put_item(
        _item("RUN#b", "RUN#METADATA", entityType="Run", status="running", createdAt=200)
    )
    await backend.put_item(
        _item("RUN#a", "STEP#s1", entityType="Step", status="running", createdAt=150)
    )

    runs = await backend.query_index(
        STATUS_INDEX, "running", descending=True, limit=10, entity_type="Run"
    )
    assert [item["PK"] for item in runs] == ["RUN#b", "RUN#a"]

    older = await backend.query_index(
        STATUS_INDEX, "running", after=200, descending=True, limit=10, entity_type="Run"
    )
    assert [item["PK"] for item in older] == ["RUN#a"]

    everything = await backend.query_index(STATUS_INDEX, "running", limit=10)
    assert [item["createdAt"] for item in everything] == [100, 150, 200]

    by_type = await backend.query_index(ENTITY_TYPE_INDEX, "Step", limit=10)
    assert [item["SK"] for item in by_type] == ["STEP#s1"]


@pytest.mark.asyncio
async def test_point_lookup_index(backend):
    await backend.put_item(_item("RUN#a", "HOOK#h1", entityType="Hook", hookId="h1", createdAt=1))
    found = await backend.query_index(HOOK_ID_INDEX, "h1", limit=1, entity_type="Hook")
    assert found[0]["PK"] == "RUN#a"
    assert await backend.query_index(HOOK_ID_INDEX, "h2", limit=1) == []


@pytest.mark.asyncio
async def test_sqlite_unencodable_update_keeps_later_writes(tmp_path):
    db_path = tmp_path / "wf.db"
    backend = SQLiteBackend(db_path)
    await backend.put_item(_item("RUN#1", "RUN#METADATA", status="running"))

    with pytest.raises(BackendError) as excinfo:
        await backend.update_item(
            "RUN#1", "RUN#METADATA", {"output": datetime(2024, 1, 1, tzinfo=timezone.utc)}
        )
    assert isinstance(excinfo.value.__cause__, TypeError)

    await backend.put_item(_item("RUN#2", "RUN#METADATA", status="pending"))
    updated = await backend.update_item("RUN#1", "RUN#METADATA", {"status": "completed"})
    assert updated["status"] == "completed"
    await backend.close()

    reopened = SQLiteBackend(db_path)
    assert (await reopened.get_item("RUN#2", "RUN#METADATA"))["status"] == "pending"
    assert (await reopened.get_item("RUN#1", "RUN#METADATA"))["status"] == "completed"


@pytest.mark.asyncio
async def test_sqlite_store_write_survives_failed_update(tmp_path, clock):
    db_path = tmp_path / "wf.db"
    storage = create_storage(SQLiteBackend(db_path), log_calls=False, clock=clock)
    run = await storage.runs.create(CreateRunRequest(workflow_name="demo", deployment_id="dpl"))

    with pytest.raises(BackendError):
        await storage.runs.update(
            run.run_id, UpdateRunRequest(output=datetime(2024, 1, 1, tzinfo=timezone.utc))
        )
    created = await storage.runs.create(
        CreateRunRequest(workflow_name="demo", deployment_id="dpl")
    )
    await storage.runs.update(run.run_id, UpdateRunRequest(status="running"))

    reopened = create_storage(SQLiteBackend(db_path), log_calls=False)
    assert (await reopened.runs.get(created.run_id)).run_id == created.run_id
    assert (await reopened.runs.get(run.run_id)).status == "running"


@pytest.mark.asyncio
async def test_sqlite_unencodable_put_is_backend_error(tmp_path):
    backend = SQLiteBackend(tmp_path / "wf.db")
    with pytest.raises(BackendError) as excinfo:
        await backend.put_item(_item("RUN#1", "RUN#METADATA", input=date(2024, 1, 1)))
    assert isinstance(excinfo.value.__cause__, TypeError)
    assert await backend.get_item("RUN#1", "RUN#METADATA") is None

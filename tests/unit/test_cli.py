import asyncio

from typer.testing import CliRunner

import flowstate.backends as backends
from flowstate import CreateHookRequest, CreateRunRequest, CreateStepRequest, create_storage
from flowstate.backends import InMemoryBackend
from flowstate.cli import app


def _setup_storage():
    backend = InMemoryBackend()
    backends._backend_instance = backend
    return create_storage(backend, log_calls=False)


def _create_run(storage, workflow_name="order_flow"):
    return asyncio.run(
        storage.runs.create(CreateRunRequest(workflow_name=workflow_name, deployment_id="dpl"))
    )


def test_runs_list_shows_runs():
    storage = _setup_storage()
    first = _create_run(storage)
    second = _create_run(storage, "billing")

    runner = CliRunner()
    result = runner.invoke(app, ["runs", "list"])
    assert (
        result.exit_code == 0
    ), f"Command failed with exit code {result.exit_code}. Output: {result.stdout}"
    assert first.run_id in result.stdout
    assert second.run_id in result.stdout

    result = runner.invoke(app, ["runs", "list", "--workflow-name", "billing"])
    assert second.run_id in result.stdout
    assert first.run_id not in result.stdout


def test_runs_list_empty_and_paged():
    storage = _setup_storage()
    runner = CliRunner()
    result = runner.invoke(app, ["runs", "list"])
    assert result.exit_code == 0
    assert "No runs found" in result.stdout

    _create_run(storage)
    _create_run(storage)
    result = runner.invoke(app, ["runs", "list", "--limit", "1"])
    assert "Next cursor:" in result.stdout


def test_run_lifecycle_commands():
    storage = _setup_storage()
    run = _create_run(storage)
    runner = CliRunner()

    result = runner.invoke(app, ["runs", "pause", run.run_id])
    assert result.exit_code == 0
    assert f"Run {run.run_id}: paused" in result.stdout

    result = runner.invoke(app, ["runs", "resume", run.run_id])
    assert f"Run {run.run_id}: running" in result.stdout

    result = runner.invoke(app, ["runs", "resume", run.run_id])
    assert result.exit_code == 1
    assert "Paused run not found" in result.stdout

    result = runner.invoke(app, ["runs", "cancel", run.run_id])
    assert f"Run {run.run_id}: cancelled" in result.stdout

    result = runner.invoke(app, ["runs", "show", run.run_id])
    assert '"status": "cancelled"' in result.stdout
    assert '"runId"' in result.stdout


def test_show_missing_run_fails():
    _setup_storage()
    result = CliRunner().invoke(app, ["runs", "show", "wrun_missing"])
    assert result.exit_code == 1
    assert "Run not found" in result.stdout


def test_steps_and_events_commands():
    storage = _setup_storage()
    run = _create_run(storage)
    step = asyncio.run(storage.steps.create(run.run_id, CreateStepRequest(step_name="charge")))
    runner = CliRunner()

    result = runner.invoke(app, ["steps", "list", run.run_id])
    assert step.step_id in result.stdout
    assert "charge" in result.stdout

    result = runner.invoke(app, ["steps", "show", run.run_id, step.step_id])
    assert '"stepName": "charge"' in result.stdout

    result = runner.invoke(app, ["events", "list", run.run_id])
    assert "No events found" in result.stdout

    result = runner.invoke(app, ["events", "list"])
    assert result.exit_code == 1


def test_hook_commands():
    storage = _setup_storage()
    run = _create_run(storage)
    asyncio.run(storage.hooks.create(run.run_id, CreateHookRequest(hook_id="hook_a", token="tok_a")))
    runner = CliRunner()

    result = runner.invoke(app, ["hooks", "list", "--run-id", run.run_id])
    assert "hook_a" in result.stdout

    result = runner.invoke(app, ["hooks", "show", "--token", "tok_a"])
    assert '"hookId": "hook_a"' in result.stdout

    result = runner.invoke(app, ["hooks", "dispose", "hook_a"])
    assert f"Disposed hook hook_a of run {run.run_id}" in result.stdout

    result = runner.invoke(app, ["hooks", "list"])
    assert "No hooks found" in result.stdout

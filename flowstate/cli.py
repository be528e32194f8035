"""Command line interface for inspecting and managing workflow storage."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Optional, TypeVar

import typer

from flowstate import (
    ListEventsByCorrelationIdParams,
    ListEventsParams,
    ListHooksParams,
    ListRunsParams,
    ListStepsParams,
    PaginatedResponse,
    PaginationOptions,
    Storage,
    WorkflowStoreError,
    create_storage,
    get_backend,
)
from flowstate.config import configure_logging, load_config

T = TypeVar("T")

app = typer.Typer(help="CLI for flowstate workflow storage")

# Command groups
runs_app = typer.Typer(help="Commands for workflow runs")
steps_app = typer.Typer(help="Commands for run steps")
events_app = typer.Typer(help="Commands for run event logs")
hooks_app = typer.Typer(help="Commands for callback hooks")

app.add_typer(runs_app, name="runs")
app.add_typer(steps_app, name="steps")
app.add_typer(events_app, name="events")
app.add_typer(hooks_app, name="hooks")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every storage call"),
) -> None:
    """Flowstate CLI entry point."""
    configure_logging("DEBUG" if verbose else load_config().log_level)


def _storage() -> Storage:
    return create_storage(get_backend())


def _run(call: Awaitable[T]) -> T:
    """Run a storage coroutine, turning storage errors into a red message."""
    try:
        return asyncio.run(call)
    except (WorkflowStoreError, ValueError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _show(entity: Any) -> None:
    typer.echo(json.dumps(entity.to_dict(), indent=2, default=str))


def _echo_page(page: PaginatedResponse, columns: tuple[str, ...], empty: str) -> None:
    if not page.data:
        typer.echo(empty)
        return
    for entity in page.data:
        typer.echo("\t".join(str(getattr(entity, column)) for column in columns))
    if page.has_more:
        typer.echo(f"Next cursor: {page.cursor}")


@app.command("init")
def init() -> None:
    """
    Create the storage schema for the configured backend.

    For DynamoDB this creates the table with its secondary indexes; for SQL
    backends it creates the item table and indexes. Safe to run repeatedly.

    Example:
        WORKFLOW_TABLE_NAME=workflows flowstate init
    """
    backend = get_backend()
    _run(backend.ensure_schema())
    typer.echo(f"Schema ready ({backend.name})")


# ----------------------------------------------------------------------
# Runs


@runs_app.command("list")
def runs_list(
    workflow_name: Optional[str] = typer.Option(None, help="Only runs of this workflow"),
    status: Optional[str] = typer.Option(None, help="Only runs with this status"),
    limit: Optional[int] = typer.Option(None, help="Page size (default 20)"),
    cursor: Optional[str] = typer.Option(None, help="Cursor from a previous page"),
) -> None:
    """
    List runs newest first.

    Example:
        flowstate runs list --workflow-name order_flow --limit 10
        # Output: wrun_01HV...    order_flow    running    2024-01-01 10:00:00+00:00
    """

    async def _list() -> PaginatedResponse:
        params = ListRunsParams(
            workflow_name=workflow_name,
            status=status,
            pagination=PaginationOptions(limit=limit, cursor=cursor),
        )
        return await _storage().runs.list(params)

    page = _run(_list())
    _echo_page(page, ("run_id", "workflow_name", "status", "created_at"), "No runs found")


@runs_app.command("show")
def runs_show(run_id: str) -> None:
    """Show a run as JSON."""
    _show(_run(_storage().runs.get(run_id)))


@runs_app.command("cancel")
def runs_cancel(run_id: str) -> None:
    """Cancel a run."""
    run = _run(_storage().runs.cancel(run_id))
    typer.echo(f"Run {run.run_id}: {run.status}")


@runs_app.command("pause")
def runs_pause(run_id: str) -> None:
    """Pause a run."""
    run = _run(_storage().runs.pause(run_id))
    typer.echo(f"Run {run.run_id}: {run.status}")


@runs_app.command("resume")
def runs_resume(run_id: str) -> None:
    """Resume a paused run."""
    run = _run(_storage().runs.resume(run_id))
    typer.echo(f"Run {run.run_id}: {run.status}")


# ----------------------------------------------------------------------
# Steps


@steps_app.command("list")
def steps_list(
    run_id: str,
    limit: Optional[int] = typer.Option(None, help="Page size (default 20)"),
    cursor: Optional[str] = typer.Option(None, help="Cursor from a previous page"),
) -> None:
    """List the steps of a run newest first."""

    async def _list() -> PaginatedResponse:
        params = ListStepsParams(
            run_id=run_id, pagination=PaginationOptions(limit=limit, cursor=cursor)
        )
        return await _storage().steps.list(params)

    page = _run(_list())
    _echo_page(page, ("step_id", "step_name", "status", "attempt"), "No steps found")


@steps_app.command("show")
def steps_show(run_id: str, step_id: str) -> None:
    """Show a step as JSON."""
    _show(_run(_storage().steps.get(run_id, step_id)))


# ----------------------------------------------------------------------
# Events


@events_app.command("list")
def events_list(
    run_id: Optional[str] = typer.Argument(None, help="Run whose event log to list"),
    correlation_id: Optional[str] = typer.Option(
        None, help="List events with this correlation id instead of by run"
    ),
    limit: Optional[int] = typer.Option(None, help="Page size (default 100)"),
    cursor: Optional[str] = typer.Option(None, help="Cursor from a previous page"),
    desc: bool = typer.Option(False, "--desc", help="Newest first"),
) -> None:
    """
    List events of a run, or events sharing a correlation id.

    Example:
        flowstate events list wrun_01HV... --desc
        flowstate events list --correlation-id hook_abc
    """
    if not run_id and not correlation_id:
        typer.secho("Provide a run id or --correlation-id", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    async def _list() -> PaginatedResponse:
        pagination = PaginationOptions(
            limit=limit, cursor=cursor, sort_order="desc" if desc else "asc"
        )
        storage = _storage()
        if correlation_id:
            return await storage.events.list_by_correlation_id(
                ListEventsByCorrelationIdParams(
                    correlation_id=correlation_id, pagination=pagination
                )
            )
        return await storage.events.list(
            ListEventsParams(run_id=run_id, pagination=pagination)
        )

    page = _run(_list())
    _echo_page(page, ("event_id", "event_type", "created_at"), "No events found")


# ----------------------------------------------------------------------
# Hooks


@hooks_app.command("list")
def hooks_list(
    run_id: Optional[str] = typer.Option(None, help="Only hooks of this run"),
    limit: Optional[int] = typer.Option(None, help="Page size (default 100)"),
    cursor: Optional[str] = typer.Option(None, help="Cursor from a previous page"),
) -> None:
    """List hooks of one run or of all runs."""

    async def _list() -> PaginatedResponse:
        params = ListHooksParams(
            run_id=run_id, pagination=PaginationOptions(limit=limit, cursor=cursor)
        )
        return await _storage().hooks.list(params)

    page = _run(_list())
    _echo_page(page, ("hook_id", "run_id", "created_at"), "No hooks found")


@hooks_app.command("show")
def hooks_show(
    hook_id: Optional[str] = typer.Argument(None, help="Hook id to look up"),
    token: Optional[str] = typer.Option(None, help="Look the hook up by token instead"),
) -> None:
    """Show a hook, looked up by id or by token."""
    if token:
        hook = _run(_storage().hooks.get_by_token(token))
    elif hook_id:
        hook = _run(_storage().hooks.get(hook_id))
    else:
        typer.secho("Provide a hook id or --token", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _show(hook)


@hooks_app.command("dispose")
def hooks_dispose(hook_id: str) -> None:
    """Delete a hook."""
    hook = _run(_storage().hooks.dispose(hook_id))
    typer.echo(f"Disposed hook {hook.hook_id} of run {hook.run_id}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()

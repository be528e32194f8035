"""Storage facade combining the four entity stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .backends import KeyValueBackend, get_backend
from .config import FlowstateConfig, load_config
from .middleware import LoggedEventStore, LoggedHookStore, LoggedRunStore, LoggedStepStore
from .repository import EventStorage, HookStorage, RunStorage, StepStorage
from .stores import EventStore, HookStore, RunStore, StepStore


@dataclass
class Storage:
    """Runs, steps, hooks and events sharing one backend."""

    runs: RunStorage
    steps: StepStorage
    hooks: HookStorage
    events: EventStorage
    backend: KeyValueBackend


def with_logging(storage: Storage) -> Storage:
    """Return a copy of ``storage`` whose stores log every call."""
    return Storage(
        runs=LoggedRunStore(storage.runs),
        steps=LoggedStepStore(storage.steps),
        hooks=LoggedHookStore(storage.hooks),
        events=LoggedEventStore(storage.events),
        backend=storage.backend,
    )


def create_storage(
    backend: Optional[KeyValueBackend] = None,
    config: Optional[FlowstateConfig] = None,
    *,
    log_calls: Optional[bool] = None,
    clock: Optional[Callable[[], int]] = None,
) -> Storage:
    """Assemble the stores over ``backend`` (or the configured one).

    Args:
        backend: Backend to use; resolved with :func:`get_backend` if omitted.
        config: Configuration; loaded with :func:`load_config` if omitted.
        log_calls: Wrap stores in call logging. Defaults to ``config.log_calls``.
        clock: Epoch-millisecond clock, mainly for tests.
    """

    config = config or load_config()
    if backend is None:
        backend = get_backend(config=config)
    storage = Storage(
        runs=RunStore(backend, clock=clock),
        steps=StepStore(backend, clock=clock),
        hooks=HookStore(backend, clock=clock),
        events=EventStore(backend, clock=clock),
        backend=backend,
    )
    if config.log_calls if log_calls is None else log_calls:
        storage = with_logging(storage)
    return storage

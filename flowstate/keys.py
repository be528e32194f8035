"""Key scheme for the shared item table."""

from __future__ import annotations

RUN_PREFIX = "RUN#"
STEP_PREFIX = "STEP#"
EVENT_PREFIX = "EVENT#"
HOOK_PREFIX = "HOOK#"

RUN_ENTITY = "Run"
STEP_ENTITY = "Step"
HOOK_ENTITY = "Hook"
EVENT_ENTITY = "Event"


def run_pk(run_id: str) -> str:
    return f"{RUN_PREFIX}{run_id}"


def run_meta_sk() -> str:
    return f"{RUN_PREFIX}METADATA"


def step_sk(step_id: str) -> str:
    return f"{STEP_PREFIX}{step_id}"


def event_sk(event_id: str) -> str:
    return f"{EVENT_PREFIX}{event_id}"


def hook_sk(hook_id: str) -> str:
    return f"{HOOK_PREFIX}{hook_id}"

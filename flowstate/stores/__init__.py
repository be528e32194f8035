"""Entity stores composing the key scheme, id generator and projector."""

from .events import EventStore
from .hooks import HookStore
from .runs import RunStore
from .steps import StepStore

__all__ = ["EventStore", "HookStore", "RunStore", "StepStore"]

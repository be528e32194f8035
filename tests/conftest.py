import pytest

from flowstate import create_storage
from flowstate.backends import InMemoryBackend, SQLiteBackend


class FakeClock:
    """Epoch-millisecond clock that advances by ``step`` on every call."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fixed_clock():
    """A clock stuck on one millisecond."""
    return FakeClock(step=0)


@pytest.fixture(params=["inmemory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteBackend(tmp_path / "flowstate.db")
    return InMemoryBackend()


@pytest.fixture
def storage(backend, clock):
    return create_storage(backend, log_calls=False, clock=clock)

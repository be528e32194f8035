"""Monotonic, lexicographically sortable identifiers."""

from __future__ import annotations

import secrets
import threading
import time
from typing import Callable, Optional

# Crockford's Base32 alphabet (excludes I, L, O, U)
ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"

RUN_ID_PREFIX = "wrun_"
STEP_ID_PREFIX = "wstep_"
EVENT_ID_PREFIX = "wevt_"

_RANDOM_BITS = 80
_MAX_RANDOM = (1 << _RANDOM_BITS) - 1


def _encode(value: int, length: int) -> str:
    chars = []
    for _ in range(length):
        chars.append(ALPHABET[value & 0x1F])
        value >>= 5
    return "".join(reversed(chars))


def now_ms() -> int:
    """Current wall clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class MonotonicULID:
    """Generate ULIDs that strictly increase within this process.

    A ULID is 26 characters: 48 bits of millisecond timestamp (10 chars)
    followed by 80 bits of randomness (16 chars). When two ids are requested
    in the same millisecond the random part of the previous id is incremented
    instead of drawn again, so ordering follows generation order.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock or now_ms
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_random = 0

    def __call__(self) -> str:
        with self._lock:
            timestamp = self._clock()
            if timestamp <= self._last_ms:
                # clock did not advance (or went backwards): stay on the last ms
                if self._last_random >= _MAX_RANDOM:
                    raise OverflowError("ULID random component exhausted for this millisecond")
                timestamp = self._last_ms
                random_part = self._last_random + 1
            else:
                random_part = secrets.randbits(_RANDOM_BITS)
            self._last_ms = timestamp
            self._last_random = random_part
        return _encode(timestamp, 10) + _encode(random_part, 16)


class IdGenerator:
    """Prefix-tagged identifier generator for one entity type."""

    def __init__(self, prefix: str, clock: Optional[Callable[[], int]] = None) -> None:
        self.prefix = prefix
        self._ulid = MonotonicULID(clock)

    def __call__(self) -> str:
        return f"{self.prefix}{self._ulid()}"

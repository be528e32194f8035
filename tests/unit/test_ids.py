"""Tests for the key scheme and identifier generation."""

import threading

import pytest

from flowstate import keys
from flowstate.ids import ALPHABET, EVENT_ID_PREFIX, IdGenerator, MonotonicULID


def test_key_scheme():
    assert keys.run_pk("wrun_1") == "RUN#wrun_1"
    assert keys.run_meta_sk() == "RUN#METADATA"
    assert keys.step_sk("s1") == "STEP#s1"
    assert keys.event_sk("e1") == "EVENT#e1"
    assert keys.hook_sk("h1") == "HOOK#h1"


def test_ulid_shape_and_timestamp_prefix():
    ulid = MonotonicULID(clock=lambda: 0)()
    assert len(ulid) == 26
    assert ulid[:10] == "0000000000"
    assert all(char in ALPHABET for char in ulid)


def test_ulids_increase_within_same_millisecond():
    generate = MonotonicULID(clock=lambda: 1_700_000_000_000)
    ids = [generate() for _ in range(50)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 50


def test_ulids_stay_monotonic_when_clock_goes_backwards():
    ticks = iter([1_700_000_000_500, 1_700_000_000_000, 1_700_000_000_900])
    generate = MonotonicULID(clock=lambda: next(ticks))
    first, second, third = generate(), generate(), generate()
    assert first < second < third


def test_ulid_overflow_within_millisecond():
    generate = MonotonicULID(clock=lambda: 5)
    generate()
    generate._last_random = (1 << 80) - 1
    with pytest.raises(OverflowError):
        generate()


def test_id_generator_prefix_and_thread_safety():
    generate = IdGenerator(EVENT_ID_PREFIX, clock=lambda: 1_700_000_000_000)
    results: list[str] = []
    lock = threading.Lock()

    def worker():
        local = [generate() for _ in range(100)]
        with lock:
            results.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(set(results)) == 400
    assert all(value.startswith("wevt_") for value in results)

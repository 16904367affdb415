import pytest

from trustymodel.memory import AllocationTracker
from trustymodel.nondet import Kind, Nondet


def _tracker(store, sizes=()):
    return AllocationTracker(
        Nondet(seed=0, script={Kind.STORE_MEM_SIZE: store, Kind.ALLOC_SIZE: sizes})
    )


def test_realloc_returns_fresh_zeroed_buffer():
    tracker = _tracker([0])
    old = bytearray(b"abc")
    new = tracker.realloc(old, 10)
    assert len(new) == 10
    assert new == bytearray(10)
    assert old == bytearray(b"abc")


def test_first_tracked_allocation_size_is_known():
    tracker = _tracker([1])
    buf = tracker.realloc(None, 64)
    assert tracker.ptr_size_stored(buf)
    assert tracker.alloc_size(buf) == 64


def test_only_first_allocation_is_tracked():
    tracker = _tracker([1, 1], sizes=[7])
    first = tracker.realloc(None, 16)
    second = tracker.realloc(first, 32)
    assert not tracker.ptr_size_stored(second)
    assert tracker.alloc_size(second) == 7
    assert tracker.alloc_size(first) == 16


def test_untracked_when_store_declined():
    tracker = _tracker([0], sizes=[3])
    buf = tracker.realloc(None, 8)
    assert not tracker.ptr_size_stored(buf)
    assert tracker.alloc_size(buf) == 3


def test_none_is_never_stored():
    tracker = _tracker([1])
    assert not tracker.ptr_size_stored(None)
    tracker.realloc(None, 4)
    assert not tracker.ptr_size_stored(None)


def test_zero_size_tracked_buffer_not_reported_stored():
    tracker = _tracker([1])
    buf = tracker.realloc(None, 0)
    assert len(buf) == 0
    assert not tracker.ptr_size_stored(buf)
    assert tracker.alloc_size(buf) == 0


def test_none_before_tracking_reports_zero_size():
    tracker = _tracker([])
    assert tracker.alloc_size(None) == 0


def test_negative_size_rejected():
    tracker = _tracker([1])
    with pytest.raises(ValueError):
        tracker.realloc(None, -1)
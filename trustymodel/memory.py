"""Buffer reallocation with bookkeeping of one tracked allocation's size."""

from __future__ import annotations

from .nondet import Kind, Nondet


class AllocationTracker:
    """Reallocates buffers and may remember the size of the first one.

    Reallocation releases the old buffer and hands out a fresh, zeroed one;
    contents are not carried over. Whether the new buffer is tracked is
    decided by the nondet source, and only the first tracked one is kept.
    """

    def __init__(self, nondet: Nondet) -> None:
        self._nondet = nondet
        self._tracked: bytearray | None = None
        self._tracked_size = 0

    def realloc(self, buf: bytearray | None, new_size: int) -> bytearray:
        """Return a fresh buffer of ``new_size`` bytes in place of ``buf``."""
        if new_size < 0:
            raise ValueError(f"size must not be negative, got {new_size}")
        new_buf = bytearray(new_size)
        if self._nondet.value(Kind.STORE_MEM_SIZE) and self._tracked is None:
            self._tracked = new_buf
            self._tracked_size = new_size
        return new_buf

    def ptr_size_stored(self, buf: bytearray | None) -> bool:
        """True if ``buf`` is the tracked buffer and its size is non-zero."""
        return buf is not None and buf is self._tracked and self._tracked_size > 0

    def alloc_size(self, buf: bytearray | None) -> int:
        """Tracked size of ``buf``, or an arbitrary size for any other buffer."""
        if buf is self._tracked:
            return self._tracked_size
        return self._nondet.value(Kind.ALLOC_SIZE)
"""Physical page allocator handing out 4096-byte pages."""

from __future__ import annotations

import contextlib
import threading

from .layout import PHYSTOP, KernelPanic, v2p

PGSIZE = 4096


def pgroundup(a: int) -> int:
    """Round an address up to a page boundary."""
    return (a + PGSIZE - 1) & ~(PGSIZE - 1)


class PageAllocator:
    """A free list of page addresses between the kernel's end and PHYSTOP."""

    def __init__(self, end: int, phystop: int = PHYSTOP):
        self.end = end
        self.phystop = phystop
        self.use_lock = False
        self._lock = threading.Lock()
        self._freelist: list[int] = []

    def _guard(self):
        return self._lock if self.use_lock else contextlib.nullcontext()

    @property
    def free_pages(self) -> int:
        """Number of pages on the free list."""
        return len(self._freelist)

    def kinit1(self, vstart: int, vend: int) -> None:
        """First phase: free the early pages without locking."""
        self.use_lock = False
        self.freerange(vstart, vend)

    def kinit2(self, vstart: int, vend: int) -> None:
        """Second phase: free the remaining pages and start locking."""
        self.freerange(vstart, vend)
        self.use_lock = True

    def freerange(self, vstart: int, vend: int) -> None:
        """Free every whole page in [vstart, vend)."""
        for page in range(pgroundup(vstart), vend - PGSIZE + 1, PGSIZE):
            self.kfree(page)

    def kfree(self, v: int) -> None:
        """Return a page to the free list."""
        if v % PGSIZE or v < self.end or v2p(v) >= self.phystop:
            raise KernelPanic("kfree")
        with self._guard():
            self._freelist.append(v)

    def kalloc(self) -> int:
        """Take a page off the free list; MemoryError when none is left."""
        with self._guard():
            if not self._freelist:
                raise MemoryError("out of physical pages")
            return self._freelist.pop()
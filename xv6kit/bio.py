"""Buffer cache: in-memory copies of disk blocks, recycled least-recently-used first."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from .disk import Buf
from .layout import NBUF, KernelPanic


class BufferCache:
    """A fixed set of buffers kept in most-recently-used order."""

    def __init__(self, disk, nbuf: int = NBUF):
        self._disk = disk
        self._bufs = [Buf() for _ in range(nbuf)]  # front is most recently used

    @staticmethod
    def _lock(buf: Buf) -> None:
        if buf.locked:
            raise KernelPanic("bget: buffer already locked")
        buf.locked = True

    def _get(self, dev: int, blockno: int) -> Buf:
        for buf in self._bufs:
            if buf.dev == dev and buf.blockno == blockno:
                self._lock(buf)
                buf.refcnt += 1
                return buf

        # A dirty buffer with no references is still pinned by the log.
        for buf in reversed(self._bufs):
            if buf.refcnt == 0 and not buf.dirty:
                buf.dev = dev
                buf.blockno = blockno
                buf.valid = False
                buf.dirty = False
                buf.refcnt = 1
                self._lock(buf)
                return buf
        raise KernelPanic("bget: no buffers")

    def bread(self, dev: int, blockno: int) -> Buf:
        """Return a locked buffer holding the contents of the block."""
        buf = self._get(dev, blockno)
        if not buf.valid:
            self._disk.rw(buf)
        return buf

    def bwrite(self, buf: Buf) -> None:
        """Write a locked buffer's contents to disk."""
        if not buf.locked:
            raise KernelPanic("bwrite")
        buf.dirty = True
        self._disk.rw(buf)

    def brelse(self, buf: Buf) -> None:
        """Release a locked buffer, making it the most recently used."""
        if not buf.locked:
            raise KernelPanic("brelse")
        buf.locked = False
        buf.refcnt -= 1
        if buf.refcnt == 0:
            self._bufs.remove(buf)
            self._bufs.insert(0, buf)

    @contextmanager
    def block(self, dev: int, blockno: int) -> Iterator[Buf]:
        """Read a block and release it when the block is left."""
        buf = self.bread(dev, blockno)
        try:
            yield buf
        finally:
            self.brelse(buf)
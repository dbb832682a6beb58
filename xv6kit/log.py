"""Write-ahead redo log that makes groups of block writes atomic."""

from __future__ import annotations

import struct
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from .layout import BSIZE, LOGSIZE, MAXOPBLOCKS, KernelPanic, Superblock

_COUNT = struct.Struct("<i")


class Log:
    """The on-disk log: a header block followed by copies of logged blocks."""

    def __init__(self, cache, dev: int, sb: Superblock):
        if _COUNT.size * (LOGSIZE + 1) >= BSIZE:
            raise KernelPanic("initlog: too big logheader")
        self._cache = cache
        self.dev = dev
        self.start = sb.logstart
        self.size = sb.nlog
        self.outstanding = 0
        self.committing = False
        self._blocks: list[int] = []
        self._cond = threading.Condition()
        self._recover()

    def _read_head(self) -> None:
        with self._cache.block(self.dev, self.start) as buf:
            (n,) = _COUNT.unpack_from(buf.data, 0)
            self._blocks = list(struct.unpack_from(f"<{n}i", buf.data, _COUNT.size))

    def _write_head(self) -> None:
        with self._cache.block(self.dev, self.start) as buf:
            n = len(self._blocks)
            _COUNT.pack_into(buf.data, 0, n)
            struct.pack_into(f"<{n}i", buf.data, _COUNT.size, *self._blocks)
            self._cache.bwrite(buf)

    def _install_trans(self) -> None:
        for tail, home in enumerate(self._blocks):
            with self._cache.block(self.dev, self.start + tail + 1) as lbuf, \
                    self._cache.block(self.dev, home) as dbuf:
                dbuf.data[:] = lbuf.data
                self._cache.bwrite(dbuf)

    def _write_log(self) -> None:
        for tail, home in enumerate(self._blocks):
            with self._cache.block(self.dev, self.start + tail + 1) as to, \
                    self._cache.block(self.dev, home) as src:
                to.data[:] = src.data
                self._cache.bwrite(to)

    def _recover(self) -> None:
        self._read_head()
        self._install_trans()
        self._blocks = []
        self._write_head()

    def _commit(self) -> None:
        if self._blocks:
            self._write_log()
            self._write_head()  # the real commit point
            self._install_trans()
            self._blocks = []
            self._write_head()

    def begin_op(self) -> None:
        """Start a file-system operation, waiting while the log is busy or full."""
        with self._cond:
            while self.committing or (
                len(self._blocks) + (self.outstanding + 1) * MAXOPBLOCKS > LOGSIZE
            ):
                self._cond.wait()
            self.outstanding += 1

    def end_op(self) -> None:
        """Finish an operation; the last one outstanding commits the log."""
        with self._cond:
            self.outstanding -= 1
            if self.committing:
                raise KernelPanic("log.committing")
            do_commit = self.outstanding == 0
            if do_commit:
                self.committing = True
            else:
                self._cond.notify_all()

        if do_commit:
            try:
                self._commit()
            finally:
                with self._cond:
                    self.committing = False
                    self._cond.notify_all()

    def log_write(self, buf) -> None:
        """Record a modified buffer in the current transaction and pin it."""
        if len(self._blocks) >= LOGSIZE or len(self._blocks) >= self.size - 1:
            raise KernelPanic("too big a transaction")
        if self.outstanding < 1:
            raise KernelPanic("log_write outside of trans")
        with self._cond:
            if buf.blockno not in self._blocks:
                self._blocks.append(buf.blockno)
            buf.dirty = True

    @contextmanager
    def transaction(self) -> Iterator[Log]:
        """Run the enclosed block as one file-system operation."""
        self.begin_op()
        try:
            yield self
        finally:
            self.end_op()
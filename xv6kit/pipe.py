"""Bounded in-memory pipes connecting a writer and a reader."""

from __future__ import annotations

import threading

PIPESIZE = 512


class PipeError(BrokenPipeError):
    """Raised when a full pipe is written to after its reader has gone."""


class Pipe:
    """A byte pipe holding at most PIPESIZE unread bytes.

    Writers block while the pipe is full and readers block while it is empty
    and a writer is still open.
    """

    def __init__(self):
        self._data = bytearray()
        self._cond = threading.Condition()
        self.nread = 0
        self.nwrite = 0
        self.readopen = True
        self.writeopen = True

    @property
    def closed(self) -> bool:
        """True once both ends have been closed."""
        return not self.readopen and not self.writeopen

    def close(self, writable: bool) -> None:
        """Close the write end if ``writable`` is true, else the read end."""
        with self._cond:
            if writable:
                self.writeopen = False
            else:
                self.readopen = False
            self._cond.notify_all()

    def write(self, data) -> int:
        """Write all of ``data``, waiting for room as needed; returns its length."""
        data = bytes(data)
        pos = 0
        with self._cond:
            while pos < len(data):
                while len(self._data) == PIPESIZE:
                    if not self.readopen:
                        raise PipeError("pipe has no reader")
                    self._cond.notify_all()
                    self._cond.wait()
                chunk = data[pos:pos + PIPESIZE - len(self._data)]
                self._data += chunk
                self.nwrite += len(chunk)
                pos += len(chunk)
            self._cond.notify_all()
        return len(data)

    def read(self, n: int) -> bytes:
        """Read up to ``n`` bytes; empty once the pipe is drained and the writer closed."""
        with self._cond:
            while not self._data and self.writeopen:
                self._cond.wait()
            chunk = bytes(self._data[:max(n, 0)])
            del self._data[:len(chunk)]
            self.nread += len(chunk)
            self._cond.notify_all()
        return chunk
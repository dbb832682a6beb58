"""Open files: a shared table of reference-counted pipe and inode handles."""

from __future__ import annotations

import enum
import errno
import threading
from dataclasses import dataclass

from .layout import BSIZE, MAXOPBLOCKS, NFILE, KernelPanic, Stat
from .pipe import Pipe

# Bytes per log transaction: leaves room for the inode, an indirect block,
# allocation blocks and two blocks of slop for unaligned writes.
MAX_WRITE = ((MAXOPBLOCKS - 1 - 1 - 2) // 2) * BSIZE


class FileKind(enum.Enum):
    NONE = 0
    PIPE = 1
    INODE = 2


@dataclass(eq=False)
class File:
    """One open file: an end of a pipe or an inode with an offset."""

    kind: FileKind = FileKind.NONE
    ref: int = 0
    readable: bool = False
    writable: bool = False
    pipe: Pipe | None = None
    ip: object = None
    off: int = 0


class FileTable:
    """The system-wide table of open files."""

    def __init__(self, fs=None, nfile: int = NFILE):
        self.fs = fs
        self._files = [File() for _ in range(nfile)]
        self._lock = threading.Lock()

    def alloc(self) -> File:
        """Take a free file slot with one reference."""
        with self._lock:
            for f in self._files:
                if f.ref == 0:
                    f.ref = 1
                    return f
        raise OSError(errno.ENFILE, "file table overflow")

    def dup(self, f: File) -> File:
        """Add a reference to an open file."""
        with self._lock:
            if f.ref < 1:
                raise KernelPanic("filedup")
            f.ref += 1
        return f

    def close(self, f: File) -> None:
        """Drop a reference; the last one releases the pipe end or inode."""
        with self._lock:
            if f.ref < 1:
                raise KernelPanic("fileclose")
            f.ref -= 1
            if f.ref > 0:
                return
            kind, pipe, ip, writable = f.kind, f.pipe, f.ip, f.writable
            f.kind = FileKind.NONE
            f.pipe = None
            f.ip = None
            f.off = 0
            f.readable = f.writable = False

        if kind is FileKind.PIPE:
            pipe.close(writable)
        elif kind is FileKind.INODE:
            with self.fs.log.transaction():
                self.fs.iput(ip)

    def stat(self, f: File) -> Stat:
        """Metadata of an inode file."""
        if f.kind is not FileKind.INODE:
            raise OSError(errno.EINVAL, "not an inode file")
        self.fs.ilock(f.ip)
        try:
            return self.fs.stati(f.ip)
        finally:
            self.fs.iunlock(f.ip)

    def read(self, f: File, n: int) -> bytes:
        """Read up to n bytes, advancing an inode file's offset."""
        if not f.readable:
            raise OSError(errno.EBADF, "file not open for reading")
        if f.kind is FileKind.PIPE:
            return f.pipe.read(n)
        if f.kind is FileKind.INODE:
            self.fs.ilock(f.ip)
            try:
                data = self.fs.readi(f.ip, f.off, n)
                f.off += len(data)
            finally:
                self.fs.iunlock(f.ip)
            return data
        raise KernelPanic("fileread")

    def write(self, f: File, data) -> int:
        """Write all of data; inode writes go in several small transactions."""
        if not f.writable:
            raise OSError(errno.EBADF, "file not open for writing")
        if f.kind is FileKind.PIPE:
            return f.pipe.write(data)
        if f.kind is FileKind.INODE:
            data = bytes(data)
            written = 0
            while written < len(data):
                chunk = data[written:written + MAX_WRITE]
                with self.fs.log.transaction():
                    self.fs.ilock(f.ip)
                    try:
                        r = self.fs.writei(f.ip, chunk, f.off)
                        if r > 0:
                            f.off += r
                    finally:
                        self.fs.iunlock(f.ip)
                if r != len(chunk):
                    raise KernelPanic("short filewrite")
                written += r
            return len(data)
        raise KernelPanic("filewrite")

    def open_inode(self, ip, readable: bool, writable: bool) -> File:
        """Open a referenced inode; the file takes over that reference."""
        f = self.alloc()
        f.kind = FileKind.INODE
        f.ip = ip
        f.off = 0
        f.readable = bool(readable)
        f.writable = bool(writable)
        return f

    def pipe(self) -> tuple[File, File]:
        """Create a pipe and return its read end and write end."""
        rf = self.alloc()
        try:
            wf = self.alloc()
        except OSError:
            self.close(rf)
            raise
        p = Pipe()
        rf.kind, rf.readable, rf.writable, rf.pipe = FileKind.PIPE, True, False, p
        wf.kind, wf.readable, wf.writable, wf.pipe = FileKind.PIPE, False, True, p
        return rf, wf
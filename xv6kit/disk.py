"""Disk buffers and an in-memory disk."""

from __future__ import annotations

from dataclasses import dataclass, field

from .layout import BSIZE, ROOTDEV, KernelPanic


@dataclass(eq=False)
class Buf:
    """A cached copy of one disk block."""

    dev: int | None = None
    blockno: int | None = None
    data: bytearray = field(default_factory=lambda: bytearray(BSIZE))
    valid: bool = False
    dirty: bool = False
    refcnt: int = 0
    locked: bool = False


class MemDisk:
    """A disk whose blocks live in memory."""

    def __init__(self, image=b"", dev: int = ROOTDEV):
        self._image = bytearray(image)
        self.dev = dev
        self.disksize = len(self._image) // BSIZE

    def rw(self, buf: Buf) -> None:
        """Write a dirty buffer to disk, or read an invalid one from it."""
        if not buf.locked:
            raise KernelPanic("iderw: buf not locked")
        if buf.valid and not buf.dirty:
            raise KernelPanic("iderw: nothing to do")
        if buf.dev != self.dev:
            raise KernelPanic(f"iderw: request not for disk {self.dev}")
        if buf.blockno is None or not 0 <= buf.blockno < self.disksize:
            raise KernelPanic("iderw: block out of range")

        start = buf.blockno * BSIZE
        if buf.dirty:
            buf.dirty = False
            self._image[start:start + BSIZE] = buf.data
        else:
            buf.data[:] = self._image[start:start + BSIZE]
        buf.valid = True

    def to_bytes(self) -> bytes:
        return bytes(self._image)
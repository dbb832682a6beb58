"""Inodes, block allocation, directories and path-name lookup."""

from __future__ import annotations

import struct
from collections.abc import Callable
from dataclasses import dataclass, field

from .layout import (
    BPB,
    BSIZE,
    DINODE_FORMAT,
    DIRENT_FORMAT,
    DIRSIZ,
    IPB,
    MAXFILE,
    NDEV,
    NDIRECT,
    NINDIRECT,
    NINODE,
    ROOTDEV,
    ROOTINO,
    DiskInode,
    Dirent,
    FileType,
    KernelPanic,
    Stat,
    Superblock,
    bblock,
    iblock,
)
from .log import Log

_UINT = struct.Struct("<I")
_INDIRECT = struct.Struct(f"<{NINDIRECT}I")


@dataclass(eq=False)
class Inode:
    """In-memory copy of an inode plus cache bookkeeping."""

    dev: int = 0
    inum: int = 0
    ref: int = 0
    locked: bool = False
    valid: bool = False
    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))


@dataclass
class Device:
    """Functions serving reads and writes of a device inode."""

    read: Callable[[Inode, int], bytes] | None = None
    write: Callable[[Inode, bytes], int] | None = None


def read_superblock(cache, dev: int) -> Superblock:
    """Read the superblock of a device."""
    with cache.block(dev, 1) as buf:
        return Superblock.from_bytes(buf.data)


def skipelem(path: str) -> tuple[str, str] | None:
    """Split off the first element of a path.

    Returns the element (cut to DIRSIZ characters) and the rest without
    leading slashes, or None when there is no element left.
    """
    path = path.lstrip("/")
    if not path:
        return None
    elem, _, rest = path.partition("/")
    return elem[:DIRSIZ], rest.lstrip("/")


def namecmp(s: str, t: str) -> int:
    """Compare two directory names over their first DIRSIZ characters."""
    a, b = s[:DIRSIZ], t[:DIRSIZ]
    return (a > b) - (a < b)


class FileSystem:
    """The file system on one device, with its inode cache and log."""

    def __init__(self, cache, dev: int = ROOTDEV):
        self.cache = cache
        self.dev = dev
        self.sb = read_superblock(cache, dev)
        self.log = Log(cache, dev, self.sb)
        self._icache = [Inode() for _ in range(NINODE)]
        self.devsw: dict[int, Device] = {}

    # Blocks.

    def _bzero(self, bno: int) -> None:
        with self.cache.block(self.dev, bno) as buf:
            buf.data[:] = bytes(BSIZE)
            self.log.log_write(buf)

    def _balloc(self) -> int:
        for base in range(0, self.sb.size, BPB):
            found = None
            with self.cache.block(self.dev, bblock(base, self.sb)) as buf:
                for bi in range(min(BPB, self.sb.size - base)):
                    mask = 1 << (bi % 8)
                    if not buf.data[bi // 8] & mask:
                        buf.data[bi // 8] |= mask
                        self.log.log_write(buf)
                        found = base + bi
                        break
            if found is not None:
                self._bzero(found)
                return found
        raise KernelPanic("balloc: out of blocks")

    def _bfree(self, b: int) -> None:
        with self.cache.block(self.dev, bblock(b, self.sb)) as buf:
            bi = b % BPB
            mask = 1 << (bi % 8)
            if not buf.data[bi // 8] & mask:
                raise KernelPanic("freeing free block")
            buf.data[bi // 8] &= ~mask & 0xFF
            self.log.log_write(buf)

    # Inodes.

    def _slot(self, inum: int) -> tuple[int, int]:
        return iblock(inum, self.sb), (inum % IPB) * DINODE_FORMAT.size

    def ialloc(self, type: int) -> Inode:
        """Allocate a free on-disk inode of the given type; returns it referenced."""
        for inum in range(1, self.sb.ninodes):
            blockno, off = self._slot(inum)
            allocated = False
            with self.cache.block(self.dev, blockno) as buf:
                din = DiskInode.from_bytes(buf.data[off:off + DINODE_FORMAT.size])
                if din.type == 0:
                    buf.data[off:off + DINODE_FORMAT.size] = DiskInode(type=type).to_bytes()
                    self.log.log_write(buf)
                    allocated = True
            if allocated:
                return self._iget(self.dev, inum)
        raise KernelPanic("ialloc: no inodes")

    def iupdate(self, ip: Inode) -> None:
        """Copy a modified in-memory inode to disk."""
        blockno, off = self._slot(ip.inum)
        din = DiskInode(ip.type, ip.major, ip.minor, ip.nlink, ip.size, list(ip.addrs))
        with self.cache.block(ip.dev, blockno) as buf:
            buf.data[off:off + DINODE_FORMAT.size] = din.to_bytes()
            self.log.log_write(buf)

    def _iget(self, dev: int, inum: int) -> Inode:
        empty = None
        for ip in self._icache:
            if ip.ref > 0 and ip.dev == dev and ip.inum == inum:
                ip.ref += 1
                return ip
            if empty is None and ip.ref == 0:
                empty = ip
        if empty is None:
            raise KernelPanic("iget: no inodes")
        empty.dev = dev
        empty.inum = inum
        empty.ref = 1
        empty.valid = False
        return empty

    def idup(self, ip: Inode) -> Inode:
        """Add a reference to an inode and return it."""
        ip.ref += 1
        return ip

    def ilock(self, ip: Inode) -> None:
        """Lock an inode, reading it from disk if needed."""
        if ip is None or ip.ref < 1:
            raise KernelPanic("ilock")
        if ip.locked:
            raise KernelPanic("ilock: already locked")
        ip.locked = True
        if not ip.valid:
            blockno, off = self._slot(ip.inum)
            with self.cache.block(ip.dev, blockno) as buf:
                din = DiskInode.from_bytes(buf.data[off:off + DINODE_FORMAT.size])
            ip.type, ip.major, ip.minor = din.type, din.major, din.minor
            ip.nlink, ip.size, ip.addrs = din.nlink, din.size, list(din.addrs)
            ip.valid = True
            if ip.type == 0:
                raise KernelPanic("ilock: no type")

    def iunlock(self, ip: Inode) -> None:
        """Unlock an inode."""
        if ip is None or not ip.locked or ip.ref < 1:
            raise KernelPanic("iunlock")
        ip.locked = False

    def iput(self, ip: Inode) -> None:
        """Drop a reference; free the inode on disk if nothing refers to it."""
        if ip.locked:
            raise KernelPanic("iput: inode locked")
        ip.locked = True
        try:
            if ip.valid and ip.nlink == 0 and ip.ref == 1:
                self._itrunc(ip)
                ip.type = 0
                self.iupdate(ip)
                ip.valid = False
        finally:
            ip.locked = False
        ip.ref -= 1

    def iunlockput(self, ip: Inode) -> None:
        self.iunlock(ip)
        self.iput(ip)

    # Inode content.

    def _bmap(self, ip: Inode, bn: int) -> int:
        if bn < NDIRECT:
            if ip.addrs[bn] == 0:
                ip.addrs[bn] = self._balloc()
            return ip.addrs[bn]
        bn -= NDIRECT
        if bn < NINDIRECT:
            if ip.addrs[NDIRECT] == 0:
                ip.addrs[NDIRECT] = self._balloc()
            with self.cache.block(ip.dev, ip.addrs[NDIRECT]) as buf:
                (addr,) = _UINT.unpack_from(buf.data, bn * _UINT.size)
                if addr == 0:
                    addr = self._balloc()
                    _UINT.pack_into(buf.data, bn * _UINT.size, addr)
                    self.log.log_write(buf)
            return addr
        raise KernelPanic("bmap: out of range")

    def _itrunc(self, ip: Inode) -> None:
        for i, addr in enumerate(ip.addrs[:NDIRECT]):
            if addr:
                self._bfree(addr)
                ip.addrs[i] = 0
        if ip.addrs[NDIRECT]:
            with self.cache.block(ip.dev, ip.addrs[NDIRECT]) as buf:
                entries = _INDIRECT.unpack_from(buf.data, 0)
            for addr in entries:
                if addr:
                    self._bfree(addr)
            self._bfree(ip.addrs[NDIRECT])
            ip.addrs[NDIRECT] = 0
        ip.size = 0
        self.iupdate(ip)

    def stati(self, ip: Inode) -> Stat:
        """Metadata of a locked inode."""
        return Stat(type=ip.type, dev=ip.dev, ino=ip.inum, nlink=ip.nlink, size=ip.size)

    def _device(self, ip: Inode) -> Device:
        device = self.devsw.get(ip.major) if 0 <= ip.major < NDEV else None
        if device is None:
            raise ValueError(f"no device with major number {ip.major}")
        return device

    def readi(self, ip: Inode, off: int, n: int) -> bytes:
        """Read up to n bytes at offset off of a locked inode."""
        if ip.type == FileType.DEV:
            device = self._device(ip)
            if device.read is None:
                raise ValueError(f"device {ip.major} cannot be read")
            return device.read(ip, n)

        if off < 0 or n < 0 or off > ip.size:
            raise ValueError("read offset out of range")
        n = min(n, ip.size - off)
        out = bytearray()
        while len(out) < n:
            with self.cache.block(ip.dev, self._bmap(ip, off // BSIZE)) as buf:
                start = off % BSIZE
                m = min(n - len(out), BSIZE - start)
                out += buf.data[start:start + m]
            off += m
        return bytes(out)

    def writei(self, ip: Inode, data: bytes, off: int) -> int:
        """Write data at offset off of a locked inode; returns bytes written."""
        if ip.type == FileType.DEV:
            device = self._device(ip)
            if device.write is None:
                raise ValueError(f"device {ip.major} cannot be written")
            return device.write(ip, bytes(data))

        n = len(data)
        if off < 0 or off > ip.size:
            raise ValueError("write offset out of range")
        if off + n > MAXFILE * BSIZE:
            raise ValueError("write past maximum file size")
        view = memoryview(bytes(data))
        tot = 0
        while tot < n:
            with self.cache.block(ip.dev, self._bmap(ip, off // BSIZE)) as buf:
                start = off % BSIZE
                m = min(n - tot, BSIZE - start)
                buf.data[start:start + m] = view[tot:tot + m]
                self.log.log_write(buf)
            tot += m
            off += m
        if n > 0 and off > ip.size:
            ip.size = off
            self.iupdate(ip)
        return n

    # Directories.

    def dirlookup(self, dp: Inode, name: str) -> tuple[Inode, int] | None:
        """Find a name in a locked directory: the referenced inode and entry offset."""
        if dp.type != FileType.DIR:
            raise KernelPanic("dirlookup not DIR")
        for off in range(0, dp.size, DIRENT_FORMAT.size):
            raw = self.readi(dp, off, DIRENT_FORMAT.size)
            if len(raw) != DIRENT_FORMAT.size:
                raise KernelPanic("dirlookup read")
            de = Dirent.from_bytes(raw)
            if de.inum and namecmp(name, de.name) == 0:
                return self._iget(dp.dev, de.inum), off
        return None

    def dirlink(self, dp: Inode, name: str, inum: int) -> None:
        """Add an entry to a locked directory; FileExistsError if the name is taken."""
        existing = self.dirlookup(dp, name)
        if existing is not None:
            self.iput(existing[0])
            raise FileExistsError(name)

        off = dp.size
        for candidate in range(0, dp.size, DIRENT_FORMAT.size):
            raw = self.readi(dp, candidate, DIRENT_FORMAT.size)
            if len(raw) != DIRENT_FORMAT.size:
                raise KernelPanic("dirlink read")
            if Dirent.from_bytes(raw).inum == 0:
                off = candidate
                break

        entry = Dirent(inum, name[:DIRSIZ]).to_bytes()
        if self.writei(dp, entry, off) != DIRENT_FORMAT.size:
            raise KernelPanic("dirlink")

    # Paths.

    def _namex(self, path: str, parent: bool, cwd: Inode | None):
        if path.startswith("/") or cwd is None:
            ip = self._iget(self.dev, ROOTINO)
        else:
            ip = self.idup(cwd)

        while (step := skipelem(path)) is not None:
            name, path = step
            self.ilock(ip)
            if ip.type != FileType.DIR:
                self.iunlockput(ip)
                return None
            if parent and path == "":
                self.iunlock(ip)
                return ip, name
            found = self.dirlookup(ip, name)
            if found is None:
                self.iunlockput(ip)
                return None
            self.iunlockput(ip)
            ip = found[0]

        if parent:
            self.iput(ip)
            return None
        return ip

    def namei(self, path: str, cwd: Inode | None = None) -> Inode | None:
        """Inode for a path; relative paths start at cwd, or the root without one."""
        return self._namex(path, False, cwd)

    def nameiparent(self, path: str, cwd: Inode | None = None) -> tuple[Inode, str] | None:
        """Inode of the parent directory of a path and the path's last element."""
        return self._namex(path, True, cwd)
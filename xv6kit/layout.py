"""System parameters, on-disk structures and address-layout constants."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field

# System parameters.
NPROC = 64
KSTACKSIZE = 4096
NCPU = 8
NOFILE = 16
NFILE = 100
NINODE = 50
NDEV = 10
ROOTDEV = 1
MAXARG = 32
MAXOPBLOCKS = 10
LOGSIZE = MAXOPBLOCKS * 3
NBUF = MAXOPBLOCKS * 3
FSSIZE = 1000

# File system format.
ROOTINO = 1
BSIZE = 512
NDIRECT = 12
NINDIRECT = BSIZE // 4
MAXFILE = NDIRECT + NINDIRECT
DIRSIZ = 14
BPB = BSIZE * 8

SUPERBLOCK_FORMAT = struct.Struct("<7I")
DINODE_FORMAT = struct.Struct(f"<4hI{NDIRECT + 1}I")
DIRENT_FORMAT = struct.Struct(f"<H{DIRSIZ}s")
IPB = BSIZE // DINODE_FORMAT.size

# Memory layout.
EXTMEM = 0x100000
PHYSTOP = 0xE000000
DEVSPACE = 0xFE000000
KERNBASE = 0x80000000
KERNLINK = KERNBASE + EXTMEM
_UINT_MASK = 0xFFFFFFFF

# Processor-defined traps.
T_DIVIDE = 0
T_DEBUG = 1
T_NMI = 2
T_BRKPT = 3
T_OFLOW = 4
T_BOUND = 5
T_ILLOP = 6
T_DEVICE = 7
T_DBLFLT = 8
T_TSS = 10
T_SEGNP = 11
T_STACK = 12
T_GPFLT = 13
T_PGFLT = 14
T_FPERR = 16
T_ALIGN = 17
T_MCHK = 18
T_SIMDERR = 19

T_SYSCALL = 64
T_DEFAULT = 500
T_IRQ0 = 32

IRQ_TIMER = 0
IRQ_KBD = 1
IRQ_COM1 = 4
IRQ_IDE = 14
IRQ_ERROR = 19
IRQ_SPURIOUS = 31


class KernelPanic(RuntimeError):
    """An unrecoverable inconsistency detected by the kernel."""


class FileType(enum.IntEnum):
    DIR = 1
    FILE = 2
    DEV = 3


@dataclass
class Superblock:
    """Describes the disk layout."""

    size: int = 0
    nblocks: int = 0
    ninodes: int = 0
    nlog: int = 0
    logstart: int = 0
    inodestart: int = 0
    bmapstart: int = 0

    def to_bytes(self) -> bytes:
        return SUPERBLOCK_FORMAT.pack(
            self.size, self.nblocks, self.ninodes, self.nlog,
            self.logstart, self.inodestart, self.bmapstart,
        )

    @classmethod
    def from_bytes(cls, data) -> Superblock:
        return cls(*SUPERBLOCK_FORMAT.unpack_from(data, 0))


@dataclass
class DiskInode:
    """On-disk inode."""

    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))

    def to_bytes(self) -> bytes:
        return DINODE_FORMAT.pack(
            self.type, self.major, self.minor, self.nlink, self.size, *self.addrs
        )

    @classmethod
    def from_bytes(cls, data) -> DiskInode:
        type_, major, minor, nlink, size, *addrs = DINODE_FORMAT.unpack_from(data, 0)
        return cls(type_, major, minor, nlink, size, list(addrs))


@dataclass
class Dirent:
    """Directory entry: inode number and a name of at most DIRSIZ bytes."""

    inum: int = 0
    name: str = ""

    def to_bytes(self) -> bytes:
        return DIRENT_FORMAT.pack(self.inum, self.name.encode("latin-1")[:DIRSIZ])

    @classmethod
    def from_bytes(cls, data) -> Dirent:
        inum, raw = DIRENT_FORMAT.unpack_from(data, 0)
        return cls(inum, raw.split(b"\0", 1)[0].decode("latin-1"))


@dataclass
class Stat:
    type: int = 0
    dev: int = 0
    ino: int = 0
    nlink: int = 0
    size: int = 0


def iblock(inum: int, sb: Superblock) -> int:
    """Block holding inode ``inum``."""
    return inum // IPB + sb.inodestart


def bblock(b: int, sb: Superblock) -> int:
    """Bitmap block holding the bit for block ``b``."""
    return b // BPB + sb.bmapstart


def v2p(a: int) -> int:
    """Kernel virtual address to physical address."""
    return (a - KERNBASE) & _UINT_MASK


def p2v(a: int) -> int:
    """Physical address to kernel virtual address."""
    return (a + KERNBASE) & _UINT_MASK
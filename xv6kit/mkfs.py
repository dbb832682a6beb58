"""Build a file-system image holding a root directory and a set of files."""

from __future__ import annotations

import struct
import sys
from pathlib import Path

from .layout import (
    BSIZE,
    DINODE_FORMAT,
    DIRSIZ,
    FSSIZE,
    IPB,
    LOGSIZE,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    DiskInode,
    Dirent,
    FileType,
    Superblock,
    iblock,
)

NINODES = 200
NBITMAP = FSSIZE // (BSIZE * 8) + 1
NINODEBLOCKS = NINODES // IPB + 1
NLOG = LOGSIZE
NMETA = 2 + NLOG + NINODEBLOCKS + NBITMAP  # boot, super, log, inodes, bitmap
NBLOCKS = FSSIZE - NMETA

_INDIRECT = struct.Struct(f"<{NINDIRECT}I")


class ImageBuilder:
    """Writes a fresh image to a seekable binary stream.

    The constructor lays out the empty disk and the root directory; files are
    then added with add_file and the image is completed with finish.
    """

    def __init__(self, stream):
        self._stream = stream
        self.sb = Superblock(
            size=FSSIZE,
            nblocks=NBLOCKS,
            ninodes=NINODES,
            nlog=NLOG,
            logstart=2,
            inodestart=2 + NLOG,
            bmapstart=2 + NLOG + NINODEBLOCKS,
        )
        self.freeinode = 1
        self.freeblock = NMETA

        zero = bytes(BSIZE)
        for sec in range(FSSIZE):
            self._wsect(sec, zero)
        self._wsect(1, self.sb.to_bytes().ljust(BSIZE, b"\0"))

        self.rootino = self.ialloc(FileType.DIR)
        if self.rootino != ROOTINO:
            raise RuntimeError("root inode is not the first inode")
        self.iappend(self.rootino, Dirent(self.rootino, ".").to_bytes())
        self.iappend(self.rootino, Dirent(self.rootino, "..").to_bytes())

    def _wsect(self, sec: int, data) -> None:
        if len(data) != BSIZE:
            raise ValueError("sector data must be one block")
        self._stream.seek(sec * BSIZE)
        self._stream.write(bytes(data))

    def _rsect(self, sec: int) -> bytes:
        self._stream.seek(sec * BSIZE)
        data = self._stream.read(BSIZE)
        if len(data) != BSIZE:
            raise OSError(f"short read of sector {sec}")
        return data

    def _take_block(self) -> int:
        if self.freeblock >= FSSIZE:
            raise ValueError("image out of blocks")
        b = self.freeblock
        self.freeblock += 1
        return b

    def ialloc(self, type: int) -> int:
        """Allocate the next inode with one link; returns its number."""
        if self.freeinode >= NINODES:
            raise ValueError("image out of inodes")
        inum = self.freeinode
        self.freeinode += 1
        self.winode(inum, DiskInode(type=int(type), nlink=1, size=0))
        return inum

    def rinode(self, inum: int) -> DiskInode:
        """Read an on-disk inode."""
        block = self._rsect(iblock(inum, self.sb))
        off = (inum % IPB) * DINODE_FORMAT.size
        return DiskInode.from_bytes(block[off:off + DINODE_FORMAT.size])

    def winode(self, inum: int, din: DiskInode) -> None:
        """Write an on-disk inode."""
        bn = iblock(inum, self.sb)
        block = bytearray(self._rsect(bn))
        off = (inum % IPB) * DINODE_FORMAT.size
        block[off:off + DINODE_FORMAT.size] = din.to_bytes()
        self._wsect(bn, block)

    def iappend(self, inum: int, data) -> None:
        """Append data to the end of an inode's content."""
        data = bytes(data)
        din = self.rinode(inum)
        off = din.size
        pos = 0
        while pos < len(data):
            fbn = off // BSIZE
            if fbn >= MAXFILE:
                raise ValueError("file too large for the image")
            if fbn < NDIRECT:
                if din.addrs[fbn] == 0:
                    din.addrs[fbn] = self._take_block()
                x = din.addrs[fbn]
            else:
                if din.addrs[NDIRECT] == 0:
                    din.addrs[NDIRECT] = self._take_block()
                indirect = list(_INDIRECT.unpack(self._rsect(din.addrs[NDIRECT])))
                if indirect[fbn - NDIRECT] == 0:
                    indirect[fbn - NDIRECT] = self._take_block()
                    self._wsect(din.addrs[NDIRECT], _INDIRECT.pack(*indirect))
                x = indirect[fbn - NDIRECT]
            n1 = min(len(data) - pos, (fbn + 1) * BSIZE - off)
            block = bytearray(self._rsect(x))
            start = off - fbn * BSIZE
            block[start:start + n1] = data[pos:pos + n1]
            self._wsect(x, block)
            pos += n1
            off += n1
        din.size = off
        self.winode(inum, din)

    def add_file(self, name: str, data) -> int:
        """Add a file to the root directory; a leading underscore is dropped."""
        if "/" in name:
            raise ValueError(f"file name may not contain '/': {name}")
        if name.startswith("_"):
            name = name[1:]
        inum = self.ialloc(FileType.FILE)
        self.iappend(self.rootino, Dirent(inum, name[:DIRSIZ]).to_bytes())
        self.iappend(inum, data)
        return inum

    def balloc(self, used: int) -> None:
        """Mark the first ``used`` blocks as in use in the bitmap."""
        if used >= BSIZE * 8:
            raise ValueError("too many blocks for one bitmap block")
        bitmap = bytearray(BSIZE)
        for i in range(used):
            bitmap[i // 8] |= 1 << (i % 8)
        self._wsect(self.sb.bmapstart, bitmap)

    def finish(self) -> int:
        """Round the root directory size up and write the bitmap.

        Returns the number of blocks in use.
        """
        din = self.rinode(self.rootino)
        din.size = (din.size // BSIZE + 1) * BSIZE
        self.winode(self.rootino, din)
        self.balloc(self.freeblock)
        self._stream.flush()
        return self.freeblock


def make_image(image_path, files) -> ImageBuilder:
    """Create an image file holding the given files under their base names."""
    with open(image_path, "w+b") as stream:
        builder = ImageBuilder(stream)
        for path in files:
            path = Path(path)
            builder.add_file(path.name, path.read_bytes())
        builder.finish()
    return builder


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    if not argv:
        print("Usage: mkfs fs.img files...", file=sys.stderr)
        return 1
    print(
        f"nmeta {NMETA} (boot, super, log blocks {NLOG} inode blocks "
        f"{NINODEBLOCKS}, bitmap blocks {NBITMAP}) blocks {NBLOCKS} total {FSSIZE}"
    )
    try:
        builder = make_image(argv[0], argv[1:])
    except (OSError, ValueError) as exc:
        print(f"mkfs: {exc}", file=sys.stderr)
        return 1
    print(f"balloc: first {builder.freeblock} blocks have been allocated")
    print(f"balloc: write bitmap block at sector {builder.sb.bmapstart}")
    return 0
"""List files and directories of a file-system image."""

from __future__ import annotations

import sys

from .bio import BufferCache
from .disk import MemDisk
from .fs import FileSystem
from .layout import DIRENT_FORMAT, DIRSIZ, ROOTDEV, Dirent, FileType, KernelPanic
from .printf import format as _format

_PATHBUF = 512


def fmtname(path: str) -> str:
    """Last element of a path, padded with blanks to DIRSIZ characters."""
    name = path.rsplit("/", 1)[-1]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def _inspect(fs, path: str, with_content: bool):
    """Stat of a path and, for directories when asked, their content."""
    with fs.log.transaction():
        ip = fs.namei(path)
        if ip is None:
            return None, b""
        fs.ilock(ip)
        try:
            st = fs.stati(ip)
            content = b""
            if with_content and st.type == FileType.DIR:
                content = fs.readi(ip, 0, ip.size)
        finally:
            fs.iunlockput(ip)
    return st, content


def _line(path: str, st) -> str:
    return _format("%s %d %d %d\n", fmtname(path), st.type, st.ino, st.size)


def ls(fs, path: str, out) -> None:
    """Write a line for a file, or for each entry of a directory."""
    st, content = _inspect(fs, path, with_content=True)
    if st is None:
        sys.stderr.write(f"ls: cannot open {path}\n")
        return

    if st.type == FileType.FILE:
        out.write(_line(path, st))
    elif st.type == FileType.DIR:
        if len(path) + 1 + DIRSIZ + 1 > _PATHBUF:
            out.write("ls: path too long\n")
            return
        size = DIRENT_FORMAT.size
        for off in range(0, len(content) - size + 1, size):
            de = Dirent.from_bytes(content[off:off + size])
            if de.inum == 0:
                continue
            entry = f"{path}/{de.name}"
            est, _ = _inspect(fs, entry, with_content=False)
            if est is None:
                out.write(f"ls: cannot stat {entry}\n")
                continue
            out.write(_line(entry, est))


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    if not argv:
        sys.stderr.write("usage: ls fs.img [path ...]\n")
        return 1
    image, *paths = argv
    try:
        with open(image, "rb") as stream:
            data = stream.read()
    except OSError as exc:
        sys.stderr.write(f"ls: {exc}\n")
        return 1
    try:
        fs = FileSystem(BufferCache(MemDisk(data, ROOTDEV)), ROOTDEV)
        for path in paths or ["."]:
            ls(fs, path, sys.stdout)
    except (KernelPanic, ValueError) as exc:
        sys.stderr.write(f"ls: {exc}\n")
        return 1
    return 0
# xv6kit

xv6kit is a plain-Python model of a small Unix-style kernel's storage stack,
together with a few of its user programs. It covers:

- the on-disk layout (`xv6kit.layout`). This includes `Superblock`,
  `DiskInode` and `Dirent`, each with `to_bytes` and `from_bytes`. It also
  includes `Stat`, the `FileType` enum and the system parameters, such as
  `BSIZE`, `FSSIZE`, `NDIRECT` and `DIRSIZ`.
- an in-memory disk (`xv6kit.disk.MemDisk`) and a buffer cache
  (`xv6kit.bio.BufferCache`). The cache reuses the least recently used clean
  buffer.
- a redo log (`xv6kit.log.Log`) that groups block writes into transactions.
- an inode layer (`xv6kit.fs.FileSystem`). It has direct and indirect
  blocks, directories and path lookup.
- open files and pipes (`xv6kit.file.FileTable`, `xv6kit.pipe.Pipe`).
- a physical page allocator (`xv6kit.kalloc.PageAllocator`).
- a console with line editing and a model of an 80x25 text screen
  (`xv6kit.console`).
- a PC keyboard scan-code decoder (`xv6kit.kbd.Keyboard`).
- a parser for multiprocessor configuration tables (`xv6kit.mp`).
- an image builder (`xv6kit.mkfs`) and the tools `cat`, `echo`, `grep` and
  `ls`.

It needs no third-party libraries.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Commands

### xv6-mkfs

```
xv6-mkfs fs.img README _cat _echo
```

This command writes a 1000-block image. The image has a root directory that
holds `.`, `..` and one entry for each file named. Each entry is stored under
the file's base name, with one leading underscore dropped: `_cat` becomes
`cat`. Names are cut to 14 characters. The command prints the layout it used.
If an error occurs, the command prints a message and exits with status 1.

### xv6-ls

```
xv6-ls fs.img
xv6-ls fs.img / /README
```

This command reads an image made by `xv6-mkfs` and lists paths inside it. The
default path is `.`, which is the root directory.

- For a file, it prints one line: the name padded to 14 characters, then the
  type (1 directory, 2 file, 3 device), the inode number and the size.
- For a directory, it prints one such line for each entry.

The image file itself is never modified.

### xv6-grep

```
xv6-grep '^ab*c$' notes.txt
```

This command prints the lines that match a pattern. A pattern may use only
`^`, `.`, `*` and `$`. When no file is named, the command reads standard
input. Some input is never examined:

- a last line with no newline;
- a run of more than 1023 characters with no newline.

### xv6-cat and xv6-echo

```
xv6-cat notes.txt other.txt
xv6-echo hello world
```

`xv6-cat` copies the named files, or standard input, to standard output.
`xv6-echo` prints its arguments separated by spaces. If there are no
arguments, it prints nothing.

## Library use

The formatting and matching helpers can be called directly:

```python
from xv6kit.grep import match
from xv6kit.printf import format
from xv6kit.console import cprintf, format_int

match("^a.c", "abcdef")            # True
format("%d %x %s", -5, 255, "hi")  # "-5 FF hi"
cprintf("%x", 255)                 # "ff"
format_int(255, 16, False)         # "ff"
```

To build an image in memory and look inside it:

```python
import io
import sys

from xv6kit.bio import BufferCache
from xv6kit.disk import MemDisk
from xv6kit.fs import FileSystem
from xv6kit.ls import ls
from xv6kit.mkfs import ImageBuilder

stream = io.BytesIO()
builder = ImageBuilder(stream)
builder.add_file("hello", b"hello world\n")
builder.finish()

fs = FileSystem(BufferCache(MemDisk(stream.getvalue())))
ls(fs, "/", sys.stdout)

with fs.log.transaction():
    ip = fs.namei("/hello")
    fs.ilock(ip)
    print(fs.readi(ip, 0, ip.size))  # b'hello world\n'
    fs.iunlockput(ip)
```

The storage layers stack in this order:

1. `MemDisk` holds an image.
2. `BufferCache` caches its blocks.
3. `Log` wraps changes in transactions.
4. `FileSystem` provides inodes, directories and path lookup.
5. `FileTable` manages the open files and pipes on top of these layers.

Changes go to the in-memory disk. `MemDisk.to_bytes()` returns the current
image.

Some errors are fatal inconsistencies, such as freeing a block that is
already free or running out of buffers. These raise
`xv6kit.layout.KernelPanic`. Ordinary failures raise the usual Python
exceptions:

- `FileExistsError` from `dirlink`;
- `OSError` from `FileTable`;
- `BrokenPipeError` (`PipeError`) from a pipe that has no reader;
- `MemoryError` from `kalloc`.

## What it does not do

The package has no processes, scheduler, system calls, program loading or
boot sequence, and there is no shell. Nothing runs as a kernel. The layers
are objects you call directly.

The tools work on files of the host, or read a finished image. None of the
commands writes changes back into an existing image.
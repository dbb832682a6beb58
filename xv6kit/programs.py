"""The cat and echo commands."""

from __future__ import annotations

import sys

_CHUNK = 512


def cat(stream, out) -> None:
    """Copy a binary stream to an output stream."""
    while chunk := stream.read(_CHUNK):
        written = out.write(chunk)
        if written is not None and written != len(chunk):
            raise OSError("cat: write error")


def echo(args, out) -> None:
    """Write the arguments separated by spaces and ended by a newline."""
    args = list(args)
    if args:
        out.write(" ".join(args) + "\n")


def cat_main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    sys.stdout.flush()
    out = sys.stdout.buffer
    if not argv:
        cat(sys.stdin.buffer, out)
        out.flush()
        return 0
    for path in argv:
        try:
            stream = open(path, "rb")
        except OSError:
            out.write(f"cat: cannot open {path}\n".encode())
            out.flush()
            return 1
        with stream:
            cat(stream, out)
    out.flush()
    return 0


def echo_main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    echo(argv, sys.stdout)
    return 0
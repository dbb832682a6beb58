"""User-level formatted output: %d, %x, %p, %s, %c and %%."""

from __future__ import annotations

from .console import format_int


def _digits(xx: int, base: int, sign: int) -> str:
    return format_int(xx, base, sign).upper()


def format(fmt: str, *args) -> str:
    """Format ``args`` into ``fmt``; hexadecimal digits are upper case."""
    pending = iter(args)

    def next_arg():
        try:
            return next(pending)
        except StopIteration:
            raise TypeError(f"not enough arguments for format {fmt!r}") from None

    out: list[str] = []
    chars = iter(fmt)
    for ch in chars:
        if ch != "%":
            out.append(ch)
            continue
        c = next(chars, None)
        if c is None:
            break
        if c == "d":
            out.append(_digits(next_arg(), 10, 1))
        elif c in ("x", "p"):
            out.append(_digits(next_arg(), 16, 0))
        elif c == "s":
            s = next_arg()
            out.append("(null)" if s is None else str(s))
        elif c == "c":
            arg = next_arg()
            out.append(arg[:1] if isinstance(arg, str) else chr(arg & 0xFF))
        elif c == "%":
            out.append("%")
        else:
            out.append("%" + c)
    return "".join(out)


def printf(stream, fmt: str, *args) -> None:
    """Write formatted text to a text stream."""
    stream.write(format(fmt, *args))
"""Console formatting, a text-mode screen model and the line-editing input buffer."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from .layout import KernelPanic

BACKSPACE = 0x100
INPUT_BUF = 128
COLS = 80
ROWS = 25
_ATTR = 0x0700  # black on white
_UINT_MASK = 0xFFFFFFFF


def ctrl(ch: str) -> int:
    """Code of Control-``ch``."""
    return ord(ch) - ord("@")


def _to_int32(value: int) -> int:
    value &= _UINT_MASK
    return value - (1 << 32) if value & 0x80000000 else value


def format_int(xx: int, base: int, sign: int) -> str:
    """Digits of a 32-bit integer in ``base``, signed if ``sign`` is true."""
    digits = "0123456789abcdef"
    xx = _to_int32(xx)
    neg = bool(sign) and xx < 0
    x = (-xx if neg else xx) & _UINT_MASK
    out = []
    while True:
        x, d = divmod(x, base)
        out.append(digits[d])
        if x == 0:
            break
    if neg:
        out.append("-")
    return "".join(reversed(out))


def cprintf(fmt: str, *args) -> str:
    """Format like the kernel console: understands %d, %x, %p, %s and %%."""
    if fmt is None:
        raise KernelPanic("null fmt")
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
            out.append(format_int(next_arg(), 10, 1))
        elif c in ("x", "p"):
            out.append(format_int(next_arg(), 16, 0))
        elif c == "s":
            s = next_arg()
            out.append("(null)" if s is None else str(s))
        elif c == "%":
            out.append("%")
        else:
            # Unknown sequence: print it to draw attention.
            out.append("%" + c)
    return "".join(out)


class CgaScreen:
    """An 80x25 colour text screen with a cursor that scrolls at row 24."""

    def __init__(self):
        self.cells = [0] * (COLS * ROWS)
        self.pos = 0

    def putc(self, c: int) -> None:
        """Put one character code (or BACKSPACE) at the cursor."""
        pos = self.pos
        if c == ord("\n"):
            pos += COLS - pos % COLS
        elif c == BACKSPACE:
            if pos > 0:
                pos -= 1
        else:
            self.cells[pos] = (c & 0xFF) | _ATTR
            pos += 1

        if pos < 0 or pos > ROWS * COLS:
            raise KernelPanic("pos under/overflow")

        if pos // COLS >= 24:
            self.cells[0:23 * COLS] = self.cells[COLS:24 * COLS]
            pos -= COLS
            self.cells[pos:24 * COLS] = [0] * (24 * COLS - pos)

        self.pos = pos
        self.cells[pos] = ord(" ") | _ATTR

    def text(self) -> str:
        """Screen contents as lines with trailing blanks removed."""
        rows = []
        for start in range(0, ROWS * COLS, COLS):
            row = self.cells[start:start + COLS]
            rows.append("".join(chr(cell & 0xFF) if cell & 0xFF else " " for cell in row).rstrip())
        return "\n".join(rows).rstrip("\n")


class Console:
    """Console device: echoes to a serial stream and screen, buffers edited input lines."""

    def __init__(self, output=None):
        self.output = output
        self.screen = CgaScreen()
        self._buf = [0] * INPUT_BUF
        self.r = 0  # read index
        self.w = 0  # write index
        self.e = 0  # edit index
        self._cond = threading.Condition()

    def putc(self, c: int) -> None:
        """Send one character to the serial stream and the screen."""
        if self.output is not None:
            self.output.write(b"\b \b" if c == BACKSPACE else bytes([c & 0xFF]))
        self.screen.putc(c)

    def interrupt(self, chars: Iterable[int] | str) -> bool:
        """Process typed characters; returns True if a process listing was requested."""
        if isinstance(chars, str):
            chars = [ord(ch) for ch in chars]
        procdump = False
        with self._cond:
            for c in chars:
                if c < 0:
                    break
                if c == ctrl("P"):
                    procdump = True
                elif c == ctrl("U"):
                    while self.e != self.w and self._buf[(self.e - 1) % INPUT_BUF] != ord("\n"):
                        self.e -= 1
                        self.putc(BACKSPACE)
                elif c in (ctrl("H"), 0x7F):
                    if self.e != self.w:
                        self.e -= 1
                        self.putc(BACKSPACE)
                elif c != 0 and self.e - self.r < INPUT_BUF:
                    if c == ord("\r"):
                        c = ord("\n")
                    self._buf[self.e % INPUT_BUF] = c
                    self.e += 1
                    self.putc(c)
                    if c == ord("\n") or c == ctrl("D") or self.e == self.r + INPUT_BUF:
                        self.w = self.e
                        self._cond.notify_all()
        return procdump

    def read(self, n: int) -> bytes:
        """Read up to n bytes, at most one line; waits for a finished line."""
        target = n
        out = bytearray()
        with self._cond:
            while n > 0:
                while self.r == self.w:
                    self._cond.wait()
                c = self._buf[self.r % INPUT_BUF]
                self.r += 1
                if c == ctrl("D"):
                    if n < target:
                        # Keep ^D so the next read returns nothing.
                        self.r -= 1
                    break
                out.append(c & 0xFF)
                n -= 1
                if c == ord("\n"):
                    break
        return bytes(out)

    def write(self, data) -> int:
        """Write bytes to the console."""
        data = bytes(data)
        with self._cond:
            for b in data:
                self.putc(b)
        return len(data)
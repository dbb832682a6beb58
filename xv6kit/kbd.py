"""PC keyboard scan-code decoding."""

from __future__ import annotations

from collections.abc import Iterable

KBSTATP = 0x64
KBS_DIB = 0x01
KBDATAP = 0x60

SHIFT = 1 << 0
CTL = 1 << 1
ALT = 1 << 2
CAPSLOCK = 1 << 3
NUMLOCK = 1 << 4
SCROLLLOCK = 1 << 5
E0ESC = 1 << 6

KEY_HOME = 0xE0
KEY_END = 0xE1
KEY_UP = 0xE2
KEY_DN = 0xE3
KEY_LF = 0xE4
KEY_RT = 0xE5
KEY_PGUP = 0xE6
KEY_PGDN = 0xE7
KEY_INS = 0xE8
KEY_DEL = 0xE9


def _ctrl(ch: str) -> int:
    return (ord(ch) - ord("@")) & 0xFF


SHIFTCODE = {0x1D: CTL, 0x2A: SHIFT, 0x36: SHIFT, 0x38: ALT, 0x9D: CTL, 0xB8: ALT}
TOGGLECODE = {0x3A: CAPSLOCK, 0x45: NUMLOCK, 0x46: SCROLLLOCK}

_EXTENDED = {
    0xC8: KEY_UP, 0xD0: KEY_DN,
    0xC9: KEY_PGUP, 0xD1: KEY_PGDN,
    0xCB: KEY_LF, 0xCD: KEY_RT,
    0x97: KEY_HOME, 0xCF: KEY_END,
    0xD2: KEY_INS, 0xD3: KEY_DEL,
}

_KEYPAD_ROWS = (
    "\0 \0\0\0\0\0\0"
    "\0\0\0\0\0\0\0" "7"
    "89-456+1"
    "230.\0\0\0\0"
)


def _build(layout: str, enter: int, kp_div: int) -> tuple[int, ...]:
    table = [0] * 256
    for code, ch in enumerate(layout):
        table[code] = ord(ch)
    table[0x9C] = enter
    table[0xB5] = kp_div
    for code, key in _EXTENDED.items():
        table[code] = key
    return tuple(table)


NORMALMAP = _build(
    "\0\x1b1234567890-=\b\t"
    "qwertyuiop[]\n\0as"
    "dfghjkl;'`\0\\zxcv"
    "bnm,./\0*" + _KEYPAD_ROWS,
    ord("\n"), ord("/"),
)

SHIFTMAP = _build(
    "\0\x1b!@#$%^&*()_+\b\t"
    "QWERTYUIOP{}\n\0AS"
    "DFGHJKL:\"~\0|ZXCV"
    "BNM<>?\0*" + _KEYPAD_ROWS,
    ord("\n"), ord("/"),
)


def _ctlmap() -> tuple[int, ...]:
    table = list(_build("", ord("\r"), _ctrl("/")))
    rows = {
        0x10: "QWERTYUIOP",
        0x1E: "ASDFGHJKL",
        0x2B: "\\ZXCVBNM",
    }
    for start, letters in rows.items():
        for offset, ch in enumerate(letters):
            table[start + offset] = _ctrl(ch)
    table[0x1C] = ord("\r")
    table[0x35] = _ctrl("/")
    return tuple(table)


CTLMAP = _ctlmap()

_CHARCODE = (NORMALMAP, SHIFTMAP, CTLMAP, CTLMAP)


class Keyboard:
    """Tracks modifier state and turns scan codes into characters."""

    def __init__(self):
        self.shift = 0

    def feed(self, scancode: int) -> int:
        """Decode one scan code; 0 for prefixes, releases and unmapped keys."""
        data = scancode & 0xFF
        if data == 0xE0:
            self.shift |= E0ESC
            return 0
        if data & 0x80:
            if not self.shift & E0ESC:
                data &= 0x7F
            self.shift &= ~(SHIFTCODE.get(data, 0) | E0ESC)
            return 0
        if self.shift & E0ESC:
            data |= 0x80
            self.shift &= ~E0ESC

        self.shift |= SHIFTCODE.get(data, 0)
        self.shift ^= TOGGLECODE.get(data, 0)
        c = _CHARCODE[self.shift & (CTL | SHIFT)][data]
        if self.shift & CAPSLOCK:
            if ord("a") <= c <= ord("z"):
                c += ord("A") - ord("a")
            elif ord("A") <= c <= ord("Z"):
                c += ord("a") - ord("A")
        return c

    def getc(self, scancodes: Iterable[int]) -> int:
        """Take the next scan code from an iterator; -1 when none is waiting."""
        data = next(iter(scancodes), None)
        if data is None:
            return -1
        return self.feed(data)
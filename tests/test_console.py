import io

import pytest

from xv6kit.console import (
    BACKSPACE,
    Console,
    CgaScreen,
    cprintf,
    ctrl,
    format_int,
)
from xv6kit.layout import KernelPanic


@pytest.mark.parametrize("n", [0, 7, -7, 123456, -2147483648, 2147483647])
def test_format_int_decimal_matches_str(n):
    assert format_int(n, 10, 1) == str(n)


def test_format_int_unsigned_hex_of_negative():
    assert format_int(-1, 16, 0) == format(0xFFFFFFFF, "x")


def test_cprintf_mixed():
    assert cprintf("%s and %d", "x", 5) == "x and 5"


def test_cprintf_hex_and_pointer_agree():
    assert cprintf("%x", 48879) == cprintf("%p", 48879) == format(48879, "x")


def test_cprintf_null_string():
    assert cprintf("%s", None) == "(null)"


def test_cprintf_unknown_and_percent():
    assert cprintf("%q") == "%q"
    assert cprintf("50%%") == "50%"


def test_cprintf_trailing_percent_dropped():
    assert cprintf("abc%") == "abc"


def test_cprintf_errors():
    with pytest.raises(KernelPanic):
        cprintf(None)
    with pytest.raises(TypeError):
        cprintf("%d")


def test_screen_lines_and_backspace():
    screen = CgaScreen()
    for ch in "hi\nthere":
        screen.putc(ord(ch))
    assert screen.text() == "hi\nthere"
    screen.putc(BACKSPACE)
    assert screen.text() == "hi\nther"


def test_screen_scrolls():
    screen = CgaScreen()
    for i in range(30):
        for ch in f"line{i}\n":
            screen.putc(ord(ch))
    lines = screen.text().split("\n")
    assert lines[-1] == "line29"
    assert "line0" not in lines
    assert len(lines) <= 24


def test_console_line_read_and_echo():
    out = io.BytesIO()
    con = Console(out)
    con.interrupt("hello\n")
    assert con.read(100) == b"hello\n"
    assert out.getvalue() == b"hello\n"


def test_console_partial_reads():
    con = Console()
    con.interrupt("hello\n")
    first = con.read(2)
    assert first + con.read(10) == b"hello\n"
    assert len(first) == 2


def test_console_carriage_return_becomes_newline():
    con = Console()
    con.interrupt("ok\r")
    assert con.read(10) == b"ok\n"


def test_console_backspace_edits():
    out = io.BytesIO()
    con = Console(out)
    con.interrupt("ab\x7fc\n")
    assert con.read(10) == b"ac\n"
    assert b"\b \b" in out.getvalue()


def test_console_kill_line():
    con = Console()
    con.interrupt([ord("a"), ord("b"), ctrl("U"), ord("x"), ord("\n")])
    assert con.read(10) == b"x\n"


def test_console_eof_saved_for_next_read():
    con = Console()
    con.interrupt([ord("a"), ord("b"), ctrl("D")])
    assert con.read(10) == b"ab"
    assert con.read(10) == b""


def test_console_procdump_request():
    con = Console()
    assert con.interrupt([ctrl("P")]) is True
    assert con.interrupt("x") is False


def test_console_write():
    out = io.BytesIO()
    con = Console(out)
    assert con.write(b"abc") == 3
    assert out.getvalue() == b"abc"
    assert con.screen.text() == "abc"
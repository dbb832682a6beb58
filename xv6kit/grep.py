"""Line search with a small regular-expression language: ^ . * $."""

from __future__ import annotations

import sys

_BUFSIZE = 1024


def match(re: str, text: str) -> bool:
    """True if the pattern matches anywhere in the text."""
    if re.startswith("^"):
        return matchhere(re[1:], text)
    return any(matchhere(re, text[i:]) for i in range(len(text) + 1))


def matchhere(re: str, text: str) -> bool:
    """True if the pattern matches at the beginning of the text."""
    if not re:
        return True
    if len(re) >= 2 and re[1] == "*":
        return matchstar(re[0], re[2:], text)
    if re == "$":
        return text == ""
    if text and (re[0] == "." or re[0] == text[0]):
        return matchhere(re[1:], text[1:])
    return False


def matchstar(c: str, re: str, text: str) -> bool:
    """True if zero or more ``c`` followed by the pattern match at the start."""
    i = 0
    while True:
        if matchhere(re, text[i:]):
            return True
        if i < len(text) and (text[i] == c or c == "."):
            i += 1
        else:
            return False


def grep(pattern: str, stream, out) -> None:
    """Write each complete line of the stream that matches the pattern.

    Input is read through a fixed buffer: a final line without a newline is
    not examined, and a buffer full of text with no newline is discarded.
    """
    buf = ""
    while True:
        chunk = stream.read(_BUFSIZE - 1 - len(buf))
        if not chunk:
            break
        buf += chunk
        *lines, rest = buf.split("\n")
        for line in lines:
            if match(pattern, line):
                out.write(line + "\n")
        buf = rest if lines else ""


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    if not argv:
        sys.stderr.write("usage: grep pattern [file ...]\n")
        return 1
    pattern, *paths = argv
    if not paths:
        grep(pattern, sys.stdin, sys.stdout)
        return 0
    for path in paths:
        try:
            stream = open(path, encoding="latin-1", newline="")
        except OSError:
            sys.stdout.write(f"grep: cannot open {path}\n")
            return 1
        with stream:
            grep(pattern, stream, sys.stdout)
    return 0
import threading

import pytest

from xv6kit.pipe import PIPESIZE, Pipe, PipeError


def test_write_then_read_round_trip():
    p = Pipe()
    assert p.write(b"hello") == 5
    assert p.read(100) == b"hello"


def test_read_returns_at_most_n_bytes():
    p = Pipe()
    p.write(b"abcdef")
    assert p.read(2) == b"ab"
    assert p.read(10) == b"cdef"


def test_counters_track_bytes():
    p = Pipe()
    p.write(b"abcdef")
    p.read(4)
    assert p.nwrite == 6
    assert p.nread == 4


def test_read_after_writer_closed_returns_empty():
    p = Pipe()
    p.write(b"x")
    p.close(True)
    assert p.read(10) == b"x"
    assert p.read(10) == b""


def test_write_with_reader_closed_succeeds_until_full():
    p = Pipe()
    p.close(False)
    assert p.write(b"y" * PIPESIZE) == PIPESIZE


def test_write_past_full_with_reader_closed_raises():
    p = Pipe()
    p.close(False)
    with pytest.raises(PipeError):
        p.write(b"z" * (PIPESIZE + 1))


def test_pipe_error_is_broken_pipe():
    p = Pipe()
    p.close(False)
    p.write(b"a" * PIPESIZE)
    with pytest.raises(BrokenPipeError):
        p.write(b"b")


def test_closed_after_both_ends():
    p = Pipe()
    p.close(True)
    assert not p.closed
    p.close(False)
    assert p.closed


def test_writer_blocks_until_reader_drains():
    p = Pipe()
    payload = bytes(range(256)) * 8
    result = {}

    def writer():
        result["n"] = p.write(payload)
        p.close(True)

    t = threading.Thread(target=writer)
    t.start()
    received = bytearray()
    while True:
        chunk = p.read(100)
        if not chunk:
            break
        received += chunk
    t.join(timeout=5)
    assert bytes(received) == payload
    assert result["n"] == len(payload)


def test_blocked_reader_wakes_on_writer_close():
    p = Pipe()
    closer = threading.Timer(0.05, p.close, args=(True,))
    closer.start()
    data = p.read(10)
    closer.join(timeout=5)
    assert data == b""
    assert p.writeopen in (0, False)
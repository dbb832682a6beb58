import struct

import pytest

from xv6kit.bio import BufferCache
from xv6kit.disk import MemDisk
from xv6kit.layout import BSIZE, LOGSIZE, KernelPanic, Superblock
from xv6kit.log import Log

NBLOCKS = 64


def _setup(nlog=LOGSIZE, image=None):
    sb = Superblock(size=NBLOCKS, nblocks=0, ninodes=0, nlog=nlog,
                    logstart=2, inodestart=2 + nlog, bmapstart=3 + nlog)
    if image is None:
        image = bytearray(NBLOCKS * BSIZE)
    raw = sb.to_bytes()
    image[BSIZE:BSIZE + len(raw)] = raw
    disk = MemDisk(image)
    cache = BufferCache(disk)
    return disk, cache, Log(cache, 1, sb)


def _block(disk, n):
    return disk.to_bytes()[n * BSIZE:(n + 1) * BSIZE]


def test_transaction_installs_block():
    disk, cache, log = _setup()
    with log.transaction():
        buf = cache.bread(1, 50)
        buf.data[:5] = b"hello"
        log.log_write(buf)
        cache.brelse(buf)
    assert _block(disk, 50)[:5] == b"hello"
    assert _block(disk, 2)[:4] == struct.pack("<i", 0)
    assert log.outstanding == 0


def test_nothing_reaches_disk_before_commit():
    disk, cache, log = _setup()
    log.begin_op()
    buf = cache.bread(1, 51)
    buf.data[:3] = b"abc"
    log.log_write(buf)
    cache.brelse(buf)
    assert _block(disk, 51) == bytes(BSIZE)
    log.end_op()
    assert _block(disk, 51)[:3] == b"abc"


def test_absorption_logs_block_once():
    disk, cache, log = _setup()
    with log.transaction():
        buf = cache.bread(1, 50)
        buf.data[:3] = b"one"
        log.log_write(buf)
        buf.data[:3] = b"two"
        log.log_write(buf)
        cache.brelse(buf)
    assert _block(disk, 3)[:3] == b"two"
    assert _block(disk, 4) == bytes(BSIZE)
    assert _block(disk, 50)[:3] == b"two"


def test_nested_operations_commit_at_last_end():
    disk, cache, log = _setup()
    log.begin_op()
    log.begin_op()
    buf = cache.bread(1, 52)
    buf.data[:1] = b"z"
    log.log_write(buf)
    cache.brelse(buf)
    log.end_op()
    assert _block(disk, 52) == bytes(BSIZE)
    log.end_op()
    assert _block(disk, 52)[:1] == b"z"


def test_recovery_installs_committed_log():
    image = bytearray(NBLOCKS * BSIZE)
    image[2 * BSIZE:2 * BSIZE + 8] = struct.pack("<ii", 1, 60)
    image[3 * BSIZE:4 * BSIZE] = b"\xab" * BSIZE
    disk, _cache, _log = _setup(image=image)
    assert _block(disk, 60) == b"\xab" * BSIZE
    assert _block(disk, 2)[:4] == struct.pack("<i", 0)


def test_log_write_outside_transaction_panics():
    _disk, cache, log = _setup()
    buf = cache.bread(1, 50)
    with pytest.raises(KernelPanic, match="outside of trans"):
        log.log_write(buf)


def test_too_big_transaction_panics():
    _disk, cache, log = _setup(nlog=3)
    log.begin_op()
    for blockno in (40, 41):
        buf = cache.bread(1, blockno)
        log.log_write(buf)
        cache.brelse(buf)
    buf = cache.bread(1, 42)
    with pytest.raises(KernelPanic, match="too big"):
        log.log_write(buf)


def test_transaction_ends_on_exception():
    _disk, cache, log = _setup()
    with pytest.raises(ValueError):
        with log.transaction():
            raise ValueError("boom")
    assert log.outstanding == 0
    buf = cache.bread(1, 50)
    with pytest.raises(KernelPanic):
        log.log_write(buf)
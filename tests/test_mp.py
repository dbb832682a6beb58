import struct

import pytest

from xv6kit.layout import NCPU, KernelPanic
from xv6kit.mp import checksum, mpconfig, mpinit, mpsearch, mpsearch1

LAPIC = 0xFEE00000
CONF_AT = 0x9000


def _proc(apicid):
    entry = bytearray(20)
    entry[1] = apicid
    return bytes(entry)


def _ioapic(apicno):
    return bytes([2, apicno, 0x11, 1]) + struct.pack("<I", 0xFEC00000)


def _bus():
    return bytes([1, 0]) + b"PCI   "


def _machine(entries, version=4, imcrp=0, mp_at=0xF0010, bad_mp_sum=False):
    mem = bytearray(0x100000)
    conf = bytearray(44) + b"".join(entries)
    conf[0:4] = b"PCMP"
    struct.pack_into("<H", conf, 4, len(conf))
    conf[6] = version
    struct.pack_into("<I", conf, 36, LAPIC)
    conf[7] = (-sum(conf)) & 0xFF
    mem[CONF_AT:CONF_AT + len(conf)] = conf

    mp = bytearray(16)
    mp[0:4] = b"_MP_"
    struct.pack_into("<I", mp, 4, CONF_AT)
    mp[8] = 1
    mp[9] = 4
    mp[12] = imcrp
    mp[10] = (-sum(mp) + (1 if bad_mp_sum else 0)) & 0xFF
    mem[mp_at:mp_at + 16] = mp
    return mem


def test_checksum_of_built_tables_is_zero():
    mem = _machine([_proc(0)])
    assert checksum(mem[0xF0010:0xF0020]) == 0


def test_mpsearch1_finds_pointer():
    mem = _machine([_proc(0)])
    assert mpsearch1(mem, 0xF0000, 0x10000) == 0xF0010
    assert mpsearch1(mem, 0xE0000, 0x1000) is None


def test_mpsearch_uses_ebda():
    mem = _machine([_proc(0)], mp_at=0x9FC00)
    mem[0x40E:0x410] = (0x9FC0).to_bytes(2, "little")
    assert mpsearch(mem) == 0x9FC00


def test_mpsearch_falls_back_to_rom():
    mem = _machine([_proc(0)])
    assert mpsearch(mem) == 0xF0010


def test_mpconfig_addresses():
    mem = _machine([_proc(0)])
    assert mpconfig(mem) == (0xF0010, CONF_AT)


def test_mpinit_reads_entries():
    mem = _machine([_proc(0), _proc(1), _bus(), _ioapic(2)], imcrp=1)
    config = mpinit(mem)
    assert config.apicids == [0, 1]
    assert config.ncpu == 2
    assert config.ioapicid == 2
    assert config.lapic == LAPIC
    assert config.imcr is True


def test_mpinit_limits_cpus():
    mem = _machine([_proc(i) for i in range(NCPU + 3)])
    config = mpinit(mem)
    assert config.apicids == list(range(NCPU))


def test_bad_version_rejected():
    mem = _machine([_proc(0)], version=2)
    assert mpconfig(mem) is None
    with pytest.raises(KernelPanic):
        mpinit(mem)


def test_bad_pointer_checksum_rejected():
    mem = _machine([_proc(0)], bad_mp_sum=True)
    assert mpsearch(mem) is None
    with pytest.raises(KernelPanic):
        mpinit(mem)


def test_unknown_entry_panics():
    mem = _machine([_proc(0), bytes([9]) + bytes(7)])
    with pytest.raises(KernelPanic):
        mpinit(mem)
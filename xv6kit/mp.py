"""Find and parse the multiprocessor configuration tables in physical memory."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .layout import NCPU, KernelPanic

MP_SIZE = 16
MPCONF_SIZE = 44
MPPROC_SIZE = 20
MPIOAPIC_SIZE = 8

MPPROC = 0x00
MPBUS = 0x01
MPIOAPIC = 0x02
MPIOINTR = 0x03
MPLINTR = 0x04

MPBOOT = 0x02

_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")


@dataclass
class MachineConfig:
    """What the MP tables say about the machine."""

    lapic: int
    apicids: list[int] = field(default_factory=list)
    ioapicid: int = 0
    imcr: bool = False

    @property
    def ncpu(self) -> int:
        return len(self.apicids)


def checksum(data) -> int:
    """Sum of the bytes modulo 256; a valid table sums to zero."""
    return sum(data) & 0xFF


def mpsearch1(memory, a: int, length: int) -> int | None:
    """Address of an MP floating pointer in [a, a+length), or None."""
    for p in range(a, a + length, MP_SIZE):
        if p < 0:
            continue
        if bytes(memory[p:p + 4]) == b"_MP_" and checksum(memory[p:p + MP_SIZE]) == 0:
            return p
    return None


def mpsearch(memory) -> int | None:
    """Look in the EBDA, the last KB of base memory, then the BIOS ROM."""
    bda = 0x400
    p = ((memory[bda + 0x0F] << 8) | memory[bda + 0x0E]) << 4
    if p:
        found = mpsearch1(memory, p, 1024)
    else:
        p = ((memory[bda + 0x14] << 8) | memory[bda + 0x13]) * 1024
        found = mpsearch1(memory, p - 1024, 1024)
    if found is not None:
        return found
    return mpsearch1(memory, 0xF0000, 0x10000)


def mpconfig(memory) -> tuple[int, int] | None:
    """Addresses of a valid floating pointer and its configuration table."""
    mp = mpsearch(memory)
    if mp is None:
        return None
    (conf,) = _U32.unpack_from(memory, mp + 4)
    if conf == 0:
        return None
    if bytes(memory[conf:conf + 4]) != b"PCMP":
        return None
    if memory[conf + 6] not in (1, 4):
        return None
    (length,) = _U16.unpack_from(memory, conf + 4)
    if checksum(memory[conf:conf + length]) != 0:
        return None
    return mp, conf


def mpinit(memory) -> MachineConfig:
    """Read the processors, I/O APIC and local APIC address from the MP tables."""
    found = mpconfig(memory)
    if found is None:
        raise KernelPanic("Expect to run on an SMP")
    mp, conf = found
    (lapic,) = _U32.unpack_from(memory, conf + 36)
    (length,) = _U16.unpack_from(memory, conf + 4)
    config = MachineConfig(lapic=lapic, imcr=bool(memory[mp + 12]))

    p = conf + MPCONF_SIZE
    end = conf + length
    while p < end:
        kind = memory[p]
        if kind == MPPROC:
            if len(config.apicids) < NCPU:
                config.apicids.append(memory[p + 1])
            p += MPPROC_SIZE
        elif kind == MPIOAPIC:
            config.ioapicid = memory[p + 1]
            p += MPIOAPIC_SIZE
        elif kind in (MPBUS, MPIOINTR, MPLINTR):
            p += 8
        else:
            raise KernelPanic("Didn't find a suitable machine")
    return config
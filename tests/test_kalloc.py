import pytest

from xv6kit.kalloc import PGSIZE, PageAllocator, pgroundup
from xv6kit.layout import PHYSTOP, KernelPanic, p2v

END = p2v(0x200000)


def test_consecutive_pages_are_4096_apart():
    alloc = PageAllocator(END)
    alloc.kinit1(END, END + 2 * PGSIZE)
    first = alloc.kalloc()
    second = alloc.kalloc()
    assert first - second == 4096


def test_pgroundup_invariants():
    assert pgroundup(END) == END
    assert pgroundup(END + 1) == END + PGSIZE


def test_kinit1_frees_whole_pages():
    alloc = PageAllocator(END)
    alloc.kinit1(END, END + 4 * PGSIZE)
    assert alloc.free_pages == 4
    assert alloc.use_lock is False


def test_kinit2_enables_locking():
    alloc = PageAllocator(END)
    alloc.kinit1(END, END + PGSIZE)
    alloc.kinit2(END + PGSIZE, END + 3 * PGSIZE)
    assert alloc.free_pages == 3
    assert alloc.use_lock is True


def test_freerange_skips_partial_pages():
    alloc = PageAllocator(END)
    alloc.freerange(END + 1, END + 3 * PGSIZE + 10)
    pages = sorted(alloc.kalloc() for _ in range(alloc.free_pages))
    assert pages == [END + PGSIZE, END + 2 * PGSIZE]


def test_kalloc_returns_last_freed_page():
    alloc = PageAllocator(END)
    alloc.kinit1(END, END + 3 * PGSIZE)
    assert alloc.kalloc() == END + 2 * PGSIZE


def test_kalloc_kfree_round_trip():
    alloc = PageAllocator(END)
    alloc.kinit1(END, END + 2 * PGSIZE)
    page = alloc.kalloc()
    assert alloc.free_pages == 1
    alloc.kfree(page)
    assert alloc.free_pages == 2
    assert alloc.kalloc() == page


def test_kalloc_exhausted_raises():
    alloc = PageAllocator(END)
    alloc.kinit1(END, END + PGSIZE)
    alloc.kalloc()
    with pytest.raises(MemoryError):
        alloc.kalloc()


@pytest.mark.parametrize("address", [END + 1, END - PGSIZE, p2v(PHYSTOP)])
def test_kfree_rejects_bad_addresses(address):
    alloc = PageAllocator(END)
    with pytest.raises(KernelPanic):
        alloc.kfree(address)
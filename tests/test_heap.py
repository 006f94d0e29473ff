import pytest

from kernelkit.config import Layout
from kernelkit.errors import NoMemory
from kernelkit.heap import Heap, prev_power_of_two

SPACE_START = 0x1000
SPACE_END = SPACE_START + 100 * 8


def _filled_heap() -> Heap:
    heap = Heap(32)
    heap.add_to_heap(SPACE_START, SPACE_END)
    return heap


def test_empty_heap():
    heap = Heap(32)
    with pytest.raises(NoMemory):
        heap.alloc(Layout.from_size_align(1, 1))


def test_heap_add():
    heap = Heap(32)
    with pytest.raises(NoMemory):
        heap.alloc(Layout.from_size_align(1, 1))
    heap.add_to_heap(SPACE_START, SPACE_END)
    addr = heap.alloc(Layout.from_size_align(1, 1))
    assert SPACE_START <= addr < SPACE_END
    assert heap.stats_total_bytes() == 800


def test_heap_oom():
    heap = _filled_heap()
    with pytest.raises(NoMemory):
        heap.alloc(Layout.from_size_align(100 * 8, 1))
    assert heap.alloc(Layout.from_size_align(1, 1)) == 0x1300


def test_heap_alloc_and_free():
    heap = _filled_heap()
    layout = Layout.from_size_align(1, 1)
    for _ in range(100):
        addr = heap.alloc(layout)
        assert addr == 0x1300
        heap.dealloc(addr, layout)
    assert heap.used == 0
    assert heap.allocated == 0


def test_used_and_allocated_stats():
    heap = _filled_heap()
    layout = Layout.from_size_align(3, 1)
    addr = heap.alloc(layout)
    assert heap.used == 3
    assert heap.allocated == 8
    heap.dealloc(addr, layout)
    assert (heap.used, heap.allocated) == (0, 0)


def test_aligned_allocations_split_blocks():
    heap = _filled_heap()
    assert heap.alloc(Layout.from_size_align(1, 256)) == 0x1200
    assert heap.alloc(Layout.from_size_align(256, 256)) == 0x1000
    assert heap.alloc(Layout.from_size_align(256, 256)) == 0x1100
    with pytest.raises(NoMemory):
        heap.alloc(Layout.from_size_align(256, 256))


def test_blocks_do_not_overlap():
    heap = _filled_heap()
    layout = Layout.from_size_align(8, 8)
    addrs = [heap.alloc(layout) for _ in range(100)]
    assert len(set(addrs)) == 100
    assert all(SPACE_START <= a < SPACE_END for a in addrs)
    with pytest.raises(NoMemory):
        heap.alloc(layout)


def test_free_merges_back_to_large_block():
    heap = _filled_heap()
    layout = Layout.from_size_align(8, 8)
    addrs = [heap.alloc(layout) for _ in range(100)]
    for addr in addrs:
        heap.dealloc(addr, layout)
    assert heap.alloc(Layout.from_size_align(512, 1)) == 0x1000


def test_init_aligns_region_to_words():
    heap = Heap(32)
    heap.init(0x1003, 0x0E)
    assert heap.stats_total_bytes() == 8
    assert heap.alloc(Layout.from_size_align(1, 1)) == 0x1008


def test_add_to_heap_rejects_reversed_region():
    heap = Heap(32)
    with pytest.raises(ValueError):
        heap.add_to_heap(0x2000, 0x1000)


@pytest.mark.parametrize(
    "num, expected", [(1, 1), (5, 4), (8, 8), (0x320, 0x200), (0x120, 0x100)]
)
def test_prev_power_of_two(num, expected):
    assert prev_power_of_two(num) == expected


def test_prev_power_of_two_zero():
    with pytest.raises(ValueError):
        prev_power_of_two(0)
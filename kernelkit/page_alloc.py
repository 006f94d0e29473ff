"""A page allocator backed by a cascaded bitmap."""

from __future__ import annotations

from typing import Callable

from kernelkit.bitalloc import BitAlloc, bitalloc1m
from kernelkit.config import PAGE_SIZE, Layout, align_down, align_up
from kernelkit.errors import InvalidParam, NoMemory


def _is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


class BitmapPageAllocator:
    """Hands out page-aligned runs of pages from one managed region."""

    def __init__(self, bitmap: Callable[[], BitAlloc] = bitalloc1m) -> None:
        self.base = 0
        self._inner = bitmap()

    def init(self, start: int, size: int) -> None:
        """Manage the whole pages inside ``[start, start + size)``."""
        end = align_down(start + size, PAGE_SIZE)
        start = align_up(start, PAGE_SIZE)
        self.base = start
        total_pages = (end - start) // PAGE_SIZE
        self._inner.insert(0, total_pages)

    def alloc_pages(self, layout: Layout) -> int:
        """Allocate ``layout.size // PAGE_SIZE`` pages aligned to ``layout.align``."""
        if layout.align % PAGE_SIZE != 0:
            raise InvalidParam(f"alignment {layout.align:#x} is not a multiple of the page size")
        align_pow2 = layout.align // PAGE_SIZE
        if not _is_power_of_two(align_pow2):
            raise InvalidParam(f"alignment {layout.align:#x} is not a power of two")
        num_pages = layout.size // PAGE_SIZE
        align_log2 = align_pow2.bit_length() - 1
        if num_pages == 1:
            idx = self._inner.alloc()
        elif num_pages > 1:
            idx = self._inner.alloc_contiguous(num_pages, align_log2)
        else:
            raise InvalidParam(f"size {layout.size:#x} is less than one page")
        if idx is None:
            raise NoMemory(f"no run of {num_pages} free pages")
        pos = idx * PAGE_SIZE + self.base
        if pos == 0:
            raise NoMemory("page allocation landed on the null address")
        return pos

    def dealloc_pages(self, pos: int, num_pages: int) -> None:
        """Return ``num_pages`` pages starting at ``pos``."""
        idx = (pos - self.base) // PAGE_SIZE
        for page in range(idx, idx + num_pages):
            self._inner.dealloc(page)
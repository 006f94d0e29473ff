"""The kernel's allocator: an early bump allocator, then pages plus a buddy heap."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from kernelkit.bitalloc import BitAlloc, bitalloc1m
from kernelkit.bootcell import BootOnceCell
from kernelkit.byte_alloc import BuddyByteAllocator
from kernelkit.config import PAGE_SIZE, Layout
from kernelkit.early import EarlyAllocator
from kernelkit.errors import NoMemory, NotAllocated
from kernelkit.page_alloc import BitmapPageAllocator

MIN_HEAP_SIZE = 0x8000

_log = logging.getLogger(__name__)


def _next_power_of_two(num: int) -> int:
    return 1 if num <= 1 else 1 << (num - 1).bit_length()


def _is_page_request(layout: Layout) -> bool:
    return layout.size % PAGE_SIZE == 0 and layout.align == PAGE_SIZE


class GlobalAllocator:
    """Serves requests from the early allocator until :meth:`final_init` runs."""

    def __init__(self, page_bitmap: Callable[[], BitAlloc] = bitalloc1m) -> None:
        self._early = EarlyAllocator()
        self._pages = BitmapPageAllocator(page_bitmap)
        self._bytes = BuddyByteAllocator()
        self._finalized: BootOnceCell[bool] = BootOnceCell()
        self._lock = threading.RLock()

    @property
    def finalized(self) -> bool:
        return self._finalized.is_init()

    def early_init(self, start: int, size: int) -> None:
        """Give the early allocator the region ``[start, start + size)``."""
        with self._lock:
            self._early.init(start, size)

    def final_init(self, start: int, size: int) -> None:
        """Hand ``[start, start + size)`` to the page allocator and set up the heap."""
        with self._lock:
            self._pages.init(start, size)
            heap_ptr = self._alloc_pages(Layout.from_size_align(MIN_HEAP_SIZE, PAGE_SIZE))
            self._bytes.init(heap_ptr, MIN_HEAP_SIZE)
            self._finalized.init(True)

    def alloc(self, layout: Layout) -> int:
        """Allocate memory for ``layout`` and return its address."""
        with self._lock:
            if _is_page_request(layout):
                return self._alloc_pages(layout)
            return self._alloc_bytes(layout)

    def dealloc(self, ptr: int, layout: Layout) -> None:
        """Free memory previously returned by :meth:`alloc` with the same layout."""
        with self._lock:
            if _is_page_request(layout):
                self._dealloc_pages(ptr, layout)
            else:
                self._dealloc_bytes(ptr, layout)

    def _alloc_bytes(self, layout: Layout) -> int:
        if not self.finalized:
            return self._early.alloc_bytes(layout)
        while True:
            try:
                return self._bytes.alloc_bytes(layout)
            except NoMemory:
                old_size = self._bytes.total_bytes()
                expand_size = max(_next_power_of_two(max(old_size, layout.size)), PAGE_SIZE)
                heap_ptr = self._alloc_pages(Layout.from_size_align(expand_size, PAGE_SIZE))
                _log.info("expand heap memory: [%#x, %#x)", heap_ptr, heap_ptr + expand_size)
                self._bytes.add_memory(heap_ptr, expand_size)

    def _dealloc_bytes(self, ptr: int, layout: Layout) -> None:
        if ptr == 0:
            raise ValueError("dealloc null ptr")
        if self.finalized:
            self._bytes.dealloc_bytes(ptr, layout)
        else:
            self._early.dealloc_bytes(ptr, layout)

    def _alloc_pages(self, layout: Layout) -> int:
        if self.finalized:
            return self._pages.alloc_pages(layout)
        return self._early.alloc_pages(layout)

    def _dealloc_pages(self, ptr: int, layout: Layout) -> None:
        if not self.finalized:
            raise NotAllocated("pages from the early allocator cannot be freed")
        self._pages.dealloc_pages(ptr, layout.size // PAGE_SIZE)
"""A bump allocator used before the real allocators are ready.

Bytes are handed out upwards from the start of the region, pages downwards
from its end. Bytes are all reclaimed once every byte allocation has been
freed; pages are never reclaimed.
"""

from __future__ import annotations

from dataclasses import dataclass

from kernelkit.config import PAGE_SIZE, Layout, align_down, align_up
from kernelkit.errors import InvalidParam, NoMemory, NotAllocated


@dataclass
class EarlyAllocator:
    """Bump allocator over ``[start, end)``; unusable until :meth:`init`."""

    start: int = 0
    end: int = 0
    count: int = 0
    byte_pos: int = 0
    page_pos: int = 0

    def init(self, start: int, size: int) -> None:
        """Manage the region ``[start, start + size)``."""
        self.start = start
        self.end = start + size
        self.byte_pos = start
        self.page_pos = self.end

    def alloc_pages(self, layout: Layout) -> int:
        """Take whole pages from the top of the region and return their address."""
        if layout.size % PAGE_SIZE != 0:
            raise InvalidParam(f"page allocation of {layout.size:#x} bytes is not whole pages")
        nxt = align_down(self.page_pos - layout.size, layout.align)
        if nxt <= self.byte_pos:
            raise NoMemory(f"early allocator cannot fit {layout.size:#x} bytes of pages")
        self.page_pos = nxt
        if nxt == 0:
            raise NoMemory("page allocation landed on the null address")
        return nxt

    def total_pages(self) -> int:
        return (self.end - self.start) // PAGE_SIZE

    def used_pages(self) -> int:
        return (self.end - self.page_pos) // PAGE_SIZE

    def available_pages(self) -> int:
        return (self.page_pos - self.byte_pos) // PAGE_SIZE

    def alloc_bytes(self, layout: Layout) -> int:
        """Take bytes from the bottom of the region and return their address."""
        start = align_up(self.byte_pos, layout.align)
        nxt = start + layout.size
        if nxt > self.page_pos:
            raise NoMemory(f"early allocator cannot fit {layout.size:#x} bytes")
        self.byte_pos = nxt
        self.count += 1
        if start == 0:
            raise NoMemory("byte allocation landed on the null address")
        return start

    def dealloc_bytes(self, ptr: int, layout: Layout) -> None:
        """Release one byte allocation; the last release frees all bytes."""
        if self.count == 0:
            raise NotAllocated("no byte allocation is outstanding")
        self.count -= 1
        if self.count == 0:
            self.byte_pos = self.start

    def total_bytes(self) -> int:
        return self.end - self.start

    def used_bytes(self) -> int:
        return self.byte_pos - self.start

    def available_bytes(self) -> int:
        return self.page_pos - self.byte_pos
"""A byte allocator backed by the buddy heap."""

from __future__ import annotations

from typing import Optional

from kernelkit.config import Layout
from kernelkit.heap import Heap
from kernelkit.linked_list import WordMemory


class BuddyByteAllocator:
    """Allocates arbitrary byte blocks from memory added to it."""

    def __init__(self, memory: Optional[WordMemory] = None) -> None:
        self._inner = Heap(32, memory)

    def init(self, start: int, size: int) -> None:
        self._inner.init(start, size)

    def alloc_bytes(self, layout: Layout) -> int:
        """Return the address of a block fitting ``layout``; raise NoMemory if none fits."""
        return self._inner.alloc(layout)

    def dealloc_bytes(self, pos: int, layout: Layout) -> None:
        self._inner.dealloc(pos, layout)

    def add_memory(self, start: int, size: int) -> None:
        """Add the region ``[start, start + size)`` to the pool."""
        self._inner.add_to_heap(start, start + size)

    def total_bytes(self) -> int:
        return self._inner.stats_total_bytes()
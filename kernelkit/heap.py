"""A buddy-system heap handing out power-of-two blocks of a word-addressed memory."""

from __future__ import annotations

from typing import Optional

from kernelkit.config import WORD_SIZE, Layout
from kernelkit.errors import NoMemory
from kernelkit.linked_list import LinkedList, WordMemory


def _next_power_of_two(num: int) -> int:
    return 1 if num <= 1 else 1 << (num - 1).bit_length()


def _trailing_zeros(num: int) -> int:
    return (num & -num).bit_length() - 1


def prev_power_of_two(num: int) -> int:
    """Largest power of two not greater than ``num``."""
    if num <= 0:
        raise ValueError(f"no power of two is at most {num}")
    return 1 << (num.bit_length() - 1)


def _block_size(layout: Layout) -> int:
    return max(_next_power_of_two(layout.size), layout.align, WORD_SIZE)


class Heap:
    """Free blocks of size ``2**k`` are kept on the k-th of ``order`` free lists."""

    def __init__(self, order: int = 32, memory: Optional[WordMemory] = None) -> None:
        self.memory = memory if memory is not None else WordMemory()
        self._free_list = [LinkedList(self.memory) for _ in range(order)]
        self.used = 0
        self.allocated = 0
        self._total = 0

    @property
    def order(self) -> int:
        return len(self._free_list)

    def add_to_heap(self, start: int, end: int) -> None:
        """Hand the region ``[start, end)`` over to the heap."""
        start = (start + WORD_SIZE - 1) & ~(WORD_SIZE - 1)
        end &= ~(WORD_SIZE - 1)
        if start > end:
            raise ValueError(f"heap region start {start:#x} is past its end {end:#x}")
        if start == 0 and end >= WORD_SIZE:
            raise ValueError("heap region must not start at address 0")
        total = 0
        current = start
        while current + WORD_SIZE <= end:
            lowbit = current & -current
            size = min(lowbit, prev_power_of_two(end - current))
            size_class = _trailing_zeros(size)
            if size_class >= self.order:
                raise ValueError(f"block of {size:#x} bytes exceeds the heap's order")
            self._free_list[size_class].push(current)
            total += size
            current += size
        self._total += total

    def init(self, start: int, size: int) -> None:
        """Hand the region ``[start, start + size)`` over to the heap."""
        self.add_to_heap(start, start + size)

    def alloc(self, layout: Layout) -> int:
        """Return the address of a block fitting ``layout``; raise NoMemory if none is free."""
        size = _block_size(layout)
        size_class = _trailing_zeros(size)
        for i in range(size_class, self.order):
            if self._free_list[i].is_empty():
                continue
            for j in range(i, size_class, -1):
                block = self._free_list[j].pop()
                if block is None:
                    raise NoMemory(f"cannot split a block of class {j}")
                self._free_list[j - 1].push(block + (1 << (j - 1)))
                self._free_list[j - 1].push(block)
            result = self._free_list[size_class].pop()
            if result is None:
                raise NoMemory("free list unexpectedly empty after splitting")
            self.used += layout.size
            self.allocated += size
            return result
        raise NoMemory(f"no free block of {size} bytes")

    def dealloc(self, ptr: int, layout: Layout) -> None:
        """Return a block to the heap, merging it with free buddies."""
        size = _block_size(layout)
        size_class = _trailing_zeros(size)
        self._free_list[size_class].push(ptr)
        current_ptr = ptr
        current_class = size_class
        while current_class < self.order - 1:
            buddy = current_ptr ^ (1 << current_class)
            free_list = self._free_list[current_class]
            found = False
            for node in free_list.iter_mut():
                if node.value() == buddy:
                    node.pop()
                    found = True
                    break
            if not found:
                break
            free_list.pop()
            current_ptr = min(current_ptr, buddy)
            current_class += 1
            self._free_list[current_class].push(current_ptr)
        self.used -= layout.size
        self.allocated -= size

    def stats_total_bytes(self) -> int:
        """Total bytes ever handed to the heap."""
        return self._total
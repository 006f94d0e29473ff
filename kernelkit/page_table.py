"""Sv39 page tables kept in a simulated memory of 512-entry tables."""

from __future__ import annotations

from dataclasses import dataclass

from kernelkit.config import (
    ASPACE_BITS,
    PAGE_SHIFT,
    PAGE_SIZE,
    USIZE_MASK,
    align_down,
    align_offset,
    is_aligned,
    pfn_phys,
    phys_pfn,
    phys_to_virt,
    virt_to_phys,
)

_PAGE_V = 1 << 0  # valid
_PAGE_R = 1 << 1  # readable
_PAGE_W = 1 << 2  # writable
_PAGE_E = 1 << 3  # executable
_PAGE_U = 1 << 4  # user
_PAGE_G = 1 << 5  # global
_PAGE_A = 1 << 6  # accessed
_PAGE_D = 1 << 7  # dirty

PAGE_TABLE = _PAGE_V
PAGE_KERNEL_RO = _PAGE_V | _PAGE_R | _PAGE_G | _PAGE_A | _PAGE_D
PAGE_KERNEL_RW = PAGE_KERNEL_RO | _PAGE_W
PAGE_KERNEL_RX = PAGE_KERNEL_RO | _PAGE_E
PAGE_KERNEL_RWX = PAGE_KERNEL_RW | _PAGE_E

PAGE_PFN_SHIFT = 10
ENTRIES_COUNT = 1 << (PAGE_SHIFT - 3)
_U64_MASK = (1 << 64) - 1
_ENTRY_ALIGN = 8


@dataclass
class PTEntry:
    """One 64-bit page table entry: frame number above the flag bits."""

    bits: int = 0

    def set(self, pa: int, flags: int) -> None:
        self.bits = ((phys_pfn(pa) << PAGE_PFN_SHIFT) | flags) & _U64_MASK

    def is_present(self) -> bool:
        return self.bits & _PAGE_V == _PAGE_V

    def is_unused(self) -> bool:
        return self.bits == 0

    def paddr(self) -> int:
        return pfn_phys(self.bits >> PAGE_PFN_SHIFT) & USIZE_MASK

    def flags(self) -> int:
        return self.bits & ((1 << PAGE_PFN_SHIFT) - 1)


def _zeroed_table() -> list[PTEntry]:
    return [PTEntry() for _ in range(ENTRIES_COUNT)]


_DEFAULT_BASE = phys_to_virt(0x8800_0000)


class TableMemory:
    """Page tables indexed by the virtual address they live at."""

    def __init__(self, base: int = _DEFAULT_BASE) -> None:
        self._tables: dict[int, list[PTEntry]] = {}
        self._next = base

    def add_table(self, addr: int) -> list[PTEntry]:
        """Place a zeroed table at ``addr``, or return the one already there."""
        if addr == 0 or addr % _ENTRY_ALIGN:
            raise ValueError("page table address must be non-null and aligned")
        return self._tables.setdefault(addr, _zeroed_table())

    def alloc_table(self) -> int:
        """Allocate a zeroed, page-aligned table and return its address."""
        while self._next in self._tables:
            self._next += PAGE_SIZE
        addr = self._next
        self._tables[addr] = _zeroed_table()
        self._next += PAGE_SIZE
        return addr

    def table_at(self, addr: int) -> list[PTEntry]:
        try:
            return self._tables[addr]
        except KeyError:
            raise ValueError(f"no page table at {addr:#x}") from None


class PageTable:
    """One level of a three-level page table rooted at virtual address ``root``."""

    def __init__(self, memory: TableMemory, root: int, level: int) -> None:
        if root == 0 or root % _ENTRY_ALIGN:
            raise ValueError("page table pointer must be non-null and properly aligned")
        self.memory = memory
        self.root = root
        self.level = level
        self.table = memory.table_at(root)

    @classmethod
    def alloc_table(cls, memory: TableMemory, level: int) -> PageTable:
        """Create a table at ``level`` backed by a freshly allocated page."""
        return cls(memory, memory.alloc_table(), level)

    def _entry_shift(self) -> int:
        return ASPACE_BITS - (self.level + 1) * (PAGE_SHIFT - 3)

    def _entry_size(self) -> int:
        return 1 << self._entry_shift()

    def entry_index(self, va: int) -> int:
        return (va >> self._entry_shift()) & (ENTRIES_COUNT - 1)

    def _map_aligned(self, va: int, pa: int, total_size: int, best_size: int, flags: int) -> None:
        if not (
            is_aligned(va, best_size) and is_aligned(pa, best_size) and is_aligned(total_size, best_size)
        ):
            raise ValueError(f"mapping is not aligned to {best_size:#x}")
        if total_size == 0:
            return
        entry_size = self._entry_size()
        next_size = min(entry_size, total_size)
        while total_size >= next_size:
            index = self.entry_index(va)
            if entry_size == best_size:
                self.table[index].set(pa, flags)
            else:
                self._next_table_mut(index).map(va, pa, next_size, best_size, flags)
            total_size -= next_size
            va += next_size
            pa += next_size

    def map(self, va: int, pa: int, total_size: int, best_size: int, flags: int) -> None:
        """Map ``total_size`` bytes at ``va`` to ``pa``, using ``best_size`` pages where aligned."""
        map_size = PAGE_SIZE if total_size < best_size else best_size
        offset = align_offset(va, map_size)
        if offset != 0:
            if map_size == PAGE_SIZE:
                raise ValueError(f"virtual address {va:#x} is not page aligned")
            offset = map_size - offset
            if offset > total_size:
                raise ValueError("mapping is too small to reach an aligned boundary")
            self._map_aligned(va, pa, offset, PAGE_SIZE, flags)
            va += offset
            pa += offset
            total_size -= offset

        aligned_total_size = align_down(total_size, map_size)
        total_size -= aligned_total_size
        self._map_aligned(va, pa, aligned_total_size, map_size, flags)
        if total_size != 0:
            va += aligned_total_size
            pa += aligned_total_size
            self._map_aligned(va, pa, total_size, PAGE_SIZE, flags)

    def _next_table_mut(self, index: int) -> PageTable:
        if self.table[index].is_unused():
            table = PageTable.alloc_table(self.memory, self.level + 1)
            self.table[index].set(table.root_paddr(), PAGE_TABLE)
            return table
        return self.next_table(index)

    def next_table(self, index: int) -> PageTable:
        """The table one level down that entry ``index`` points to."""
        entry = self.table[index]
        if not entry.is_present():
            raise ValueError(f"entry {index} does not point to a table")
        return PageTable(self.memory, phys_to_virt(entry.paddr()), self.level + 1)

    def root_paddr(self) -> int:
        return virt_to_phys(self.root)

    def entry_at(self, index: int) -> PTEntry:
        return PTEntry(self.table[index].bits)
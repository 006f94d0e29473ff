"""Platform constants, memory layouts and address arithmetic."""

from __future__ import annotations

from dataclasses import dataclass

PAGE_SHIFT = 12
PAGE_SIZE = 1 << PAGE_SHIFT
PHYS_VIRT_OFFSET = 0xFFFF_FFC0_0000_0000
ASPACE_BITS = 39
TASK_STACK_SIZE = 0x40000  # 256 K
TICKS_PER_SEC = 100

SIZE_1G = 0x4000_0000
SIZE_2M = 0x20_0000

WORD_SIZE = 8
USIZE_BITS = 64
USIZE_MASK = (1 << USIZE_BITS) - 1
_ISIZE_MAX = (1 << (USIZE_BITS - 1)) - 1


def _is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


@dataclass(frozen=True)
class Layout:
    """Size and alignment of a requested block of memory."""

    size: int
    align: int

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError(f"layout size must not be negative: {self.size}")
        if not _is_power_of_two(self.align):
            raise ValueError(f"layout alignment must be a power of two: {self.align}")
        if self.size > _ISIZE_MAX - (self.align - 1):
            raise ValueError("layout size overflows when rounded up to its alignment")

    @classmethod
    def from_size_align(cls, size: int, align: int) -> Layout:
        """Build a layout, raising ValueError for an invalid size or alignment."""
        return cls(size, align)


def align_up(val: int, align: int) -> int:
    """Round ``val`` up to a multiple of the power-of-two ``align``."""
    return (val + align - 1) & ~(align - 1)


def align_down(val: int, align: int) -> int:
    """Round ``val`` down to a multiple of the power-of-two ``align``."""
    return val & ~(align - 1)


def align_offset(addr: int, align: int) -> int:
    """Distance of ``addr`` past the previous multiple of ``align``."""
    return addr & (align - 1)


def is_aligned(addr: int, align: int) -> bool:
    return align_offset(addr, align) == 0


def phys_pfn(pa: int) -> int:
    """Page frame number of a physical address."""
    return pa >> PAGE_SHIFT


def pfn_phys(pfn: int) -> int:
    """Physical address of a page frame number."""
    return pfn << PAGE_SHIFT


def phys_to_virt(pa: int) -> int:
    """Map a physical address into the kernel's linear virtual window."""
    return (pa + PHYS_VIRT_OFFSET) & USIZE_MASK


def virt_to_phys(va: int) -> int:
    """Inverse of :func:`phys_to_virt`."""
    return (va - PHYS_VIRT_OFFSET) & USIZE_MASK
"""Bitmap allocators built from 16-bit leaves cascaded sixteen at a time.

A set bit marks a free slot, a clear bit a used one.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol

_FULL16 = 0xFFFF


def _trailing_zeros(value: int) -> int:
    return (value & -value).bit_length() - 1


class BitAlloc(Protocol):
    cap: int

    def alloc(self) -> Optional[int]: ...

    def alloc_contiguous(self, size: int, align_log2: int) -> Optional[int]: ...

    def next(self, key: int) -> Optional[int]: ...

    def dealloc(self, key: int) -> None: ...

    def insert(self, start: int, end: int) -> None: ...

    def remove(self, start: int, end: int) -> None: ...

    def is_empty(self) -> bool: ...

    def test(self, key: int) -> bool: ...


def _check_range(start: int, end: int, cap: int) -> None:
    if not 0 <= start <= end <= cap:
        raise ValueError(f"range {start}..{end} outside 0..{cap}")


class BitAlloc16:
    """A bitmap of sixteen slots."""

    __slots__ = ("bits",)

    cap = 16

    def __init__(self) -> None:
        self.bits = 0

    def alloc(self) -> Optional[int]:
        if self.bits == 0:
            return None
        i = _trailing_zeros(self.bits)
        self.bits &= ~(1 << i)
        return i

    def alloc_contiguous(self, size: int, align_log2: int) -> Optional[int]:
        base = find_contiguous(self, self.cap, size, align_log2)
        if base is not None:
            self.remove(base, base + size)
        return base

    def dealloc(self, key: int) -> None:
        if self.test(key):
            raise ValueError(f"slot {key} is already free")
        self.bits |= 1 << key

    def insert(self, start: int, end: int) -> None:
        _check_range(start, end, self.cap)
        self.bits |= ((1 << (end - start)) - 1) << start

    def remove(self, start: int, end: int) -> None:
        _check_range(start, end, self.cap)
        self.bits &= ~(((1 << (end - start)) - 1) << start) & _FULL16

    def is_empty(self) -> bool:
        return self.bits == 0

    def test(self, key: int) -> bool:
        if not 0 <= key < self.cap:
            raise IndexError(f"slot {key} out of range")
        return bool(self.bits >> key & 1)

    def next(self, key: int) -> Optional[int]:
        """First free slot at or after ``key``."""
        if key >= self.cap:
            return None
        rest = self.bits & ~((1 << key) - 1)
        return _trailing_zeros(rest) if rest else None


class BitAllocCascade16:
    """Sixteen sub-allocators with a summary bit set for each non-empty one."""

    __slots__ = ("bitset", "subs", "cap", "_sub_cap")

    def __init__(self, make_sub: Callable[[], BitAlloc]) -> None:
        self.bitset = 0
        self.subs: list[BitAlloc] = [make_sub() for _ in range(16)]
        self._sub_cap = self.subs[0].cap
        self.cap = self._sub_cap * 16

    def _refresh(self, i: int) -> None:
        if self.subs[i].is_empty():
            self.bitset &= ~(1 << i)
        else:
            self.bitset |= 1 << i

    def alloc(self) -> Optional[int]:
        if self.is_empty():
            return None
        i = _trailing_zeros(self.bitset)
        res = self.subs[i].alloc()
        assert res is not None
        self._refresh(i)
        return res + i * self._sub_cap

    def alloc_contiguous(self, size: int, align_log2: int) -> Optional[int]:
        base = find_contiguous(self, self.cap, size, align_log2)
        if base is not None:
            self.remove(base, base + size)
        return base

    def dealloc(self, key: int) -> None:
        i, rest = divmod(key, self._sub_cap)
        self.subs[i].dealloc(rest)
        self.bitset |= 1 << i

    def _for_range(self, start: int, end: int, apply: Callable[[BitAlloc, int, int], None]) -> None:
        _check_range(start, end, self.cap)
        if start == end:
            return
        sub_cap = self._sub_cap
        for i in range(start // sub_cap, (end - 1) // sub_cap + 1):
            begin = start % sub_cap if start // sub_cap == i else 0
            stop = end % sub_cap if end // sub_cap == i else sub_cap
            apply(self.subs[i], begin, stop)
            self._refresh(i)

    def insert(self, start: int, end: int) -> None:
        self._for_range(start, end, lambda sub, b, e: sub.insert(b, e))

    def remove(self, start: int, end: int) -> None:
        self._for_range(start, end, lambda sub, b, e: sub.remove(b, e))

    def is_empty(self) -> bool:
        return self.bitset == 0

    def test(self, key: int) -> bool:
        i, rest = divmod(key, self._sub_cap)
        return self.subs[i].test(rest)

    def next(self, key: int) -> Optional[int]:
        """First free slot at or after ``key``."""
        idx = key // self._sub_cap
        for i in range(idx, 16):
            if self.bitset >> i & 1:
                sub_key = key - self._sub_cap * idx if i == idx else 0
                found = self.subs[i].next(sub_key)
                if found is not None:
                    return found + self._sub_cap * i
        return None


def bitalloc256() -> BitAllocCascade16:
    """An allocator of 256 slots."""
    return BitAllocCascade16(BitAlloc16)


def bitalloc4k() -> BitAllocCascade16:
    """An allocator of 4096 slots."""
    return BitAllocCascade16(bitalloc256)


def bitalloc64k() -> BitAllocCascade16:
    """An allocator of 65536 slots."""
    return BitAllocCascade16(bitalloc4k)


def bitalloc1m() -> BitAllocCascade16:
    """An allocator of 1048576 slots."""
    return BitAllocCascade16(bitalloc64k)


def find_contiguous(ba: BitAlloc, capacity: int, size: int, align_log2: int) -> Optional[int]:
    """Find ``size`` free slots in a row starting on a ``2**align_log2`` boundary."""
    if capacity < (1 << align_log2) or ba.is_empty():
        return None
    base = 0
    offset = 0
    while offset < capacity:
        nxt = ba.next(offset)
        if nxt is None:
            return None
        if nxt != offset:
            # Nothing in offset..nxt is free: jump to the next aligned slot after it.
            base = (((nxt - 1) >> align_log2) + 1) << align_log2
            offset = base
            continue
        offset += 1
        if offset - base == size:
            return base
    return None
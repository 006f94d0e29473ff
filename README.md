# kernelkit

Building blocks of a small RISC-V (Sv39) kernel, modelled in plain Python so
that their behaviour can be studied and tested without hardware. Memory is
simulated: addresses are plain integers, and the structures that would live
in memory (free-list links, page tables) are kept in small in-memory stores.

## Modules

- `kernelkit.config` – `PAGE_SIZE`, `PAGE_SHIFT`, `PHYS_VIRT_OFFSET`,
  `SIZE_1G`, `SIZE_2M` and other constants; `align_up`, `align_down`,
  `align_offset`, `is_aligned`, `phys_pfn`, `pfn_phys`, `phys_to_virt`,
  `virt_to_phys`; and `Layout`, the size and alignment of an allocation
  request (`Layout.from_size_align` raises `ValueError` for a negative size
  or an alignment that is not a power of two).
- `kernelkit.errors` – `AllocError` and its subclasses `InvalidParam`,
  `MemoryOverlap`, `NoMemory` and `NotAllocated`.
- `kernelkit.bootcell` – `BootOnceCell`, a value set once (`init`), read with
  `get` (which raises `RuntimeError` before it is set) and checked with
  `is_init`.
- `kernelkit.spinlock` – `SpinRaw`, a wrapper whose `lock()` returns a guard
  giving access to the wrapped object; it does no synchronisation itself.
- `kernelkit.handler_table` – `HandlerTable`, fixed slots each filled at most
  once by `register_handler` and called by `handle`.
- `kernelkit.bitalloc` – bitmap allocators in which a set bit is a free
  slot: `BitAlloc16`, `BitAllocCascade16`, the factories `bitalloc256()`,
  `bitalloc4k()`, `bitalloc64k()`, `bitalloc1m()`, and `find_contiguous`.
- `kernelkit.linked_list` – `WordMemory` (sparse words, unwritten words read
  as zero), the intrusive free list `LinkedList` and its `ListNode`.
- `kernelkit.heap` – the buddy allocator `Heap` and `prev_power_of_two`.
- `kernelkit.page_table` – `PTEntry`, `TableMemory`, `PageTable` and the
  `PAGE_KERNEL_RO`, `PAGE_KERNEL_RW`, `PAGE_KERNEL_RX`, `PAGE_KERNEL_RWX`
  flag sets. `PageTable.map` uses large pages where the addresses allow and
  4 KiB pages elsewhere.
- `kernelkit.dtb` – `DeviceTree`, a reader for version-17 flattened device
  tree blobs, the helpers `read_be_u32`, `read_be_u64`, `read_bstring0`,
  `subslice`, and the errors `DeviceTreeError`, `BadMagicNumber`,
  `SliceReadError`, `VersionNotSupported`, `DeviceTreeParseError`,
  `Utf8Error`.
- `kernelkit.early` – `EarlyAllocator`, a bump allocator handing out bytes
  from the bottom of its region and pages from the top.
- `kernelkit.page_alloc` – `BitmapPageAllocator`, pages backed by a bitmap.
- `kernelkit.byte_alloc` – `BuddyByteAllocator`, bytes backed by a `Heap`.
- `kernelkit.global_alloc` – `GlobalAllocator`, which serves requests from
  the early allocator until `final_init`, then sends whole-page requests to
  the page allocator and all others to the byte allocator, growing the heap
  from the page allocator when it runs out.
- `kernelkit.logger` – `ConsoleLogHandler`, a `logging.Handler` writing
  coloured lines stamped with the time since it was created; `format_line`,
  `parse_level`, `set_max_level` and `ColorCode`.

## Installation

```
pip install kernelkit
```

## Examples

Alignment:

```python
from kernelkit.config import align_up, align_down

align_up(23, 16)        # 32
align_down(4097, 4096)  # 4096
```

Bitmap allocation:

```python
from kernelkit.bitalloc import bitalloc4k

ba = bitalloc4k()
ba.insert(0, 4096)
ba.remove(3, 6)
ba.alloc_contiguous(1, 1)   # 0
ba.alloc_contiguous(2, 0)   # 1
```

Buddy heap:

```python
from kernelkit.config import Layout
from kernelkit.heap import Heap

heap = Heap()
heap.add_to_heap(0x1000, 0x1000 + 800)
ptr = heap.alloc(Layout.from_size_align(1, 1))
heap.dealloc(ptr, Layout.from_size_align(1, 1))
```

A 1 GiB mapping in a root page table:

```python
from kernelkit.config import SIZE_1G
from kernelkit.page_table import PAGE_KERNEL_RWX, PageTable, TableMemory

memory = TableMemory()
pt = PageTable.alloc_table(memory, 0)
pt.map(0xffff_ffc0_8000_0000, 0x8000_0000, SIZE_1G, SIZE_1G, PAGE_KERNEL_RWX)
hex(pt.entry_at(0x102).bits)   # '0x200000ef'
```

Reading a device tree:

```python
from kernelkit.dtb import DeviceTree

with open("board.dtb", "rb") as f:
    dt = DeviceTree(f.read())

def show(name, addr_cells, size_cells, props):
    print(repr(name), addr_cells, size_cells, [key for key, _ in props])

dt.parse(dt.off_struct, 0, 0, show)
```

Logging:

```python
import logging
from kernelkit.logger import ConsoleLogHandler, set_max_level

log = logging.getLogger("kernel")
log.addHandler(ConsoleLogHandler())
set_max_level(log, "info")
log.info("Logging is enabled.")
```

## What it does not do

kernelkit is a library of parts. It does not boot anything, touch hardware
registers or real memory, switch tasks or schedule them, and it has no
command-line program. Threads, timers and interrupt delivery are left to
whatever uses these parts.

## Running the tests

```
pip install "kernelkit[test]"
pytest
```
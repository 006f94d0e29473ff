"""Kernel building blocks: bitmap and buddy allocators, Sv39 page tables, device tree parsing and boot helpers."""

__version__ = "0.1.0"
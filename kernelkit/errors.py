"""Errors raised by the memory allocators."""


class AllocError(Exception):
    """Base class of all allocation failures."""


class InvalidParam(AllocError, ValueError):
    """The request had an invalid size or alignment."""


class MemoryOverlap(AllocError):
    """A memory region overlaps one already managed."""


class NoMemory(AllocError, MemoryError):
    """Not enough free memory to satisfy the request."""


class NotAllocated(AllocError):
    """The memory being freed was never allocated."""
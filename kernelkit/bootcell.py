"""A cell written once during boot and read afterwards."""

from __future__ import annotations

from typing import Generic, TypeVar

T = TypeVar("T")

_UNSET = object()


class BootOnceCell(Generic[T]):
    """Holds a value set once; later attempts to set it are ignored."""

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value: object = _UNSET

    def init(self, val: T) -> None:
        """Store ``val`` unless a value is already stored."""
        if self._value is _UNSET:
            self._value = val

    def get(self) -> T:
        """Return the stored value; raise RuntimeError if none is stored."""
        if self._value is _UNSET:
            raise RuntimeError("boot cell is not initialized")
        return self._value  # type: ignore[return-value]

    def is_init(self) -> bool:
        return self._value is not _UNSET
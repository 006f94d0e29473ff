"""Spin lock wrappers used where exclusive access is already guaranteed."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

T = TypeVar("T")


class SpinRaw(Generic[T]):
    """A lock that performs no synchronisation of its own.

    It is meant for data whose exclusive access is ensured by the caller,
    for example because interrupts are already disabled.
    """

    __slots__ = ("_data",)

    def __init__(self, data: T) -> None:
        self._data = data

    def lock(self) -> SpinRawGuard[T]:
        """Return a guard giving access to the protected data."""
        return SpinRawGuard(self)

    def into_inner(self) -> T:
        return self._data


class SpinRawGuard(Generic[T]):
    """Access to the data of a :class:`SpinRaw`.

    Attribute lookups fall through to the protected object, and
    :attr:`value` reads or replaces it.
    """

    __slots__ = ("_lock",)

    def __init__(self, lock: SpinRaw[T]) -> None:
        self._lock = lock

    @property
    def value(self) -> T:
        return self._lock._data

    @value.setter
    def value(self, data: T) -> None:
        self._lock._data = data

    def __getattr__(self, name: str) -> Any:
        return getattr(self._lock._data, name)

    def __enter__(self) -> SpinRawGuard[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None
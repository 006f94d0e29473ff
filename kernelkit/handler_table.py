"""A fixed-size table of handlers registered once and then dispatched."""

from __future__ import annotations

import threading
from typing import Callable, Optional

Handler = Callable[[], None]


class HandlerTable:
    """Slots of event handlers; each slot can be filled at most once."""

    def __init__(self, size: int) -> None:
        self._handlers: list[Optional[Handler]] = [None] * size
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._handlers)

    def _check_index(self, idx: int) -> None:
        if not 0 <= idx < len(self._handlers):
            raise IndexError(f"handler index {idx} out of range")

    def register_handler(self, idx: int, handler: Handler) -> bool:
        """Fill slot ``idx``; return False if it already holds a handler."""
        self._check_index(idx)
        with self._lock:
            if self._handlers[idx] is not None:
                return False
            self._handlers[idx] = handler
            return True

    def handle(self, idx: int) -> bool:
        """Call the handler in slot ``idx``; return False if there is none."""
        self._check_index(idx)
        handler = self._handlers[idx]
        if handler is None:
            return False
        handler()
        return True
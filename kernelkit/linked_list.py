"""An intrusive singly linked list whose links live in word-addressed memory."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

NULL = 0


@dataclass
class WordMemory:
    """Sparse machine words indexed by address; unwritten words read as zero."""

    words: dict[int, int] = field(default_factory=dict)

    def read(self, addr: int) -> int:
        return self.words.get(addr, 0)

    def write(self, addr: int, value: int) -> None:
        self.words[addr] = value


class LinkedList:
    """A stack of free blocks; each block's first word holds the next block's address."""

    def __init__(self, memory: WordMemory) -> None:
        self.memory = memory
        self.head = NULL

    def is_empty(self) -> bool:
        return self.head == NULL

    def push(self, item: int) -> None:
        if item == NULL:
            raise ValueError("cannot push the null address")
        self.memory.write(item, self.head)
        self.head = item

    def pop(self) -> Optional[int]:
        if self.is_empty():
            return None
        item = self.head
        self.head = self.memory.read(item)
        return item

    def __iter__(self) -> Iterator[int]:
        curr = self.head
        while curr != NULL:
            yield curr
            curr = self.memory.read(curr)

    def iter_mut(self) -> Iterator[ListNode]:
        """Yield nodes that can unlink themselves from the list."""
        prev: Optional[int] = None
        curr = self.head
        while curr != NULL:
            yield ListNode(self, prev, curr)
            prev = curr
            curr = self.memory.read(curr)


@dataclass
class ListNode:
    """A position in a :class:`LinkedList`; ``prev`` is None for the head."""

    list: LinkedList
    prev: Optional[int]
    curr: int

    def pop(self) -> int:
        """Unlink this node and return its address."""
        following = self.list.memory.read(self.curr)
        if self.prev is None:
            self.list.head = following
        else:
            self.list.memory.write(self.prev, following)
        return self.curr

    def value(self) -> int:
        return self.curr
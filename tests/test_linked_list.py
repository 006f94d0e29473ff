import pytest

from kernelkit.linked_list import LinkedList, WordMemory

VALUE1 = 0x1000
VALUE2 = 0x1008
VALUE3 = 0x1010


def test_linked_list():
    memory = WordMemory()
    lst = LinkedList(memory)
    lst.push(VALUE1)
    lst.push(VALUE2)
    lst.push(VALUE3)

    assert memory.read(VALUE3) == VALUE2
    assert memory.read(VALUE2) == VALUE1
    assert memory.read(VALUE1) == 0

    it = iter(lst)
    assert next(it) == VALUE3
    assert next(it) == VALUE2
    assert next(it) == VALUE1
    assert next(it, None) is None

    iter_mut = lst.iter_mut()
    assert next(iter_mut).pop() == VALUE3
    assert lst.pop() == VALUE2
    assert lst.pop() == VALUE1
    assert lst.pop() is None


def test_pop_middle_node():
    lst = LinkedList(WordMemory())
    for addr in (VALUE1, VALUE2, VALUE3):
        lst.push(addr)
    for node in lst.iter_mut():
        if node.value() == VALUE2:
            assert node.pop() == VALUE2
            break
    assert list(lst) == [VALUE3, VALUE1]


def test_empty_list():
    lst = LinkedList(WordMemory())
    assert lst.is_empty()
    assert lst.pop() is None
    assert list(lst) == []
    assert list(lst.iter_mut()) == []


def test_push_null_raises():
    lst = LinkedList(WordMemory())
    with pytest.raises(ValueError):
        lst.push(0)


def test_memory_read_write():
    memory = WordMemory()
    assert memory.read(VALUE1) == 0
    memory.write(VALUE1, VALUE2)
    assert memory.read(VALUE1) == VALUE2
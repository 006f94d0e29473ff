"""Reading flattened device tree blobs."""

from __future__ import annotations

from typing import Callable

from kernelkit.config import align_up

MAGIC_NUMBER = 0xD00DFEED
SUPPORTED_VERSION = 17
OF_DT_BEGIN_NODE = 0x00000001
OF_DT_END_NODE = 0x00000002
OF_DT_PROP = 0x00000003

DeviceTreeProperty = tuple[str, bytes]
DeviceTreeCallback = Callable[[str, int, int, list[DeviceTreeProperty]], None]


class DeviceTreeError(ValueError):
    """Base class of device tree failures."""


class BadMagicNumber(DeviceTreeError):
    """The blob does not start with the device tree magic number."""


class SliceReadError(DeviceTreeError):
    """A read ran past the end of the blob."""


class VersionNotSupported(DeviceTreeError):
    """The blob has a format version other than 17."""


class DeviceTreeParseError(DeviceTreeError):
    """An unexpected token was found at ``pos``."""

    def __init__(self, pos: int) -> None:
        super().__init__(f"unexpected token at offset {pos}")
        self.pos = pos


class Utf8Error(DeviceTreeError):
    """A node or property name is not valid UTF-8."""


def read_be_u32(buf: bytes, pos: int) -> int:
    if pos < 0 or pos + 4 > len(buf):
        raise SliceReadError(f"cannot read 4 bytes at offset {pos}")
    return int.from_bytes(buf[pos : pos + 4], "big")


def read_be_u64(buf: bytes, pos: int) -> int:
    hi = read_be_u32(buf, pos)
    lo = read_be_u32(buf, pos + 4)
    return (hi << 32) | lo


def read_bstring0(buf: bytes, pos: int) -> bytes:
    """Bytes from ``pos`` up to, not including, the next NUL."""
    if pos < 0:
        raise SliceReadError(f"negative offset {pos}")
    end = buf.find(b"\0", pos)
    if end < 0:
        raise SliceReadError(f"no terminated string at offset {pos}")
    return bytes(buf[pos:end])


def subslice(buf: bytes, start: int, end: int) -> bytes:
    """Bytes ``start..end``; ``end`` must lie strictly inside the buffer."""
    if end >= len(buf) or start < 0 or start > end:
        raise SliceReadError(f"range {start}..{end} outside the blob")
    return bytes(buf[start:end])


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise Utf8Error(str(exc)) from exc


class DeviceTree:
    """A version-17 flattened device tree held in memory."""

    def __init__(self, data: bytes) -> None:
        header = bytes(data[:24])
        if read_be_u32(header, 0) != MAGIC_NUMBER:
            raise BadMagicNumber("bad device tree magic number")
        if read_be_u32(header, 20) != SUPPORTED_VERSION:
            raise VersionNotSupported("device tree version not supported")
        self.totalsize = read_be_u32(header, 4)
        self.off_struct = read_be_u32(header, 8)
        self.off_strings = read_be_u32(header, 12)
        self._buf = bytes(data[: self.totalsize])

    def parse(self, pos: int, addr_cells: int, size_cells: int, cb: DeviceTreeCallback) -> int:
        """Walk the node at ``pos`` depth first, calling ``cb`` for each node.

        The callback gets the node name, the address and size cell counts in
        effect for it, and its properties. Returns the offset past the node.
        """
        buf = self._buf
        if read_be_u32(buf, pos) != OF_DT_BEGIN_NODE:
            raise DeviceTreeParseError(pos)
        pos += 4

        raw_name = read_bstring0(buf, pos)
        pos = align_up(pos + len(raw_name) + 1, 4)

        props: list[DeviceTreeProperty] = []
        while read_be_u32(buf, pos) == OF_DT_PROP:
            val_size = read_be_u32(buf, pos + 4)
            name_offset = read_be_u32(buf, pos + 8)
            val_start = pos + 12
            val_end = val_start + val_size
            val = subslice(buf, val_start, val_end)
            prop_name = _decode(read_bstring0(buf, self.off_strings + name_offset))
            if prop_name == "#address-cells":
                addr_cells = read_be_u32(val, 0)
            elif prop_name == "#size-cells":
                size_cells = read_be_u32(val, 0)
            props.append((prop_name, val))
            pos = align_up(val_end, 4)

        cb(_decode(raw_name), addr_cells, size_cells, props)

        while read_be_u32(buf, pos) == OF_DT_BEGIN_NODE:
            pos = self.parse(pos, addr_cells, size_cells, cb)
        if read_be_u32(buf, pos) != OF_DT_END_NODE:
            raise DeviceTreeParseError(pos)
        return pos + 4
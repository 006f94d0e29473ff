import struct

import pytest

from kernelkit.dtb import (
    BadMagicNumber,
    DeviceTree,
    DeviceTreeParseError,
    SliceReadError,
    Utf8Error,
    VersionNotSupported,
    read_be_u32,
    read_be_u64,
    read_bstring0,
    subslice,
)

MAGIC = 0xD00DFEED


def _u32(value):
    return struct.pack(">I", value)


def _u64(value):
    return struct.pack(">Q", value)


def _pad4(data):
    return data + bytes(-len(data) % 4)


def _string_offset(name, offsets, table):
    if name not in offsets:
        offsets[name] = len(table)
        table += name.encode() + b"\0"
    return offsets[name]


def _emit_node(node, offsets, table):
    name, props, children = node
    raw = name.encode() if isinstance(name, str) else name
    out = bytearray(_u32(1))
    out += _pad4(raw + b"\0")
    for prop_name, value in props:
        out += _u32(3) + _u32(len(value)) + _u32(_string_offset(prop_name, offsets, table))
        out += _pad4(value)
    for child in children:
        out += _emit_node(child, offsets, table)
    out += _u32(2)
    return bytes(out)


def build_dtb(root, *, magic=MAGIC, version=17):
    offsets, table = {}, bytearray()
    body = _emit_node(root, offsets, table) + _u32(9)
    off_struct = 40
    off_strings = off_struct + len(body)
    total = off_strings + len(table)
    header = struct.pack(
        ">10I", magic, total, off_struct, off_strings, 0, version, 16, 0, len(table), len(body)
    )
    return header + body + bytes(table)


SAMPLE = (
    "",
    [
        ("#address-cells", _u32(2)),
        ("#size-cells", _u32(2)),
        ("compatible", b"riscv-virtio\0"),
    ],
    [
        (
            "soc",
            [
                ("#address-cells", _u32(2)),
                ("#size-cells", _u32(2)),
                ("compatible", b"simple-bus\0"),
            ],
            [
                (
                    "virtio_mmio@10001000",
                    [
                        ("compatible", b"virtio,mmio\0"),
                        ("reg", _u64(0x10001000) + _u64(0x1000)),
                    ],
                    [],
                )
            ],
        )
    ],
)


def _collect(dt, pos, addr_cells=0, size_cells=0):
    seen = {}

    def cb(name, a_cells, s_cells, props):
        seen[name] = (a_cells, s_cells, dict(props))

    end = dt.parse(pos, addr_cells, size_cells, cb)
    return seen, end


def test_dtb():
    data = build_dtb(SAMPLE)
    dt = DeviceTree(data)
    seen, end = _collect(dt, dt.off_struct)

    assert seen[""][:2] == (2, 2)
    assert seen[""][2]["compatible"].decode() == "riscv-virtio\0"
    assert seen["soc"][:2] == (2, 2)
    assert seen["soc"][2]["compatible"].decode() == "simple-bus\0"
    mmio = seen["virtio_mmio@10001000"]
    assert mmio[:2] == (2, 2)
    assert mmio[2]["compatible"].decode() == "virtio,mmio\0"
    assert read_be_u64(mmio[2]["reg"], 0) == 0x10001000
    assert read_be_u64(mmio[2]["reg"], 8) == 0x1000
    assert data[end : end + 4] == _u32(9)


def test_nodes_visited_parent_first():
    dt = DeviceTree(build_dtb(SAMPLE))
    order = []
    dt.parse(dt.off_struct, 0, 0, lambda name, *_: order.append(name))
    assert order == ["", "soc", "virtio_mmio@10001000"]


def test_minimal_tree_end_offset():
    dt = DeviceTree(build_dtb(("", [], [])))
    seen, end = _collect(dt, dt.off_struct)
    assert end == 52
    assert seen == {"": (0, 0, {})}


def test_cells_inherited_from_caller_and_parent():
    root = ("", [], [("child", [("#size-cells", _u32(1))], [("leaf", [], [])])])
    dt = DeviceTree(build_dtb(root))
    seen, _ = _collect(dt, dt.off_struct, 3, 4)
    assert seen[""][:2] == (3, 4)
    assert seen["child"][:2] == (3, 1)
    assert seen["leaf"][:2] == (3, 1)


def test_header_fields():
    data = build_dtb(SAMPLE)
    dt = DeviceTree(data)
    assert dt.off_struct == 40
    assert dt.totalsize == len(data)


def test_bad_magic():
    with pytest.raises(BadMagicNumber):
        DeviceTree(build_dtb(SAMPLE, magic=0x12345678))


def test_unsupported_version():
    with pytest.raises(VersionNotSupported):
        DeviceTree(build_dtb(SAMPLE, version=16))


def test_truncated_header():
    with pytest.raises(SliceReadError):
        DeviceTree(_u32(MAGIC))


def test_parse_error_on_bad_token():
    data = bytearray(build_dtb(("", [], [])))
    data[40:44] = _u32(5)
    dt = DeviceTree(bytes(data))
    with pytest.raises(DeviceTreeParseError) as info:
        dt.parse(dt.off_struct, 0, 0, lambda *args: None)
    assert info.value.pos == 40


def test_parse_error_on_missing_end_node():
    data = bytearray(build_dtb(("", [], [])))
    data[48:52] = _u32(9)
    dt = DeviceTree(bytes(data))
    with pytest.raises(DeviceTreeParseError) as info:
        dt.parse(dt.off_struct, 0, 0, lambda *args: None)
    assert info.value.pos == 48


def test_invalid_utf8_name():
    dt = DeviceTree(build_dtb((b"\xff\xfe", [], [])))
    with pytest.raises(Utf8Error):
        dt.parse(dt.off_struct, 0, 0, lambda *args: None)


def test_parse_past_end():
    data = build_dtb(("", [], []))
    dt = DeviceTree(data)
    with pytest.raises(SliceReadError):
        dt.parse(len(data), 0, 0, lambda *args: None)


def test_read_be_u32():
    assert read_be_u32(b"\x12\x34\x56\x78", 0) == 0x12345678
    assert read_be_u32(b"\x00\xd0\x0d\xfe\xed", 1) == MAGIC
    with pytest.raises(SliceReadError):
        read_be_u32(b"\x00\x01\x02", 0)


def test_read_be_u64():
    assert read_be_u64(b"\x00\x00\x00\x01\x00\x00\x00\x02", 0) == 0x1_0000_0002
    with pytest.raises(SliceReadError):
        read_be_u64(b"\x00" * 7, 0)


def test_read_bstring0():
    assert read_bstring0(b"ab\0cd\0", 0) == b"ab"
    assert read_bstring0(b"ab\0cd\0", 3) == b"cd"
    with pytest.raises(SliceReadError):
        read_bstring0(b"abc", 0)


def test_subslice():
    assert subslice(b"abcdef", 1, 3) == b"bc"
    with pytest.raises(SliceReadError):
        subslice(b"abcd", 0, 4)
"""Tests for BFAST header validation, decoding and writing."""

import struct

import numpy as np
import pytest

from conftest import raw_bfast
from g3dkit import BFAST_MAGIC, BfastHeader, is_bfast, pack_bfast, parse_bfast
from g3dkit.bfast import ALIGNMENT
from g3dkit.errors import MalformedContainer, NameCountMismatch


def _header(magic=BFAST_MAGIC, data_start=64, data_end=64, num_arrays=1, length=64):
    out = bytearray(length)
    struct.pack_into("<8i", out, 0, magic, 0, data_start, 0, data_end, 0, num_arrays, 0)
    return bytes(out)


def test_single_positions_buffer():
    positions = np.array([0, 0, 0, 1, 0, 0, 0, 1, 0], dtype=np.float32)

    container = parse_bfast(pack_bfast(["positions"], [positions]))

    assert list(container.names) == ["positions"]
    assert len(container.buffers) == 1
    assert container.buffers[0].nbytes == 36
    assert container.children == {}
    np.testing.assert_array_equal(np.frombuffer(container.get_buffer("positions"), dtype="<f4"), positions)


def test_buffers_are_views_of_the_input():
    data = pack_bfast(["a", "b"], [b"abc", b"defg"])

    container = parse_bfast(data)

    assert [bytes(b) for b in container.buffers] == [b"abc", b"defg"]
    assert all(buffer.obj is data for buffer in container.buffers)


def test_header_fields():
    data = pack_bfast(["a"], [b"xyz"])

    header = BfastHeader.from_bytes(data)

    assert header.is_valid
    assert header.error is None
    assert header.magic == BFAST_MAGIC
    assert header.num_arrays == 2
    assert header.data_start % ALIGNMENT == 0
    assert header.data_end == len(data)


@pytest.mark.parametrize(
    "data, message",
    [
        (_header(magic=0x1234), "Not a BFAST"),
        (_header(data_start=32), "Data start"),
        (_header(data_start=128), "Data start"),
        (_header(data_start=64, data_end=40), "Data end"),
        (_header(data_end=100), "Data end"),
        (_header(num_arrays=-1), "Number of arrays"),
        (_header(num_arrays=65), "Number of arrays"),
        (b"\xa5\xbf\x00\x00", "Insufficient length"),
    ],
)
def test_header_rejection(data, message):
    header = BfastHeader.from_bytes(data)
    assert not header.is_valid
    assert message in header.error
    assert not is_bfast(data)

    with pytest.raises(MalformedContainer, match=message):
        parse_bfast(data)


def test_non_zero_header_padding_is_rejected():
    data = bytearray(_header())
    struct.pack_into("<i", data, 4, 7)

    assert not is_bfast(data)


def test_is_bfast_never_raises():
    assert not is_bfast(b"")
    assert not is_bfast(object())
    assert not is_bfast(np.zeros((4, 16), dtype=np.float32)[:, ::2])
    assert is_bfast(pack_bfast([], []))


def test_zero_arrays_is_malformed():
    with pytest.raises(MalformedContainer, match="names"):
        parse_bfast(_header(num_arrays=0))


def test_array_table_past_end_of_buffer():
    with pytest.raises(MalformedContainer, match="Array table"):
        parse_bfast(_header(num_arrays=10))


def test_name_count_mismatch():
    data = raw_bfast([b"a\0b\0", b"only one"])

    with pytest.raises(NameCountMismatch):
        parse_bfast(data)


def test_names_without_trailing_nul():
    container = parse_bfast(raw_bfast([b"first\0second", b"1", b"2"]))

    assert list(container.names) == ["first", "second"]


@pytest.mark.parametrize("word", [1, 3])
def test_reserved_table_words_must_be_zero(word):
    data = bytearray(pack_bfast(["a", "b"], [b"1", b"2"]))
    struct.pack_into("<i", data, 32 + 16 * 2 + 4 * word, 1)

    with pytest.raises(MalformedContainer, match="Array 2"):
        parse_bfast(data)


def test_array_start_before_data_start():
    data = bytearray(pack_bfast(["a"], [b"1234"]))
    struct.pack_into("<i", data, 32 + 16, 40)

    with pytest.raises(MalformedContainer, match="Array 1: buffer start"):
        parse_bfast(data)


def test_array_end_before_start():
    data = bytearray(pack_bfast(["a"], [b"1234"]))
    begin = struct.unpack_from("<i", data, 32 + 16)[0]
    struct.pack_into("<i", data, 32 + 16 + 8, begin - 1)

    with pytest.raises(MalformedContainer, match="Array 1: buffer end"):
        parse_bfast(data)


def test_nested_containers_are_decoded():
    inner = pack_bfast(["x"], [b"abc"])
    outer = parse_bfast(pack_bfast(["geometry", "meta"], [inner, b"\x01\x02\x03"]))

    assert set(outer.children) == {"geometry"}
    child = outer.get_child("geometry")
    assert list(child.names) == ["x"]
    assert bytes(child.get_buffer("x")) == b"abc"
    assert outer.get_child("meta") is None


def test_empty_container():
    container = parse_bfast(pack_bfast([], []))

    assert len(container) == 0
    assert container.names == ()


def test_duplicate_names_return_first_buffer():
    container = parse_bfast(pack_bfast(["a", "a"], [b"first", b"second"]))

    assert len(container) == 2
    assert bytes(container.get_buffer("a")) == b"first"
    assert container.get_buffer("missing") is None
    assert "a" in container


def test_accepts_bytearray_and_memoryview():
    data = pack_bfast(["a"], [b"payload"])

    for source in (bytearray(data), memoryview(data), np.frombuffer(data, dtype=np.uint8)):
        assert bytes(parse_bfast(source).get_buffer("a")) == b"payload"


def test_pack_rejects_mismatched_lists():
    with pytest.raises(NameCountMismatch):
        pack_bfast(["a", "b"], [b"1"])


def test_pack_rejects_nul_in_names():
    with pytest.raises(ValueError):
        pack_bfast(["a\0b"], [b"1"])

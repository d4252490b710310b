"""Tests for SCALE primitive decoding."""

from __future__ import annotations

import pytest

from chainlens.codec.scale import (
    bytes_to_hex,
    encode_compact,
    encode_length_prefixed,
    hex_to_bytes,
    read_compact_int,
    read_length_prefixed_bytes,
    read_u16,
    read_u32,
    read_u64,
    read_vec,
)
from chainlens.core.errors import BufferUnderflow, InvalidHex


class TestHex:
    def test_prefix_optional(self) -> None:
        assert hex_to_bytes("0x0102") == b"\x01\x02"
        assert hex_to_bytes("0102") == b"\x01\x02"
        assert hex_to_bytes("0x") == b""

    def test_odd_length_rejected(self) -> None:
        with pytest.raises(InvalidHex):
            hex_to_bytes("0x123")

    def test_non_hex_rejected(self) -> None:
        with pytest.raises(InvalidHex):
            hex_to_bytes("0xzz")

    def test_invalid_hex_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            hex_to_bytes("xyz0")

    def test_bytes_to_hex(self) -> None:
        assert bytes_to_hex(b"\xde\xad") == "0xdead"


class TestCompact:
    @pytest.mark.parametrize(
        "encoded, value",
        [
            (b"\x00", 0),
            (b"\x04", 1),
            (b"\xfc", 63),
            (b"\x01\x01", 64),
            (b"\xfd\xff", 16383),
            (b"\x02\x00\x01\x00", 16384),
            (b"\xfe\xff\xff\xff", 2**30 - 1),
            (b"\x03\x00\x00\x00\x40", 2**30),
        ],
    )
    def test_known_encodings(self, encoded: bytes, value: int) -> None:
        assert read_compact_int(encoded, 0) == (value, len(encoded))
        assert encode_compact(value) == encoded

    @pytest.mark.parametrize("value", [0, 1, 63, 64, 16383, 16384, 2**30 - 1, 2**30, 2**64 - 1, 2**128 - 1])
    def test_round_trip(self, value: int) -> None:
        encoded = encode_compact(value)
        assert read_compact_int(encoded, 0) == (value, len(encoded))

    def test_reads_at_offset(self) -> None:
        data = b"\xff\xff" + encode_compact(1000)
        assert read_compact_int(data, 2) == (1000, 2)

    def test_big_integer_overrun(self) -> None:
        # mode 3 announcing 8 payload bytes with only one present
        with pytest.raises(BufferUnderflow):
            read_compact_int(b"\x13\x00", 0)

    def test_empty_input(self) -> None:
        with pytest.raises(BufferUnderflow):
            read_compact_int(b"", 0)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError):
            encode_compact(-1)


class TestFixedWidth:
    def test_little_endian(self) -> None:
        assert read_u16(b"\x01\x02", 0) == (0x0201, 2)
        assert read_u32(b"\x01\x00\x00\x00", 0) == (1, 4)
        assert read_u64((2**40).to_bytes(8, "little"), 0) == (2**40, 8)

    def test_underflow_reports_position(self) -> None:
        with pytest.raises(BufferUnderflow) as info:
            read_u32(b"\x00\x00\x00\x00\x00", 2)
        assert info.value.needed == 4
        assert info.value.offset == 2


class TestLengthPrefixed:
    def test_reads_payload(self) -> None:
        data = encode_length_prefixed(b"hello") + b"tail"
        assert read_length_prefixed_bytes(data, 0) == (b"hello", 6)

    def test_declared_length_overrun(self) -> None:
        with pytest.raises(BufferUnderflow):
            read_length_prefixed_bytes(encode_compact(10) + b"abc", 0)

    def test_does_not_mutate_input(self) -> None:
        data = bytearray(encode_length_prefixed(b"abc"))
        snapshot = bytes(data)
        read_length_prefixed_bytes(data, 0)
        assert bytes(data) == snapshot

    def test_vec(self) -> None:
        data = encode_compact(3) + b"\x01\x00\x02\x00\x03\x00"
        assert read_vec(data, 0, read_u16) == ([1, 2, 3], 7)

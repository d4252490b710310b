"""SCALE primitive decoding.

Every reader is a pure function ``(data, offset) -> (value, consumed)`` that
never mutates ``data`` and raises :class:`BufferUnderflow` instead of reading
past the end of the buffer.
"""

from __future__ import annotations

import binascii
from typing import Callable, TypeAlias, TypeVar

from chainlens.core.errors import BufferUnderflow, InvalidHex

T = TypeVar("T")
Decoded: TypeAlias = tuple[T, int]

# Largest mode-3 payload: 63 + 4 bytes
MAX_BIG_INT_BYTES = 67


def hex_to_bytes(value: str) -> bytes:
    """Parse a hex string, with or without ``0x`` prefix."""
    text = value[2:] if value.startswith(("0x", "0X")) else value
    if len(text) % 2:
        raise InvalidHex(f"Odd-length hex string ({len(text)} digits)")
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise InvalidHex(f"Invalid hex string: {exc}") from exc


def bytes_to_hex(data: bytes) -> str:
    return "0x" + binascii.hexlify(data).decode("ascii")


def ensure_available(data: bytes, offset: int, length: int) -> None:
    if offset < 0 or length < 0 or offset + length > len(data):
        raise BufferUnderflow(length, offset, len(data))


def read_bytes(data: bytes, offset: int, length: int) -> Decoded[bytes]:
    ensure_available(data, offset, length)
    return bytes(data[offset:offset + length]), length


def read_uint(data: bytes, offset: int, width: int) -> Decoded[int]:
    """Little-endian unsigned integer of ``width`` bytes."""
    ensure_available(data, offset, width)
    return int.from_bytes(data[offset:offset + width], "little"), width


def read_u8(data: bytes, offset: int) -> Decoded[int]:
    ensure_available(data, offset, 1)
    return data[offset], 1


def read_u16(data: bytes, offset: int) -> Decoded[int]:
    return read_uint(data, offset, 2)


def read_u32(data: bytes, offset: int) -> Decoded[int]:
    return read_uint(data, offset, 4)


def read_u64(data: bytes, offset: int) -> Decoded[int]:
    return read_uint(data, offset, 8)


def read_u128(data: bytes, offset: int) -> Decoded[int]:
    return read_uint(data, offset, 16)


def read_bool(data: bytes, offset: int) -> Decoded[bool]:
    value, consumed = read_u8(data, offset)
    return value != 0, consumed


def read_compact_int(data: bytes, offset: int) -> Decoded[int]:
    """Decode a SCALE compact integer."""
    first, _ = read_u8(data, offset)
    mode = first & 0b11

    if mode == 0:
        return first >> 2, 1
    if mode == 1:
        value, _ = read_uint(data, offset, 2)
        return value >> 2, 2
    if mode == 2:
        value, _ = read_uint(data, offset, 4)
        return value >> 2, 4

    length = (first >> 2) + 4
    value, _ = read_uint(data, offset + 1, length)
    return value, 1 + length


def read_length_prefixed_bytes(data: bytes, offset: int) -> Decoded[bytes]:
    length, prefix = read_compact_int(data, offset)
    payload, _ = read_bytes(data, offset + prefix, length)
    return payload, prefix + length


def read_vec(data: bytes, offset: int, item: Callable[[bytes, int], tuple[T, int]]) -> Decoded[list[T]]:
    count, pos = read_compact_int(data, offset)
    items: list[T] = []
    for _ in range(count):
        value, consumed = item(data, offset + pos)
        items.append(value)
        pos += consumed
    return items, pos


def encode_compact(value: int) -> bytes:
    """Reference compact encoder (smallest mode that fits)."""
    if value < 0:
        raise ValueError("Compact integers are unsigned")
    if value < 1 << 6:
        return bytes([value << 2])
    if value < 1 << 14:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value < 1 << 30:
        return ((value << 2) | 0b10).to_bytes(4, "little")

    payload = value.to_bytes(max((value.bit_length() + 7) // 8, 4), "little")
    if len(payload) > MAX_BIG_INT_BYTES:
        raise ValueError("Value too large for compact encoding")
    return bytes([((len(payload) - 4) << 2) | 0b11]) + payload


def encode_length_prefixed(payload: bytes) -> bytes:
    return encode_compact(len(payload)) + payload

"""MultiAddress and Era codecs."""

from __future__ import annotations

from chainlens.codec.scale import (
    Decoded,
    encode_compact,
    encode_length_prefixed,
    read_bytes,
    read_compact_int,
    read_length_prefixed_bytes,
    read_u8,
    read_u16,
)
from chainlens.core.errors import UnknownTag
from chainlens.core.types import (
    AccountId,
    AccountIndex,
    AccountRaw,
    AccountReference,
    Address20,
    Address32,
    Era,
    ImmortalEra,
    MortalEra,
)

TAG_ID = 0x00
TAG_INDEX = 0x01
TAG_RAW = 0x02
TAG_ADDRESS32 = 0x03
TAG_ADDRESS20 = 0x04


def read_account_reference(data: bytes, offset: int) -> Decoded[AccountReference]:
    """Decode a tagged MultiAddress."""
    tag, _ = read_u8(data, offset)
    body = offset + 1

    if tag == TAG_ID:
        raw, consumed = read_bytes(data, body, 32)
        return AccountId(raw), 1 + consumed
    if tag == TAG_INDEX:
        index, consumed = read_compact_int(data, body)
        return AccountIndex(index), 1 + consumed
    if tag == TAG_RAW:
        raw, consumed = read_length_prefixed_bytes(data, body)
        return AccountRaw(raw), 1 + consumed
    if tag == TAG_ADDRESS32:
        raw, consumed = read_bytes(data, body, 32)
        return Address32(raw), 1 + consumed
    if tag == TAG_ADDRESS20:
        raw, consumed = read_bytes(data, body, 20)
        return Address20(raw), 1 + consumed

    raise UnknownTag("MultiAddress", tag)


def encode_account_reference(ref: AccountReference) -> bytes:
    if isinstance(ref, AccountId):
        return bytes([TAG_ID]) + ref.id
    if isinstance(ref, AccountIndex):
        return bytes([TAG_INDEX]) + encode_compact(ref.index)
    if isinstance(ref, AccountRaw):
        return bytes([TAG_RAW]) + encode_length_prefixed(ref.data)
    if isinstance(ref, Address32):
        return bytes([TAG_ADDRESS32]) + ref.data
    if isinstance(ref, Address20):
        return bytes([TAG_ADDRESS20]) + ref.data
    raise TypeError(f"Not an account reference: {ref!r}")


def read_era(data: bytes, offset: int) -> Decoded[Era]:
    """Decode an extrinsic era (one zero byte, or a 2-byte mortal encoding)."""
    first, _ = read_u8(data, offset)
    if first == 0:
        return ImmortalEra(), 1

    encoded, _ = read_u16(data, offset)
    period = 2 ** (encoded & 0x3F)
    quantize = max(period >> 12, 1)
    phase = (encoded >> 6) * quantize
    return MortalEra(period=period, phase=phase), 2


def encode_era(era: Era) -> bytes:
    if isinstance(era, ImmortalEra):
        return b"\x00"

    exponent = era.period.bit_length() - 1
    if era.period != 1 << exponent or exponent > 0x3F:
        raise ValueError(f"Era period must be a power of two, got {era.period}")
    quantize = max(era.period >> 12, 1)
    encoded = exponent | ((era.phase // quantize) << 6)
    if encoded & 0xFF == 0 or encoded > 0xFFFF:
        raise ValueError(f"Era {era} has no 2-byte mortal encoding")
    return encoded.to_bytes(2, "little")

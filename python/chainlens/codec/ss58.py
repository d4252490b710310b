"""SS58 network-prefixed, checksummed base58 addresses."""

from __future__ import annotations

from chainlens.codec.hashing import blake2_512
from chainlens.codec.scale import hex_to_bytes
from chainlens.core.errors import InvalidAddress

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {char: i for i, char in enumerate(BASE58_ALPHABET)}

CHECKSUM_PREFIX = b"SS58PRE"
CHECKSUM_LENGTH = 2
MAX_FORMAT = 16383


def base58_encode(data: bytes) -> str:
    zeros = len(data) - len(data.lstrip(b"\x00"))
    number = int.from_bytes(data, "big")

    digits: list[str] = []
    while number:
        number, rem = divmod(number, 58)
        digits.append(BASE58_ALPHABET[rem])

    return "1" * zeros + "".join(reversed(digits))


def base58_decode(text: str) -> bytes:
    number = 0
    for char in text:
        try:
            number = number * 58 + _BASE58_INDEX[char]
        except KeyError:
            raise InvalidAddress(f"Invalid base58 character {char!r}") from None

    zeros = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * zeros + body


def encode_prefix(ss58_format: int) -> bytes:
    if not 0 <= ss58_format <= MAX_FORMAT:
        raise ValueError(f"Invalid SS58 format {ss58_format}")
    if ss58_format < 64:
        return bytes([ss58_format])

    first = 0x40 | ((ss58_format & 0xFC) >> 2)
    second = (ss58_format >> 8) | ((ss58_format & 0x03) << 6)
    return bytes([first, second])


def _checksum(payload: bytes) -> bytes:
    return blake2_512(CHECKSUM_PREFIX + payload)[:CHECKSUM_LENGTH]


def encode_address(raw: bytes | str, ss58_format: int = 42) -> str:
    """Encode raw account bytes (or their hex) as an SS58 address."""
    data = hex_to_bytes(raw) if isinstance(raw, str) else bytes(raw)
    if not data:
        raise ValueError("Cannot encode an empty address")

    payload = encode_prefix(ss58_format) + data
    return base58_encode(payload + _checksum(payload))


def decode_address(address: str) -> tuple[bytes, int]:
    """Return ``(raw_bytes, ss58_format)`` after validating the checksum."""
    data = base58_decode(address)
    if len(data) < 1 + CHECKSUM_LENGTH + 1:
        raise InvalidAddress(f"Address too short: {address}")

    if data[0] & 0x40:
        prefix_len = 2
        ss58_format = ((data[0] & 0x3F) << 2) | (data[1] >> 6) | ((data[1] & 0x3F) << 8)
    else:
        prefix_len = 1
        ss58_format = data[0]

    payload, checksum = data[:-CHECKSUM_LENGTH], data[-CHECKSUM_LENGTH:]
    if _checksum(payload) != checksum:
        raise InvalidAddress(f"Checksum mismatch for {address}")
    raw = payload[prefix_len:]
    if not raw:
        raise InvalidAddress(f"Address has no account bytes: {address}")
    return raw, ss58_format


def is_valid_address(address: str) -> bool:
    try:
        decode_address(address)
    except InvalidAddress:
        return False
    return True

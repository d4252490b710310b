"""Wire codecs: SCALE primitives, addresses, eras and hashing."""

from chainlens.codec.scale import (
    hex_to_bytes,
    bytes_to_hex,
    read_compact_int,
    read_length_prefixed_bytes,
    encode_compact,
)
from chainlens.codec.address import read_account_reference, read_era
from chainlens.codec.ss58 import encode_address, decode_address

__all__ = [
    "hex_to_bytes",
    "bytes_to_hex",
    "read_compact_int",
    "read_length_prefixed_bytes",
    "encode_compact",
    "read_account_reference",
    "read_era",
    "encode_address",
    "decode_address",
]

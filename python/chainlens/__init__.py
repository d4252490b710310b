"""
chainlens: Substrate chain-data decoding and runtime discovery

Decodes signed extrinsics (including untagged post-quantum signatures),
System.Events grouped per extrinsic and header consensus digests, and finds
the block ranges each runtime version was active through galloping search
over a node's RPC.
"""

from chainlens.core.types import (
    ParsedExtrinsic,
    EventRecord,
    ExtrinsicEvents,
    RuntimeSpan,
    DecodedDigest,
)
from chainlens.decoding import (
    parse_extrinsic_header_and_call,
    decode_digest,
    decode_events_at_block,
)
from chainlens.codec.ss58 import encode_address, decode_address

__version__ = "0.1.0"
__all__ = [
    "ParsedExtrinsic",
    "EventRecord",
    "ExtrinsicEvents",
    "RuntimeSpan",
    "DecodedDigest",
    "parse_extrinsic_header_and_call",
    "decode_digest",
    "decode_events_at_block",
    "encode_address",
    "decode_address",
]

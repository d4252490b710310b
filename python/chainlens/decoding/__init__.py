"""Decoders for extrinsics, events and header digests."""

from chainlens.decoding.extrinsic import (
    parse_extrinsic_header_and_call,
    find_call_header,
    to_human,
)
from chainlens.decoding.digest import decode_digest, format_author
from chainlens.decoding.events import (
    decode_block_events,
    decode_events_at_block,
    get_extrinsic_events,
    extract_transfers,
    has_events,
    format_event,
)
from chainlens.decoding.registry import TypeRegistry, default_registry

__all__ = [
    "parse_extrinsic_header_and_call",
    "find_call_header",
    "to_human",
    "decode_digest",
    "format_author",
    "decode_block_events",
    "decode_events_at_block",
    "get_extrinsic_events",
    "extract_transfers",
    "has_events",
    "format_event",
    "TypeRegistry",
    "default_registry",
]

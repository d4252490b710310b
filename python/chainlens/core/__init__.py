"""Core types, configuration and errors for chainlens."""

from chainlens.core.types import (
    CallInfo,
    CallDispatchMap,
    ParsedExtrinsic,
    EventRecord,
    ExtrinsicEvents,
    RuntimeSpan,
    DecodedDigest,
)
from chainlens.core.config import ChainlensConfig
from chainlens.core.errors import (
    ChainlensError,
    DecodeError,
    BufferUnderflow,
    UnknownTag,
    AlignmentNotFound,
    ImplausibleValue,
    TransportFailure,
    StaleDataServed,
    MetadataUnavailable,
)

__all__ = [
    "CallInfo",
    "CallDispatchMap",
    "ParsedExtrinsic",
    "EventRecord",
    "ExtrinsicEvents",
    "RuntimeSpan",
    "DecodedDigest",
    "ChainlensConfig",
    "ChainlensError",
    "DecodeError",
    "BufferUnderflow",
    "UnknownTag",
    "AlignmentNotFound",
    "ImplausibleValue",
    "TransportFailure",
    "StaleDataServed",
    "MetadataUnavailable",
]

"""Exception taxonomy for chainlens decoding and discovery."""

from __future__ import annotations


class ChainlensError(Exception):
    """Base class for all chainlens errors."""


class DecodeError(ChainlensError):
    """Raised when a binary field cannot be decoded."""


class BufferUnderflow(DecodeError):
    """A read would run past the end of the buffer."""

    def __init__(self, needed: int, offset: int, available: int) -> None:
        super().__init__(
            f"Buffer underflow: need {needed} bytes at offset {offset}, "
            f"{max(available - offset, 0)} available"
        )
        self.needed = needed
        self.offset = offset
        self.available = available


class UnknownTag(DecodeError):
    """A variant discriminator is not recognised."""

    def __init__(self, kind: str, tag: int) -> None:
        super().__init__(f"Unknown {kind} tag 0x{tag:02x}")
        self.kind = kind
        self.tag = tag


class AlignmentNotFound(DecodeError):
    """The call-header scan exhausted its window."""


class ImplausibleValue(DecodeError):
    """A decoded value lies outside its sanity bounds."""


class InvalidHex(DecodeError, ValueError):
    """Input is not an even-length hex string."""


class InvalidAddress(DecodeError, ValueError):
    """A textual address failed to decode or its checksum did not match."""


class TransportFailure(ChainlensError):
    """A remote call failed, timed out or the connection dropped."""


class RpcError(TransportFailure):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, method: str, code: int | None, message: str) -> None:
        super().__init__(f"{method}: {message}" + (f" (code {code})" if code is not None else ""))
        self.method = method
        self.code = code


class MissingChainData(TransportFailure):
    """The node returned null where data is required."""


class StaleDataServed(ChainlensError):
    """A refresh failed and an expired cache entry was served instead.

    Never raised to callers; attached to the cache lookup result.
    """

    def __init__(self, key: object, age: float, cause: BaseException) -> None:
        super().__init__(f"Serving stale entry for {key!r} ({age:.1f}s old): {cause}")
        self.key = key
        self.age = age
        self.cause = cause


class MetadataUnavailable(ChainlensError):
    """No resolved metadata description exists for a runtime version."""

    def __init__(self, spec_version: int) -> None:
        super().__init__(f"No metadata description for spec version {spec_version}")
        self.spec_version = spec_version

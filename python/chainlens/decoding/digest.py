"""Block header digest decoding and block author extraction."""

from __future__ import annotations

from typing import Sequence

import structlog

from chainlens.codec.scale import (
    bytes_to_hex,
    hex_to_bytes,
    read_bytes,
    read_compact_int,
    read_u8,
    read_u32,
    read_u64,
)
from chainlens.core.errors import DecodeError
from chainlens.core.types import (
    ConsensusLog,
    DecodedDigest,
    DigestLog,
    DigestPayload,
    OtherLog,
    PowAuthor,
    PreRuntimeLog,
    RuntimeEnvironmentUpdatedLog,
    SealLog,
    SlotClaim,
    UnknownLog,
)

logger = structlog.get_logger()

TAG_OTHER = 0x00
TAG_CONSENSUS = 0x04
TAG_SEAL = 0x05
TAG_PRE_RUNTIME = 0x06
TAG_RUNTIME_ENVIRONMENT_UPDATED = 0x08

POW_ENGINE_ID = b"pow_"
AURA_ENGINE_ID = b"aura"
BABE_ENGINE_ID = b"BABE"

ENGINE_NAMES = {
    POW_ENGINE_ID: "PoW",
    AURA_ENGINE_ID: "Aura",
    BABE_ENGINE_ID: "BABE",
}

ACCOUNT_ID_LENGTH = 32


def decode_pow_author(payload: bytes) -> PowAuthor | None:
    """32-byte author account, optionally behind a compact length prefix."""
    offset = 0
    length = len(payload)
    if len(payload) > ACCOUNT_ID_LENGTH:
        length, offset = read_compact_int(payload, 0)

    if length != ACCOUNT_ID_LENGTH:
        logger.warning(
            "pow_author_payload_unexpected",
            payload_length=len(payload),
            declared_length=length,
        )
        return None

    account, _ = read_bytes(payload, offset, ACCOUNT_ID_LENGTH)
    return PowAuthor(account=bytes_to_hex(account))


def _unwrap_vec(payload: bytes) -> bytes:
    """Strip a compact length prefix when it exactly covers the payload."""
    try:
        length, prefix = read_compact_int(payload, 0)
    except DecodeError:
        return payload
    if prefix + length == len(payload):
        return payload[prefix:]
    return payload


def decode_aura_slot(payload: bytes) -> SlotClaim:
    body = _unwrap_vec(payload)
    slot, pos = read_u64(body, 0)
    authority_index = None
    if pos < len(body):
        authority_index, _ = read_compact_int(body, pos)
    return SlotClaim(slot=slot, authority_index=authority_index)


def decode_babe_pre_digest(payload: bytes) -> SlotClaim:
    body = _unwrap_vec(payload)
    read_u8(body, 0)  # Primary / SecondaryPlain / SecondaryVRF
    authority_index, consumed = read_u32(body, 1)
    slot, _ = read_u64(body, 1 + consumed)
    return SlotClaim(slot=slot, authority_index=authority_index)


def _decode_pre_runtime(engine: bytes, payload: bytes) -> DigestPayload | None:
    if engine == POW_ENGINE_ID:
        return decode_pow_author(payload)
    if engine == AURA_ENGINE_ID:
        return decode_aura_slot(payload)
    if engine == BABE_ENGINE_ID:
        return decode_babe_pre_digest(payload)
    return None


def decode_digest_log(log: str) -> DigestLog:
    """Decode one hex digest item."""
    data = hex_to_bytes(log)
    tag, _ = read_u8(data, 0)

    if tag == TAG_OTHER:
        return OtherLog(data=bytes_to_hex(data[1:]))
    if tag == TAG_RUNTIME_ENVIRONMENT_UPDATED:
        return RuntimeEnvironmentUpdatedLog()
    if tag not in (TAG_CONSENSUS, TAG_SEAL, TAG_PRE_RUNTIME):
        return UnknownLog(data=bytes_to_hex(data[1:]), tag=tag)

    engine, _ = read_bytes(data, 1, 4)
    payload = data[5:]
    engine_hex = bytes_to_hex(engine)

    if tag == TAG_CONSENSUS:
        return ConsensusLog(engine=engine_hex, data=bytes_to_hex(payload))
    if tag == TAG_SEAL:
        return SealLog(engine=engine_hex, data=bytes_to_hex(payload))

    # The engine id is known, so a bad payload still leaves a PreRuntime item
    try:
        decoded = _decode_pre_runtime(engine, payload)
    except DecodeError as exc:
        logger.warning("pre_runtime_payload_failed", engine=engine_hex, error=str(exc))
        decoded = None
    return PreRuntimeLog(engine=engine_hex, data=bytes_to_hex(payload), decoded=decoded)


def decode_digest(logs: Sequence[str]) -> DecodedDigest:
    """Decode every digest item; the first authoring claim found wins.

    Items that fail to decode are kept as ``UnknownLog`` with the raw hex.
    """
    decoded: list[DigestLog] = []
    author: str | None = None
    engine_name: str | None = None
    authority_index: int | None = None

    for log in logs:
        try:
            item = decode_digest_log(log)
        except DecodeError as exc:
            logger.warning("digest_log_failed", log=log, error=str(exc))
            decoded.append(UnknownLog(data=log, error=str(exc)))
            continue
        decoded.append(item)

        if engine_name is not None or not isinstance(item, PreRuntimeLog):
            continue
        if isinstance(item.decoded, PowAuthor):
            author = item.decoded.account
            engine_name = ENGINE_NAMES[POW_ENGINE_ID]
            logger.debug("block_author_found", author=author)
        elif isinstance(item.decoded, SlotClaim):
            engine_name = ENGINE_NAMES[hex_to_bytes(item.engine)]
            authority_index = item.decoded.authority_index

    return DecodedDigest(
        logs=tuple(decoded),
        author=author,
        consensus_engine=engine_name,
        authority_index=authority_index,
    )


def format_author(author: str | None) -> str:
    return author or "Unknown"

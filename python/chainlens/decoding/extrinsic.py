"""Extrinsic envelope decoding aligned against runtime call metadata.

The signed-extension region between the signature and the call is versioned
and not decoded here. Instead the decoder searches forward for the first byte
pair that names a callable ``(pallet, call)`` in the runtime's dispatch map.
The same search validates candidate signature lengths, since post-quantum
signature blobs carry no length prefix.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from chainlens.codec.address import read_account_reference, read_era
from chainlens.codec.scale import (
    bytes_to_hex,
    hex_to_bytes,
    read_compact_int,
    read_length_prefixed_bytes,
    read_u8,
)
from chainlens.codec.ss58 import encode_address
from chainlens.core.config import DecoderConfig
from chainlens.core.errors import AlignmentNotFound, DecodeError, ImplausibleValue
from chainlens.core.types import (
    AccountId,
    AccountReference,
    Address20,
    Address32,
    CallDispatchMap,
    CallHeader,
    Era,
    MortalEra,
    ParsedExtrinsic,
)

logger = structlog.get_logger()

SIGNED_BIT = 0x80
VERSION_MASK = 0x7F
ECDSA_TAG = 0x02


@dataclass(frozen=True, slots=True)
class SignedPrefix:
    """Signature length, era and nonce settled for a signed extrinsic."""

    signature_length: int
    era: Era
    nonce: int
    offset: int


def to_human(value: int, decimals: int) -> str:
    """Fixed-point render of ``value / 10**decimals`` without trailing zeros."""
    whole, fraction = divmod(int(value), 10 ** decimals)
    digits = str(fraction).rjust(decimals, "0").rstrip("0") if decimals else ""
    return f"{whole}.{digits}" if digits else str(whole)


def find_call_header(
    data: bytes,
    start: int,
    call_map: CallDispatchMap,
    window: int = 4096,
) -> CallHeader | None:
    """First ``(pallet, call)`` pair within ``window`` bytes of ``start``
    that the dispatch map accepts."""
    for shift in range(window + 1):
        i = start + shift
        if i + 2 > len(data):
            break
        pallet, call = data[i], data[i + 1]
        info = call_map.get(pallet)
        if info is not None and call < info.call_count:
            return CallHeader(offset=i, pallet=pallet, call=call)
    return None


def format_account(ref: AccountReference, ss58_format: int) -> str | None:
    if isinstance(ref, AccountId):
        return encode_address(ref.id, ss58_format)
    if isinstance(ref, Address32):
        return encode_address(ref.data, ss58_format)
    if isinstance(ref, Address20):
        return bytes_to_hex(ref.data)
    return None


def select_signature(
    data: bytes,
    sig_start: int,
    call_map: CallDispatchMap,
    config: DecoderConfig,
) -> SignedPrefix | None:
    """Try each candidate signature length; the first self-consistent one wins."""
    for length in config.signature_candidates:
        if sig_start + length >= len(data):
            continue
        try:
            prefix = _try_candidate(data, sig_start, length, call_map, config)
        except DecodeError as exc:
            logger.debug("signature_candidate_rejected", length=length, error=str(exc))
            continue
        if prefix is not None:
            return prefix
    return None


def _try_candidate(
    data: bytes,
    sig_start: int,
    length: int,
    call_map: CallDispatchMap,
    config: DecoderConfig,
) -> SignedPrefix | None:
    pos = sig_start + length
    era, consumed = read_era(data, pos)
    pos += consumed
    if isinstance(era, MortalEra) and not era.is_valid:
        return None

    nonce, consumed = read_compact_int(data, pos)
    pos += consumed
    if nonce >= config.max_nonce:
        return None

    # Peek the tip so the scan starts where the call should begin
    _, tip_len = read_compact_int(data, pos)
    header = find_call_header(data, pos + tip_len, call_map, config.candidate_scan_window)
    if header is None:
        return None
    return SignedPrefix(signature_length=length, era=era, nonce=nonce, offset=pos)


def legacy_signature(data: bytes, sig_start: int) -> SignedPrefix:
    """MultiSignature skip by tag byte: ECDSA is 65 bytes, others 64."""
    tag, _ = read_u8(data, sig_start)
    length = 1 + 65 if tag == ECDSA_TAG else 1 + 64
    pos = sig_start + length
    era, consumed = read_era(data, pos)
    pos += consumed
    nonce, consumed = read_compact_int(data, pos)
    pos += consumed
    return SignedPrefix(signature_length=length, era=era, nonce=nonce, offset=pos)


def _check_tip(tip: int, ceiling: int) -> None:
    if tip > ceiling:
        raise ImplausibleValue(f"Tip {tip} exceeds ceiling {ceiling}")


def read_tip(
    data: bytes,
    offset: int,
    version: int,
    decimals: int,
    config: DecoderConfig,
) -> tuple[int, int]:
    """Return ``(tip, offset_after)``; implausible tips are recovered, not raised."""
    ceiling = config.max_reasonable_tip_units * 10 ** decimals
    tip, consumed = read_compact_int(data, offset)
    try:
        _check_tip(tip, ceiling)
        return tip, offset + consumed
    except ImplausibleValue as exc:
        logger.warning(
            "implausible_tip",
            error=str(exc),
            context=_hex_context(data, offset),
        )

    # Version 5 may carry an extra compact field ahead of the tip
    if version == 5:
        try:
            retry, retry_consumed = read_compact_int(data, offset + consumed)
            _check_tip(retry, ceiling)
        except DecodeError as exc:
            logger.warning("tip_retry_failed", error=str(exc))
        else:
            return retry, offset + consumed + retry_consumed

    return 0, offset + consumed


def _hex_context(data: bytes, offset: int, before: int = 10, after: int = 20) -> str:
    window = data[max(0, offset - before):min(offset + after, len(data))]
    return " ".join(f"{b:02x}" for b in window)


def parse_extrinsic_header_and_call(
    hex_data: str,
    ss58_format: int,
    decimals: int,
    call_map: CallDispatchMap,
    symbol: str,
    *,
    config: DecoderConfig | None = None,
) -> ParsedExtrinsic:
    """Decode an extrinsic's header and resolve its call against ``call_map``.

    Never raises for malformed input; failures come back as ``ok=False``
    with ``error`` set.
    """
    config = config or DecoderConfig()
    try:
        return _parse(hex_data, ss58_format, decimals, call_map, symbol, config)
    except DecodeError as exc:
        logger.debug("extrinsic_decode_failed", error=str(exc))
        return ParsedExtrinsic(
            ok=False,
            raw_length=0,
            version=0,
            is_signed=False,
            call_index=(0, 0),
            error=str(exc),
        )


def _parse(
    hex_data: str,
    ss58_format: int,
    decimals: int,
    call_map: CallDispatchMap,
    symbol: str,
    config: DecoderConfig,
) -> ParsedExtrinsic:
    body, _ = read_length_prefixed_bytes(hex_to_bytes(hex_data), 0)

    version, i = read_u8(body, 0)
    is_signed = bool(version & SIGNED_BIT)
    protocol = version & VERSION_MASK
    if protocol not in config.supported_versions:
        logger.warning("unsupported_extrinsic_version", version=protocol)

    sender: str | None = None
    tip: int | None = None
    prefix: SignedPrefix | None = None

    if is_signed:
        # Past the version byte a failure still reports what the envelope declared
        try:
            signer, consumed = read_account_reference(body, i)
            i += consumed
            sender = format_account(signer, ss58_format)

            prefix = select_signature(body, i, call_map, config)
            if prefix is None:
                logger.debug("signature_fallback_legacy", offset=i)
                prefix = legacy_signature(body, i)
            tip, i = read_tip(body, prefix.offset, protocol, decimals, config)
        except DecodeError as exc:
            logger.debug("signed_header_failed", offset=i, error=str(exc))
            return ParsedExtrinsic(
                ok=False,
                raw_length=len(body),
                version=version,
                is_signed=is_signed,
                call_index=(0, 0),
                sender=sender,
                symbol=symbol,
                error=str(exc),
            )

    signed_fields = dict(
        sender=sender,
        tip_planck=tip,
        tip_human=to_human(tip, decimals) if tip is not None else None,
        nonce=prefix.nonce if prefix else None,
        era=prefix.era if prefix else None,
        signature_length=prefix.signature_length if prefix else None,
        symbol=symbol,
    )

    header = find_call_header(body, i, call_map, config.scan_window)
    if header is None:
        error = AlignmentNotFound(
            f"No call header within {config.scan_window} bytes of offset {i}"
        )
        logger.debug("call_alignment_not_found", offset=i, length=len(body))
        guess = (
            body[i] if i < len(body) else 0,
            body[i + 1] if i + 1 < len(body) else 0,
        )
        return ParsedExtrinsic(
            ok=False,
            raw_length=len(body),
            version=version,
            is_signed=is_signed,
            call_index=guess,
            error=str(error),
            **signed_fields,
        )

    info = call_map[header.pallet]
    return ParsedExtrinsic(
        ok=True,
        raw_length=len(body),
        version=version,
        is_signed=is_signed,
        call_index=(header.pallet, header.call),
        section=info.name,
        method=info.call_name_by_index.get(header.call, f"call_{header.call}"),
        **signed_fields,
    )

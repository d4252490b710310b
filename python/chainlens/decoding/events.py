"""System.Events decoding and per-extrinsic grouping."""

from __future__ import annotations

from typing import Any

import structlog

from chainlens.codec.scale import (
    bytes_to_hex,
    hex_to_bytes,
    read_bytes,
    read_compact_int,
    read_u8,
    read_u32,
)
from chainlens.codec.ss58 import encode_address
from chainlens.core.errors import DecodeError, UnknownTag
from chainlens.core.types import (
    ApplyExtrinsic,
    BlockEvents,
    EventPhase,
    EventRecord,
    ExtrinsicEvents,
    FeePaidEvent,
    Finalization,
    Initialization,
    TransferEvent,
)
from chainlens.decoding.extrinsic import to_human
from chainlens.decoding.registry import TypeRegistry
from chainlens.runtime.metadata import RuntimeMetadata

logger = structlog.get_logger()


class UnknownEventLayout(DecodeError):
    """No field layout is known for an event discriminator pair."""

    def __init__(self, pallet_index: int, event_index: int) -> None:
        super().__init__(f"No layout for event ({pallet_index}, {event_index})")
        self.pallet_index = pallet_index
        self.event_index = event_index


def read_phase(data: bytes, offset: int) -> tuple[EventPhase, int]:
    tag, _ = read_u8(data, offset)
    if tag == 0:
        index, consumed = read_u32(data, offset + 1)
        return ApplyExtrinsic(index), 1 + consumed
    if tag == 1:
        return Finalization(), 1
    if tag == 2:
        return Initialization(), 1
    raise UnknownTag("Phase", tag)


def read_event_record(
    registry: TypeRegistry,
    metadata: RuntimeMetadata,
    data: bytes,
    offset: int,
) -> tuple[EventRecord, int]:
    phase, pos = read_phase(data, offset)
    pos += offset
    pallet_index, _ = read_u8(data, pos)
    event_index, _ = read_u8(data, pos + 1)
    pos += 2

    layout = metadata.event_layout(pallet_index, event_index)
    if layout is None:
        raise UnknownEventLayout(pallet_index, event_index)
    section, event = layout

    fields_start = pos
    values: list[Any] = []
    for field in event.fields:
        value, consumed = registry.decode(field.type, data, pos)
        values.append(value)
        pos += consumed
    raw_data = bytes_to_hex(data[fields_start:pos])

    topic_count, consumed = read_compact_int(data, pos)
    pos += consumed
    topics = []
    for _ in range(topic_count):
        topic, consumed = read_bytes(data, pos, 32)
        topics.append(bytes_to_hex(topic))
        pos += consumed

    record = EventRecord(
        phase=phase,
        pallet_index=pallet_index,
        event_index=event_index,
        section=section,
        method=event.name,
        data=tuple(values),
        field_names=tuple(f.name for f in event.fields),
        raw_data=raw_data,
        topics=tuple(topics),
    )
    return record, pos - offset


def _account_text(value: Any, ss58_format: int) -> str | None:
    # MultiAddress decodes to a one-entry mapping such as {"Id": "0x..."}
    if isinstance(value, dict) and len(value) == 1:
        [(variant, inner)] = value.items()
        if variant in ("Id", "Address32"):
            return _account_text(inner, ss58_format)
        return str(inner)
    if isinstance(value, str) and len(value) == 66:
        return encode_address(value, ss58_format)
    if isinstance(value, str):
        return value
    return None


def _field(record: EventRecord, name: str, position: int) -> Any:
    if name in record.field_names:
        return record.value_of(name)
    if position < len(record.data):
        return record.data[position]
    return None


def _amount(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _transfer(record: EventRecord, ss58_format: int, decimals: int) -> TransferEvent | None:
    amount = _amount(_field(record, "amount", 2))
    from_address = _account_text(_field(record, "from", 0), ss58_format)
    to_address = _account_text(_field(record, "to", 1), ss58_format)
    if amount is None or from_address is None or to_address is None:
        logger.warning("transfer_fields_unexpected", field_names=record.field_names, fields=len(record.data))
        return None
    return TransferEvent(
        from_address=from_address,
        to_address=to_address,
        amount_planck=amount,
        amount_human=to_human(amount, decimals),
    )


def _fee_paid(record: EventRecord, ss58_format: int, decimals: int) -> FeePaidEvent | None:
    amount = _amount(_field(record, "actual_fee", 1))
    payer = _account_text(_field(record, "who", 0), ss58_format)
    if amount is None or payer is None:
        logger.warning("fee_paid_fields_unexpected", field_names=record.field_names, fields=len(record.data))
        return None
    return FeePaidEvent(
        payer=payer,
        amount_planck=amount,
        amount_human=to_human(amount, decimals),
    )


def is_transfer(record: EventRecord) -> bool:
    return record.section.lower() == "balances" and record.method == "Transfer"


def is_fee_paid(record: EventRecord) -> bool:
    return record.section.lower() == "transactionpayment" and record.method == "TransactionFeePaid"


def decode_block_events(
    registry: TypeRegistry,
    metadata: RuntimeMetadata,
    events_hex: str | None,
    ss58_format: int,
    decimals: int,
) -> BlockEvents:
    """Decode ``Vec<EventRecord>`` and group it by extrinsic index.

    An event without a known layout ends the walk since its length cannot be
    known; the undecoded remainder is returned as ``raw_tail``.
    """
    by_extrinsic: dict[int, ExtrinsicEvents] = {}
    other: list[EventRecord] = []
    if not events_hex:
        return BlockEvents(by_extrinsic=by_extrinsic, other=())

    try:
        data = hex_to_bytes(events_hex)
        count, pos = read_compact_int(data, 0)
    except DecodeError as exc:
        logger.warning("events_decode_failed", error=str(exc))
        return BlockEvents(by_extrinsic=by_extrinsic, other=(), raw_tail=events_hex, error=str(exc))

    raw_tail: str | None = None
    error: str | None = None
    for n in range(count):
        try:
            record, consumed = read_event_record(registry, metadata, data, pos)
        except DecodeError as exc:
            logger.warning("event_record_failed", position=n, offset=pos, error=str(exc))
            raw_tail = bytes_to_hex(data[pos:])
            error = str(exc)
            break
        pos += consumed

        if not isinstance(record.phase, ApplyExtrinsic):
            other.append(record)
            continue

        group = by_extrinsic.setdefault(record.phase.index, ExtrinsicEvents())
        group.records.append(record)
        if is_transfer(record):
            transfer = _transfer(record, ss58_format, decimals)
            if transfer is not None:
                group.transfers.append(transfer)
        elif is_fee_paid(record):
            fee_paid = _fee_paid(record, ss58_format, decimals)
            if fee_paid is not None:
                group.fee_paid = fee_paid

    return BlockEvents(by_extrinsic=by_extrinsic, other=tuple(other), raw_tail=raw_tail, error=error)


def decode_events_at_block(
    registry: TypeRegistry,
    metadata: RuntimeMetadata,
    events_hex: str | None,
    ss58_format: int,
    decimals: int,
) -> dict[int, ExtrinsicEvents]:
    return decode_block_events(registry, metadata, events_hex, ss58_format, decimals).by_extrinsic


def get_extrinsic_events(events: dict[int, ExtrinsicEvents], index: int) -> ExtrinsicEvents | None:
    return events.get(index)


def extract_transfers(events: dict[int, ExtrinsicEvents]) -> list[TransferEvent]:
    """All transfers in extrinsic order."""
    transfers: list[TransferEvent] = []
    for index in sorted(events):
        transfers.extend(events[index].transfers)
    return transfers


def has_events(events: ExtrinsicEvents | None) -> bool:
    return events is not None and not events.is_empty


def format_event(event: TransferEvent | FeePaidEvent, symbol: str) -> str:
    if isinstance(event, TransferEvent):
        return f"Transfer {event.amount_human} {symbol} from {event.from_address} to {event.to_address}"
    return f"Fee {event.amount_human} {symbol} paid by {event.payer}"

"""Core type definitions for chainlens decoded records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, TypeAlias, Union

Bytes32: TypeAlias = bytes
Planck: TypeAlias = int


# Extrinsic validity window

@dataclass(frozen=True, slots=True)
class ImmortalEra:
    def to_dict(self) -> dict[str, Any]:
        return {"type": "immortal"}


@dataclass(frozen=True, slots=True)
class MortalEra:
    period: int
    phase: int

    @property
    def is_valid(self) -> bool:
        return self.period >= 1 and self.period & (self.period - 1) == 0 and self.phase < self.period

    def to_dict(self) -> dict[str, Any]:
        return {"type": "mortal", "period": self.period, "phase": self.phase}


Era: TypeAlias = Union[ImmortalEra, MortalEra]


# MultiAddress account references

@dataclass(frozen=True, slots=True)
class AccountId:
    id: Bytes32


@dataclass(frozen=True, slots=True)
class AccountIndex:
    index: int


@dataclass(frozen=True, slots=True)
class AccountRaw:
    data: bytes


@dataclass(frozen=True, slots=True)
class Address32:
    data: Bytes32


@dataclass(frozen=True, slots=True)
class Address20:
    data: bytes


AccountReference: TypeAlias = Union[AccountId, AccountIndex, AccountRaw, Address32, Address20]


# Call dispatch

@dataclass(frozen=True, slots=True)
class CallInfo:
    """Callable surface of one pallet in one runtime version."""

    name: str
    call_count: int
    call_name_by_index: Mapping[int, str] = field(default_factory=dict)


CallDispatchMap: TypeAlias = Mapping[int, CallInfo]


@dataclass(frozen=True, slots=True)
class CallHeader:
    offset: int
    pallet: int
    call: int


@dataclass(frozen=True, slots=True)
class ParsedExtrinsic:
    """Result of decoding one extrinsic envelope."""

    ok: bool
    raw_length: int
    version: int
    is_signed: bool
    call_index: tuple[int, int]
    section: str | None = None
    method: str | None = None
    sender: str | None = None
    tip_planck: Planck | None = None
    tip_human: str | None = None
    nonce: int | None = None
    era: Era | None = None
    signature_length: int | None = None
    symbol: str | None = None
    error: str | None = None

    @property
    def tip_display(self) -> str | None:
        if self.tip_human is None:
            return None
        return f"{self.tip_human} {self.symbol}" if self.symbol else self.tip_human

    def to_dict(self) -> dict[str, Any]:
        """Presentation shape with integers rendered as decimal strings."""
        return {
            "ok": self.ok,
            "rawLength": self.raw_length,
            "version": self.version,
            "isSigned": self.is_signed,
            "callIndex": {"pallet": self.call_index[0], "call": self.call_index[1]},
            "section": self.section,
            "method": self.method,
            "sender": self.sender,
            "tipPlanck": None if self.tip_planck is None else str(self.tip_planck),
            "tipHuman": self.tip_human,
            "nonce": None if self.nonce is None else str(self.nonce),
            "era": self.era.to_dict() if self.era is not None else None,
            "error": self.error,
        }


# Events

@dataclass(frozen=True, slots=True)
class ApplyExtrinsic:
    index: int


@dataclass(frozen=True, slots=True)
class Finalization:
    pass


@dataclass(frozen=True, slots=True)
class Initialization:
    pass


EventPhase: TypeAlias = Union[ApplyExtrinsic, Finalization, Initialization]


@dataclass(frozen=True, slots=True)
class EventRecord:
    phase: EventPhase
    pallet_index: int
    event_index: int
    section: str
    method: str
    data: tuple[Any, ...]
    field_names: tuple[str | None, ...]
    raw_data: str
    topics: tuple[str, ...] = ()

    def value_of(self, name: str) -> Any:
        return self.data[self.field_names.index(name)]


@dataclass(frozen=True, slots=True)
class TransferEvent:
    from_address: str
    to_address: str
    amount_planck: Planck
    amount_human: str


@dataclass(frozen=True, slots=True)
class FeePaidEvent:
    payer: str
    amount_planck: Planck
    amount_human: str


@dataclass(slots=True)
class ExtrinsicEvents:
    """Events emitted while applying one extrinsic."""

    transfers: list[TransferEvent] = field(default_factory=list)
    fee_paid: FeePaidEvent | None = None
    records: list[EventRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.transfers and self.fee_paid is None


@dataclass(frozen=True, slots=True)
class BlockEvents:
    by_extrinsic: dict[int, ExtrinsicEvents]
    other: tuple[EventRecord, ...]
    raw_tail: str | None = None
    error: str | None = None


# Runtime discovery

@dataclass(frozen=True, slots=True)
class RuntimeVersion:
    spec_name: str
    spec_version: int


@dataclass(frozen=True, slots=True)
class RuntimeSpan:
    spec_name: str
    spec_version: int
    start_block: int
    end_block: int
    code_hash: str

    @property
    def length(self) -> int:
        return self.end_block - self.start_block + 1

    def contains(self, height: int) -> bool:
        return self.start_block <= height <= self.end_block


# Header digests

@dataclass(frozen=True, slots=True)
class PowAuthor:
    account: str


@dataclass(frozen=True, slots=True)
class SlotClaim:
    slot: int
    authority_index: int | None = None


DigestPayload: TypeAlias = Union[PowAuthor, SlotClaim]


@dataclass(frozen=True, slots=True)
class OtherLog:
    data: str


@dataclass(frozen=True, slots=True)
class ConsensusLog:
    engine: str
    data: str
    decoded: DigestPayload | None = None


@dataclass(frozen=True, slots=True)
class SealLog:
    engine: str
    data: str
    decoded: DigestPayload | None = None


@dataclass(frozen=True, slots=True)
class PreRuntimeLog:
    engine: str
    data: str
    decoded: DigestPayload | None = None


@dataclass(frozen=True, slots=True)
class RuntimeEnvironmentUpdatedLog:
    pass


@dataclass(frozen=True, slots=True)
class UnknownLog:
    data: str
    tag: int | None = None
    error: str | None = None


DigestLog: TypeAlias = Union[
    OtherLog, ConsensusLog, SealLog, PreRuntimeLog, RuntimeEnvironmentUpdatedLog, UnknownLog
]


@dataclass(frozen=True, slots=True)
class DecodedDigest:
    logs: tuple[DigestLog, ...]
    author: str | None = None
    consensus_engine: str | None = None
    authority_index: int | None = None

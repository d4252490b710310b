"""Runtime metadata: call dispatch maps and event layouts per spec version.

Metadata arrives as a resolved description (pallet index, name, calls and
event field types), either read from a description file or derived from the
node's SCALE metadata by ``chainlens.runtime.resolver``. This module
validates that description and derives the lookup tables the decoders use.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

import structlog
from pydantic import BaseModel, Field, field_validator

from chainlens.core.types import CallDispatchMap, CallInfo

if TYPE_CHECKING:
    from chainlens.decoding.registry import TypeRegistry

logger = structlog.get_logger()


class EventField(BaseModel):
    name: str | None = None
    type: str


class EventDescription(BaseModel):
    name: str
    fields: list[EventField] = Field(default_factory=list)

    @field_validator("fields", mode="before")
    @classmethod
    def _accept_bare_types(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"type": item} if isinstance(item, str) else item for item in value]
        return value


class PalletDescription(BaseModel):
    """One pallet; calls and events are listed in variant-index order
    or given as an explicit ``{index: ...}`` mapping."""

    index: int = Field(ge=0, le=255)
    name: str
    calls: dict[int, str] = Field(default_factory=dict)
    events: dict[int, EventDescription] = Field(default_factory=dict)

    @field_validator("calls", "events", mode="before")
    @classmethod
    def _index_lists(cls, value: Any) -> Any:
        if isinstance(value, list):
            return dict(enumerate(value))
        return value


class MetadataDescription(BaseModel):
    spec_name: str = ""
    spec_version: int = Field(ge=0)
    pallets: list[PalletDescription] = Field(default_factory=list)
    ss58_format: int | None = None
    token_symbol: str | None = None
    token_decimals: int | None = None


class RuntimeMetadata:
    """Lookup tables for one runtime version.

    ``registry`` is set when event field types name the runtime's own
    portable type registry; descriptions from files leave it ``None``.
    """

    def __init__(self, description: MetadataDescription, registry: TypeRegistry | None = None) -> None:
        self.description = description
        self.registry = registry
        self._pallets = {p.index: p for p in description.pallets}
        self._call_map = build_call_index_map(description)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RuntimeMetadata:
        return cls(MetadataDescription.model_validate(data))

    @property
    def spec_name(self) -> str:
        return self.description.spec_name

    @property
    def spec_version(self) -> int:
        return self.description.spec_version

    @property
    def call_map(self) -> CallDispatchMap:
        return self._call_map

    def event_layout(self, pallet_index: int, event_index: int) -> tuple[str, EventDescription] | None:
        """Return ``(section, event)`` for an event discriminator pair."""
        pallet = self._pallets.get(pallet_index)
        if pallet is None:
            return None
        event = pallet.events.get(event_index)
        if event is None:
            return None
        return pallet.name, event

    def get_pallet_name(self, pallet_index: int) -> str | None:
        pallet = self._pallets.get(pallet_index)
        return pallet.name if pallet else None

    def get_call_name(self, pallet_index: int, call_index: int) -> str | None:
        return get_call_name(self._call_map, pallet_index, call_index)


def build_call_index_map(description: MetadataDescription) -> dict[int, CallInfo]:
    """Pallets without calls are left out of the map; ``call_count`` is one
    past the highest call index so sparse indices stay addressable."""
    call_map: dict[int, CallInfo] = {}
    for pallet in description.pallets:
        if not pallet.calls:
            continue
        call_map[pallet.index] = CallInfo(
            name=pallet.name,
            call_count=max(pallet.calls) + 1,
            call_name_by_index=dict(pallet.calls),
        )

    logger.debug(
        "call_map_built",
        spec_version=description.spec_version,
        pallets=len(call_map),
    )
    return call_map


def get_pallet_name(call_map: CallDispatchMap, pallet_index: int) -> str | None:
    info = call_map.get(pallet_index)
    return info.name if info else None


def get_call_name(call_map: CallDispatchMap, pallet_index: int, call_index: int) -> str | None:
    info = call_map.get(pallet_index)
    if info is None:
        return None
    return info.call_name_by_index.get(call_index)


class MetadataCache:
    """Resolved metadata keyed by ``(genesis_hash, spec_version)``."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, int], RuntimeMetadata] = {}

    def get(self, genesis_hash: str, spec_version: int) -> RuntimeMetadata | None:
        return self._entries.get((genesis_hash, spec_version))

    def put(self, genesis_hash: str, metadata: RuntimeMetadata) -> None:
        self._entries[(genesis_hash, metadata.spec_version)] = metadata

    def clear(self) -> None:
        self._entries.clear()
        logger.info("metadata_cache_cleared")

    def __len__(self) -> int:
        return len(self._entries)

"""Runtime metadata resolved from the node's own ``state_getMetadata``.

The SCALE metadata is decoded with scalecodec. Pallet calls and events are
read from the portable type registry (v14 and later), and event fields are
typed as ``scale_info::<id>`` so the registry that decoded the metadata can
decode the events too.
"""

from __future__ import annotations

from typing import Any, Callable

import structlog
from scalecodec.base import ScaleBytes

from chainlens.core.errors import DecodeError
from chainlens.core.types import RuntimeVersion
from chainlens.decoding.registry import SCALE_DECODE_ERRORS, TypeRegistry, default_registry
from chainlens.rpc.node import NodeApi
from chainlens.runtime.metadata import MetadataDescription, RuntimeMetadata

logger = structlog.get_logger()

PORTABLE_METADATA_VERSIONS = ("V14", "V15")

MetadataDecoder = Callable[[str, str, int], RuntimeMetadata]


def _versioned_body(value: Any) -> tuple[str, dict[str, Any]]:
    # MetadataVersioned decodes as (magic, {"V14": {...}})
    if isinstance(value, (list, tuple)) and value:
        value = value[-1]
    if not isinstance(value, dict) or len(value) != 1:
        raise DecodeError("Unrecognised runtime metadata layout")
    [(version, body)] = value.items()
    if version not in PORTABLE_METADATA_VERSIONS:
        raise DecodeError(f"Runtime metadata {version} has no portable type registry")
    return version, body


def _type_id(ref: Any) -> int | None:
    if isinstance(ref, dict):
        ref = ref.get("ty", ref.get("type"))
    return ref if isinstance(ref, int) else None


def _variants(types_by_id: dict[int, dict[str, Any]], ref: Any) -> list[dict[str, Any]]:
    type_id = _type_id(ref)
    if type_id is None:
        return []
    entry = types_by_id.get(type_id)
    if entry is None:
        raise DecodeError(f"Portable type {type_id} missing from runtime metadata")
    return entry["type"]["def"].get("variant", {}).get("variants", [])


def description_from_metadata(value: Any, spec_name: str, spec_version: int) -> MetadataDescription:
    """Build a description from decoded v14+ metadata (plain scalecodec values)."""
    version, body = _versioned_body(value)
    try:
        types_by_id = {t["id"]: t for t in body["types"]["types"]}
        pallets = []
        for pallet in body["pallets"]:
            calls = {v["index"]: v["name"] for v in _variants(types_by_id, pallet.get("calls"))}
            events = {
                v["index"]: {
                    "name": v["name"],
                    "fields": [
                        {"name": f.get("name"), "type": f"scale_info::{f['type']}"}
                        for f in v.get("fields", [])
                    ],
                }
                for v in _variants(types_by_id, pallet.get("event"))
            }
            pallets.append({"index": pallet["index"], "name": pallet["name"], "calls": calls, "events": events})
    except (KeyError, TypeError, AttributeError) as exc:
        raise DecodeError(f"Malformed runtime metadata {version}: {exc!r}") from exc

    logger.debug("runtime_metadata_described", version=version, spec_version=spec_version, pallets=len(pallets))
    return MetadataDescription.model_validate(
        {"spec_name": spec_name, "spec_version": spec_version, "pallets": pallets}
    )


def decode_runtime_metadata(
    metadata_hex: str,
    spec_name: str,
    spec_version: int,
    registry: TypeRegistry | None = None,
) -> RuntimeMetadata:
    """Decode SCALE metadata into lookup tables with a registry for its types."""
    registry = registry or default_registry()
    try:
        scale_obj = registry.runtime_config.create_scale_object(
            "MetadataVersioned", data=ScaleBytes(metadata_hex)
        )
        scale_obj.decode()
    except SCALE_DECODE_ERRORS as exc:
        raise DecodeError(f"Cannot decode runtime metadata: {exc}") from exc

    description = description_from_metadata(scale_obj.value, spec_name, spec_version)
    registry.add_portable_registry(scale_obj)
    return RuntimeMetadata(description, registry)


async def fetch_runtime_metadata(
    node: NodeApi,
    block_hash: str,
    version: RuntimeVersion,
    decode: MetadataDecoder = decode_runtime_metadata,
) -> RuntimeMetadata:
    """``state_getMetadata`` at ``block_hash``, decoded for ``version``."""
    metadata_hex = await node.get_metadata(block_hash)
    metadata = decode(metadata_hex, version.spec_name, version.spec_version)
    logger.info(
        "runtime_metadata_resolved",
        block_hash=block_hash,
        spec_name=version.spec_name,
        spec_version=version.spec_version,
        pallets=len(metadata.description.pallets),
    )
    return metadata

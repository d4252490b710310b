"""Runtime metadata resolution for chainlens."""

from chainlens.runtime.metadata import (
    RuntimeMetadata,
    MetadataDescription,
    MetadataCache,
    build_call_index_map,
)
from chainlens.runtime.store import MetadataStore, load_metadata_file
from chainlens.runtime.resolver import (
    decode_runtime_metadata,
    description_from_metadata,
    fetch_runtime_metadata,
)

__all__ = [
    "RuntimeMetadata",
    "MetadataDescription",
    "MetadataCache",
    "build_call_index_map",
    "MetadataStore",
    "load_metadata_file",
    "decode_runtime_metadata",
    "description_from_metadata",
    "fetch_runtime_metadata",
]

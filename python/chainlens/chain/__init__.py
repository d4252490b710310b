"""Chain-level facts: properties and block timestamps."""

from chainlens.chain.properties import (
    ChainProperties,
    fetch_chain_properties,
    format_author_address,
)
from chainlens.chain.timestamps import block_timestamp, block_timestamps

__all__ = [
    "ChainProperties",
    "fetch_chain_properties",
    "format_author_address",
    "block_timestamp",
    "block_timestamps",
]

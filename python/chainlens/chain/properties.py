"""Chain properties reported by ``system_properties``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from chainlens.codec.scale import hex_to_bytes
from chainlens.codec.ss58 import encode_address
from chainlens.core.config import ChainConfig
from chainlens.core.errors import DecodeError, TransportFailure
from chainlens.rpc.node import NodeApi

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class ChainProperties:
    ss58_format: int
    token_symbol: str
    token_decimals: int

    @classmethod
    def from_rpc(cls, result: dict[str, Any], defaults: ChainConfig) -> ChainProperties:
        """Multi-token chains report lists; the first token is the native one."""
        symbol = result.get("tokenSymbol", defaults.symbol)
        decimals = result.get("tokenDecimals", defaults.decimals)
        ss58_format = result.get("ss58Format")
        return cls(
            ss58_format=defaults.ss58_format if ss58_format is None else int(ss58_format),
            token_symbol=symbol[0] if isinstance(symbol, list) else str(symbol),
            token_decimals=int(decimals[0] if isinstance(decimals, list) else decimals),
        )


async def fetch_chain_properties(
    node: NodeApi,
    genesis_hash: str,
    cache: dict[str, ChainProperties] | None = None,
    defaults: ChainConfig | None = None,
) -> ChainProperties:
    """Properties for a chain, memoised per genesis hash.

    Falls back to ``defaults`` when the node cannot answer.
    """
    defaults = defaults or ChainConfig()
    if cache is not None and genesis_hash in cache:
        return cache[genesis_hash]

    try:
        result = await node.system_properties()
    except TransportFailure as exc:
        logger.warning("chain_properties_unavailable", genesis=genesis_hash, error=str(exc))
        result = {}

    properties = ChainProperties.from_rpc(result, defaults)
    if cache is not None:
        cache[genesis_hash] = properties
    return properties


def format_author_address(author: str | None, ss58_format: int) -> str:
    """SS58 rendering of a hex author account; hex when it is not 32 bytes."""
    if not author:
        return "Unknown"
    try:
        raw = hex_to_bytes(author)
    except DecodeError:
        return author
    if len(raw) != 32:
        return author
    return encode_address(raw, ss58_format)

"""Typed access to the Substrate node RPC methods chainlens uses."""

from __future__ import annotations

from typing import Any

import structlog

from chainlens.codec.hashing import CODE_KEY
from chainlens.core.errors import MissingChainData
from chainlens.core.types import RuntimeVersion
from chainlens.rpc.client import RpcClient

logger = structlog.get_logger()


def parse_block_number(value: int | str) -> int:
    """Block numbers arrive as hex strings from headers and ints elsewhere."""
    if isinstance(value, int):
        return value
    return int(value, 16) if value.startswith("0x") else int(value)


class NodeApi:
    """Thin RPC wrappers returning chainlens types."""

    def __init__(self, client: RpcClient) -> None:
        self.client = client

    async def _required(self, method: str, params: list[Any]) -> Any:
        result = await self.client.call(method, params)
        if result is None:
            raise MissingChainData(f"{method}{params} returned null")
        return result

    async def tip_height(self, use_best: bool = False) -> int:
        """Finalized head height, or the best header's with ``use_best``."""
        if use_best:
            header = await self._required("chain_getHeader", [])
        else:
            head = await self._required("chain_getFinalizedHead", [])
            header = await self._required("chain_getHeader", [head])
        return parse_block_number(header["number"])

    async def block_hash_at(self, height: int) -> str:
        return await self._required("chain_getBlockHash", [height])

    async def genesis_hash(self) -> str:
        return await self.block_hash_at(0)

    async def get_header(self, block_hash: str) -> dict[str, Any]:
        return await self._required("chain_getHeader", [block_hash])

    async def get_block(self, block_hash: str) -> dict[str, Any]:
        """Signed block: ``{"block": {"header": ..., "extrinsics": [...]}}``."""
        return await self._required("chain_getBlock", [block_hash])

    async def runtime_version(self, block_hash: str) -> RuntimeVersion:
        result = await self._required("state_getRuntimeVersion", [block_hash])
        return RuntimeVersion(spec_name=result["specName"], spec_version=int(result["specVersion"]))

    async def runtime_version_at(
        self,
        height: int,
        cache: dict[int, RuntimeVersion] | None = None,
    ) -> RuntimeVersion:
        if cache is not None and height in cache:
            return cache[height]
        version = await self.runtime_version(await self.block_hash_at(height))
        if cache is not None:
            cache[height] = version
        return version

    async def get_metadata(self, block_hash: str) -> str:
        """SCALE-encoded runtime metadata as served at ``block_hash``."""
        return await self._required("state_getMetadata", [block_hash])

    async def code_hash_at(self, height: int) -> str:
        block_hash = await self.block_hash_at(height)
        return await self._required("state_getStorageHash", [CODE_KEY, block_hash])

    async def get_storage(self, key: str, block_hash: str | None = None) -> str | None:
        params: list[Any] = [key] if block_hash is None else [key, block_hash]
        return await self.client.call("state_getStorage", params)

    async def system_properties(self) -> dict[str, Any]:
        return await self.client.call("system_properties", []) or {}

    async def query_fee_info(self, extrinsic_hex: str, block_hash: str) -> dict[str, Any] | None:
        """``payment_queryInfo`` evaluated at ``block_hash``."""
        return await self.client.call("payment_queryInfo", [extrinsic_hex, block_hash])

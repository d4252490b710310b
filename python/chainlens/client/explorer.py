"""High-level explorer client tying node access to the decoders."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from chainlens.chain.properties import ChainProperties, fetch_chain_properties, format_author_address
from chainlens.codec.hashing import SYSTEM_EVENTS_KEY, extrinsic_hash
from chainlens.core.config import ChainlensConfig
from chainlens.core.errors import DecodeError, MetadataUnavailable, MissingChainData, RpcError, TransportFailure
from chainlens.core.types import (
    BlockEvents,
    DecodedDigest,
    ExtrinsicEvents,
    ParsedExtrinsic,
    RuntimeSpan,
    RuntimeVersion,
)
from chainlens.decoding.digest import decode_digest
from chainlens.decoding.events import decode_block_events
from chainlens.decoding.extrinsic import parse_extrinsic_header_and_call, to_human
from chainlens.decoding.registry import TypeRegistry, default_registry
from chainlens.discovery.cache import TtlCache
from chainlens.discovery.spans import Connector, WalkOptions, get_cached_runtime_spans
from chainlens.rpc.client import RpcClient
from chainlens.rpc.node import NodeApi, parse_block_number
from chainlens.runtime.metadata import MetadataCache, RuntimeMetadata
from chainlens.runtime.resolver import MetadataDecoder, decode_runtime_metadata, fetch_runtime_metadata
from chainlens.runtime.store import MetadataStore

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class BlockView:
    number: int
    hash: str
    parent_hash: str
    author: str
    digest: DecodedDigest
    extrinsics: tuple[str, ...]
    parsed: tuple[ParsedExtrinsic, ...]
    events: BlockEvents
    spec_version: int


@dataclass(frozen=True, slots=True)
class ExtrinsicView:
    block_number: int
    index: int
    hex: str
    hash: str
    parsed: ParsedExtrinsic
    events: ExtrinsicEvents | None
    partial_fee_human: str | None = None


class ChainExplorer:
    """Decode blocks and extrinsics from a live node."""

    def __init__(
        self,
        config: ChainlensConfig,
        store: MetadataStore | None = None,
        registry: TypeRegistry | None = None,
        *,
        connect: Connector = RpcClient.connect,
        decode_metadata: MetadataDecoder = decode_runtime_metadata,
    ) -> None:
        self.config = config
        self.store = store or MetadataStore(config.metadata.metadata_dir)
        self.registry = registry or default_registry()
        self._connect = connect
        self._decode_metadata = decode_metadata

        self._client: RpcClient | None = None
        self._node: NodeApi | None = None
        self._genesis: str | None = None
        self._properties: ChainProperties | None = None
        self._properties_cache: dict[str, ChainProperties] = {}
        self._metadata_cache = MetadataCache()
        self._span_cache: TtlCache[tuple[str, int | None, bool], list[RuntimeSpan]] = TtlCache(
            ttl=config.discovery.cache_ttl
        )

    async def connect(self) -> None:
        endpoint = self.config.discovery.endpoint
        self._client = await self._connect(endpoint, self.config.discovery.request_timeout)
        self._node = NodeApi(self._client)
        self._genesis = await self._node.genesis_hash()
        self._properties = await fetch_chain_properties(
            self._node,
            self._genesis,
            self._properties_cache,
            self.config.chain,
        )
        logger.info(
            "explorer_connected",
            endpoint=endpoint,
            genesis=self._genesis,
            ss58_format=self._properties.ss58_format,
        )

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.close()
        self._client = None
        self._node = None

    async def __aenter__(self) -> ChainExplorer:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    @property
    def node(self) -> NodeApi:
        if self._node is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._node

    @property
    def properties(self) -> ChainProperties:
        if self._properties is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._properties

    async def runtime_spans(self) -> list[RuntimeSpan]:
        result = await get_cached_runtime_spans(
            self.config.discovery.endpoint,
            self._span_cache,
            WalkOptions.from_config(self.config.discovery),
            connect=self._connect,
        )
        return result.value

    async def metadata_at(self, block_hash: str) -> RuntimeMetadata:
        """Metadata for the runtime active at ``block_hash``.

        A description file for the spec version takes precedence over the
        node's own ``state_getMetadata``; either result is cached per chain.
        """
        version = await self.node.runtime_version(block_hash)
        genesis = self._genesis or ""
        metadata = self._metadata_cache.get(genesis, version.spec_version)
        if metadata is not None:
            return metadata

        metadata = self.store.load(version.spec_version)
        if metadata is None:
            metadata = await self._metadata_from_node(block_hash, version)
        self._metadata_cache.put(genesis, metadata)
        return metadata

    async def _metadata_from_node(self, block_hash: str, version: RuntimeVersion) -> RuntimeMetadata:
        if not self.config.metadata.resolve_from_node:
            raise MetadataUnavailable(version.spec_version)
        try:
            return await fetch_runtime_metadata(self.node, block_hash, version, self._decode_metadata)
        except (RpcError, MissingChainData, DecodeError) as exc:
            logger.warning("node_metadata_unavailable", spec_version=version.spec_version, error=str(exc))
            raise MetadataUnavailable(version.spec_version) from exc

    async def decode_block(self, height: int) -> BlockView:
        block_hash = await self.node.block_hash_at(height)
        signed = await self.node.get_block(block_hash)
        header = signed["block"]["header"]
        extrinsics = tuple(signed["block"].get("extrinsics", []))
        metadata = await self.metadata_at(block_hash)

        props = self.properties
        decoder_config = self.config.decoder
        parsed = tuple(
            parse_extrinsic_header_and_call(
                ext,
                props.ss58_format,
                props.token_decimals,
                metadata.call_map,
                props.token_symbol,
                config=decoder_config,
            )
            for ext in extrinsics
        )

        events_hex = await self.node.get_storage(SYSTEM_EVENTS_KEY, block_hash)
        events = decode_block_events(
            metadata.registry or self.registry,
            metadata,
            events_hex,
            props.ss58_format,
            props.token_decimals,
        )
        digest = decode_digest(header.get("digest", {}).get("logs", []))

        logger.info(
            "block_decoded",
            height=height,
            extrinsics=len(extrinsics),
            failed=sum(1 for p in parsed if not p.ok),
        )
        return BlockView(
            number=parse_block_number(header["number"]),
            hash=block_hash,
            parent_hash=header.get("parentHash", ""),
            author=format_author_address(digest.author, props.ss58_format),
            digest=digest,
            extrinsics=extrinsics,
            parsed=parsed,
            events=events,
            spec_version=metadata.spec_version,
        )

    async def decode_extrinsic(self, height: int, index: int) -> ExtrinsicView:
        block = await self.decode_block(height)
        if not 0 <= index < len(block.extrinsics):
            raise IndexError(f"Block {height} has {len(block.extrinsics)} extrinsics, no index {index}")

        ext_hex = block.extrinsics[index]
        parsed = block.parsed[index]
        events = block.events.by_extrinsic.get(index)

        partial_fee = None
        if parsed.is_signed and (events is None or events.fee_paid is None):
            partial_fee = await self._partial_fee(ext_hex, block.hash)

        return ExtrinsicView(
            block_number=block.number,
            index=index,
            hex=ext_hex,
            hash=extrinsic_hash(ext_hex),
            parsed=parsed,
            events=events,
            partial_fee_human=partial_fee,
        )

    async def _partial_fee(self, ext_hex: str, block_hash: str) -> str | None:
        try:
            info = await self.node.query_fee_info(ext_hex, block_hash)
        except TransportFailure as exc:
            logger.warning("fee_query_failed", error=str(exc))
            return None
        if not info or info.get("partialFee") is None:
            return None
        return to_human(int(info["partialFee"]), self.properties.token_decimals)

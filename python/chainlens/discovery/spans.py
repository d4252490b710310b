"""Runtime span discovery.

Finds the block ranges during which each runtime version was active without
visiting every block: from the start of a span, probes gallop forward with a
doubling step until the runtime version changes, then a binary search pins the
first block of the next version. Each boundary costs O(log distance) calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog

from chainlens.core.config import DiscoveryConfig
from chainlens.core.types import RuntimeSpan, RuntimeVersion
from chainlens.discovery.cache import CacheResult, TtlCache
from chainlens.rpc.client import RpcClient
from chainlens.rpc.node import NodeApi

logger = structlog.get_logger()

ProgressCallback = Callable[[int, int, str], None]
Connector = Callable[[str, float], Awaitable[RpcClient]]


@dataclass(frozen=True, slots=True)
class WalkOptions:
    max_height: int | None = None
    use_best: bool = False
    request_timeout: float = 10.0
    on_progress: ProgressCallback | None = None

    @classmethod
    def from_config(cls, config: DiscoveryConfig, on_progress: ProgressCallback | None = None) -> WalkOptions:
        return cls(
            max_height=config.max_height,
            use_best=config.use_best,
            request_timeout=config.request_timeout,
            on_progress=on_progress,
        )


class SpanWalker:
    """Galloping plus binary search over a node's runtime versions."""

    def __init__(self, node: NodeApi, on_progress: ProgressCallback | None = None) -> None:
        self.node = node
        self.on_progress = on_progress
        self._versions: dict[int, RuntimeVersion] = {}

    async def version_at(self, height: int) -> RuntimeVersion:
        return await self.node.runtime_version_at(height, self._versions)

    def _report(self, current: int, total: int, message: str) -> None:
        if self.on_progress is not None:
            self.on_progress(current, total, message)

    async def _emit(self, version: RuntimeVersion, start: int, end: int) -> RuntimeSpan:
        code_hash = await self.node.code_hash_at(start)
        span = RuntimeSpan(
            spec_name=version.spec_name,
            spec_version=version.spec_version,
            start_block=start,
            end_block=end,
            code_hash=code_hash,
        )
        logger.info(
            "runtime_span_found",
            spec_version=span.spec_version,
            start=start,
            end=end,
        )
        return span

    async def _first_change(self, start: int, current: RuntimeVersion, max_height: int) -> int | None:
        """First height after ``start`` whose version differs, or None."""
        last_same = start
        step = 1
        while True:
            probe = min(start + step, max_height)
            if await self.version_at(probe) != current:
                break
            last_same = probe
            if probe >= max_height:
                return None
            step *= 2

        lo, hi = last_same + 1, probe
        while lo < hi:
            mid = (lo + hi) // 2
            if await self.version_at(mid) == current:
                lo = mid + 1
            else:
                hi = mid
        return lo

    async def walk(self, max_height: int) -> list[RuntimeSpan]:
        spans: list[RuntimeSpan] = []
        start = 0
        current = await self.version_at(start)

        while True:
            self._report(start, max_height, f"Scanning from block {start}")
            change = None if start >= max_height else await self._first_change(start, current, max_height)
            if change is None:
                spans.append(await self._emit(current, start, max_height))
                break

            spans.append(await self._emit(current, start, change - 1))
            start = change
            current = await self.version_at(start)

        self._report(max_height, max_height, f"Found {len(spans)} runtime spans")
        return spans


async def walk_runtime_spans(
    endpoint: str,
    options: WalkOptions | None = None,
    *,
    connect: Connector = RpcClient.connect,
) -> list[RuntimeSpan]:
    """Discover every runtime span from genesis to ``min(max_height, tip)``.

    A single failed remote call aborts the walk with ``TransportFailure``.
    """
    options = options or WalkOptions()
    client = await connect(endpoint, options.request_timeout)
    try:
        node = NodeApi(client)
        tip = await node.tip_height(options.use_best)
        max_height = tip if options.max_height is None else min(options.max_height, tip)
        logger.info("runtime_walk_started", endpoint=endpoint, max_height=max_height)
        return await SpanWalker(node, options.on_progress).walk(max_height)
    finally:
        await client.close()


async def get_cached_runtime_spans(
    endpoint: str,
    cache: TtlCache[tuple[str, int | None, bool], list[RuntimeSpan]],
    options: WalkOptions | None = None,
    *,
    connect: Connector = RpcClient.connect,
) -> CacheResult[list[RuntimeSpan]]:
    options = options or WalkOptions()
    key = (endpoint, options.max_height, options.use_best)
    return await cache.get_or_refresh(
        key,
        lambda: walk_runtime_spans(endpoint, options, connect=connect),
    )

"""Block timestamps from ``Timestamp::Now`` with a block-time estimate fallback."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Iterable

import structlog

from chainlens.codec.hashing import TIMESTAMP_NOW_KEY
from chainlens.codec.scale import hex_to_bytes
from chainlens.core.errors import ChainlensError
from chainlens.rpc.node import NodeApi

logger = structlog.get_logger()

DEFAULT_BLOCK_TIME_MS = 6000


def now_ms() -> int:
    return int(time.time() * 1000)


def decode_timestamp(value: str | None, now: int) -> int | None:
    """LE u64 milliseconds; rejects zero and values far in the future."""
    if not value:
        return None
    raw = hex_to_bytes(value)[:8]
    timestamp = int.from_bytes(raw, "little")
    if 0 < timestamp < now * 2:
        return timestamp
    return None


def estimate_timestamp(height: int, tip: int, now: int, block_time_ms: int = DEFAULT_BLOCK_TIME_MS) -> int:
    return now - (tip - height) * block_time_ms


async def _stored_timestamp(node: NodeApi, height: int, now: int) -> int | None:
    try:
        block_hash = await node.block_hash_at(height)
        return decode_timestamp(await node.get_storage(TIMESTAMP_NOW_KEY, block_hash), now)
    except ChainlensError as exc:
        logger.warning("timestamp_fetch_failed", height=height, error=str(exc))
        return None


async def block_timestamp(
    node: NodeApi,
    height: int,
    *,
    block_time_ms: int = DEFAULT_BLOCK_TIME_MS,
    clock: Callable[[], int] = now_ms,
) -> int:
    now = clock()
    stored = await _stored_timestamp(node, height, now)
    if stored is not None:
        return stored
    tip = await node.tip_height()
    return estimate_timestamp(height, tip, now, block_time_ms)


async def block_timestamps(
    node: NodeApi,
    heights: Iterable[int],
    *,
    block_time_ms: int = DEFAULT_BLOCK_TIME_MS,
    clock: Callable[[], int] = now_ms,
) -> dict[int, int]:
    """Timestamps for many heights; the tip is fetched once for estimates."""
    heights = list(heights)
    now = clock()
    tip = await node.tip_height()
    stored = await asyncio.gather(*(_stored_timestamp(node, h, now) for h in heights))
    return {
        h: value if value is not None else estimate_timestamp(h, tip, now, block_time_ms)
        for h, value in zip(heights, stored)
    }
